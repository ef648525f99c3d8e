"""
Tickets External Service Adapters
===================================

Adapter that lets ticket creation call the AI triage module in-process.
"""

from typing import Optional

from eduticket.tickets.application import ITriageSuggester
from eduticket.triage.application import TriageService
from eduticket.triage.domain import TriageRequest, TriageSuggestion
from eduticket.triage.infrastructure import LLMClientAdapter


class TriageSuggesterAdapter(ITriageSuggester):
    """
    Adapter implementing ITriageSuggester with the triage service.
    """

    def __init__(self, service: Optional[TriageService] = None):
        self._service = service or TriageService(LLMClientAdapter())

    async def suggest(self, title: str, description: str, ticket_type: str) -> TriageSuggestion:
        """Run triage on already validated ticket text."""
        request = TriageRequest(title=title, description=description, type=ticket_type)
        return await self._service.suggest(request)

"""
Triage Infrastructure Layer
============================

Infrastructure implementations for the AI triage module.

Contains:
- External: LLM adapter
"""

from eduticket.triage.infrastructure.external import LLMClientAdapter

__all__ = ["LLMClientAdapter"]

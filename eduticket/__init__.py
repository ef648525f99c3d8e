"""
EduTicket AI
============

Student helpdesk service: tickets, AI triage, RAG assistant and
instructor knowledge base.
"""

__version__ = "1.0.0"

"""
Shared Kernel Module
====================

Shared infrastructure used across all bounded contexts
(tickets, triage, assistant, documents, knowledge).

Architecture Pattern: Modular Monolith
- Each module is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add ticket, assistant or knowledge business logic to the shared kernel.
"""

__version__ = "1.0.0"

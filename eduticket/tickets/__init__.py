"""
Tickets Module
==============

Student support tickets, their comments, and user profiles.

Layers:
- domain: Ticket rules (validation, statistics)
- application: Services and DTOs
- infrastructure: SQLAlchemy models, repositories, triage adapter
- interfaces: FastAPI routes
"""

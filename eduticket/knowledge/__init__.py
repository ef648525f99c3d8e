"""
Knowledge Module
================

Instructor knowledge base with versioned entries, and AI-suggested
answers for new tickets drawn from the knowledge base and the course
documents.
"""

"""
Assistant Module
================

Retrieval-augmented chat assistant answering student questions from the
ingested course documents, with persisted chat sessions.
"""

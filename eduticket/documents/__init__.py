"""
Documents Module
================

Ingestion of course documents into the RAG vector collection: chunking,
batch embedding, listing, statistics and deletion.
"""

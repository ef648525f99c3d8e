"""Infrastructure adapters: database, LLM and vector store."""

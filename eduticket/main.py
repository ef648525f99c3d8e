"""
EduTicket AI - Main Application
================================

Student helpdesk: support tickets, AI triage, a RAG study assistant and
an instructor knowledge base.

Modules:
- Tickets: Profiles, tickets, comments and ticket statistics
- AI Triage: Suggest a type and priority for a ticket
- Assistant: Retrieval-augmented chat over the course documents
- Documents: Chunk, embed and manage the document corpus
- Knowledge: Instructor answers reused as suggestions for new tickets

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and value objects
- Infrastructure: Database, LLM, vector store
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from eduticket.config import settings
from eduticket.core import ApplicationException, VectorStoreException

# Infrastructure
from eduticket.infrastructure.database import (
    init_database, close_database, create_tables, check_connection
)
from eduticket.infrastructure.vectorstore import MilvusVectorStore, get_collection_store

# Module Routers
from eduticket.triage.interfaces import triage_router
from eduticket.tickets.interfaces import tickets_router, profiles_router, comments_router
from eduticket.assistant.interfaces import assistant_router
from eduticket.documents.interfaces import documents_router
from eduticket.knowledge.interfaces import knowledge_router

# Shared
from eduticket.shared.api.middleware import (
    CorrelationIDMiddleware,
    MetricsMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler
)
from eduticket.shared.infrastructure.logging import setup_logging, get_logger
from eduticket.shared.infrastructure.grafana import init_grafana_exporter

logger = get_logger(__name__)


def attach_vector_stores(app: FastAPI) -> None:
    """Put the documents and knowledge stores on app state; they connect lazily."""
    app.state.documents_store = get_collection_store(settings.documents_collection_name)
    app.state.knowledge_store = get_collection_store(settings.knowledge_collection_name)


async def _connect_vector_store(store: MilvusVectorStore) -> None:
    try:
        await store.initialize()
    except VectorStoreException as e:
        logger.warning(
            f"Vector store not available, retrying on first use: {e.message}",
            extra={"collection": store.collection_name}
        )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database
    3. Create database tables
    4. Initialize Grafana exporter
    5. Connect the documents and knowledge vector collections (best effort)

    SHUTDOWN:
    1. Close database connections
    """
    # === STARTUP ===
    setup_logging()
    logger.info("Starting EduTicket service", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database()

    # Create tables (for development - use Alembic in production)
    # Note: If database is not available, the server will start but
    # database-dependent endpoints will fail
    logger.info("Creating database tables")
    try:
        await create_tables()
    except Exception as e:
        logger.warning(f"Database not available - running in degraded mode: {e}")

    logger.info("Initializing Grafana OTLP exporter")
    if settings.grafana_host and settings.grafana_api_key and settings.grafana_instance_id:
        init_grafana_exporter(
            host=settings.grafana_host,
            api_key=settings.grafana_api_key,
            instance_id=settings.grafana_instance_id
        )
        logger.info("Grafana OTLP exporter initialized successfully")
    else:
        logger.info("Grafana OTLP exporter not configured - metrics will not be exported")

    if not settings.llm_configured:
        logger.warning("GOOGLE_AI_API_KEY not set - AI features are disabled")

    if settings.vector_store_configured:
        logger.info("Connecting Milvus vector stores")
        await _connect_vector_store(app.state.documents_store)
        await _connect_vector_store(app.state.knowledge_store)
    else:
        logger.warning("ZILLIZ_URI or ZILLIZ_API_KEY not set - document search is disabled")

    logger.info("EduTicket service started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down EduTicket service")
    await close_database()
    logger.info("EduTicket service shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="EduTicket AI API",
    description="""
    ## Student Helpdesk with AI Triage and a Study Assistant

    ---

    ### 🎫 Tickets Module

    - `POST /profiles` - Register a user profile
    - `POST /tickets` - Create a ticket (AI suggests a priority)
    - `GET /tickets` - List tickets, filtered by creator, assignee or status
    - `PATCH /tickets/{id}/status`, `PATCH /tickets/{id}/assignee` - Update a ticket
    - `GET /tickets/stats` - Dashboard statistics
    - `/comments` - Ticket discussion

    ### 🤖 AI Triage Module

    - `POST /triage` - Suggest a ticket type and priority from its title and description

    ### 💬 Assistant Module

    - `POST /assistant/chat` - Ask a question about the course documents (RAG)
    - `/assistant/sessions` - Chat history

    ### 📚 Documents Module

    - `POST /documents` - Chunk, embed and store a document
    - `GET /documents`, `GET /documents/stats`, `DELETE /documents/{title}`

    ### 🧠 Knowledge Module

    - `/knowledge/entries` - Instructor answers with version history
    - `/knowledge/suggestions/{ticket_id}` - Suggested answers for a ticket

    ---
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware ===
app.add_middleware(CorrelationIDMiddleware)
app.add_middleware(MetricsMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(profiles_router)
app.include_router(tickets_router)
app.include_router(comments_router)
app.include_router(triage_router)
app.include_router(assistant_router)
app.include_router(documents_router)
app.include_router(knowledge_router)

attach_vector_stores(app)


# === Health Check Endpoint ===

async def _store_status(store) -> str:
    if store is None or not settings.vector_store_configured:
        return "not_configured"
    try:
        count = await store.get_document_count()
    except VectorStoreException as e:
        return f"error: {e.message}"
    return f"available ({count} records)"


@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service health",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "database": "connected",
                        "llm_client": "available",
                        "documents_store": "available (120 records)",
                        "knowledge_store": "available (14 records)"
                    }
                }
            }
        }
    }
})
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    The service reports "degraded" when the database is unreachable.
    """
    database_ok = await check_connection()
    checks = {
        "database": "connected" if database_ok else "unavailable",
        "llm_client": "available" if settings.llm_configured else "not_configured",
        "documents_store": await _store_status(getattr(request.app.state, "documents_store", None)),
        "knowledge_store": await _store_status(getattr(request.app.state, "knowledge_store", None))
    }

    return {
        "status": "healthy" if database_ok else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "EduTicket AI",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "tickets": {"prefix": "/tickets", "related": ["/profiles", "/comments"]},
            "triage": {"prefix": "/triage"},
            "assistant": {"prefix": "/assistant"},
            "documents": {"prefix": "/documents"},
            "knowledge": {"prefix": "/knowledge"}
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "eduticket.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )

"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="eduticket-service", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    institution_name: str = Field(
        default="FPT University",
        description="Institution name used in assistant prompts"
    )

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/eduticket",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== Google Gemini (OpenAI-compatible endpoint) ==========
    google_ai_api_key: Optional[str] = Field(
        default=None,
        description="Google AI Studio API key for Gemini"
    )
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/openai/",
        description="Gemini OpenAI-compatible base URL"
    )
    mock_llm: bool = Field(
        default=False,
        description="Use mock LLM responses for testing (no API calls)"
    )
    llm_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for a single LLM call",
        ge=1,
        le=120
    )

    # ========== LLM Settings ==========
    llm_model: str = Field(
        default="gemini-2.0-flash-exp",
        description="Gemini model for triage, chat and answer synthesis"
    )
    embedding_model: str = Field(
        default="text-embedding-004",
        description="Gemini embedding model"
    )
    embedding_dimension: int = Field(
        default=768,
        description="Embedding vector dimension",
        ge=128
    )
    llm_temperature: float = Field(
        default=0.3,
        description="Default temperature for LLM",
        ge=0.0,
        le=1.0
    )
    llm_max_tokens: int = Field(
        default=1024,
        description="Default max tokens for LLM generation",
        ge=1,
        le=8000
    )

    # ========== Zilliz Cloud (Managed Milvus) Configuration ==========
    zilliz_uri: str = Field(
        default="",
        description="Zilliz Cloud cluster URI (public endpoint from the console)"
    )
    zilliz_api_key: str = Field(
        default="",
        description="Zilliz Cloud API key"
    )
    documents_collection_name: str = Field(
        default="rag_documents",
        description="Milvus collection holding RAG document chunks"
    )
    knowledge_collection_name: str = Field(
        default="knowledge_entries",
        description="Milvus collection holding knowledge entry question embeddings"
    )

    # ========== RAG Assistant ==========
    rag_match_threshold: float = Field(
        default=0.6,
        description="Minimum cosine similarity for a document chunk to be used as context",
        ge=0.0,
        le=1.0
    )
    rag_match_count: int = Field(
        default=5,
        description="Number of document chunks to retrieve",
        ge=1,
        le=20
    )
    rag_history_limit: int = Field(
        default=5,
        description="Number of stored session messages replayed to the LLM",
        ge=0
    )
    rag_max_query_length: int = Field(
        default=1000,
        description="Queries are cut to this many characters",
        ge=1
    )
    rate_limit_max_requests: int = Field(
        default=20,
        description="Max assistant questions per user per window",
        ge=1
    )
    rate_limit_window_minutes: int = Field(
        default=60,
        description="Rate limit window length in minutes",
        ge=1
    )

    # ========== Knowledge Suggestions ==========
    suggestion_similarity_threshold: float = Field(
        default=0.7,
        description="Minimum similarity for auto-suggested answers",
        ge=0.0,
        le=1.0
    )
    suggestion_max_results: int = Field(
        default=3,
        description="Max suggestions returned for a ticket",
        ge=1,
        le=10
    )

    # ========== Document Chunking ==========
    chunk_size: int = Field(
        default=1000,
        description="Character size for document chunks",
        ge=100
    )
    chunk_overlap: int = Field(
        default=200,
        description="Overlap between document chunks",
        ge=0
    )
    embedding_batch_size: int = Field(
        default=5,
        description="Texts embedded concurrently per batch",
        ge=1
    )
    embedding_batch_delay_seconds: float = Field(
        default=1.0,
        description="Pause between embedding batches",
        ge=0.0
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:5173", "http://localhost:8080"],
        description="Allowed CORS origins"
    )

    # ========== Grafana OTLP Metrics ==========
    grafana_host: Optional[str] = Field(
        default=None,
        description="Grafana OTLP gateway URL (e.g., https://otlp-gateway-prod-ap-south-1.grafana.net)"
    )
    grafana_api_key: Optional[str] = Field(
        default=None,
        description="Grafana API key for OTLP authentication"
    )
    grafana_instance_id: Optional[str] = Field(
        default=None,
        description="Grafana instance ID for OTLP authentication"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @property
    def llm_configured(self) -> bool:
        """True when a real or mock LLM can be used."""
        return self.mock_llm or bool(self.google_ai_api_key)

    @property
    def vector_store_configured(self) -> bool:
        return bool(self.zilliz_uri and self.zilliz_api_key)


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class TicketType(str):
    """Ticket types stored on a ticket."""
    BUG = "bug"
    FEATURE = "feature"
    QUESTION = "question"
    TASK = "task"


class TriageType(str):
    """Type categories the triage model may suggest (superset of TicketType)."""
    BUG = "bug"
    FEATURE = "feature"
    QUESTION = "question"
    TASK = "task"
    GRADING = "grading"
    REPORT = "report"
    CONFIG = "config"
    ASSIGNMENT = "assignment"
    EXAM = "exam"
    SUBMISSION = "submission"
    TECHNICAL = "technical"
    ACADEMIC = "academic"


class Priority(str):
    """Ticket priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TicketStatus(str):
    """Ticket lifecycle statuses."""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class UserRole(str):
    """Profile roles."""
    STUDENT = "student"
    LEAD = "lead"
    INSTRUCTOR = "instructor"


class ChatRole(str):
    """Chat message author roles."""
    USER = "user"
    ASSISTANT = "assistant"


class Visibility(str):
    """Knowledge entry visibility."""
    PUBLIC = "public"
    COURSE_SPECIFIC = "course_specific"


class SuggestionSource(str):
    """Where an auto-suggested answer came from."""
    KNOWLEDGE_BASE = "knowledge_base"
    RAG_DOCUMENTS = "rag_documents"


class Confidence(str):
    """Confidence band of a suggested answer."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ========== Lists for validation ==========

# Order matters: triage parsing takes the first match in list order.
VALID_PRIORITIES = [
    Priority.LOW, Priority.MEDIUM,
    Priority.HIGH, Priority.CRITICAL
]
TRIAGE_TYPES = [
    TriageType.BUG, TriageType.FEATURE, TriageType.QUESTION, TriageType.TASK,
    TriageType.GRADING, TriageType.REPORT, TriageType.CONFIG, TriageType.ASSIGNMENT,
    TriageType.EXAM, TriageType.SUBMISSION, TriageType.TECHNICAL, TriageType.ACADEMIC,
]
VALID_TICKET_TYPES = [
    TicketType.BUG, TicketType.FEATURE,
    TicketType.QUESTION, TicketType.TASK
]
VALID_STATUSES = [
    TicketStatus.OPEN, TicketStatus.IN_PROGRESS,
    TicketStatus.RESOLVED, TicketStatus.CLOSED
]
VALID_ROLES = [UserRole.STUDENT, UserRole.LEAD, UserRole.INSTRUCTOR]
VALID_VISIBILITIES = [Visibility.PUBLIC, Visibility.COURSE_SPECIFIC]

"""
Tests for the application shell: health, index and middleware.
"""


def test_health_reports_checks(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] in ("healthy", "degraded")
    assert body["checks"]["llm_client"] == "available"
    assert body["checks"]["documents_store"] == "not_configured"
    assert body["checks"]["knowledge_store"] == "not_configured"


def test_root_lists_modules(client):
    body = client.get("/").json()

    assert body["service"] == "EduTicket AI"
    assert set(body["modules"]) == {"tickets", "triage", "assistant", "documents", "knowledge"}


def test_correlation_id_is_echoed(client):
    response = client.get("/", headers={"X-Correlation-ID": "abc-123"})

    assert response.headers["X-Correlation-ID"] == "abc-123"
    assert "X-Response-Time" in response.headers


def test_error_body_carries_correlation_id(client):
    response = client.get("/tickets/not-a-ticket", headers={"X-Correlation-ID": "req-42"})

    assert response.status_code == 404
    assert response.json()["correlation_id"] == "req-42"


def test_vector_stores_attached_without_lifespan():
    from fastapi import FastAPI
    from eduticket.config import settings
    from eduticket.infrastructure.vectorstore import MilvusVectorStore
    from eduticket.main import attach_vector_stores

    app = FastAPI()
    attach_vector_stores(app)

    assert isinstance(app.state.documents_store, MilvusVectorStore)
    assert app.state.documents_store.collection_name == settings.documents_collection_name
    assert app.state.knowledge_store.collection_name == settings.knowledge_collection_name


def test_main_app_has_stores_at_import():
    import eduticket.main

    assert eduticket.main.app.state.documents_store is not None
    assert eduticket.main.app.state.knowledge_store is not None

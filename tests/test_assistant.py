"""
Tests for the RAG assistant: prompt building, the chat service with fakes,
chat storage on SQLite and the /assistant API.
"""
import pytest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from eduticket.assistant.application import ChatResponse, RAGAssistantService
from eduticket.assistant.domain import ChatAnswer, ChatQuery, RAGPromptBuilder, RetrievedDocument, SourceReference
from eduticket.assistant.infrastructure import AssistantRequestModel, SQLAlchemyChatRepository
from eduticket.assistant.interfaces.controllers import get_assistant_service
from eduticket.config import settings
from eduticket.core import (
    LLMException, RateLimitExceededException, RepositoryException,
    ValidationException, VectorStoreException
)
from eduticket.tickets.infrastructure import SQLAlchemyProfileRepository


class FakeChatRepository:
    """In-memory chat storage."""

    def __init__(self, recent_requests=0):
        self.recent_requests = recent_requests
        self.history = []
        self.saved = []
        self.touched = []

    async def list_messages(self, session_id, limit=None):
        return self.history[:limit] if limit else list(self.history)

    async def add_messages(self, session_id, messages):
        self.saved.extend(messages)

    async def touch_session(self, session_id):
        self.touched.append(session_id)

    async def record_user_request(self, user_id):
        self.recent_requests += 1

    async def count_user_requests_since(self, user_id, since):
        return self.recent_requests


def _llm(answer="Submit it on the course page [Handbook]."):
    llm = MagicMock()
    llm.generate_embedding = AsyncMock(return_value=SimpleNamespace(embedding=[0.1, 0.2]))
    llm.chat_completion = AsyncMock(return_value=SimpleNamespace(content=answer, model="mock"))
    return llm


def _search(documents=None, error=None):
    search = MagicMock()
    search.search = AsyncMock(return_value=documents or [], side_effect=error)
    return search


DOCS = [
    RetrievedDocument(title="Handbook", content="Upload projects on the course page.", similarity=0.8234),
    RetrievedDocument(title="Syllabus", content="Deadlines are on Fridays.", similarity=0.6611),
]


# ========== Domain ==========

def test_chat_query_trims_and_truncates():
    query = ChatQuery.from_raw("  " + "x" * 1500 + "  ", max_length=1000)
    assert len(query.text) == 1000


@pytest.mark.parametrize("raw", [None, "", "   ", 42])
def test_chat_query_requires_text(raw):
    with pytest.raises(ValidationException, match="Query is required"):
        ChatQuery.from_raw(raw)


def test_history_persisted_only_with_session_and_user():
    assert ChatQuery("q", session_id="s", user_id="u").persists_history
    assert not ChatQuery("q", session_id="s").persists_history
    assert not ChatQuery("q", user_id="u").persists_history


def test_context_blocks_and_fallback():
    assert RAGPromptBuilder.build_context([]) == RAGPromptBuilder.NO_CONTEXT

    context = RAGPromptBuilder.build_context(DOCS)
    assert context == (
        "[Handbook]\nUpload projects on the course page."
        "\n\n---\n\n"
        "[Syllabus]\nDeadlines are on Fridays."
    )

    prompt = RAGPromptBuilder.build_system_prompt(context, "Example University")
    assert "Example University" in prompt
    assert RAGPromptBuilder.FALLBACK_ANSWER in prompt


def test_response_rounds_similarity():
    answer = ChatAnswer(response="ok", sources=[SourceReference("Handbook", 0.8234)], has_context=True)
    assert ChatResponse.from_domain(answer).model_dump() == {
        "response": "ok",
        "sources": [{"title": "Handbook", "similarity": 0.82}]
    }


# ========== Service ==========

@pytest.mark.asyncio
async def test_chat_answers_from_documents_and_saves_turn():
    repo = FakeChatRepository()
    repo.history = [SimpleNamespace(role="user", content="Hi"), SimpleNamespace(role="assistant", content="Hello")]
    llm = _llm()
    service = RAGAssistantService(llm, _search(DOCS), repo)

    answer = await service.chat(ChatQuery("How do I submit?", session_id="s1", user_id="u1"))

    assert answer.has_context is True
    assert [s.title for s in answer.sources] == ["Handbook", "Syllabus"]

    messages = llm.chat_completion.call_args.kwargs["messages"]
    assert messages[0]["role"] == "system"
    assert "[Handbook]" in messages[0]["content"]
    assert messages[1:] == [
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello"},
        {"role": "user", "content": "How do I submit?"},
    ]
    assert llm.chat_completion.call_args.kwargs["top_p"] == 0.8

    assert [m["role"] for m in repo.saved] == ["user", "assistant"]
    assert repo.saved[1]["metadata"]["has_context"] is True
    assert repo.touched == ["s1"]


@pytest.mark.asyncio
async def test_chat_without_session_does_not_save():
    repo = FakeChatRepository()
    service = RAGAssistantService(_llm(), _search([]), repo)

    answer = await service.chat(ChatQuery("Anything?"))

    assert answer.has_context is False
    assert repo.saved == []


@pytest.mark.asyncio
async def test_search_uses_configured_threshold():
    search = _search([])
    await RAGAssistantService(_llm(), search, FakeChatRepository()).chat(ChatQuery("q"))

    kwargs = search.search.call_args.kwargs
    assert kwargs["top_k"] == settings.rag_match_count
    assert kwargs["threshold"] == settings.rag_match_threshold


@pytest.mark.asyncio
async def test_rate_limit_blocks_at_maximum():
    repo = FakeChatRepository(recent_requests=settings.rate_limit_max_requests)
    llm = _llm()
    service = RAGAssistantService(llm, _search(DOCS), repo)

    with pytest.raises(RateLimitExceededException):
        await service.chat(ChatQuery("q", user_id="u1"))
    llm.generate_embedding.assert_not_awaited()


@pytest.mark.asyncio
async def test_rate_limit_failure_does_not_block():
    repo = FakeChatRepository()
    repo.count_user_requests_since = AsyncMock(side_effect=RepositoryException("db down"))
    service = RAGAssistantService(_llm(), _search(DOCS), repo)

    answer = await service.chat(ChatQuery("q", user_id="u1"))

    assert answer.response


@pytest.mark.asyncio
async def test_save_failure_still_returns_answer():
    repo = FakeChatRepository()
    repo.add_messages = AsyncMock(side_effect=RepositoryException("gone"))
    service = RAGAssistantService(_llm("Answer"), _search(DOCS), repo)

    answer = await service.chat(ChatQuery("q", session_id="s", user_id="u"))

    assert answer.response == "Answer"


# ========== Repository ==========

@pytest.mark.asyncio
async def test_chat_repository_round_trip(db_session):
    profiles = SQLAlchemyProfileRepository(db_session)
    user = await profiles.create("chat@example.edu", None, "student")
    repo = SQLAlchemyChatRepository(db_session)

    session = await repo.create_session(str(user.id), "Exam questions")
    await repo.add_messages(str(session.id), [
        {"role": "user", "content": "When is the exam?"},
        {"role": "assistant", "content": "Friday.", "metadata": {"has_context": True}},
    ])

    messages = await repo.list_messages(str(session.id))
    assert [m.content for m in messages] == ["When is the exam?", "Friday."]
    assert messages[1].message_metadata == {"has_context": True}

    assert await repo.delete_session(str(session.id)) is True
    assert await repo.list_messages(str(session.id)) == []


@pytest.mark.asyncio
async def test_request_count_uses_rolling_window(db_session):
    user_id = uuid4()
    repo = SQLAlchemyChatRepository(db_session)
    db_session.add(AssistantRequestModel(
        id=uuid4(), user_id=user_id, created_at=datetime.now(timezone.utc) - timedelta(hours=2)
    ))
    await repo.record_user_request(str(user_id))
    await repo.record_user_request(str(uuid4()))

    since = datetime.now(timezone.utc) - timedelta(hours=1)
    assert await repo.count_user_requests_since(str(user_id), since) == 1


@pytest.mark.asyncio
async def test_rate_limit_applies_without_session(db_session):
    user_id = str(uuid4())
    service = RAGAssistantService(_llm(), _search(DOCS), SQLAlchemyChatRepository(db_session))

    for _ in range(settings.rate_limit_max_requests):
        await service.chat(ChatQuery("question?", user_id=user_id))

    with pytest.raises(RateLimitExceededException):
        await service.chat(ChatQuery("question?", user_id=user_id))

    # Other users keep their own allowance
    assert (await service.chat(ChatQuery("question?", user_id=str(uuid4())))).response


@pytest.mark.asyncio
async def test_add_messages_to_unknown_session(db_session):
    repo = SQLAlchemyChatRepository(db_session)
    with pytest.raises(RepositoryException):
        await repo.add_messages(str(uuid4()), [{"role": "user", "content": "hi"}])


# ========== API ==========

def _override_service(client, service):
    client.app.dependency_overrides[get_assistant_service] = lambda: service


def test_chat_requires_query(client):
    response = client.post("/assistant/chat", json={"query": "  "})
    assert response.status_code == 400
    assert response.json() == {"error": "Query is required"}


def test_chat_search_failure(client):
    service = MagicMock()
    service.chat = AsyncMock(side_effect=VectorStoreException("timeout"))
    _override_service(client, service)

    response = client.post("/assistant/chat", json={"query": "hello"})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to search documents"}


def test_chat_rate_limited(client):
    service = MagicMock()
    service.chat = AsyncMock(side_effect=RateLimitExceededException("u", 20, 60))
    _override_service(client, service)

    response = client.post("/assistant/chat", json={"query": "hello", "user_id": "u"})

    assert response.status_code == 429
    assert response.json()["code"] == "RATE_LIMIT_EXCEEDED"


def test_chat_llm_failure(client):
    service = MagicMock()
    service.chat = AsyncMock(side_effect=LLMException("quota"))
    _override_service(client, service)

    body = client.post("/assistant/chat", json={"query": "hello"}).json()

    assert body == {"error": "Something went wrong. Please try again later.", "details": "quota"}


def test_chat_success(client):
    service = MagicMock()
    service.chat = AsyncMock(return_value=ChatAnswer(
        response="Use the portal.", sources=[SourceReference("Handbook", 0.777)], has_context=True
    ))
    _override_service(client, service)

    body = client.post("/assistant/chat", json={"query": "hello"}).json()

    assert body == {"response": "Use the portal.", "sources": [{"title": "Handbook", "similarity": 0.78}]}


def test_session_endpoints(client, student):
    created = client.post("/assistant/sessions", json={"user_id": student["id"], "title": "Lab help"})
    assert created.status_code == 201
    session_id = created.json()["id"]

    sessions = client.get("/assistant/sessions", params={"user_id": student["id"]}).json()
    assert [s["id"] for s in sessions] == [session_id]

    assert client.get(f"/assistant/sessions/{session_id}/messages").json() == []
    assert client.delete(f"/assistant/sessions/{session_id}").status_code == 204
    assert client.get(f"/assistant/sessions/{session_id}/messages").status_code == 404

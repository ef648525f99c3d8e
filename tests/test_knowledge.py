"""
Tests for the instructor knowledge base and suggested answers.
"""
import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from eduticket.core import KnowledgeBaseException, LLMException, VectorStoreException
from eduticket.knowledge.application import (
    AnswerSynthesizer, KnowledgeEntryService, TicketAutoResponseService
)
from eduticket.knowledge.domain import (
    DocumentHit, KnowledgeEntryInput, KnowledgeEntryUpdate, StatisticsUpdate, SuggestedAnswer,
    calculate_confidence, is_quality_answer, merge_suggestions, sanitize_tags
)
from eduticket.knowledge.infrastructure import (
    MilvusKnowledgeIndex, SQLAlchemyKnowledgeRepository, SQLAlchemySuggestionRepository
)
from eduticket.tickets.infrastructure import SQLAlchemyProfileRepository

GOOD_ANSWER = (
    "Email the instructor at least two days before the deadline and attach "
    "a short explanation of the reason."
)


class FakeIndex:
    """In-memory knowledge index keyed by entry id."""

    def __init__(self):
        self.records = {}
        self.hits = []

    async def add(self, entry_id, question_text, embedding, visibility, course_code):
        self.records[entry_id] = (visibility, course_code)

    async def remove(self, entry_ids):
        for entry_id in entry_ids:
            self.records.pop(entry_id, None)

    async def search(self, embedding, top_k, threshold, course_code=None):
        return self.hits


def _llm(answer=GOOD_ANSWER):
    llm = MagicMock()
    llm.generate_embedding = AsyncMock(return_value=SimpleNamespace(embedding=[0.1, 0.2, 0.3]))
    llm.chat_completion = AsyncMock(return_value=SimpleNamespace(content=answer))
    return llm


def _entry(instructor_id, **overrides):
    values = dict(
        instructor_id=instructor_id,
        question_text="How do I request an extension?",
        answer_text=GOOD_ANSWER,
        tags=["deadlines"],
        visibility="course_specific",
        course_code="cs101"
    )
    values.update(overrides)
    return KnowledgeEntryInput(**values)


async def _instructor(db_session, email="prof@example.edu"):
    profile = await SQLAlchemyProfileRepository(db_session).create(email, "Prof", "instructor")
    return str(profile.id)


# ========== Domain ==========

@pytest.mark.parametrize("overrides, code, message", [
    ({"question_text": "  "}, "KB_VALIDATION_FAILED", "Question text is required"),
    ({"answer_text": ""}, "KB_VALIDATION_FAILED", "Answer text is required"),
    ({"course_code": None}, "KB_INVALID_VISIBILITY", None),
    ({"visibility": "secret"}, "KB_INVALID_VISIBILITY", None),
    ({"question_text": "q" * 2001}, "KB_VALIDATION_FAILED", "Question text must be 2000 characters or less"),
])
def test_entry_validation(overrides, code, message):
    with pytest.raises(KnowledgeBaseException) as exc_info:
        _entry("instructor", **overrides).validate()

    assert exc_info.value.code == code
    if message:
        assert exc_info.value.message == message


def test_sanitized_entry():
    entry = _entry("i", question_text="  Q?  ", tags=[" a ", "", "b" * 80] + ["t"] * 20).sanitized()

    assert entry.question_text == "Q?"
    assert entry.course_code == "CS101"
    assert entry.tags[0] == "a"
    assert entry.tags[1] == "b" * 50
    assert len(entry.tags) <= 10


def test_sanitize_tags_limits_count():
    assert len(sanitize_tags([f"tag{i}" for i in range(15)])) == 10


@pytest.mark.parametrize("similarity, level", [
    (0.95, "high"), (0.85, "high"), (0.8, "medium"), (0.75, "medium"), (0.74, "low"),
])
def test_confidence_levels(similarity, level):
    assert calculate_confidence(similarity) == level


def test_answer_quality():
    assert is_quality_answer(GOOD_ANSWER)
    assert not is_quality_answer("Too short.")
    assert not is_quality_answer("Sorry, " + GOOD_ANSWER)


def test_merge_keeps_most_similar():
    def suggestion(score):
        return SuggestedAnswer(str(score), "knowledge_base", "q", "a", score, "low")

    merged = merge_suggestions([suggestion(0.7), suggestion(0.9)], [suggestion(0.8), suggestion(0.6)], limit=3)

    assert [s.similarity_score for s in merged] == [0.9, 0.8, 0.7]


# ========== Entry service ==========

@pytest.mark.asyncio
async def test_create_entry_embeds_and_indexes(db_session):
    instructor_id = await _instructor(db_session)
    index = FakeIndex()
    service = KnowledgeEntryService(SQLAlchemyKnowledgeRepository(db_session), _llm(), index)

    entry = await service.create_entry(_entry(instructor_id))

    assert entry.version == 1
    assert entry.course_code == "CS101"
    assert entry.question_embedding == [0.1, 0.2, 0.3]
    assert index.records == {str(entry.id): ("course_specific", "CS101")}


@pytest.mark.asyncio
async def test_create_entry_embedding_failure(db_session):
    instructor_id = await _instructor(db_session)
    llm = _llm()
    llm.generate_embedding = AsyncMock(side_effect=LLMException("quota"))
    service = KnowledgeEntryService(SQLAlchemyKnowledgeRepository(db_session), llm)

    with pytest.raises(KnowledgeBaseException) as exc_info:
        await service.create_entry(_entry(instructor_id))

    assert exc_info.value.code == "KB_EMBEDDING_FAILED"


@pytest.mark.asyncio
async def test_update_creates_new_version(db_session):
    instructor_id = await _instructor(db_session)
    llm = _llm()
    index = FakeIndex()
    service = KnowledgeEntryService(SQLAlchemyKnowledgeRepository(db_session), llm, index)
    original = await service.create_entry(_entry(instructor_id))

    updated = await service.update_entry(
        str(original.id), instructor_id, KnowledgeEntryUpdate(answer_text=GOOD_ANSWER + " Updated.")
    )

    assert updated.version == 2
    assert updated.previous_version_id == original.id
    assert updated.answer_text.endswith("Updated.")
    # Same question, so no new embedding
    assert llm.generate_embedding.await_count == 1
    assert list(index.records) == [str(updated.id)]

    entries = await service.list_entries(instructor_id)
    assert [e.id for e in entries] == [updated.id]

    history = await service.get_version_history(str(updated.id))
    assert [v.version for v in history] == [2, 1]

    with pytest.raises(KnowledgeBaseException) as exc_info:
        await service.update_entry(str(original.id), instructor_id, KnowledgeEntryUpdate(answer_text="x" * 60))
    assert exc_info.value.code == "KB_VALIDATION_FAILED"


@pytest.mark.asyncio
async def test_only_owner_may_update_or_delete(db_session):
    owner = await _instructor(db_session)
    other = await _instructor(db_session, "other@example.edu")
    service = KnowledgeEntryService(SQLAlchemyKnowledgeRepository(db_session), _llm())
    entry = await service.create_entry(_entry(owner))

    with pytest.raises(KnowledgeBaseException) as exc_info:
        await service.update_entry(str(entry.id), other, KnowledgeEntryUpdate(answer_text=GOOD_ANSWER))
    assert exc_info.value.code == "KB_UNAUTHORIZED"
    assert exc_info.value.message == "Unauthorized: You can only update your own entries"

    with pytest.raises(KnowledgeBaseException) as exc_info:
        await service.delete_entry(str(entry.id), other)
    assert exc_info.value.message == "Unauthorized: You can only delete your own entries"


@pytest.mark.asyncio
async def test_update_rejects_overlong_text(db_session):
    instructor_id = await _instructor(db_session)
    service = KnowledgeEntryService(SQLAlchemyKnowledgeRepository(db_session), _llm())
    entry = await service.create_entry(_entry(instructor_id))

    with pytest.raises(KnowledgeBaseException) as exc_info:
        await service.update_entry(str(entry.id), instructor_id, KnowledgeEntryUpdate(answer_text="a" * 10001))
    assert exc_info.value.code == "KB_VALIDATION_FAILED"
    assert exc_info.value.message == "Answer text must be 10000 characters or less"

    with pytest.raises(KnowledgeBaseException) as exc_info:
        await service.update_entry(str(entry.id), instructor_id, KnowledgeEntryUpdate(question_text="q" * 2001))
    assert exc_info.value.message == "Question text must be 2000 characters or less"

    assert [e.id for e in await service.list_entries(instructor_id)] == [entry.id]


@pytest.mark.asyncio
async def test_delete_removes_whole_chain(db_session):
    instructor_id = await _instructor(db_session)
    index = FakeIndex()
    repo = SQLAlchemyKnowledgeRepository(db_session)
    service = KnowledgeEntryService(repo, _llm(), index)
    first = await service.create_entry(_entry(instructor_id))
    second = await service.update_entry(
        str(first.id), instructor_id, KnowledgeEntryUpdate(question_text="How can I get more time?")
    )

    await service.delete_entry(str(second.id), instructor_id)

    assert await repo.get_by_id(str(first.id)) is None
    assert await repo.get_by_id(str(second.id)) is None
    assert index.records == {}


@pytest.mark.asyncio
async def test_statistics_counters(db_session):
    instructor_id = await _instructor(db_session)
    repo = SQLAlchemyKnowledgeRepository(db_session)
    service = KnowledgeEntryService(repo, _llm())
    entry = await service.create_entry(_entry(instructor_id))

    await service.update_statistics(str(entry.id), StatisticsUpdate(increment_views=True, increment_helpful=True))
    await service.update_statistics(str(entry.id), StatisticsUpdate(increment_views=True))

    refreshed = await repo.get_by_id(str(entry.id))
    await db_session.refresh(refreshed)
    assert (refreshed.view_count, refreshed.helpful_count, refreshed.not_helpful_count) == (2, 1, 0)

    with pytest.raises(KnowledgeBaseException) as exc_info:
        await service.update_statistics(str(uuid4()), StatisticsUpdate(increment_views=True))
    assert exc_info.value.code == "KB_ENTRY_NOT_FOUND"


# ========== Suggested answers ==========

def _documents(hits=None, error=None):
    search = MagicMock()
    search.search = AsyncMock(return_value=hits or [], side_effect=error)
    return search


@pytest.mark.asyncio
async def test_suggestions_merge_sources_and_save_kb_matches(db_session):
    instructor_id = await _instructor(db_session)
    repo = SQLAlchemyKnowledgeRepository(db_session)
    index = FakeIndex()
    entry = await KnowledgeEntryService(repo, _llm(), index).create_entry(_entry(instructor_id))
    index.hits = [(str(entry.id), 0.88)]

    llm = _llm()
    suggestions_repo = SQLAlchemySuggestionRepository(db_session)
    service = TicketAutoResponseService(
        llm_client=llm,
        knowledge_repository=repo,
        suggestion_repository=suggestions_repo,
        document_search=_documents([
            DocumentHit(id="c1", title="Handbook", content="Extensions need approval.", similarity=0.91, chunk_count=3),
            DocumentHit(id="c2", title="FAQ", content="Ask early.", similarity=0.7),
            DocumentHit(id="c3", title="Syllabus", content="Late work loses points.", similarity=0.65),
        ]),
        index=index
    )
    ticket_id = str(uuid4())

    result = await service.get_suggested_answers(ticket_id, "Extension", "I need more time", "cs101")

    assert result.success is True
    assert [s.id for s in result.suggestions] == ["c1", str(entry.id), "c2"]
    # Multi-chunk document answers are synthesized
    assert result.suggestions[0].answer_text == GOOD_ANSWER
    assert result.suggestions[0].confidence == "high"
    assert result.suggestions[2].answer_text == "Ask early."
    assert llm.chat_completion.call_args.kwargs["operation"] == "answer_synthesis"

    saved = await service.get_saved_suggestions(ticket_id)
    assert len(saved) == 1
    assert saved[0].similarity_score == 0.88
    assert saved[0].metadata["rank_position"] == 1


@pytest.mark.asyncio
async def test_search_failures_degrade_to_empty():
    index = FakeIndex()
    index.search = AsyncMock(side_effect=VectorStoreException("down"))
    service = TicketAutoResponseService(
        _llm(), MagicMock(), MagicMock(), _documents(error=VectorStoreException("down")), index=index
    )

    result = await service.get_suggested_answers("t", "title", "description")

    assert result.success is True
    assert result.suggestions == []


@pytest.mark.asyncio
async def test_embedding_failure_is_reported():
    llm = _llm()
    llm.generate_embedding = AsyncMock(side_effect=LLMException("quota exceeded"))
    service = TicketAutoResponseService(llm, MagicMock(), MagicMock(), _documents())

    result = await service.get_suggested_answers("t", "title", "description")

    assert result.success is False
    assert result.error == "quota exceeded"


@pytest.mark.asyncio
async def test_synthesizer_rejects_weak_answers():
    assert await AnswerSynthesizer(_llm("Sorry, no information.")).synthesize("q", "ctx") is None

    failing = _llm()
    failing.chat_completion = AsyncMock(side_effect=LLMException("down"))
    assert await AnswerSynthesizer(failing).synthesize("q", "ctx") is None


@pytest.mark.asyncio
async def test_rating_counts_once(db_session):
    instructor_id = await _instructor(db_session)
    student_id = str((await SQLAlchemyProfileRepository(db_session).create("s@example.edu", None, "student")).id)
    repo = SQLAlchemyKnowledgeRepository(db_session)
    entry = await KnowledgeEntryService(repo, _llm()).create_entry(_entry(instructor_id))
    service = TicketAutoResponseService(None, repo, SQLAlchemySuggestionRepository(db_session), _documents())
    ticket_id = str(uuid4())

    await service.rate_suggestion(ticket_id, str(entry.id), True, student_id)

    with pytest.raises(KnowledgeBaseException) as exc_info:
        await service.rate_suggestion(ticket_id, str(entry.id), False, student_id)
    assert exc_info.value.code == "KB_DUPLICATE_FEEDBACK"

    refreshed = await repo.get_by_id(str(entry.id))
    await db_session.refresh(refreshed)
    assert (refreshed.helpful_count, refreshed.not_helpful_count) == (1, 0)


# ========== Milvus index ==========

@pytest.mark.asyncio
async def test_index_filters_public_or_course():
    store = MagicMock()
    store.search = AsyncMock(return_value=[SimpleNamespace(id="e1", score=0.9)])

    hits = await MilvusKnowledgeIndex(store).search([0.1], top_k=3, threshold=0.7, course_code="CS101")

    assert hits == [("e1", 0.9)]
    assert store.search.call_args.kwargs["filter_expr"] == (
        '(visibility == "public") or (visibility == "course_specific" and course_code == "CS101")'
    )


@pytest.mark.asyncio
async def test_index_without_store():
    with pytest.raises(VectorStoreException):
        await MilvusKnowledgeIndex(None).remove(["e1"])


# ========== API ==========

def _create_entry(client, instructor_id, **overrides):
    payload = {
        "instructor_id": instructor_id,
        "question_text": "How do I request an extension?",
        "answer_text": GOOD_ANSWER,
        "visibility": "public"
    }
    payload.update(overrides)
    return client.post("/knowledge/entries", json=payload)


def test_entries_api(client, instructor, student):
    created = _create_entry(client, instructor["id"])
    assert created.status_code == 201
    entry_id = created.json()["id"]

    forbidden = client.put(f"/knowledge/entries/{entry_id}", json={"instructor_id": student["id"], "answer_text": "x"})
    assert forbidden.status_code == 403
    assert forbidden.json()["code"] == "KB_UNAUTHORIZED"

    updated = client.put(
        f"/knowledge/entries/{entry_id}",
        json={"instructor_id": instructor["id"], "tags": ["extensions"]}
    ).json()
    assert updated["version"] == 2
    assert updated["tags"] == ["extensions"]

    listed = client.get("/knowledge/entries", params={"instructor_id": instructor["id"]}).json()
    assert listed["count"] == 1

    versions = client.get(f"/knowledge/entries/{updated['id']}/versions").json()
    assert [v["version"] for v in versions["entries"]] == [2, 1]

    deleted = client.delete(f"/knowledge/entries/{updated['id']}", params={"instructor_id": instructor["id"]})
    assert deleted.status_code == 204
    assert client.get(f"/knowledge/entries/{entry_id}").json()["code"] == "KB_ENTRY_NOT_FOUND"


def test_entry_visibility_error(client, instructor):
    response = _create_entry(client, instructor["id"], visibility="course_specific")

    assert response.status_code == 422
    assert response.json()["code"] == "KB_INVALID_VISIBILITY"


def test_suggestions_api(client, student):
    ticket = client.post("/tickets", json={
        "creator_id": student["id"],
        "title": "Extension",
        "description": "I need more time for lab 3.",
        "type": "question",
        "priority": "low"
    }).json()

    missing = client.post(f"/knowledge/suggestions/{uuid4()}").json()
    assert missing == {"success": False, "suggestions": [], "error": "Ticket not found"}

    result = client.post(f"/knowledge/suggestions/{ticket['id']}").json()
    assert result["success"] is True
    assert result["suggestions"] == []

    assert client.get(f"/knowledge/suggestions/{ticket['id']}").json()["suggestions"] == []

"""
Tests for tickets: validation rules, statistics, the service with fakes
and the HTTP API on SQLite.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from eduticket.core import LLMException, ResourceNotFoundException, ValidationException
from eduticket.tickets.application import TicketService
from eduticket.tickets.domain import TicketDraft, TicketStats
from eduticket.tickets.interfaces.controllers import get_triage_suggester


def _draft(**overrides):
    values = dict(
        title="Cannot submit lab 4",
        description="The upload button does nothing on the lab page.",
        type="bug",
        priority="high"
    )
    values.update(overrides)
    return TicketDraft(**values)


# ========== Domain ==========

def test_valid_draft_has_no_errors():
    assert _draft().validate() == []


def test_blank_draft_accumulates_every_error():
    errors = TicketDraft(title=" ", description="", type=None, priority=None).validate()

    assert errors == [
        "Title is required",
        "Description is required",
        "Description must be at least 10 characters long",
        "Type is required",
        "Priority is required",
    ]


def test_short_description_and_unknown_enums():
    errors = _draft(description="too short", type="grading", priority="urgent").validate()

    assert "Description must be at least 10 characters long" in errors
    assert "Type must be one of: bug, feature, question, task" in errors
    assert "Priority must be one of: low, medium, high, critical" in errors


def test_normalized_trims_and_drops_blank_optionals():
    draft = _draft(title="  Lab  ", course_code="  ", class_name=" SE1801 ").normalized()

    assert draft.title == "Lab"
    assert draft.course_code is None
    assert draft.class_name == "SE1801"


def test_stats_from_rows():
    stats = TicketStats.from_rows([
        ("open", "high", "bug", "high"),
        ("in_progress", "low", "question", "medium"),
        ("closed", "medium", "task", None),
        ("open", "critical", "bug", "critical"),
    ])

    assert stats.total == 4
    assert stats.active == 3
    assert stats.by_status == {"open": 2, "in_progress": 1, "resolved": 0, "closed": 1}
    assert stats.by_type == {"bug": 2, "question": 1, "task": 1}
    assert stats.ai_triaged == 3
    assert stats.ai_priority_match_rate == 0.67


def test_stats_without_triaged_tickets():
    stats = TicketStats.from_rows([("open", "low", "bug", None)])
    assert stats.ai_priority_match_rate is None


# ========== Service ==========

def _service(triage=None, creator=object()):
    tickets = MagicMock()
    tickets.create = AsyncMock(side_effect=lambda draft, creator_id, ai: MagicMock(
        id="t-1", priority=draft.priority, ai_suggested_priority=ai
    ))
    profiles = MagicMock()
    profiles.get_by_id = AsyncMock(return_value=creator)
    return TicketService(tickets, profiles, triage), tickets


@pytest.mark.asyncio
async def test_create_ticket_joins_validation_errors():
    service, _ = _service()

    with pytest.raises(ValidationException) as exc_info:
        await service.create_ticket(_draft(title="", priority=None), "creator")

    assert exc_info.value.message == "Title is required, Priority is required"


@pytest.mark.asyncio
async def test_create_ticket_stores_ai_priority():
    triage = MagicMock()
    triage.suggest = AsyncMock(return_value=MagicMock(suggested_priority="critical"))
    service, tickets = _service(triage)

    ticket = await service.create_ticket(_draft(), "creator")

    assert ticket.ai_suggested_priority == "critical"
    assert ticket.priority == "high"


@pytest.mark.asyncio
async def test_create_ticket_survives_triage_failure():
    triage = MagicMock()
    triage.suggest = AsyncMock(side_effect=LLMException("down"))
    service, tickets = _service(triage)

    ticket = await service.create_ticket(_draft(), "creator")

    assert ticket.ai_suggested_priority is None
    tickets.create.assert_awaited_once()


@pytest.mark.asyncio
async def test_create_ticket_requires_known_creator():
    service, _ = _service(creator=None)

    with pytest.raises(ResourceNotFoundException):
        await service.create_ticket(_draft(), "ghost")


# ========== API ==========

def _create_ticket(client, creator_id, **overrides):
    payload = {
        "creator_id": creator_id,
        "title": "Cannot submit lab 4",
        "description": "The upload button does nothing on the lab page.",
        "type": "bug",
        "priority": "high",
        "course_code": "PRN211"
    }
    payload.update(overrides)
    return client.post("/tickets", json=payload)


def test_profile_duplicate_email(client, student):
    response = client.post("/profiles", json={"email": "Student@Example.edu"})

    assert response.status_code == 422
    assert response.json()["detail"] == "A profile with this email already exists"


def test_create_and_get_ticket(client, student):
    created = _create_ticket(client, student["id"])

    assert created.status_code == 201
    ticket = created.json()
    assert ticket["status"] == "open"
    # MOCK_LLM answers "question medium"
    assert ticket["ai_suggested_priority"] == "medium"

    fetched = client.get(f"/tickets/{ticket['id']}").json()
    assert fetched["creator"]["email"] == "student@example.edu"
    assert fetched["assignee"] is None


def test_create_ticket_without_llm(client, student):
    client.app.dependency_overrides[get_triage_suggester] = lambda: None

    ticket = _create_ticket(client, student["id"]).json()

    assert ticket["ai_suggested_priority"] is None


def test_create_ticket_validation_error(client, student):
    response = _create_ticket(client, student["id"], description="short", type="")

    assert response.status_code == 422
    assert response.json()["detail"] == (
        "Description must be at least 10 characters long, Type is required"
    )


def test_get_unknown_ticket(client):
    response = client.get("/tickets/not-a-uuid")
    assert response.status_code == 404


def test_status_and_assignee_updates(client, student, instructor):
    ticket_id = _create_ticket(client, student["id"]).json()["id"]

    assert client.patch(f"/tickets/{ticket_id}/status", json={"status": "in_progress"}).json() == {
        "success": True, "error": None
    }
    bad = client.patch(f"/tickets/{ticket_id}/status", json={"status": "archived"}).json()
    assert bad == {"success": False, "error": "Invalid status: archived"}

    assert client.patch(
        f"/tickets/{ticket_id}/assignee", json={"assignee_id": instructor["id"]}
    ).json()["success"] is True

    ticket = client.get(f"/tickets/{ticket_id}").json()
    assert ticket["status"] == "in_progress"
    assert ticket["assignee"]["role"] == "instructor"


def test_list_and_stats(client, student, instructor):
    _create_ticket(client, student["id"])
    _create_ticket(client, student["id"], priority="medium", type="question")
    _create_ticket(client, instructor["id"], priority="low")

    mine = client.get("/tickets", params={"creator_id": student["id"]}).json()
    assert mine["count"] == 2

    stats = client.get("/tickets/stats", params={"creator_id": student["id"]}).json()
    assert stats["total"] == 2
    assert stats["active"] == 2
    assert stats["ai_triaged"] == 2
    assert stats["ai_priority_match_rate"] == 0.5

    assert client.get("/tickets/stats").json()["total"] == 3


def test_comment_lifecycle(client, student):
    ticket_id = _create_ticket(client, student["id"]).json()["id"]

    created = client.post(
        f"/tickets/{ticket_id}/comments", json={"user_id": student["id"], "content": "Any update?"}
    )
    assert created.status_code == 201
    comment_id = created.json()["id"]

    edited = client.patch(f"/comments/{comment_id}", json={"content": "Still broken"})
    assert edited.json()["content"] == "Still broken"

    comments = client.get(f"/tickets/{ticket_id}/comments").json()
    assert [c["author"]["full_name"] for c in comments] == ["Sam Student"]

    assert client.delete(f"/comments/{comment_id}").status_code == 204
    assert client.get(f"/tickets/{ticket_id}/comments").json() == []


def test_blank_comment_rejected(client, student):
    ticket_id = _create_ticket(client, student["id"]).json()["id"]

    response = client.post(f"/tickets/{ticket_id}/comments", json={"user_id": student["id"], "content": "  "})

    assert response.status_code == 422
    assert response.json()["detail"] == "Comment content is required"

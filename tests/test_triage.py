"""
Tests for AI ticket triage: answer parsing, request validation and the
/triage endpoint.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from eduticket.core import LLMException, ValidationException
from eduticket.triage.application import TriageService
from eduticket.triage.domain import TriageRequest, TriagePromptBuilder, parse_type_and_priority
from eduticket.triage.interfaces.controllers import get_triage_service


@pytest.mark.parametrize("answer, expected", [
    ("bug high", ("bug", "high")),
    ("  Feature   LOW ", ("feature", "low")),
    ("critical", ("question", "critical")),
    ("grading", ("grading", "medium")),
    ("I am not sure", ("question", "medium")),
    ("", ("question", "medium")),
])
def test_parse_type_and_priority(answer, expected):
    assert parse_type_and_priority(answer) == expected


def test_parse_takes_first_priority_in_declared_order():
    # "low" is declared before "high", whatever the position in the text
    assert parse_type_and_priority("high or low bug")[1] == "low"


def test_triage_request_trims_fields():
    request = TriageRequest.from_payload({"title": "  Login  ", "description": " broken ", "type": " bug "})
    assert request == TriageRequest(title="Login", description="broken", type="bug")


@pytest.mark.parametrize("payload, message", [
    (None, "Invalid request body"),
    ([], "Invalid request body"),
    ({"description": "x", "type": "bug"}, "Title is required and must be a non-empty string"),
    ({"title": "x", "description": "   ", "type": "bug"}, "Description is required and must be a non-empty string"),
    ({"title": "x", "description": "y", "type": 3}, "Type is required and must be a non-empty string"),
])
def test_triage_request_rejects_invalid_payload(payload, message):
    with pytest.raises(ValidationException) as exc_info:
        TriageRequest.from_payload(payload)
    assert exc_info.value.message == message


def test_prompt_contains_ticket_text():
    prompt = TriagePromptBuilder.build_prompt(TriageRequest("Quiz locked", "Cannot open quiz 2", "question"))
    assert "Quiz locked" in prompt
    assert "Cannot open quiz 2" in prompt


@pytest.mark.asyncio
async def test_triage_service_uses_low_temperature_and_short_answer():
    llm = MagicMock()
    llm.chat_completion = AsyncMock(return_value=MagicMock(content="assignment high", model="gemini"))

    suggestion = await TriageService(llm).suggest(TriageRequest("Late upload", "Portal closed early", "question"))

    assert suggestion.suggested_type == "assignment"
    assert suggestion.suggested_priority == "high"
    assert suggestion.model_used == "gemini"
    kwargs = llm.chat_completion.call_args.kwargs
    assert kwargs["temperature"] == 0.3
    assert kwargs["max_tokens"] == 10
    assert kwargs["operation"] == "triage"


def test_triage_endpoint_returns_suggestion(client):
    response = client.post("/triage", json={
        "title": "How do I join the lab?",
        "description": "I was not added to the lab group",
        "type": "question"
    })

    assert response.status_code == 200
    body = response.json()
    assert body["suggested_type"] == "question"
    assert body["suggested_priority"] == "medium"
    assert "processed_at" in body


def test_triage_endpoint_rejects_missing_field(client):
    response = client.post("/triage", json={"title": "Broken", "type": "bug"})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid input"
    assert body["details"] == "Description is required and must be a non-empty string"
    assert body["suggested_priority"] == "medium"


def test_triage_endpoint_rejects_malformed_json(client):
    response = client.post("/triage", content=b"{not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json()["details"] == "Invalid request body"


def test_triage_endpoint_without_llm(client):
    client.app.dependency_overrides[get_triage_service] = lambda: None

    response = client.post("/triage", json={"title": "a", "description": "b", "type": "bug"})

    assert response.status_code == 500
    assert response.json() == {"error": "AI service configuration error", "suggested_priority": "medium"}


def test_triage_endpoint_without_llm_still_validates_input(client):
    client.app.dependency_overrides[get_triage_service] = lambda: None

    response = client.post("/triage", json={"title": "", "description": "b", "type": "bug"})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid input"
    assert body["details"] == "Title is required and must be a non-empty string"


def test_external_service_errors_keep_their_message():
    error = LLMException("Request timeout - AI service took too long to respond")

    assert error.message == "Request timeout - AI service took too long to respond"
    assert error.service_name == "LLM Service"


def test_triage_endpoint_llm_failure(client):
    service = MagicMock()
    service.suggest = AsyncMock(side_effect=LLMException("Request timeout"))
    client.app.dependency_overrides[get_triage_service] = lambda: service

    response = client.post("/triage", json={"title": "a", "description": "b", "type": "bug"})

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "AI service temporarily unavailable"
    assert body["details"] == "Request timeout"
    assert body["suggested_priority"] == "medium"
    assert "processed_at" in body

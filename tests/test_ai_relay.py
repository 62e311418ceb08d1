import asyncio
import json

import httpx
import pytest

from classroom_api import ai_relay
from classroom_api.errors import AIServiceError
from classroom_api.gemini_client import GeminiClient
from classroom_api.main import app
from classroom_api.models import UserAccount
from classroom_api.routers.ai import get_gemini_client
from classroom_api.schemas import Question


class FakeGemini:
    def __init__(self, reply="", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def generate(self, prompt, **kwargs):
        self.calls.append((prompt, kwargs))
        if self.error:
            raise self.error
        return self.reply

    async def aclose(self):
        pass


GENERATED = [
    {"question": "What is inertia?", "options": ["a", "b", "c", "d"], "correctAnswer": "a"},
    {"question": "What is mass?", "options": ["a", "b", "c", "d"], "correctAnswer": "e"},
]


@pytest.fixture
def fake_gemini():
    fake = FakeGemini()
    app.dependency_overrides[get_gemini_client] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_gemini_client, None)


def _questions(raw):
    return [Question.model_validate(q) for q in raw]


def test_quiz_prompt_mentions_count_and_text():
    prompt = ai_relay.build_quiz_prompt("Newton's laws", 5)
    assert "exactly 5 questions" in prompt
    assert "--- Newton's laws ---" in prompt
    assert "'correctAnswer' field exactly matches" in prompt


def test_incorrect_answers(questions):
    wrong = ai_relay.incorrect_answers(_questions(questions), ["Newton", "Watt"])
    assert wrong == [
        {"question": "Unit of energy?", "correctAnswer": "Joule", "userAnswer": "Watt"},
        {"question": "Unit of power?", "correctAnswer": "Watt", "userAnswer": ""},
    ]


def test_review_prompt(questions):
    prompt = ai_relay.build_review_prompt(_questions(questions), ["Newton", "Joule", "Newton"], 66.67)
    assert "Their score was 67%." in prompt
    assert 'Question: "Unit of power?", Correct Answer: "Watt", Their Answer: "Newton"' in prompt
    perfect = ai_relay.build_review_prompt(_questions(questions), ["Newton", "Joule", "Watt"], 100)
    assert "None. Great job!" in perfect


def test_parse_questions_tolerates_code_fences():
    raw = "```json\n" + json.dumps(GENERATED) + "\n```"
    parsed = ai_relay.parse_questions(raw)
    assert [q.question for q in parsed] == ["What is inertia?", "What is mass?"]
    # answers outside the option set are passed through untouched
    assert parsed[1].correct_answer == "e"


def test_parse_questions_rejects_bad_payloads():
    with pytest.raises(AIServiceError):
        ai_relay.parse_questions("no json here")
    with pytest.raises(AIServiceError):
        ai_relay.parse_questions(json.dumps([{"question": "q", "options": "abcd", "correctAnswer": "a"}]))
    with pytest.raises(AIServiceError):
        ai_relay.parse_questions(json.dumps({"question": "q"}))


def test_generate_quiz_sends_schema():
    fake = FakeGemini(reply=json.dumps(GENERATED))
    questions = asyncio.run(ai_relay.generate_quiz(fake, "text", 2))
    assert len(questions) == 2
    _, kwargs = fake.calls[0]
    assert kwargs["response_mime_type"] == "application/json"
    assert kwargs["response_schema"] == ai_relay.QUIZ_RESPONSE_SCHEMA


def test_generate_quiz_endpoint(client, register, fake_gemini):
    headers, _ = register("tutor_ann", "tutor")
    fake_gemini.reply = json.dumps(GENERATED)
    resp = client.post("/ai/generate-quiz", json={"textContent": "Forces", "numQuestions": 2}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["questions"][0] == GENERATED[0]


def test_generate_quiz_endpoint_validates_body(client, register, fake_gemini):
    headers, _ = register("tutor_ann", "tutor")
    resp = client.post("/ai/generate-quiz", json={"textContent": "Forces"}, headers=headers)
    assert resp.status_code == 422
    assert fake_gemini.calls == []


def test_generate_review_endpoint(client, register, fake_gemini, questions):
    headers, _ = register("ward_bob", "ward")
    fake_gemini.reply = "  Solid work on forces.  "
    resp = client.post(
        "/ai/generate-review",
        json={"questions": questions, "userAnswers": ["Newton", "Joule", "Watt"], "score": 100},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json() == {"review": "Solid work on forces."}


def test_ai_failure_surfaces_as_502(client, register, fake_gemini):
    headers, _ = register("tutor_ann", "tutor")
    fake_gemini.error = AIServiceError("Could not reach the AI service")
    resp = client.post("/ai/generate-quiz", json={"textContent": "Forces", "numQuestions": 2}, headers=headers)
    assert resp.status_code == 502
    assert resp.json() == {"detail": "Could not reach the AI service"}


def test_ai_quota(client, register, fake_gemini, session_factory):
    headers, user = register("tutor_ann", "tutor")
    db = session_factory()
    row = db.get(UserAccount, user["id"])
    row.ai_requests_limit = 1
    db.commit()
    db.close()
    fake_gemini.reply = json.dumps(GENERATED)
    body = {"textContent": "Forces", "numQuestions": 2}
    assert client.post("/ai/generate-quiz", json=body, headers=headers).status_code == 200
    assert client.post("/ai/generate-quiz", json=body, headers=headers).status_code == 429


def _gemini(handler):
    return GeminiClient(api_key="test-key", transport=httpx.MockTransport(handler))


def test_gemini_client_returns_candidate_text():
    seen = {}

    def handler(request):
        seen["key"] = request.url.params.get("key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "hello"}]}}]})

    async def run():
        client = _gemini(handler)
        try:
            return await client.generate("hi", response_mime_type="application/json")
        finally:
            await client.aclose()

    assert asyncio.run(run()) == "hello"
    assert seen["key"] == "test-key"
    assert seen["body"]["contents"][0]["parts"][0]["text"] == "hi"
    assert seen["body"]["generationConfig"] == {"responseMimeType": "application/json"}


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="boom"),
        httpx.Response(200, json={"candidates": []}),
        httpx.Response(200, text="not json"),
    ],
)
def test_gemini_client_failures_raise_ai_service_error(response):
    async def run():
        client = _gemini(lambda request: response)
        try:
            await client.generate("hi")
        finally:
            await client.aclose()

    with pytest.raises(AIServiceError):
        asyncio.run(run())


def test_gemini_client_network_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    async def run():
        client = _gemini(handler)
        try:
            await client.generate("hi")
        finally:
            await client.aclose()

    with pytest.raises(AIServiceError):
        asyncio.run(run())

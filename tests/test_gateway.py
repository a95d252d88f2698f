from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

import httpx
import openai
import pytest

from conftest import FakeOpenAI
from productai.catalog.errors import ConfigurationError, UpstreamError, ValidationError
from productai.catalog.gateway import FALLBACK_ANSWER, AIGateway, build_marketing_prompt
from productai.catalog.models import Product


def _gateway(client: FakeOpenAI, **kwargs: Any) -> AIGateway:
    return AIGateway("test-key", client=client, **kwargs)


def _product() -> Product:
    return Product(
        id="p1",
        name="Chair",
        image_url="/uploads/chair.png",
        descriptions={"ar": "كرسي", "en": "A wooden chair", "fr": "Une chaise"},
        benefits={"ar": [], "en": ["Sturdy", "Light"], "fr": []},
        features={"ar": [], "en": [], "fr": []},
        price=None,
        category="Furniture",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


ANALYSIS = {
    "name": "Chair",
    "descriptions": {"ar": "كرسي", "en": "Chair", "fr": "Chaise"},
    "benefits": {"en": ["Sturdy"]},
    "price": "$50",
}


def test_analyze_image_accepts_fenced_json() -> None:
    client = FakeOpenAI(content="```json\n" + json.dumps(ANALYSIS) + "\n```")
    fields = _gateway(client).analyze_image(b"\x89PNG...", "image/png")
    assert fields["name"] == "Chair"
    assert fields["benefits"] == {"ar": [], "en": ["Sturdy"], "fr": []}
    assert fields["category"] is None

    request = client.completions.requests[0]
    assert request["model"] == "gpt-4o"
    assert request["response_format"] == {"type": "json_object"}
    assert request["max_completion_tokens"] == 2000
    assert "max_tokens" not in request
    image_part = request["messages"][1]["content"][1]
    assert image_part["image_url"]["url"].startswith("data:image/png;base64,")


@pytest.mark.parametrize(
    "content, code",
    [(None, "analysis_empty"), ("   ", "analysis_empty"), ("not json at all", "analysis_unparseable"), ("[1, 2]", "analysis_unparseable")],
)
def test_analyze_image_bad_model_output(content, code) -> None:
    with pytest.raises(UpstreamError) as info:
        _gateway(FakeOpenAI(content=content)).analyze_image(b"data", "image/jpeg")
    assert info.value.code == code
    assert info.value.status_code == 500


def test_analyze_image_rejects_non_images_without_calling_model() -> None:
    client = FakeOpenAI(content=json.dumps(ANALYSIS))
    with pytest.raises(ValidationError):
        _gateway(client).analyze_image(b"%PDF-1.7", "application/pdf")
    assert client.completions.requests == []


def test_missing_api_key_fails_lazily() -> None:
    gateway = AIGateway(None)
    with pytest.raises(ConfigurationError) as info:
        gateway.answer_question("Is it sturdy?", "en", "A chair")
    assert info.value.code == "missing_api_key"
    assert isinstance(info.value, UpstreamError)


def test_connection_errors_become_upstream_errors() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    client = FakeOpenAI(error=openai.APIConnectionError(request=request))
    with pytest.raises(UpstreamError) as info:
        _gateway(client).generate_marketing(_product(), "en")
    assert info.value.code == "upstream_unavailable"


def test_timeouts_become_upstream_errors() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    client = FakeOpenAI(error=openai.APITimeoutError(request=request))
    with pytest.raises(UpstreamError) as info:
        _gateway(client).analyze_image(b"data", "image/png")
    assert info.value.code == "upstream_unavailable"
    assert len(client.completions.requests) == 1


def test_malformed_service_responses_become_upstream_errors() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(200, request=request, text="<html>proxy page</html>")
    error = openai.APIResponseValidationError(response=response, body=None)
    with pytest.raises(UpstreamError) as info:
        _gateway(FakeOpenAI(error=error)).answer_question("Price?", "en", "A chair")
    assert info.value.code == "upstream_unavailable"

    with pytest.raises(UpstreamError) as info:
        _gateway(FakeOpenAI(image_error=error)).generate_chat_image("on a beach", "Chair")
    assert info.value.code == "image_failed"


def test_status_errors_become_upstream_errors() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(429, request=request, text="rate limited")
    client = FakeOpenAI(error=openai.APIStatusError("rate limited", response=response, body=None))
    with pytest.raises(UpstreamError):
        _gateway(client).answer_question("Price?", "fr", "Une chaise")


def test_generate_marketing_parses_and_names_language() -> None:
    payload = {"post": "Sit better.", "hashtags": ["#chair"], "callToAction": "Order now", "salesTips": ["Bundle it"]}
    client = FakeOpenAI(content=json.dumps(payload))
    post = _gateway(client).generate_marketing(_product(), "fr")
    assert post == payload
    prompt = client.completions.requests[0]["messages"][1]["content"]
    assert "French" in prompt
    assert "Price: N/A" in prompt


def test_generate_marketing_empty_post() -> None:
    client = FakeOpenAI(content=json.dumps({"post": "", "hashtags": []}))
    with pytest.raises(UpstreamError) as info:
        _gateway(client).generate_marketing(_product(), "en")
    assert info.value.code == "marketing_unparseable"


def test_build_marketing_prompt_lists_benefits() -> None:
    prompt = build_marketing_prompt(_product(), "en")
    assert "Benefits: Sturdy, Light" in prompt
    assert "Features: N/A" in prompt
    assert "Description: A wooden chair" in prompt


def test_answer_question_fallback_and_context() -> None:
    client = FakeOpenAI(content=None)
    assert _gateway(client).answer_question("Is it heavy?", "en", "A wooden chair") == FALLBACK_ANSWER
    system = client.completions.requests[0]["messages"][0]["content"]
    assert "A wooden chair" in system
    assert "English" in system

    client = FakeOpenAI(content="  It weighs 4kg.  ")
    assert _gateway(client).answer_question("Is it heavy?", "en", "") == "It weighs 4kg."


def test_image_generation_returns_url_or_fails() -> None:
    client = FakeOpenAI()
    url = _gateway(client).generate_chat_image("on a balcony", "Chair")
    assert url == "https://images.example.test/out.png"
    request = client.images.requests[0]
    assert request["model"] == "dall-e-3"
    assert request["quality"] == "hd"
    assert "Chair" in request["prompt"]
    assert "on a balcony" in request["prompt"]

    with pytest.raises(UpstreamError) as info:
        _gateway(FakeOpenAI(image_url=None)).generate_marketing_image("Post", ["#a"], "Buy", "Chair")
    assert info.value.code == "image_failed"

    with pytest.raises(ValidationError):
        _gateway(FakeOpenAI()).generate_chat_image("  ", "Chair")


def test_download_image_uses_http_client() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/ok.png":
            return httpx.Response(200, content=b"PNGDATA")
        return httpx.Response(404)

    http = httpx.Client(transport=httpx.MockTransport(handler))
    gateway = AIGateway("k", client=FakeOpenAI(), http_client=http)
    assert gateway.download_image("https://images.example.test/ok.png") == b"PNGDATA"
    with pytest.raises(UpstreamError) as info:
        gateway.download_image("https://images.example.test/missing.png")
    assert info.value.code == "image_failed"
    gateway.close()

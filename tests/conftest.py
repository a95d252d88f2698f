from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from productai.catalog.db import SQLiteStorage
from productai.catalog.storage import MemoryStorage
from productai.config import Settings


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def product_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "name": "Chair",
        "imageUrl": "/uploads/chair.png",
        "descriptions": {"ar": "كرسي خشبي", "en": "A wooden chair", "fr": "Une chaise en bois"},
        "benefits": {"ar": ["مريح"], "en": ["Comfortable"], "fr": ["Confortable"]},
        "features": {"ar": ["خشب"], "en": ["Oak wood"], "fr": ["Bois de chêne"]},
        "price": "$50",
        "category": "Furniture",
    }
    payload.update(overrides)
    return payload


def order_payload(product_id: str, **overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "productId": product_id,
        "customerName": "Ali",
        "customerPhone": "555",
        "quantity": 2,
        "language": "en",
    }
    payload.update(overrides)
    return payload


class StepClock:
    """Deterministic clock; ``frozen=True`` returns the same instant every call."""

    def __init__(self, *, frozen: bool = False) -> None:
        self.current = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
        self.frozen = frozen

    def __call__(self) -> datetime:
        value = self.current
        if not self.frozen:
            self.current = self.current + timedelta(seconds=1)
        return value


class FakeCompletions:
    def __init__(self, content: Optional[str] = None, error: Optional[Exception] = None) -> None:
        self.content = content
        self.error = error
        self.requests: List[dict] = []

    def create(self, **kwargs: Any) -> Any:
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        usage = SimpleNamespace(prompt_tokens=10, completion_tokens=20, total_tokens=30)
        return SimpleNamespace(id="cmpl-test", choices=[SimpleNamespace(message=message)], usage=usage)


class FakeImages:
    def __init__(self, url: Optional[str] = "https://images.example.test/out.png", error: Optional[Exception] = None) -> None:
        self.url = url
        self.error = error
        self.requests: List[dict] = []

    def generate(self, **kwargs: Any) -> Any:
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        data = [SimpleNamespace(url=self.url)] if self.url is not None else []
        return SimpleNamespace(data=data)


class FakeOpenAI:
    """Stands in for the OpenAI SDK client: ``chat.completions.create`` and ``images.generate``."""

    def __init__(
        self,
        content: Optional[str] = None,
        error: Optional[Exception] = None,
        image_url: Optional[str] = "https://images.example.test/out.png",
        image_error: Optional[Exception] = None,
    ) -> None:
        self.completions = FakeCompletions(content, error)
        self.chat = SimpleNamespace(completions=self.completions)
        self.images = FakeImages(image_url, image_error)


class FakeGateway:
    """Records calls and returns canned results instead of reaching the AI service."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.analysis: Dict[str, Any] = {
            "name": "Chair",
            "descriptions": {"ar": "كرسي", "en": "A chair", "fr": "Une chaise"},
            "benefits": {"ar": [], "en": ["Sturdy"], "fr": []},
            "features": {"ar": [], "en": [], "fr": []},
            "price": "$50",
            "category": "Furniture",
        }
        self.error: Optional[Exception] = None

    def _maybe_fail(self) -> None:
        if self.error is not None:
            raise self.error

    def analyze_image(self, data: bytes, mime_type: str) -> Dict[str, Any]:
        self.calls.append(("analyze_image", mime_type, len(data)))
        self._maybe_fail()
        return dict(self.analysis)

    def generate_marketing(self, product, language: str) -> Dict[str, Any]:
        self.calls.append(("generate_marketing", product.id, language))
        self._maybe_fail()
        return {
            "post": f"Buy the {product.name} now",
            "hashtags": ["#chair", "#home"],
            "callToAction": "Order today",
            "salesTips": ["Show it in a living room"],
        }

    def generate_marketing_image(self, post, hashtags, call_to_action, product_name) -> str:
        self.calls.append(("generate_marketing_image", post, list(hashtags), call_to_action, product_name))
        self._maybe_fail()
        return "https://images.example.test/ad.png"

    def generate_chat_image(self, prompt, product_name) -> str:
        self.calls.append(("generate_chat_image", prompt, product_name))
        self._maybe_fail()
        return "https://images.example.test/chat.png"

    def answer_question(self, question, language, description) -> str:
        self.calls.append(("answer_question", question, language, description))
        self._maybe_fail()
        return f"[{language}] {description}"

    def download_image(self, url: str) -> bytes:
        self.calls.append(("download_image", url))
        return PNG_BYTES


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path: Path):
    if request.param == "memory":
        return MemoryStorage(clock=StepClock())
    return SQLiteStorage(str(tmp_path / "catalog.db"), clock=StepClock())


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        openai_api_key=None,
        openai_base_url=None,
        vision_model="gpt-4o",
        image_model="dall-e-3",
        request_timeout=5.0,
        database_url=None,
        upload_dir=str(tmp_path / "uploads"),
        root_dir=str(tmp_path),
    )

from __future__ import annotations

import base64
import json
import time
from typing import Any, Dict, List, Optional, Sequence

import httpx
from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI, OpenAIError

from ..config import DEFAULT_IMAGE_MODEL, DEFAULT_TIMEOUT_SECONDS, DEFAULT_VISION_MODEL
from ..logging import get_logger
from .constants import LANGUAGES
from .errors import ConfigurationError, UpstreamError, ValidationError
from .models import Product
from .parser import parse_analysis_payload, parse_marketing_payload, strip_code_fences


LOG = get_logger("catalog-gateway")

FALLBACK_ANSWER = "Unable to generate response"

LANGUAGE_NAMES = {"ar": "Arabic", "en": "English", "fr": "French"}


# ---------- prompts ----------
ANALYSIS_SYSTEM_PROMPT = """You are a professional product analyst. Study the product photo in detail and answer with JSON only.
Return exactly this shape, with rich and specific content:
{
  "name": "Product name",
  "descriptions": {
    "ar": "Very detailed product description in Arabic (200+ words): materials, advantages, uses",
    "en": "Very detailed product description in English (200+ words): materials, features, uses",
    "fr": "Description très détaillée du produit en français (200+ mots) : matériaux, caractéristiques, usages"
  },
  "benefits": {
    "ar": ["benefit 1", "benefit 2", "benefit 3", "benefit 4", "benefit 5"],
    "en": ["Benefit 1", "Benefit 2", "Benefit 3", "Benefit 4", "Benefit 5"],
    "fr": ["Avantage 1", "Avantage 2", "Avantage 3", "Avantage 4", "Avantage 5"]
  },
  "features": {
    "ar": ["feature 1", "feature 2", "feature 3", "feature 4", "feature 5", "feature 6"],
    "en": ["Feature 1", "Feature 2", "Feature 3", "Feature 4", "Feature 5", "Feature 6"],
    "fr": ["Caractéristique 1", "Caractéristique 2", "Caractéristique 3", "Caractéristique 4", "Caractéristique 5", "Caractéristique 6"]
  },
  "price": "Price or price range",
  "category": "Product category"
}"""

ANALYSIS_USER_PROMPT = (
    "Analyze this product photo in depth. Give a long, complete description (200+ words), "
    "at least 5 benefits and 6 features, in Arabic, English and French. JSON only."
)

MARKETING_SYSTEM_PROMPT = """You are a marketing expert writing high-converting Meta (Facebook/Instagram) ad posts.
Write a professional post that focuses on advantages and benefits and creates desire to buy.
Return JSON in this shape:
{
  "post": "Catchy, persuasive ad post (3-4 short, clear lines)",
  "hashtags": ["#tag1", "#tag2", "#tag3", "#tag4", "#tag5"],
  "callToAction": "Persuasive call to action",
  "salesTips": ["Sales tip 1", "Sales tip 2", "Sales tip 3"]
}"""

CHAT_SYSTEM_PROMPT = """You are a product assistant. Answer the question using the product description below.
Answer briefly, in {language_name} unless the question is asked in another language.

Product description:
{description}"""

AD_IMAGE_PROMPT = """Create a high-converting advertising image for Meta ads (Facebook + Instagram).

Scene: realistic; a confident person holding, using or presenting the product with enthusiasm and satisfaction.
Clean, modern setting with soft cinematic lighting and natural skin texture.

The product is the hero of the image: sharp focus, premium texture, detailed materials, clearly visible design.
Professional lighting with glossy highlights.

Add a short, bold marketing text (5-7 words maximum) placed at the top or bottom, never covering the face or the product.
Modern, clean, easy-to-read typography. Vibrant, eye-catching colors with high contrast.
No clutter, no watermarks, no logos unless premium.

Camera: 35mm, shallow depth of field, cinematic focus. Lighting: softbox plus natural bounce.
Style: hyper-realistic, 4K, conversion-oriented, scroll-stopping, modern commercial ad.
Aspect: portrait, Meta ads format.

Product: {product_name}
{details}

Now create a professional, high-quality image that follows all of these requirements precisely."""


def build_marketing_prompt(product: Product, language: str) -> str:
    def _joined(mapping: Dict[str, List[str]]) -> str:
        return ", ".join(mapping.get(language) or []) or "N/A"

    return (
        f"Product name: {product.name}\n"
        f"Price: {product.price or 'N/A'}\n"
        f"Category: {product.category or 'N/A'}\n"
        f"Description: {product.description(language) or 'N/A'}\n"
        f"Benefits: {_joined(product.benefits)}\n"
        f"Features: {_joined(product.features)}\n\n"
        f"Write a professional Meta ad post in {LANGUAGE_NAMES[language]} that maximizes sales. Return JSON only."
    )


def build_marketing_image_prompt(post: str, hashtags: Sequence[str], call_to_action: str, product_name: str) -> str:
    details = (
        f"Ad copy to convey: {post.strip()}\n"
        f"Hashtags: {' '.join(h.strip() for h in hashtags if h and h.strip())}\n"
        f"Call to action: {call_to_action.strip()}"
    )
    return AD_IMAGE_PROMPT.format(product_name=product_name, details=details)


def build_chat_image_prompt(prompt: str, product_name: str) -> str:
    return AD_IMAGE_PROMPT.format(product_name=product_name, details=f"Requested scene: {prompt.strip()}")


def _require_language(language: str) -> str:
    if language not in LANGUAGES:
        raise ValidationError(
            f"language must be one of: {', '.join(LANGUAGES)}",
            code="invalid_language",
            params={"value": language},
        )
    return language


class AIGateway:
    """Boundary to the OpenAI API: builds prompts, parses replies, normalizes errors.

    The SDK client is created on first use so the application can start
    without a key; the first call that needs it raises ConfigurationError
    instead. Nothing is retried.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        vision_model: str = DEFAULT_VISION_MODEL,
        image_model: str = DEFAULT_IMAGE_MODEL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        base_url: Optional[str] = None,
        client: Any = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.api_key = api_key
        self.vision_model = vision_model
        self.image_model = image_model
        self.timeout = float(timeout)
        self.base_url = base_url
        self._client = client
        self._http = http_client

    @classmethod
    def from_settings(cls, settings: Any) -> "AIGateway":
        return cls(
            settings.openai_api_key,
            vision_model=settings.vision_model,
            image_model=settings.image_model,
            timeout=settings.request_timeout,
            base_url=settings.openai_base_url,
        )

    # ---------- clients ----------
    def _http_client(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(
                timeout=httpx.Timeout(self.timeout, connect=10.0),
                limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
            )
        return self._http

    def client(self) -> Any:
        if self._client is None:
            if not self.api_key:
                LOG.error("OPENAI_API_KEY missing in env/.env; cannot call the AI service")
                raise ConfigurationError("OPENAI_API_KEY environment variable is not set")
            self._client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                http_client=self._http_client(),
                max_retries=0,
                timeout=self.timeout,
            )
            LOG.info("OpenAI client initialized (base_url=%s)", self.base_url or "default")
        return self._client

    def close(self) -> None:
        if self._http is not None:
            self._http.close()
            self._http = None

    # ---------- low-level calls ----------
    def _chat(self, messages: List[Dict[str, Any]], *, purpose: str, max_tokens: int, temperature: float, json_mode: bool = False) -> Optional[str]:
        client = self.client()
        kwargs: Dict[str, Any] = {
            "model": self.vision_model,
            "messages": messages,
            "max_completion_tokens": max_tokens,
            "temperature": temperature,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        t0 = time.perf_counter()
        try:
            LOG.info("Calling Chat Completions for %s model='%s'…", purpose, self.vision_model)
            completion = client.chat.completions.create(**kwargs)
        except (APIConnectionError, APITimeoutError) as e:
            LOG.error("Network/timeout while calling OpenAI (%s): %s", purpose, e)
            raise UpstreamError(f"AI service unreachable during {purpose}") from e
        except APIStatusError as e:
            body = getattr(getattr(e, "response", None), "text", None)
            LOG.error("OpenAI API (%s) returned %s. Body preview: %r", purpose, getattr(e, "status_code", "?"), (body[:300] if body else None))
            raise UpstreamError(f"AI service returned an error during {purpose}") from e
        except OpenAIError as e:
            LOG.error("OpenAI client error during %s: %s", purpose, e)
            raise UpstreamError(f"AI service returned an unusable response during {purpose}") from e

        choice = completion.choices[0] if getattr(completion, "choices", None) else None
        message = getattr(choice, "message", None)
        text = getattr(message, "content", None)
        usage = getattr(completion, "usage", None)
        usage_dict = {k: getattr(usage, k, None) if usage else None for k in ("prompt_tokens", "completion_tokens", "total_tokens")}
        LOG.info(
            "Chat completion for %s finished in %.2fs id=%s usage=%s (content=%s)",
            purpose,
            time.perf_counter() - t0,
            getattr(completion, "id", None),
            usage_dict,
            "ok" if text else "none",
        )
        return text

    def _chat_json(self, messages: List[Dict[str, Any]], *, purpose: str, max_tokens: int, temperature: float, empty_code: str, unparseable_code: str) -> Any:
        text = self._chat(messages, purpose=purpose, max_tokens=max_tokens, temperature=temperature, json_mode=True)
        if not text or not text.strip():
            raise UpstreamError(f"AI service returned no content for {purpose}", code=empty_code)
        try:
            return json.loads(strip_code_fences(text))
        except json.JSONDecodeError as e:
            LOG.error("Model output for %s is not valid JSON; first 500 chars: %r", purpose, text[:500])
            raise UpstreamError(f"AI response for {purpose} could not be parsed", code=unparseable_code) from e

    def _generate_image(self, prompt: str, *, purpose: str) -> str:
        client = self.client()
        kwargs: Dict[str, Any] = {"model": self.image_model, "prompt": prompt, "n": 1, "size": "1024x1024"}
        if self.image_model.startswith("dall-e-3"):
            kwargs["quality"] = "hd"
        t0 = time.perf_counter()
        try:
            LOG.info("Requesting %s from image model='%s' (prompt %d chars)…", purpose, self.image_model, len(prompt))
            resp = client.images.generate(**kwargs)
        except (APIConnectionError, APITimeoutError) as e:
            LOG.error("Network/timeout while generating %s: %s", purpose, e)
            raise UpstreamError(f"AI service unreachable during {purpose}") from e
        except APIStatusError as e:
            body = getattr(getattr(e, "response", None), "text", None)
            LOG.error("OpenAI Images (%s) returned %s. Body preview: %r", purpose, getattr(e, "status_code", "?"), (body[:300] if body else None))
            raise UpstreamError("Failed to generate image", code="image_failed") from e
        except OpenAIError as e:
            LOG.error("OpenAI client error while generating %s: %s", purpose, e)
            raise UpstreamError("Failed to generate image", code="image_failed") from e

        data = getattr(resp, "data", None) or []
        url = getattr(data[0], "url", None) if data else None
        if not url:
            LOG.error("Image generation for %s returned no URL", purpose)
            raise UpstreamError("Failed to generate image", code="image_failed")
        LOG.info("Image for %s generated in %.2fs", purpose, time.perf_counter() - t0)
        return url

    # ---------- capabilities ----------
    def analyze_image(self, data: bytes, mime_type: str) -> Dict[str, Any]:
        """Ask the vision model for name, trilingual copy, price and category.

        Returns product input fields (camelCase, no imageUrl) with empty
        benefit/feature lists filled in for missing languages.
        """
        if not data:
            raise ValidationError("No image file provided", code="no_image")
        if not mime_type or not mime_type.startswith("image/"):
            raise ValidationError("Only image files are allowed", code="not_an_image")
        data_url = f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
        LOG.debug("Prepared image payload (~%.2f MiB as data URL)", len(data_url) / (1024 * 1024))
        messages = [
            {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": ANALYSIS_USER_PROMPT},
                    {"type": "image_url", "image_url": {"url": data_url}},
                ],
            },
        ]
        payload = self._chat_json(
            messages,
            purpose="image analysis",
            max_tokens=2000,
            temperature=1,
            empty_code="analysis_empty",
            unparseable_code="analysis_unparseable",
        )
        try:
            return parse_analysis_payload(payload)
        except ValidationError as e:
            raise UpstreamError(f"AI analysis had an unexpected shape: {e}", code="analysis_unparseable") from e

    def generate_marketing(self, product: Product, language: str) -> Dict[str, Any]:
        _require_language(language)
        messages = [
            {"role": "system", "content": MARKETING_SYSTEM_PROMPT},
            {"role": "user", "content": build_marketing_prompt(product, language)},
        ]
        payload = self._chat_json(
            messages,
            purpose="marketing post",
            max_tokens=1000,
            temperature=0.7,
            empty_code="marketing_empty",
            unparseable_code="marketing_unparseable",
        )
        try:
            return parse_marketing_payload(payload)
        except ValidationError as e:
            raise UpstreamError(f"Marketing post had an unexpected shape: {e}", code="marketing_unparseable") from e

    def generate_marketing_image(self, post: str, hashtags: Sequence[str], call_to_action: str, product_name: str) -> str:
        if not post or not post.strip() or not call_to_action or not call_to_action.strip():
            raise ValidationError("Missing marketing post data", code="marketing_data_missing")
        prompt = build_marketing_image_prompt(post, hashtags, call_to_action, product_name)
        return self._generate_image(prompt, purpose="marketing image")

    def generate_chat_image(self, prompt: str, product_name: str) -> str:
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt is required", code="prompt_required")
        return self._generate_image(build_chat_image_prompt(prompt, product_name), purpose="chat image")

    def answer_question(self, question: str, language: str, description: Optional[str]) -> str:
        if not question or not question.strip():
            raise ValidationError("Question is required", code="question_required")
        _require_language(language)
        system = CHAT_SYSTEM_PROMPT.format(
            language_name=LANGUAGE_NAMES[language],
            description=(description or "").strip() or "No description available",
        )
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": question.strip()},
        ]
        text = self._chat(messages, purpose="product chat", max_tokens=500, temperature=0.7)
        if not text or not text.strip():
            return FALLBACK_ANSWER
        return text.strip()

    def download_image(self, url: str) -> bytes:
        """Fetch a generated image; failures surface as UpstreamError."""
        try:
            resp = self._http_client().get(url)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            LOG.error("Downloading generated image failed: %s", e)
            raise UpstreamError("Failed to download generated image", code="image_failed") from e
        LOG.debug("Downloaded generated image (%d bytes)", len(resp.content))
        return resp.content

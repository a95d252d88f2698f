from __future__ import annotations

import dataclasses
import re
from typing import Any, Dict, List, Mapping, Optional

from ..logging import get_logger
from .constants import (
    DEFAULT_LANGUAGE,
    DEFAULT_ORDER_STATUS,
    DEFAULT_QUANTITY,
    LANGUAGES,
    ORDER_STATUSES,
    UNNAMED_PRODUCT,
)
from .errors import ValidationError
from .models import Order, Product


LOG = get_logger("catalog-parser")

PRODUCT_PATCHABLE = {
    "name": "name",
    "descriptions": "descriptions",
    "benefits": "benefits",
    "features": "features",
    "price": "price",
    "category": "category",
}

ORDER_PATCHABLE = {
    "customerName": "customer_name",
    "customerPhone": "customer_phone",
    "customerAddress": "customer_address",
    "customerCity": "customer_city",
    "notes": "notes",
    "quantity": "quantity",
    "status": "status",
    "language": "language",
    "confirmationScript": "confirmation_script",
}

_OPENING_FENCE_RE = re.compile(r"^```[\w+-]*[ \t]*\n?")
_CLOSING_FENCE_RE = re.compile(r"\n?[ \t]*```$")


def strip_code_fences(text: str) -> str:
    """Remove a leading ``` or ```json fence and a trailing ``` fence, each when present."""
    s = (text or "").strip()
    s = _OPENING_FENCE_RE.sub("", s, count=1)
    s = _CLOSING_FENCE_RE.sub("", s, count=1)
    return s.strip()


# ---------- field helpers ----------
def _require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValidationError(f"{what} must be a JSON object")
    return data


def _required_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} is required", code="missing_fields", params={"fields": key})
    return value.strip()


def _optional_str(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value.strip() or None


def _check_language_keys(value: Mapping[str, Any], key: str, *, require_all: bool) -> None:
    extra = sorted(set(value) - set(LANGUAGES))
    if extra:
        raise ValidationError(f"{key} has unsupported language(s): {', '.join(extra)}")
    if require_all:
        missing = [lang for lang in LANGUAGES if lang not in value]
        if missing:
            raise ValidationError(f"{key} is missing language(s): {', '.join(missing)}")


def _descriptions(value: Any, key: str = "descriptions") -> Dict[str, str]:
    if not isinstance(value, Mapping):
        raise ValidationError(f"{key} must map each of {', '.join(LANGUAGES)} to a text")
    _check_language_keys(value, key, require_all=True)
    out: Dict[str, str] = {}
    for lang in LANGUAGES:
        text = value[lang]
        if not isinstance(text, str):
            raise ValidationError(f"{key}.{lang} must be a string")
        out[lang] = text
    return out


def _language_lists(value: Any, key: str) -> Dict[str, List[str]]:
    if value is None:
        return {lang: [] for lang in LANGUAGES}
    if not isinstance(value, Mapping):
        raise ValidationError(f"{key} must map languages to lists of strings")
    _check_language_keys(value, key, require_all=False)
    out: Dict[str, List[str]] = {}
    for lang in LANGUAGES:
        items = value.get(lang)
        if items is None:
            out[lang] = []
            continue
        if not isinstance(items, list) or not all(isinstance(i, str) for i in items):
            raise ValidationError(f"{key}.{lang} must be a list of strings")
        out[lang] = list(items)
    return out


def _quantity(value: Any) -> int:
    if value is None:
        return DEFAULT_QUANTITY
    if isinstance(value, bool):
        raise ValidationError("quantity must be an integer >= 1")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value < 1:
        raise ValidationError("quantity must be an integer >= 1")
    return value


def _status(value: Any) -> str:
    if value is None:
        return DEFAULT_ORDER_STATUS
    if value not in ORDER_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(ORDER_STATUSES)}")
    return value


def parse_language(value: Any, *, default: str = DEFAULT_LANGUAGE) -> str:
    if value is None or value == "":
        return default
    if not isinstance(value, str) or value.strip().lower() not in LANGUAGES:
        raise ValidationError(
            f"language must be one of: {', '.join(LANGUAGES)}",
            code="invalid_language",
            params={"value": value},
        )
    return value.strip().lower()


# ---------- products ----------
def parse_product_input(data: Any) -> Dict[str, Any]:
    """Validate a new product and return dataclass-ready fields.

    Expected shape (camelCase, as sent by the client or built from analysis):
    - name, imageUrl: non-empty strings
    - descriptions: { ar, en, fr } strings (empty allowed, keys mandatory)
    - benefits, features: optional { ar?, en?, fr? } lists of strings
    - price, category: optional strings
    """
    d = _require_mapping(data, "product")
    return {
        "name": _required_str(d, "name"),
        "image_url": _required_str(d, "imageUrl"),
        "descriptions": _descriptions(d.get("descriptions")),
        "benefits": _language_lists(d.get("benefits"), "benefits"),
        "features": _language_lists(d.get("features"), "features"),
        "price": _optional_str(d, "price"),
        "category": _optional_str(d, "category"),
    }


def parse_product_update(data: Any) -> Dict[str, Any]:
    d = _require_mapping(data, "product update")
    unknown = sorted(k for k in d if k not in PRODUCT_PATCHABLE)
    if unknown:
        raise ValidationError(f"cannot update field(s): {', '.join(unknown)}")
    patch: Dict[str, Any] = {}
    for key, attr in PRODUCT_PATCHABLE.items():
        if key not in d:
            continue
        if key == "name":
            patch[attr] = _required_str(d, key)
        elif key == "descriptions":
            patch[attr] = _descriptions(d[key])
        elif key in ("benefits", "features"):
            patch[attr] = _language_lists(d[key], key)
        else:
            patch[attr] = _optional_str(d, key)
    return patch


def validate_product(product: Product) -> Product:
    if not product.name or not product.name.strip():
        raise ValidationError("name is required")
    if not product.image_url:
        raise ValidationError("imageUrl is required")
    _descriptions(product.descriptions)
    _language_lists(product.benefits, "benefits")
    _language_lists(product.features, "features")
    return product


def merge_product(existing: Product, patch: Mapping[str, Any]) -> Product:
    """Shallow-merge validated fields over a product and re-check the whole record."""
    return validate_product(dataclasses.replace(existing, **patch))


# ---------- orders ----------
def parse_order_input(data: Any) -> Dict[str, Any]:
    d = _require_mapping(data, "order")
    missing = [k for k in ("productId", "customerName", "customerPhone") if not (isinstance(d.get(k), str) and d.get(k).strip())]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            code="missing_fields",
            params={"fields": ", ".join(missing)},
        )
    return {
        "product_id": d["productId"].strip(),
        "customer_name": d["customerName"].strip(),
        "customer_phone": d["customerPhone"].strip(),
        "customer_address": _optional_str(d, "customerAddress"),
        "customer_city": _optional_str(d, "customerCity"),
        "notes": _optional_str(d, "notes"),
        "quantity": _quantity(d.get("quantity")),
        "language": parse_language(d.get("language")),
        "confirmation_script": _optional_str(d, "confirmationScript"),
    }


def parse_order_update(data: Any) -> Dict[str, Any]:
    d = _require_mapping(data, "order update")
    unknown = sorted(k for k in d if k not in ORDER_PATCHABLE)
    if unknown:
        raise ValidationError(f"cannot update field(s): {', '.join(unknown)}")
    patch: Dict[str, Any] = {}
    for key, attr in ORDER_PATCHABLE.items():
        if key not in d:
            continue
        if key in ("customerName", "customerPhone"):
            patch[attr] = _required_str(d, key)
        elif key == "quantity":
            if d[key] is None:
                raise ValidationError("quantity must be an integer >= 1")
            patch[attr] = _quantity(d[key])
        elif key == "status":
            if d[key] is None:
                raise ValidationError(f"status must be one of: {', '.join(ORDER_STATUSES)}")
            patch[attr] = _status(d[key])
        elif key == "language":
            if d[key] is None or d[key] == "":
                raise ValidationError(
                    f"language must be one of: {', '.join(LANGUAGES)}",
                    code="invalid_language",
                    params={"value": d[key]},
                )
            patch[attr] = parse_language(d[key])
        else:
            patch[attr] = _optional_str(d, key)
    return patch


def validate_order(order: Order) -> Order:
    if not order.product_id:
        raise ValidationError("productId is required")
    if not order.customer_name or not order.customer_phone:
        raise ValidationError("customerName and customerPhone are required")
    _quantity(order.quantity)
    _status(order.status)
    parse_language(order.language)
    return order


def merge_order(existing: Order, patch: Mapping[str, Any]) -> Order:
    return validate_order(dataclasses.replace(existing, **patch))


# ---------- model payloads ----------
def _lenient_str(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _lenient_lists(value: Any) -> Dict[str, List[str]]:
    out: Dict[str, List[str]] = {lang: [] for lang in LANGUAGES}
    if not isinstance(value, Mapping):
        return out
    for lang in LANGUAGES:
        items = value.get(lang)
        if isinstance(items, list):
            out[lang] = [s.strip() for s in items if isinstance(s, str) and s.strip()]
    return out


def parse_analysis_payload(payload: Any) -> Dict[str, Any]:
    """Normalize the vision model's JSON into product input fields (without imageUrl).

    Missing pieces are filled rather than rejected: a blank name becomes
    "Unnamed Product", a missing description language an empty string, and
    benefits/features default to empty lists per language.
    """
    if not isinstance(payload, Mapping):
        raise ValidationError("analysis payload must be a JSON object")
    descriptions_raw = payload.get("descriptions")
    if not isinstance(descriptions_raw, Mapping):
        LOG.warning("Analysis payload has no descriptions object; using empty texts")
        descriptions_raw = {}
    descriptions = {lang: _lenient_str(descriptions_raw.get(lang)) for lang in LANGUAGES}
    return {
        "name": _lenient_str(payload.get("name")) or UNNAMED_PRODUCT,
        "descriptions": descriptions,
        "benefits": _lenient_lists(payload.get("benefits")),
        "features": _lenient_lists(payload.get("features")),
        "price": _lenient_str(payload.get("price")) or None,
        "category": _lenient_str(payload.get("category")) or None,
    }


def parse_marketing_payload(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, Mapping):
        raise ValidationError("marketing payload must be a JSON object")
    post = _lenient_str(payload.get("post"))
    if not post:
        raise ValidationError("marketing payload has no post text")

    def _strings(value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        return [s.strip() for s in value if isinstance(s, str) and s.strip()]

    return {
        "post": post,
        "hashtags": _strings(payload.get("hashtags")),
        "callToAction": _lenient_str(payload.get("callToAction")),
        "salesTips": _strings(payload.get("salesTips")),
    }


# ---------- users ----------
def parse_user_input(data: Any) -> Dict[str, str]:
    d = _require_mapping(data, "user")
    username = _required_str(d, "username")
    password = d.get("password")
    if not isinstance(password, str) or not password:
        raise ValidationError("password is required", code="missing_fields", params={"fields": "password"})
    return {"username": username, "password": password}

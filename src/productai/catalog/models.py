from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .constants import DEFAULT_LANGUAGE, DEFAULT_ORDER_STATUS, DEFAULT_QUANTITY, empty_language_lists


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 with millisecond precision and a trailing Z, as JS clients expect."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass
class User:
    id: str
    username: str
    password: str  # opaque; nothing authenticates against it

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "username": self.username}


@dataclass
class Product:
    id: str
    name: str
    image_url: str
    descriptions: Dict[str, str]           # exactly ar/en/fr
    benefits: Dict[str, List[str]] = field(default_factory=empty_language_lists)
    features: Dict[str, List[str]] = field(default_factory=empty_language_lists)
    price: Optional[str] = None
    category: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    def description(self, language: str) -> str:
        return self.descriptions.get(language, "")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "imageUrl": self.image_url,
            "descriptions": dict(self.descriptions),
            "benefits": {k: list(v) for k, v in self.benefits.items()},
            "features": {k: list(v) for k, v in self.features.items()},
            "price": self.price,
            "category": self.category,
            "createdAt": format_timestamp(self.created_at),
        }


@dataclass
class Order:
    id: str
    product_id: str          # weak reference; the product may be gone
    customer_name: str
    customer_phone: str
    customer_address: Optional[str] = None
    customer_city: Optional[str] = None
    notes: Optional[str] = None
    quantity: int = DEFAULT_QUANTITY
    status: str = DEFAULT_ORDER_STATUS
    confirmation_script: Optional[str] = None
    language: str = DEFAULT_LANGUAGE
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "productId": self.product_id,
            "customerName": self.customer_name,
            "customerPhone": self.customer_phone,
            "customerAddress": self.customer_address,
            "customerCity": self.customer_city,
            "notes": self.notes,
            "quantity": self.quantity,
            "status": self.status,
            "confirmationScript": self.confirmation_script,
            "language": self.language,
            "createdAt": format_timestamp(self.created_at),
        }

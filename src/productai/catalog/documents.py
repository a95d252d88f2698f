"""Confirmation scripts and printable HTML documents.

Pure functions of their inputs: the only time-dependent piece, the
generation date in the footer, is a parameter (today when omitted).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional
from urllib.parse import quote

from jinja2 import Environment, PackageLoader, select_autoescape

from ..i18n import DOCUMENT_LABELS, is_rtl
from .constants import DEFAULT_QUANTITY, LANGUAGES
from .errors import ValidationError
from .models import Order, Product


BRAND = "ProductAI"

_ENV = Environment(
    loader=PackageLoader("productai.catalog", "templates"),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


@dataclass
class Customer:
    name: str
    phone: str
    address: Optional[str] = None
    city: Optional[str] = None
    quantity: int = DEFAULT_QUANTITY


SCRIPT_TEMPLATES: Dict[str, Dict[str, str]] = {
    "ar": {
        "greeting": "السلام عليكم {name}،",
        "thanks": "أشكرك على اهتمامك بمنتجنا.",
        "details": "تفاصيل طلبك:",
        "product": "المنتج: {product}",
        "quantity": "الكمية: {quantity}",
        "price": "السعر: {price}",
        "description": "وصف المنتج:",
        "city": "المدينة: {city}",
        "address": "العنوان: {address}",
        "question": "هل تؤكد هذا الطلب؟",
        "closing": "نحن في انتظار ردك.\nشكراً لثقتكم بنا.",
    },
    "en": {
        "greeting": "Hello {name},",
        "thanks": "Thank you for your interest in our product.",
        "details": "Order Details:",
        "product": "Product: {product}",
        "quantity": "Quantity: {quantity}",
        "price": "Price: {price}",
        "description": "Product Description:",
        "city": "City: {city}",
        "address": "Address: {address}",
        "question": "Do you confirm this order?",
        "closing": "We look forward to your response.\nThank you for your trust.",
    },
    "fr": {
        "greeting": "Bonjour {name},",
        "thanks": "Merci pour votre intérêt pour notre produit.",
        "details": "Détails de la commande:",
        "product": "Produit: {product}",
        "quantity": "Quantité: {quantity}",
        "price": "Prix: {price}",
        "description": "Description du produit:",
        "city": "Ville: {city}",
        "address": "Adresse: {address}",
        "question": "Confirmez-vous cette commande?",
        "closing": "Nous attendons votre réponse.\nMerci pour votre confiance.",
    },
}


def _check_language(language: str) -> str:
    if language not in LANGUAGES:
        raise ValidationError(
            f"language must be one of: {', '.join(LANGUAGES)}",
            code="invalid_language",
            params={"value": language},
        )
    return language


def format_date(value: date, language: str) -> str:
    if language == "en":
        return f"{value.month}/{value.day}/{value.year}"
    return f"{value.day:02d}/{value.month:02d}/{value.year}"


def confirmation_script(product: Product, customer: Customer, language: str) -> str:
    """Plain-text order summary the customer is asked to approve.

    Price, city and address lines are left out when empty; the product
    description in ``language`` is quoted verbatim.
    """
    t = SCRIPT_TEMPLATES[_check_language(language)]

    details = [
        t["details"],
        t["product"].format(product=product.name),
        t["quantity"].format(quantity=customer.quantity),
    ]
    if product.price:
        details.append(t["price"].format(price=product.price))

    location: List[str] = []
    if customer.city:
        location.append(t["city"].format(city=customer.city))
    if customer.address:
        location.append(t["address"].format(address=customer.address))

    blocks = [
        [t["greeting"].format(name=customer.name)],
        [t["thanks"]],
        details,
        [t["description"], product.description(language)],
        location,
        [t["question"]],
        [t["closing"]],
    ]
    return "\n\n".join("\n".join(block) for block in blocks if block)


def product_document(product: Product, language: str, generated_on: Optional[date] = None) -> str:
    _check_language(language)
    template = _ENV.get_template("product.html")
    return template.render(
        lang=language,
        direction="rtl" if is_rtl(language) else "ltr",
        t=DOCUMENT_LABELS[language],
        product=product,
        description=product.description(language),
        benefits=product.benefits.get(language) or [],
        features=product.features.get(language) or [],
        brand=BRAND,
        generated_on=format_date(generated_on or date.today(), language),
    )


def order_document(order: Order, product: Optional[Product], language: str, generated_on: Optional[date] = None) -> str:
    """Printable order sheet; product details are skipped when the product is gone."""
    _check_language(language)
    labels = DOCUMENT_LABELS[language]
    template = _ENV.get_template("order.html")
    return template.render(
        lang=language,
        direction="rtl" if is_rtl(language) else "ltr",
        t=labels,
        order=order,
        product=product,
        status_label=labels["statuses"].get(order.status, order.status),
        order_date=format_date(order.created_at.date(), language),
        brand=BRAND,
        generated_on=format_date(generated_on or date.today(), language),
    )


def attachment_disposition(filename: str) -> str:
    """Content-Disposition value with an ASCII fallback and an RFC 5987 UTF-8 name."""
    fallback = re.sub(r"[^A-Za-z0-9._-]+", "-", filename).strip("-.")
    if not fallback or fallback.lower() == "html":
        fallback = "document.html"
    elif not fallback.lower().endswith(".html"):
        fallback = f"{fallback}.html"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"


def product_document_filename(product: Product, language: str) -> str:
    return f"{product.name}-{language}.html"


def order_document_filename(order: Order) -> str:
    return f"order-{order.id}.html"

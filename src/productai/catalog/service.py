from __future__ import annotations

import mimetypes
import os
import secrets
import time
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..logging import get_logger
from ..paths import UPLOADS_URL_PREFIX, remove_upload
from .constants import MAX_UPLOAD_BYTES
from .documents import (
    Customer,
    confirmation_script,
    order_document,
    order_document_filename,
    product_document,
    product_document_filename,
)
from .errors import NotFoundError, ValidationError
from .gateway import AIGateway
from .models import Order, Product
from .parser import parse_language, parse_order_input
from .storage import Storage


LOG = get_logger("catalog-service")


def validate_upload(data: Optional[bytes], mime_type: Optional[str]) -> None:
    """Reject uploads before any model call: missing, not an image, or too large."""
    if not data:
        raise ValidationError("No image file provided", code="no_image")
    if not mime_type or not mime_type.lower().startswith("image/"):
        raise ValidationError("Only image files are allowed", code="not_an_image")
    if len(data) > MAX_UPLOAD_BYTES:
        raise ValidationError(
            "Image exceeds the upload size limit",
            code="image_too_large",
            params={"limit_mb": MAX_UPLOAD_BYTES // (1024 * 1024)},
        )


def _upload_filename(original: Optional[str], mime_type: str) -> str:
    ext = os.path.splitext(original or "")[1].lower()
    if not ext or len(ext) > 6:
        ext = mimetypes.guess_extension(mime_type) or ".img"
    return f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext}"


def _hashtags(value: Any) -> List[str]:
    if isinstance(value, str):
        return [h for h in value.split() if h]
    if isinstance(value, (list, tuple)):
        return [h.strip() for h in value if isinstance(h, str) and h.strip()]
    return []


class CatalogService:
    """Product and order operations, including the AI-mediated ones.

    Storage and gateway are injected; nothing here holds global state.
    Methods that reach the AI service or the disk block and are meant to be
    called off the event loop.
    """

    def __init__(self, storage: Storage, gateway: AIGateway, upload_dir: str) -> None:
        self.storage = storage
        self.gateway = gateway
        self.upload_dir = os.path.abspath(upload_dir)
        os.makedirs(self.upload_dir, exist_ok=True)

    # ---------- products ----------
    def list_products(self) -> List[Product]:
        return self.storage.get_products()

    def get_product(self, product_id: str) -> Product:
        product = self.storage.get_product(product_id)
        if product is None:
            raise NotFoundError("Product not found", code="product_not_found")
        return product

    def update_product(self, product_id: str, patch: Mapping[str, Any]) -> Product:
        product = self.storage.update_product(product_id, patch)
        if product is None:
            raise NotFoundError("Product not found", code="product_not_found")
        return product

    def save_upload(self, data: bytes, mime_type: str, filename: Optional[str] = None) -> str:
        """Write an uploaded image and return its public URL."""
        name = _upload_filename(filename, mime_type)
        path = os.path.join(self.upload_dir, name)
        with open(path, "wb") as f:
            f.write(data)
        LOG.info("Stored upload %s (%d bytes, %s)", name, len(data), mime_type)
        return f"{UPLOADS_URL_PREFIX}{name}"

    def analyze_upload(self, data: Optional[bytes], mime_type: Optional[str], filename: Optional[str] = None) -> Product:
        """Validate → store the image → analyze it → persist the product.

        The stored image is removed again when analysis or persistence fails.
        """
        validate_upload(data, mime_type)
        image_url = self.save_upload(data, mime_type, filename)
        try:
            analysis = self.gateway.analyze_image(data, mime_type)
            product = self.storage.create_product({**analysis, "imageUrl": image_url})
        except Exception:
            remove_upload(self.upload_dir, image_url)
            raise
        LOG.info("Analyzed upload into product id=%s name=%r", product.id, product.name)
        return product

    def delete_product(self, product_id: str) -> bool:
        product = self.get_product(product_id)
        remove_upload(self.upload_dir, product.image_url)
        if not self.storage.delete_product(product_id):
            raise NotFoundError("Product not found", code="product_not_found")
        return True

    def orders_for_product(self, product_id: str) -> List[Order]:
        self.get_product(product_id)
        return self.storage.get_orders_by_product(product_id)

    # ---------- AI features ----------
    def marketing(self, product_id: str, language: Any) -> Dict[str, Any]:
        product = self.get_product(product_id)
        return self.gateway.generate_marketing(product, parse_language(language))

    def marketing_image(self, product_id: str, body: Mapping[str, Any]) -> bytes:
        product = self.get_product(product_id)
        post = body.get("post")
        call_to_action = body.get("callToAction")
        hashtags = _hashtags(body.get("hashtags"))
        has_post = isinstance(post, str) and post.strip()
        has_cta = isinstance(call_to_action, str) and call_to_action.strip()
        if not has_post or not has_cta or "hashtags" not in body:
            raise ValidationError("Missing marketing post data", code="marketing_data_missing")
        url = self.gateway.generate_marketing_image(post, hashtags, call_to_action, product.name)
        return self.gateway.download_image(url)

    def chat(self, product_id: str, question: Any, language: Any, description: Any = None) -> str:
        if not isinstance(question, str) or not question.strip():
            raise ValidationError("Question is required", code="question_required")
        lang = parse_language(language)
        product = self.get_product(product_id)
        context = description if isinstance(description, str) and description.strip() else product.description(lang)
        return self.gateway.answer_question(question, lang, context)

    def chat_image(self, product_id: str, prompt: Any, product_name: Any = None) -> str:
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValidationError("Prompt is required", code="prompt_required")
        product = self.get_product(product_id)
        name = product_name if isinstance(product_name, str) and product_name.strip() else product.name
        return self.gateway.generate_chat_image(prompt, name)

    # ---------- orders ----------
    def list_orders(self) -> List[Order]:
        return self.storage.get_orders()

    def get_order(self, order_id: str) -> Order:
        order = self.storage.get_order(order_id)
        if order is None:
            raise NotFoundError("Order not found", code="order_not_found")
        return order

    def create_order(self, data: Any) -> Order:
        """Validate, resolve the product, write the confirmation script, persist.

        New orders always start as pending; the script is generated once here
        and not regenerated on later edits.
        """
        fields = parse_order_input(data)
        product = self.storage.get_product(fields["product_id"])
        if product is None:
            raise NotFoundError("Product not found", code="product_not_found")
        customer = Customer(
            name=fields["customer_name"],
            phone=fields["customer_phone"],
            address=fields["customer_address"],
            city=fields["customer_city"],
            quantity=fields["quantity"],
        )
        script = confirmation_script(product, customer, fields["language"])
        return self.storage.create_order(
            {
                "productId": fields["product_id"],
                "customerName": fields["customer_name"],
                "customerPhone": fields["customer_phone"],
                "customerAddress": fields["customer_address"],
                "customerCity": fields["customer_city"],
                "notes": fields["notes"],
                "quantity": fields["quantity"],
                "language": fields["language"],
                "confirmationScript": script,
            }
        )

    def update_order(self, order_id: str, patch: Mapping[str, Any]) -> Order:
        order = self.storage.update_order(order_id, patch)
        if order is None:
            raise NotFoundError("Order not found", code="order_not_found")
        return order

    def delete_order(self, order_id: str) -> bool:
        if not self.storage.delete_order(order_id):
            raise NotFoundError("Order not found", code="order_not_found")
        return True

    # ---------- documents ----------
    def product_sheet(self, product_id: str, language: Any, generated_on: Optional[date] = None) -> Tuple[str, str]:
        lang = parse_language(language)
        product = self.get_product(product_id)
        return product_document(product, lang, generated_on), product_document_filename(product, lang)

    def order_sheet(self, order_id: str, language: Any, generated_on: Optional[date] = None) -> Tuple[str, str]:
        lang = parse_language(language)
        order = self.get_order(order_id)
        product = self.storage.get_product(order.product_id)
        if product is None:
            LOG.info("Order id=%s references missing product %s; rendering without it", order.id, order.product_id)
        return order_document(order, product, lang, generated_on), order_document_filename(order)

    def summary(self) -> Dict[str, Any]:
        return self.storage.count_summary()


__all__ = ["CatalogService", "validate_upload"]

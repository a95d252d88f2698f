from __future__ import annotations

import contextlib
import json
import logging
import os
from typing import Any, AsyncIterator, Dict, List, Optional

from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount, Route
from starlette.staticfiles import StaticFiles

from ... import i18n
from ...config import Settings, load_settings
from ...logging import get_logger
from ...paths import find_project_root
from ..constants import DEFAULT_LANGUAGE, LANGUAGES, MAX_UPLOAD_BYTES
from ..documents import attachment_disposition
from ..errors import CatalogError, ValidationError
from ..gateway import AIGateway
from ..service import CatalogService
from ..storage import Storage, open_storage


LOG = get_logger("catalog-frontend")

DEFAULT_STATIC_SUBDIR = os.path.join("frontend", "productai-ui", "dist")
UPLOAD_CACHE_CONTROL = "public, max-age=31536000"


class UploadStaticFiles(StaticFiles):
    """Static files for uploaded images, cached for a year by clients."""

    def file_response(self, *args: Any, **kwargs: Any) -> Response:
        response = super().file_response(*args, **kwargs)
        response.headers["Cache-Control"] = UPLOAD_CACHE_CONTROL
        return response


def _language_from_request(request: Request) -> str:
    lang = request.query_params.get("lang")
    if lang in LANGUAGES:
        return lang
    accept = request.headers.get("accept-language") or ""
    primary = accept.split(",")[0].split("-")[0].strip().lower()
    return primary if primary in LANGUAGES else DEFAULT_LANGUAGE


async def _json_body(request: Request) -> Dict[str, Any]:
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationError("Request body must be valid JSON") from exc
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _remember_language(request: Request, value: Any) -> None:
    """Record the caller's language so errors come back in it."""
    if isinstance(value, str) and value.strip().lower() in LANGUAGES:
        request.state.language = value.strip().lower()


def create_app(
    root_dir: Optional[str] = None,
    *,
    storage: Optional[Storage] = None,
    gateway: Optional[AIGateway] = None,
    settings: Optional[Settings] = None,
    upload_dir: Optional[str] = None,
    static_dir: Optional[str] = None,
    allow_origins: Optional[List[str]] = None,
    serve_static: bool = True,
) -> Starlette:
    """Create a Starlette app exposing the catalogue API and optional frontend.

    Storage and gateway are injected; when omitted they are built from
    settings (DATABASE_URL, OPENAI_API_KEY, ...).
    """

    settings = settings or load_settings(root_dir)
    project_root = find_project_root(root_dir) if root_dir else settings.root_dir
    if storage is None:
        storage = open_storage(settings.database_url)
    if gateway is None:
        gateway = AIGateway.from_settings(settings)
    service = CatalogService(storage, gateway, upload_dir or settings.upload_dir)

    resolved_static_dir: Optional[str] = None
    if serve_static:
        if static_dir is not None:
            candidate = os.path.abspath(os.path.join(project_root, static_dir))
        else:
            candidate = os.path.abspath(os.path.join(project_root, DEFAULT_STATIC_SUBDIR))
        if os.path.isdir(candidate):
            resolved_static_dir = candidate
            LOG.info("Serving static frontend from %s", resolved_static_dir)
        else:
            LOG.warning("Frontend build not found at %s; API will run without static assets.", candidate)
    else:
        LOG.info("Static frontend serving disabled (API only mode).")

    # ---------- meta ----------
    async def health(_: Request) -> JSONResponse:
        return JSONResponse({"status": "ok", "storage": type(storage).__name__})

    async def summary(_: Request) -> JSONResponse:
        return JSONResponse(service.summary())

    async def translations(request: Request) -> JSONResponse:
        language = request.path_params["language"]
        if language not in i18n.TRANSLATIONS:
            raise HTTPException(status_code=404, detail=f"Unsupported language: {language}")
        return JSONResponse({"language": language, "rtl": i18n.is_rtl(language), "strings": i18n.TRANSLATIONS[language]})

    # ---------- products ----------
    async def list_products(_: Request) -> JSONResponse:
        return JSONResponse([p.to_dict() for p in service.list_products()])

    async def get_product(request: Request) -> JSONResponse:
        return JSONResponse(service.get_product(request.path_params["product_id"]).to_dict())

    async def analyze_product(request: Request) -> JSONResponse:
        async with request.form() as form:
            _remember_language(request, form.get("language"))
            upload = form.get("image")
            if not isinstance(upload, UploadFile):
                raise ValidationError("No image file provided", code="no_image")
            data = await upload.read(MAX_UPLOAD_BYTES + 1)
            content_type = upload.content_type
            filename = upload.filename
        product = await run_in_threadpool(service.analyze_upload, data, content_type, filename)
        return JSONResponse(product.to_dict())

    async def update_product(request: Request) -> JSONResponse:
        body = await _json_body(request)
        product = service.update_product(request.path_params["product_id"], body)
        return JSONResponse(product.to_dict())

    async def delete_product(request: Request) -> JSONResponse:
        await run_in_threadpool(service.delete_product, request.path_params["product_id"])
        return JSONResponse({"success": True})

    async def product_orders(request: Request) -> JSONResponse:
        orders = service.orders_for_product(request.path_params["product_id"])
        return JSONResponse([o.to_dict() for o in orders])

    async def marketing(request: Request) -> JSONResponse:
        body = await _json_body(request)
        _remember_language(request, body.get("language"))
        post = await run_in_threadpool(service.marketing, request.path_params["product_id"], body.get("language"))
        return JSONResponse(post)

    async def marketing_image(request: Request) -> Response:
        body = await _json_body(request)
        _remember_language(request, body.get("language"))
        png = await run_in_threadpool(service.marketing_image, request.path_params["product_id"], body)
        return Response(
            png,
            media_type="image/png",
            headers={"Content-Disposition": "inline; filename=marketing-post.png"},
        )

    async def chat(request: Request) -> JSONResponse:
        body = await _json_body(request)
        _remember_language(request, body.get("language"))
        answer = await run_in_threadpool(
            service.chat,
            request.path_params["product_id"],
            body.get("question"),
            body.get("language"),
            body.get("productDescription"),
        )
        return JSONResponse({"answer": answer})

    async def chat_image(request: Request) -> JSONResponse:
        body = await _json_body(request)
        _remember_language(request, body.get("language"))
        image_url = await run_in_threadpool(
            service.chat_image,
            request.path_params["product_id"],
            body.get("prompt"),
            body.get("productName"),
        )
        return JSONResponse({"imageUrl": image_url})

    async def product_pdf(request: Request) -> Response:
        html, filename = service.product_sheet(request.path_params["product_id"], request.query_params.get("lang"))
        return Response(html, media_type="text/html", headers={"Content-Disposition": attachment_disposition(filename)})

    # ---------- orders ----------
    async def list_orders(_: Request) -> JSONResponse:
        return JSONResponse([o.to_dict() for o in service.list_orders()])

    async def get_order(request: Request) -> JSONResponse:
        return JSONResponse(service.get_order(request.path_params["order_id"]).to_dict())

    async def create_order(request: Request) -> JSONResponse:
        body = await _json_body(request)
        _remember_language(request, body.get("language"))
        order = service.create_order(body)
        return JSONResponse(order.to_dict())

    async def update_order(request: Request) -> JSONResponse:
        body = await _json_body(request)
        order = service.update_order(request.path_params["order_id"], body)
        return JSONResponse(order.to_dict())

    async def delete_order(request: Request) -> JSONResponse:
        service.delete_order(request.path_params["order_id"])
        return JSONResponse({"success": True})

    async def order_pdf(request: Request) -> Response:
        html, filename = service.order_sheet(request.path_params["order_id"], request.query_params.get("lang"))
        return Response(html, media_type="text/html", headers={"Content-Disposition": attachment_disposition(filename)})

    # ---------- error conversion ----------
    async def catalog_error(request: Request, exc: CatalogError) -> JSONResponse:
        language = getattr(request.state, "language", None) or _language_from_request(request)
        text = i18n.message(exc.code, language, fallback=exc.message, **exc.params)
        level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
        LOG.log(level, "%s %s -> %s (%s): %s", request.method, request.url.path, exc.status_code, exc.code, exc.message)
        return JSONResponse({"message": text, "code": exc.code}, status_code=exc.status_code)

    async def http_error(request: Request, exc: HTTPException) -> JSONResponse:
        LOG.warning("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.detail)
        return JSONResponse({"message": exc.detail}, status_code=exc.status_code)

    async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        LOG.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse({"message": "Internal server error"}, status_code=500)

    @contextlib.asynccontextmanager
    async def lifespan(_: Starlette) -> AsyncIterator[None]:
        yield
        close = getattr(gateway, "close", None)
        if callable(close):
            close()

    routes = [
        Route("/api/health", health, methods=["GET"]),
        Route("/api/summary", summary, methods=["GET"]),
        Route("/api/i18n/{language:str}", translations, methods=["GET"]),
        Route("/api/products", list_products, methods=["GET"]),
        Route("/api/products/analyze", analyze_product, methods=["POST"]),
        Route("/api/products/{product_id:str}", get_product, methods=["GET"]),
        Route("/api/products/{product_id:str}", update_product, methods=["PATCH"]),
        Route("/api/products/{product_id:str}", delete_product, methods=["DELETE"]),
        Route("/api/products/{product_id:str}/orders", product_orders, methods=["GET"]),
        Route("/api/products/{product_id:str}/marketing", marketing, methods=["POST"]),
        Route("/api/products/{product_id:str}/marketing-image", marketing_image, methods=["POST"]),
        Route("/api/products/{product_id:str}/chat", chat, methods=["POST"]),
        Route("/api/products/{product_id:str}/chat/generate-image", chat_image, methods=["POST"]),
        Route("/api/products/{product_id:str}/pdf", product_pdf, methods=["GET"]),
        Route("/api/orders", list_orders, methods=["GET"]),
        Route("/api/orders", create_order, methods=["POST"]),
        Route("/api/orders/{order_id:str}", get_order, methods=["GET"]),
        Route("/api/orders/{order_id:str}", update_order, methods=["PATCH"]),
        Route("/api/orders/{order_id:str}", delete_order, methods=["DELETE"]),
        Route("/api/orders/{order_id:str}/pdf", order_pdf, methods=["GET"]),
        Mount("/uploads", app=UploadStaticFiles(directory=service.upload_dir), name="uploads"),
    ]

    app = Starlette(
        debug=False,
        routes=routes,
        exception_handlers={
            CatalogError: catalog_error,
            HTTPException: http_error,
            Exception: unexpected_error,
        },
        lifespan=lifespan,
    )
    app.state.service = service

    origins = allow_origins or ["http://localhost:5173", "http://127.0.0.1:5173"]
    if "*" in origins:
        cors_allow_origins = ["*"]
        allow_credentials = False
    else:
        cors_allow_origins = origins
        allow_credentials = True
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_allow_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if resolved_static_dir:
        app.mount("/", StaticFiles(directory=resolved_static_dir, html=True), name="frontend")
    elif serve_static:
        async def missing_frontend(_: Request) -> JSONResponse:
            return JSONResponse(
                {
                    "message": "Frontend build missing. Run 'npm install' and 'npm run build' under frontend/productai-ui/.",
                },
                status_code=503,
            )

        app.add_route("/", missing_frontend, methods=["GET"])
        app.add_route("/{path:path}", missing_frontend, methods=["GET"])
    else:
        async def api_only(_: Request) -> JSONResponse:
            return JSONResponse(
                {
                    "message": "ProductAI API is running. Static frontend disabled (serve_static=False).",
                }
            )

        app.add_route("/", api_only, methods=["GET"])
        app.add_route("/{path:path}", api_only, methods=["GET"])

    return app


__all__ = ["create_app"]

from __future__ import annotations

import argparse
import dataclasses
import json
import mimetypes
import os
import sys
from typing import Optional, Sequence

from ..catalog.errors import CatalogError
from ..catalog.gateway import AIGateway
from ..catalog.service import CatalogService
from ..catalog.storage import open_storage, sqlite_path_from_url
from ..config import Settings, load_settings
from ..logging import get_logger
from ..paths import expand_abs

LOG = get_logger("cli-main")


def _settings(ns: argparse.Namespace) -> Settings:
    settings = load_settings(os.getcwd())
    database_url = getattr(ns, "database_url", None)
    if database_url:
        settings = dataclasses.replace(settings, database_url=database_url)
    return settings


def _service(settings: Settings) -> CatalogService:
    return CatalogService(
        open_storage(settings.database_url),
        AIGateway.from_settings(settings),
        settings.upload_dir,
    )


def _serve(ns: argparse.Namespace) -> int:
    from ..catalog.frontend import create_app
    import uvicorn

    allow_origins = ns.allow_origins
    if allow_origins and "*" in allow_origins:
        allow_origins = ["*"]

    app = create_app(
        root_dir=os.getcwd(),
        static_dir=ns.static_dir,
        allow_origins=allow_origins,
        serve_static=not ns.api_only,
    )
    uvicorn.run(app, host=ns.host, port=ns.port, reload=ns.reload, log_level=ns.log_level)
    return 0


def _init_db(ns: argparse.Namespace) -> int:
    settings = _settings(ns)
    path = sqlite_path_from_url(settings.database_url) if settings.database_url else None
    if not path:
        LOG.error("init-db needs a SQLite DATABASE_URL (sqlite:///path or *.db); got %r", settings.database_url)
        return 2
    storage = open_storage(settings.database_url)
    LOG.info("Catalogue DB ready at: %s", storage.db_path)
    print(storage.db_path)
    return 0


def _analyze(ns: argparse.Namespace) -> int:
    source = expand_abs(ns.source)
    if not os.path.isfile(source):
        LOG.error("Image not found: %s", source)
        return 2
    mime_type = mimetypes.guess_type(source)[0]
    with open(source, "rb") as f:
        data = f.read()
    service = _service(_settings(ns))
    product = service.analyze_upload(data, mime_type, os.path.basename(source))
    print(json.dumps(product.to_dict(), ensure_ascii=False, indent=2))
    return 0


def _export(ns: argparse.Namespace) -> int:
    service = _service(_settings(ns))
    if ns.product:
        html, filename = service.product_sheet(ns.product, ns.lang)
    else:
        html, filename = service.order_sheet(ns.order, ns.lang)
    output = expand_abs(ns.output) if ns.output else os.path.abspath(filename)
    os.makedirs(os.path.dirname(output) or ".", exist_ok=True)
    with open(output, "w", encoding="utf-8") as f:
        f.write(html)
    LOG.info("Wrote: %s", output)
    print(output)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="productai",
        description="Product photo analysis, multilingual copy and order handling.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the JSON API and optional React frontend server.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=5000)
    serve.add_argument("--reload", action="store_true", help="Enable auto-reload (development only)")
    serve.add_argument("--log-level", default="info")
    serve.add_argument("--static-dir", help="Override static frontend directory relative to project root")
    serve.add_argument("--api-only", action="store_true", help="Serve JSON API without static frontend")
    serve.add_argument(
        "--allow-origin",
        action="append",
        dest="allow_origins",
        help="Allowed CORS origin (can be provided multiple times, use '*' for any).",
    )
    serve.set_defaults(handler=_serve)

    init_db = subparsers.add_parser("init-db", help="Create/ensure the SQLite schema exists")
    init_db.add_argument("--database-url", help="Override DATABASE_URL (sqlite:///path or a .db path)")
    init_db.set_defaults(handler=_init_db)

    analyze = subparsers.add_parser("analyze", help="Analyze a local product photo and store the product")
    analyze.add_argument("--source", required=True, help="Path to a product image (JPG/PNG/WebP)")
    analyze.add_argument("--database-url", help="Override DATABASE_URL")
    analyze.set_defaults(handler=_analyze)

    export = subparsers.add_parser("export", help="Write a printable product or order sheet")
    target = export.add_mutually_exclusive_group(required=True)
    target.add_argument("--product", help="Product id")
    target.add_argument("--order", help="Order id")
    export.add_argument("--lang", default=None, help="ar, en or fr (default: ar)")
    export.add_argument("--output", help="Output HTML file (default: generated filename in cwd)")
    export.add_argument("--database-url", help="Override DATABASE_URL")
    export.set_defaults(handler=_export)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    provided = list(argv) if argv is not None else sys.argv[1:]
    LOG.debug("CLI invoked with arguments: %s", provided)

    parser = build_parser()
    try:
        args = parser.parse_args(provided)
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 2

    try:
        code = args.handler(args)
    except CatalogError as exc:
        LOG.error("%s failed: %s", args.command, exc.message)
        return 1
    LOG.info("Subcommand '%s' finished with exit code %s.", args.command, code)
    return code


if __name__ == "__main__":
    sys.exit(main())

import os
from dataclasses import dataclass
from typing import Dict, Optional

from dotenv import dotenv_values

from .logging import get_logger
from .paths import expand_abs, find_project_root, uploads_dir

log = get_logger("config")

DEFAULT_VISION_MODEL = "gpt-4o"
DEFAULT_IMAGE_MODEL = "dall-e-3"
DEFAULT_TIMEOUT_SECONDS = 60.0


def _find_upwards(start_dir: str, filename: str) -> Optional[str]:
    """Return first matching file found when walking up from start_dir.

    This makes running the server from subdirectories (e.g., `src/`) still
    find the repository-level `.env`.
    """
    d = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(d)
        if parent == d:
            return None
        d = parent


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    """Read the nearest .env without touching os.environ."""
    path = _find_upwards(dotenv_dir, ".env")
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return {}
    values = {k: v.strip() for k, v in dotenv_values(path).items() if v is not None}
    log.debug(f"Loaded {len(values)} key(s) from .env at {path}")
    return values


def _lookup(env: Dict[str, str], *names: str) -> Optional[str]:
    for name in names:
        v = os.environ.get(name)
        if v and v.strip():
            return v.strip()
    for name in names:
        v = env.get(name)
        if v:
            return v
    return None


def _parse_timeout(raw: Optional[str]) -> float:
    if raw is None:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        value = float(raw)
    except ValueError:
        log.warning("PRODUCTAI_TIMEOUT=%r is not a number; using %.0fs", raw, DEFAULT_TIMEOUT_SECONDS)
        return DEFAULT_TIMEOUT_SECONDS
    if value <= 0:
        log.warning("PRODUCTAI_TIMEOUT must be positive; using %.0fs", DEFAULT_TIMEOUT_SECONDS)
        return DEFAULT_TIMEOUT_SECONDS
    return value


@dataclass
class Settings:
    openai_api_key: Optional[str]
    openai_base_url: Optional[str]
    vision_model: str
    image_model: str
    request_timeout: float
    database_url: Optional[str]
    upload_dir: str
    root_dir: str


def load_openai(dotenv_dir: str) -> Optional[str]:
    """Return OpenAI API key from env or .env.

    Reads OPENAI_API_KEY (or lowercase openai_api_key). Absence is not an
    error here; the gateway fails on first use instead.
    """
    return _lookup(_read_dotenv(dotenv_dir), "OPENAI_API_KEY", "openai_api_key")


def load_settings(start_dir: Optional[str] = None) -> Settings:
    root = find_project_root(start_dir)
    env = _read_dotenv(start_dir or root)

    api_key = _lookup(env, "OPENAI_API_KEY", "openai_api_key")
    if api_key:
        log.info("OpenAI API key configured")
    else:
        log.warning("OPENAI_API_KEY not set; AI endpoints will fail until it is provided")

    upload_dir = _lookup(env, "PRODUCTAI_UPLOAD_DIR")
    settings = Settings(
        openai_api_key=api_key,
        openai_base_url=_lookup(env, "OPENAI_BASE_URL"),
        vision_model=_lookup(env, "PRODUCTAI_VISION_MODEL") or DEFAULT_VISION_MODEL,
        image_model=_lookup(env, "PRODUCTAI_IMAGE_MODEL") or DEFAULT_IMAGE_MODEL,
        request_timeout=_parse_timeout(_lookup(env, "PRODUCTAI_TIMEOUT")),
        database_url=_lookup(env, "DATABASE_URL"),
        upload_dir=expand_abs(upload_dir) if upload_dir else uploads_dir(root),
        root_dir=root,
    )
    log.debug(
        "Settings: vision_model=%s image_model=%s timeout=%.0fs database=%s uploads=%s",
        settings.vision_model,
        settings.image_model,
        settings.request_timeout,
        settings.database_url or "memory",
        settings.upload_dir,
    )
    return settings

import os
from typing import Optional

from .logging import get_logger

log = get_logger("paths")

UPLOADS_URL_PREFIX = "/uploads/"


def expand_abs(path: str) -> str:
    """Expand env vars and ~ then return absolute path."""
    return os.path.abspath(os.path.expanduser(os.path.expandvars(path or "")))


def find_project_root(start_dir: Optional[str] = None) -> str:
    """Find the repository root by walking upward from start_dir.

    Looks for common markers: .git/, pyproject.toml, README.md.
    Falls back to absolute(start_dir) if nothing found.
    """
    start = os.path.abspath(start_dir or os.getcwd() or ".")
    d = start
    while True:
        if os.path.isdir(os.path.join(d, ".git")):
            return d
        for marker in ("pyproject.toml", "README.md"):
            if os.path.isfile(os.path.join(d, marker)):
                return d
        parent = os.path.dirname(d)
        if parent == d:
            return start
        d = parent


def uploads_dir(root_dir: str) -> str:
    """Return (and create) the uploads directory under the project root."""
    path = os.path.join(os.path.abspath(root_dir), "uploads")
    os.makedirs(path, exist_ok=True)
    return path


def upload_path_for(upload_dir: str, image_url: str) -> Optional[str]:
    """Map a public ``/uploads/<name>`` URL back to a file inside upload_dir.

    Returns None for URLs outside the uploads prefix or names that would
    escape the directory.
    """
    if not image_url or not image_url.startswith(UPLOADS_URL_PREFIX):
        return None
    name = image_url[len(UPLOADS_URL_PREFIX):]
    if not name or name != os.path.basename(name) or name in {".", ".."}:
        return None
    return os.path.join(os.path.abspath(upload_dir), name)


def remove_upload(upload_dir: str, image_url: str) -> bool:
    """Best-effort removal of an uploaded image; a missing file is a no-op."""
    path = upload_path_for(upload_dir, image_url)
    if path is None:
        log.debug("Not an uploaded file, leaving it alone: %r", image_url)
        return False
    try:
        os.remove(path)
    except FileNotFoundError:
        log.info("Image already gone: %s", path)
        return False
    except OSError as e:
        log.warning("Could not delete image %s: %s", path, e)
        return False
    log.info("Deleted image %s", path)
    return True

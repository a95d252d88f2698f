from __future__ import annotations

from typing import FrozenSet, Tuple

# Supported content languages; every language map in the catalogue carries
# exactly these keys.
LANG_AR = "ar"
LANG_EN = "en"
LANG_FR = "fr"

LANGUAGES: Tuple[str, ...] = (LANG_AR, LANG_EN, LANG_FR)
DEFAULT_LANGUAGE = LANG_AR
RTL_LANGUAGES: FrozenSet[str] = frozenset({LANG_AR})

# Order lifecycle. Any status may follow any other.
ORDER_STATUS_PENDING = "pending"
ORDER_STATUS_CONFIRMED = "confirmed"
ORDER_STATUS_CANCELLED = "cancelled"
ORDER_STATUS_DELIVERED = "delivered"

ORDER_STATUSES: Tuple[str, ...] = (
    ORDER_STATUS_PENDING,
    ORDER_STATUS_CONFIRMED,
    ORDER_STATUS_CANCELLED,
    ORDER_STATUS_DELIVERED,
)

DEFAULT_ORDER_STATUS = ORDER_STATUS_PENDING
DEFAULT_QUANTITY = 1

UNNAMED_PRODUCT = "Unnamed Product"

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


def empty_language_lists() -> dict:
    return {lang: [] for lang in LANGUAGES}

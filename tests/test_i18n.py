from __future__ import annotations

from productai import i18n
from productai.catalog.constants import LANGUAGES


def test_every_language_has_the_same_keys() -> None:
    keys = set(i18n.TRANSLATIONS["ar"])
    for lang in LANGUAGES:
        assert set(i18n.TRANSLATIONS[lang]) == keys
        assert set(i18n.DOCUMENT_LABELS[lang]) == set(i18n.DOCUMENT_LABELS["ar"])
    for code, variants in i18n.MESSAGES.items():
        assert set(variants) == set(LANGUAGES), code


def test_translate_falls_back_to_key() -> None:
    assert i18n.translate("orders", "fr") == "Commandes"
    assert i18n.translate("orders", "de") == i18n.TRANSLATIONS["ar"]["orders"]
    assert i18n.translate("noSuchKey", "en") == "noSuchKey"


def test_message_formats_params() -> None:
    assert i18n.message("image_too_large", "en", limit_mb=10) == "Image exceeds the 10 MB limit"
    assert i18n.message("invalid_language", "fr", value="de") == "Langue non prise en charge : de"
    assert i18n.is_rtl("ar") and not i18n.is_rtl("en")


def test_message_falls_back_instead_of_leaking_placeholders() -> None:
    assert i18n.message("image_too_large", "en", fallback="Image too large") == "Image too large"
    assert i18n.message("image_too_large", "en") == "image_too_large"
    assert i18n.message("unknown_code", "en", fallback="Raw text") == "Raw text"
    assert i18n.message("unknown_code", "en") == "unknown_code"

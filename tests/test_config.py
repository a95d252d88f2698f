from __future__ import annotations

from pathlib import Path

import pytest

from productai.config import DEFAULT_TIMEOUT_SECONDS, load_openai, load_settings
from productai.paths import find_project_root, remove_upload, upload_path_for


ENV_KEYS = (
    "OPENAI_API_KEY",
    "openai_api_key",
    "OPENAI_BASE_URL",
    "PRODUCTAI_VISION_MODEL",
    "PRODUCTAI_IMAGE_MODEL",
    "PRODUCTAI_TIMEOUT",
    "DATABASE_URL",
    "PRODUCTAI_UPLOAD_DIR",
)


@pytest.fixture(autouse=True)
def clean_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "README.md").write_text("marker", encoding="utf-8")
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults_without_env(tmp_path: Path) -> None:
    settings = load_settings(str(tmp_path))
    assert settings.openai_api_key is None
    assert settings.vision_model == "gpt-4o"
    assert settings.image_model == "dall-e-3"
    assert settings.request_timeout == DEFAULT_TIMEOUT_SECONDS
    assert settings.database_url is None
    assert settings.root_dir == str(tmp_path)
    assert settings.upload_dir == str(tmp_path / "uploads")
    assert (tmp_path / "uploads").is_dir()


def test_dotenv_is_read_from_parent_directory(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text(
        "OPENAI_API_KEY=sk-from-dotenv\nPRODUCTAI_TIMEOUT=15\nDATABASE_URL=sqlite:///catalog.db\n",
        encoding="utf-8",
    )
    nested = tmp_path / "src" / "app"
    nested.mkdir(parents=True)
    settings = load_settings(str(nested))
    assert settings.openai_api_key == "sk-from-dotenv"
    assert settings.request_timeout == 15.0
    assert settings.database_url == "sqlite:///catalog.db"
    assert load_openai(str(nested)) == "sk-from-dotenv"


def test_environment_wins_over_dotenv(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / ".env").write_text("OPENAI_API_KEY=sk-file\n", encoding="utf-8")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("PRODUCTAI_UPLOAD_DIR", str(tmp_path / "media"))
    settings = load_settings(str(tmp_path))
    assert settings.openai_api_key == "sk-env"
    assert settings.upload_dir == str(tmp_path / "media")


@pytest.mark.parametrize("raw", ["abc", "0", "-5"])
def test_invalid_timeout_falls_back(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
    monkeypatch.setenv("PRODUCTAI_TIMEOUT", raw)
    assert load_settings(str(tmp_path)).request_timeout == DEFAULT_TIMEOUT_SECONDS


def test_find_project_root_markers(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text("[project]\n", encoding="utf-8")
    deep = tmp_path / "a" / "b"
    deep.mkdir(parents=True)
    assert find_project_root(str(deep)) == str(tmp_path)


def test_upload_paths_stay_inside_upload_dir(tmp_path: Path) -> None:
    assert upload_path_for(str(tmp_path), "/uploads/x.png") == str(tmp_path / "x.png")
    assert upload_path_for(str(tmp_path), "/uploads/../secret.txt") is None
    assert upload_path_for(str(tmp_path), "https://cdn.example.test/x.png") is None

    (tmp_path / "x.png").write_bytes(b"img")
    assert remove_upload(str(tmp_path), "/uploads/x.png") is True
    assert remove_upload(str(tmp_path), "/uploads/x.png") is False

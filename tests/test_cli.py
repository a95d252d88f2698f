from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import product_payload
from productai.catalog.db import SQLiteStorage
from productai.cli.main import main


@pytest.fixture(autouse=True)
def isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "README.md").write_text("marker", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    for key in ("OPENAI_API_KEY", "DATABASE_URL", "PRODUCTAI_UPLOAD_DIR"):
        monkeypatch.delenv(key, raising=False)


def test_init_db_creates_schema(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db_path = tmp_path / "var" / "catalog.db"
    assert main(["init-db", "--database-url", f"sqlite:///{db_path}"]) == 0
    assert db_path.is_file()
    assert capsys.readouterr().out.strip() == str(db_path)


def test_init_db_requires_sqlite_url() -> None:
    assert main(["init-db"]) == 2


def test_export_product_sheet(tmp_path: Path) -> None:
    db_path = tmp_path / "catalog.db"
    product = SQLiteStorage(str(db_path)).create_product(product_payload())
    out = tmp_path / "out" / "chair.html"
    code = main(["export", "--product", product.id, "--lang", "fr", "--output", str(out), "--database-url", str(db_path)])
    assert code == 0
    html = out.read_text(encoding="utf-8")
    assert 'lang="fr"' in html
    assert "Une chaise en bois" in html


def test_export_unknown_order_exits_1(tmp_path: Path) -> None:
    db_path = tmp_path / "catalog.db"
    assert main(["export", "--order", "missing", "--database-url", str(db_path)]) == 1


def test_analyze_without_api_key_exits_1(tmp_path: Path) -> None:
    image = tmp_path / "chair.png"
    image.write_bytes(b"\x89PNG\r\n\x1a\n")
    assert main(["analyze", "--source", str(image)]) == 1
    assert list((tmp_path / "uploads").iterdir()) == []


def test_usage_errors_exit_2() -> None:
    assert main([]) == 2
    assert main(["export", "--lang", "en"]) == 2
    assert main(["analyze", "--source", "does-not-exist.png"]) == 2

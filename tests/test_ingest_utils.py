from pathlib import Path

import pytest

import recurring_charges.ingest.utils as utils_mod
from recurring_charges.ingest import load_statement_text, parse_statement


def test_bom_is_dropped(tmp_path: Path):
    path = tmp_path / "bom.csv"
    path.write_bytes(b"\xef\xbb\xbfDate,Description,Amount\n2024-01-01,Hulu,7.99\n")

    text = load_statement_text(path)

    assert text.startswith("Date,")
    assert len(parse_statement(text).rows) == 1


def test_undecodable_bytes_are_replaced(tmp_path: Path):
    path = tmp_path / "latin1.csv"
    path.write_bytes(b"Date,Description,Amount\n2024-01-01,Caf\xe9 Nero,3.20\n")

    rows = parse_statement(load_statement_text(path)).rows

    assert rows[0].description == "Caf\ufffd Nero"


def test_oversized_file_is_refused(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(utils_mod, "MAX_STATEMENT_BYTES", 10)
    path = tmp_path / "big.csv"
    path.write_text("Date,Description,Amount\n", encoding="utf-8")

    with pytest.raises(ValueError, match="too large"):
        load_statement_text(path)


def test_missing_file_raises(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_statement_text(tmp_path / "missing.csv")

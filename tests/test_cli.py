from __future__ import annotations

import json

import pytest

from pricebook.cli import EXIT_INVALID, EXIT_OK, main, parse_inputs


@pytest.fixture
def db_url(tmp_path, monkeypatch) -> str:
    for name in ("PRICEBOOK_DATABASE_URL", "PRICEBOOK_TRADES_FILE", "PRICEBOOK_PORT", "PRICEBOOK_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return f"sqlite:///{tmp_path / 'pricebook.db'}"


def _run(capsys, db_url: str, *argv: str):
    code = main(["--database-url", db_url, "--json", *argv])
    out = capsys.readouterr().out
    return code, out


def test_parse_inputs_reads_json_values() -> None:
    inputs = parse_inputs(["area_sqft=2000", "include_ice_shield=false", "material=Metal Roofing"])

    assert inputs == {"area_sqft": 2000, "include_ice_shield": False, "material": "Metal Roofing"}


def test_parse_inputs_merges_json_object() -> None:
    inputs = parse_inputs(["waste_factor=15"], '{"walls": [{"length": 10, "height": 8}], "waste_factor": 10}')

    assert inputs["walls"] == [{"length": 10, "height": 8}]
    assert inputs["waste_factor"] == 15


def test_trades_command(capsys, db_url: str) -> None:
    code, out = _run(capsys, db_url, "trades")

    assert code == EXIT_OK
    payload = json.loads(out)
    assert "decking" in payload["trades"]
    assert payload["estimators"] == ["gutter", "paint", "roofing", "siding", "veneer"]


def test_estimate_command(capsys, db_url: str) -> None:
    code, out = _run(capsys, db_url, "estimate", "roofing", "--input", "area_sqft=2000")

    assert code == EXIT_OK
    assert json.loads(out)["total"] == 10201.21


def test_human_readable_estimate(capsys, db_url: str) -> None:
    code = main(["--database-url", db_url, "estimate", "veneer", "--input", "length_ft=20", "--input", "height_ft=8"])
    out = capsys.readouterr().out

    assert code == EXIT_OK
    assert "Manufactured Stone Veneer" in out
    assert "1404.90" in out


def test_catalog_edits_persist_between_runs(capsys, db_url: str) -> None:
    code, out = _run(capsys, db_url, "catalog", "show", "roofing")
    assert code == EXIT_OK
    components = next(c for c in json.loads(out)["categories"] if c["key"] == "components")
    ridge_id = next(r["material_id"] for r in components["defaults"] if r["name"] == "Ridge Cap")

    code, _ = _run(capsys, db_url, "catalog", "update", "roofing", ridge_id, "--price", "5")
    assert code == EXIT_OK

    code, out = _run(capsys, db_url, "estimate", "roofing", "--input", "area_sqft=2000")
    assert json.loads(out)["total"] == 10551.21

    code, _ = _run(capsys, db_url, "catalog", "archive", "roofing", ridge_id)
    assert code == EXIT_OK
    code, out = _run(capsys, db_url, "estimate", "roofing", "--input", "area_sqft=2000")
    assert json.loads(out)["total"] == 10201.21


def test_add_duplicate_and_reset(capsys, db_url: str) -> None:
    add = ("catalog", "add", "roofing", "--category", "shingles", "--name", "Cedar Shake", "--price", "700")
    assert _run(capsys, db_url, *add)[0] == EXIT_OK

    code, out = _run(capsys, db_url, *add)
    assert code == EXIT_INVALID
    assert "already exists" in out

    assert _run(capsys, db_url, "catalog", "reset", "roofing", "--yes")[0] == EXIT_OK
    code, out = _run(capsys, db_url, "catalog", "show", "roofing")
    shingles = next(c for c in json.loads(out)["categories"] if c["key"] == "shingles")
    assert shingles["custom"] == []


def test_override_set(capsys, db_url: str) -> None:
    code, out = _run(capsys, db_url, "override", "set", "siding", "fasteners_per_square", "300")

    assert code == EXIT_OK
    assert json.loads(out)["value"] == 300.0


def test_invalid_estimate_exits_with_validation_code(capsys, db_url: str) -> None:
    code, out = _run(capsys, db_url, "estimate", "roofing", "--input", "area_sqft=0")

    assert code == EXIT_INVALID
    assert "roof area" in out


def test_unknown_material_id(capsys, db_url: str) -> None:
    code, out = _run(capsys, db_url, "catalog", "delete", "roofing", "nope")

    assert code == EXIT_INVALID
    assert "No material nope" in out


@pytest.mark.parametrize(
    "pair",
    ["area_sqft=Infinity", "area_sqft=NaN", "waste_factor=Infinity", 'custom_price="inf"'],
)
def test_non_finite_inputs_exit_with_validation_code(capsys, db_url: str, pair: str) -> None:
    code, out = _run(
        capsys, db_url, "estimate", "roofing", "--input", "area_sqft=2000", "--input", "custom_pricing=true", "--input", pair
    )

    assert code == EXIT_INVALID
    assert "finite" in out


def test_reset_asks_before_dropping_the_catalog(capsys, db_url: str, monkeypatch) -> None:
    add = ("catalog", "add", "roofing", "--category", "shingles", "--name", "Cedar Shake", "--price", "700")
    assert _run(capsys, db_url, *add)[0] == EXIT_OK

    monkeypatch.setattr("builtins.input", lambda prompt: "n")
    code, out = _run(capsys, db_url, "catalog", "reset", "roofing")
    assert code == EXIT_INVALID
    assert "Cancelled" in out

    code, out = _run(capsys, db_url, "catalog", "show", "roofing")
    shingles = next(c for c in json.loads(out)["categories"] if c["key"] == "shingles")
    assert [m["name"] for m in shingles["custom"]] == ["Cedar Shake"]

    monkeypatch.setattr("builtins.input", lambda prompt: "y")
    assert _run(capsys, db_url, "catalog", "reset", "roofing")[0] == EXIT_OK


def test_delete_requires_confirmation_or_yes(capsys, db_url: str, monkeypatch) -> None:
    code, out = _run(capsys, db_url, "catalog", "show", "roofing")
    components = next(c for c in json.loads(out)["categories"] if c["key"] == "components")
    ridge_id = next(r["material_id"] for r in components["defaults"] if r["name"] == "Ridge Cap")

    def _no_answer(prompt: str) -> str:
        raise EOFError

    monkeypatch.setattr("builtins.input", _no_answer)
    assert _run(capsys, db_url, "catalog", "delete", "roofing", ridge_id)[0] == EXIT_INVALID

    code, out = _run(capsys, db_url, "catalog", "delete", "roofing", ridge_id, "--yes")
    assert code == EXIT_OK
    assert json.loads(out) == {"deleted": ridge_id}

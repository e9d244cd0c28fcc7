from __future__ import annotations

from pathlib import Path

from openpyxl import load_workbook

from backend.fireforms.cli import main


def test_cli_prints_navigation(capsys) -> None:
    exit_code = main(["--form", "standpipe-hose", "--frequency", "mensal", "--section", "annual"])
    output = capsys.readouterr().out
    assert exit_code == 0
    assert "Frequency: mensal" in output
    assert "Current section: general (1 of 5)" in output
    assert "5 active, 3 hidden" in output
    assert "  x annual" in output
    assert "monthly equipment checks" in output


def test_cli_without_frequency(capsys) -> None:
    main(["--form", "dry-sprinkler", "--section", "fiveyears"])
    output = capsys.readouterr().out
    assert "Frequency: not selected" in output
    assert "Current section: fiveyears (6 of 7)" in output
    assert "hidden" not in output


def test_cli_exports_workbook(tmp_path: Path, capsys) -> None:
    exit_code = main(["--export", str(tmp_path)])
    assert exit_code == 0
    exported = list(tmp_path.glob("frequency-coverage-*.xlsx"))
    assert len(exported) == 1
    assert "Wrote" in capsys.readouterr().out
    workbook = load_workbook(exported[0])
    assert workbook.sheetnames[0] == "Summary"


def test_cli_frequency_not_offered_by_form(capsys) -> None:
    main(["--form", "fire-service-mains", "--frequency", "diaria", "--section", "weekly"])
    output = capsys.readouterr().out
    assert "Frequency: diaria" in output
    assert "Current section: weekly (2 of 8)" in output
    assert "hidden" not in output
    assert "Custom frequency" in output

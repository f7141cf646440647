import subprocess
import sys
from pathlib import Path

from homesync import run

REPO = Path(__file__).resolve().parents[1]


def test_help_smoke():
    r = subprocess.run(
        [sys.executable, "-m", "homesync.run", "--help"],
        capture_output=True,
        text=True,
        cwd=REPO,
    )
    assert r.returncode == 0, r.stdout + "\n" + r.stderr
    assert "drive-check" in r.stdout


def test_parser_flags():
    parser = run.build_parser()
    assert parser.parse_args(["folders", "--force"]).force is True
    assert parser.parse_args(["drive-check"]).all is False
    assert parser.parse_args(["--verbose", "db", "--all"]).all is True


def test_missing_env_returns_error(monkeypatch, capsys):
    monkeypatch.setattr("homesync.config.load_dotenv", lambda: None)
    monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "")

    code = run.main(["diagnose"])

    assert code == 1
    assert "ERROR command=diagnose err=Missing env var: GOOGLE_SHEETS_SPREADSHEET_ID" in capsys.readouterr().out


def test_aborted_result_exit_code(monkeypatch, capsys):
    monkeypatch.setattr(run, "load_settings", lambda: object())
    monkeypatch.setattr(run, "dispatch", lambda args, settings: run.BatchResult(summary="중단", aborted=True))

    assert run.main(["address"]) == 1
    assert capsys.readouterr().out.strip() == "✅ [주소 변환]\n중단"

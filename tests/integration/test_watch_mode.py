from __future__ import annotations

from unittest.mock import patch

import pytest

from rtu_recon.cli.main import main as cli_main

"""--watch: re-run only when the upload listing changes."""

pytestmark = pytest.mark.integration


def _summaries(out: str) -> list[str]:
    return [line for line in out.splitlines() if line.startswith("SUMMARY")]


def test_unchanged_listing_runs_once(write_config, standard_uploads, capsys):
    """Unchanged listing: one run, then polling only."""
    with patch("rtu_recon.cli.main.time.sleep") as sleep:
        code = cli_main(["--watch", "5", "--max-polls", "3"])
    out = capsys.readouterr().out
    assert code == 0
    assert len(_summaries(out)) == 1
    assert sleep.call_count == 2
    sleep.assert_called_with(5.0)


def test_new_upload_triggers_rerun(write_config, standard_uploads, make_xlsx, capsys):
    """A new upload triggers a second run."""
    def add_snapshot(_seconds):
        make_xlsx("online-offline 2.xlsx", [["SITE CODE", "18-11-2025"], ["S1", "ONLINE"], ["S2", "ONLINE"]])

    with patch("rtu_recon.cli.main.time.sleep", side_effect=add_snapshot):
        code = cli_main(["--watch", "1", "--max-polls", "2"])
    out = capsys.readouterr().out
    assert code == 0
    summaries = _summaries(out)
    assert len(summaries) == 2
    assert "upload listing changed; re-running" in out
    assert "dates=2" in summaries[0]
    assert "records=2" in summaries[1]


def test_watch_keeps_last_exit_code(write_config, standard_uploads, capsys):
    """Watch mode returns the exit code of the last run."""
    def break_snapshot(_seconds):
        standard_uploads["online_offline"].write_bytes(b"garbage")

    with patch("rtu_recon.cli.main.time.sleep", side_effect=break_snapshot):
        code = cli_main(["--watch", "1", "--max-polls", "2"])
    assert code == 2
    assert len(_summaries(capsys.readouterr().out)) == 2

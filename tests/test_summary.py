"""Tests for messenger_summary.py::main() and cli()."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from helpers import archive_html


MODULE = "messenger_summary"


class TestMainErrorHandling:
    """Verify main() exits with code 1 on input errors."""

    def test_missing_file_exits_1(self, tmp_path):
        from messenger_summary import main

        with pytest.raises(SystemExit) as exc_info:
            main(str(tmp_path / "nonexistent.htm"), output_dir=str(tmp_path / "out"))
        assert exc_info.value.code == 1

    def test_corrupt_snapshot_exits_1(self, tmp_path):
        from messenger_summary import main

        snap = tmp_path / "snap.json"
        snap.write_text("{not json", encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main(str(snap), output_dir=str(tmp_path / "out"), from_snapshot=True)
        assert exc_info.value.code == 1

    def test_strict_malformed_exits_1(self, tmp_path, archive_file, capsys):
        from messenger_summary import main

        with pytest.raises(SystemExit) as exc_info:
            main(str(archive_file), output_dir=str(tmp_path / "out"), strict=True)
        assert exc_info.value.code == 1
        assert "malformed thread 2" in capsys.readouterr().out


class TestMainSuccessfulRun:
    """Verify main() writes analytics files and the requested extras."""

    def test_successful_run(self, tmp_path, archive_file, capsys):
        from messenger_summary import main

        out = tmp_path / "out"
        main(str(archive_file), output_dir=str(out))
        assert (out / "thread_summaries.csv").exists()
        assert (out / "word_frequency.json").exists()
        assert "Total Threads: 2" in capsys.readouterr().out

    def test_snapshot_and_reload(self, tmp_path, archive_file, capsys):
        from messenger_summary import main

        snap = tmp_path / "snap.json"
        main(str(archive_file), output_dir=str(tmp_path / "a"), snapshot_out=str(snap))
        assert json.loads(snap.read_text(encoding="utf-8"))["version"] == 1

        main(str(snap), output_dir=str(tmp_path / "b"), from_snapshot=True)
        words_a = (tmp_path / "a" / "word_frequency.json").read_text(encoding="utf-8")
        words_b = (tmp_path / "b" / "word_frequency.json").read_text(encoding="utf-8")
        assert words_a == words_b

    def test_export(self, tmp_path, archive_file):
        from messenger_summary import main

        export = tmp_path / "threads.txt"
        main(str(archive_file), output_dir=str(tmp_path / "out"), export_file=str(export))
        assert "FACEBOOK MESSAGES EXPORT" in export.read_text(encoding="utf-8")

    def test_analytics_pipeline_is_called(self, tmp_path, archive_file):
        with (
            patch(f"{MODULE}.save_analytics_files") as save,
            patch(f"{MODULE}.print_summary_report") as report,
        ):
            from messenger_summary import main

            main(str(archive_file), output_dir=str(tmp_path / "out"), top=3)
        save.assert_called_once()
        report.assert_called_once()
        assert report.call_args.kwargs["top"] == 3


class TestCli:
    def test_arguments_forwarded(self, tmp_path):
        with patch(f"{MODULE}.main") as main:
            from messenger_summary import cli

            cli(["archive.htm", "--output-dir", str(tmp_path), "--strict", "--top", "5"])
        args, kwargs = main.call_args
        assert args == ("archive.htm",)
        assert kwargs["output_dir"] == str(tmp_path)
        assert kwargs["strict"] is True
        assert kwargs["top"] == 5
        assert kwargs["from_snapshot"] is False

    def test_end_to_end(self, tmp_path, capsys):
        from messenger_summary import cli

        archive = tmp_path / "messages.htm"
        archive.write_text(archive_html([]), encoding="utf-8")
        cli([str(archive), "-o", str(tmp_path / "out")])
        assert "Total Threads: 0" in capsys.readouterr().out

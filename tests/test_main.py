"""Tests for the command-line entry point."""

import pytest

from main import build_cli_parser, main


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("LOGTAIL_REGEX_PATTERN", raising=False)
    monkeypatch.delenv("LOGTAIL_GLOB_PATTERN", raising=False)


class TestCli:
    def test_parses_patterns(self):
        args = build_cli_parser().parse_args(["--glob", "/a/*.log", "--regex", "/b/.*", "--echo"])
        assert args.file_glob_pattern == "/a/*.log"
        assert args.file_regex_pattern == "/b/.*"
        assert args.echo is True
        assert args.config is None

    def test_missing_pattern_exits_with_error(self):
        assert main([]) == 2

    def test_missing_config_file_exits_with_error(self, tmp_path):
        assert main(["--config", str(tmp_path / "missing.yaml")]) == 2

    def test_bad_pattern_exits_with_error(self, tmp_path):
        assert main(["--glob", str(tmp_path) + "/{oops"]) == 2

    def test_null_log_level_exits_with_error(self, tmp_path):
        config_path = tmp_path / "logtail.yaml"
        config_path.write_text(f"fileGlobPattern: {tmp_path}/*.log\nlog_level:\n")
        assert main(["--config", str(config_path)]) == 2

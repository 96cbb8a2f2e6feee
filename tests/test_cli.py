"""
Tests for the command-line interface.
"""

import logging
import sys
from unittest.mock import patch

import pytest

from memstore.cli import build_parser, main, setup_logging
from memstore.config import API_KEY_FILE_NAME


def run_cli(*args):
    """Run the mem command with the given arguments."""
    with patch.object(sys, "argv", ["mem", *args]):
        main()


@pytest.fixture
def mem(tmp_path, keyword_provider_registered):
    """Run mem against a temporary data directory with offline embeddings."""
    def _run(*args):
        run_cli("--data-dir", str(tmp_path), "--provider", keyword_provider_registered, *args)
    return _run


class TestSetupLogging:
    """Test logging setup."""

    def test_setup_logging_default(self):
        """Test that warnings and above are shown by default."""
        with patch("logging.basicConfig") as mock_config:
            setup_logging()

        assert mock_config.call_args.kwargs["level"] == logging.WARNING

    def test_setup_logging_verbose(self):
        """Test verbose logging."""
        with patch("logging.basicConfig") as mock_config:
            setup_logging(verbose=True)

        assert mock_config.call_args.kwargs["level"] == logging.DEBUG


class TestParser:
    """Test argument parsing."""

    def test_list_count_is_optional(self):
        """Test that list works without a count."""
        args = build_parser().parse_args(["list", "files"])

        assert args.command == "list"
        assert args.count is None

    def test_list_count_must_be_integer(self, capsys):
        """Test that a non-numeric count is rejected by argparse."""
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["list", "files", "many"])

        assert exc_info.value.code == 2

    def test_global_options(self):
        """Test options that apply to every command."""
        args = build_parser().parse_args([
            "--data-dir", "/tmp/mem", "--provider", "hash", "--timeout", "2", "-v",
            "get", "diff",
        ])

        assert args.data_dir == "/tmp/mem"
        assert args.provider == "hash"
        assert args.timeout == 2.0
        assert args.verbose


class TestMainCLI:
    """Test the mem commands end to end."""

    def test_main_no_command(self, capsys):
        """Test main with no command prints help and fails."""
        with pytest.raises(SystemExit) as exc_info:
            run_cli()

        assert exc_info.value.code == 1
        assert "usage: mem" in capsys.readouterr().out

    def test_insert(self, mem, capsys):
        """Test inserting a memory."""
        mem("insert", "ls -la", "list all files including hidden ones")

        assert capsys.readouterr().out.strip() == "Memory inserted! (id 1)"

    def test_get(self, mem, capsys):
        """Test getting the best memory."""
        mem("insert", "git diff HEAD^ HEAD", "show diff between last commit and current commit")
        mem("insert", "ls -la", "list all files including hidden ones")
        capsys.readouterr()

        mem("get", "diff between commits")

        assert capsys.readouterr().out.strip() == "git diff HEAD^ HEAD"

    def test_get_empty_store(self, mem, capsys):
        """Test getting from an empty store."""
        mem("get", "anything")

        assert capsys.readouterr().out.strip() == "No memory found!"

    def test_list(self, mem, capsys):
        """Test listing ranked memories."""
        mem("insert", "git diff HEAD^ HEAD", "show diff between last commit and current commit")
        mem("insert", "ls -la", "list all files including hidden ones")
        capsys.readouterr()

        mem("list", "files")

        lines = capsys.readouterr().out.splitlines()
        assert lines[0].startswith("1. [")
        assert lines[0].endswith("] ls -la")
        assert lines[1] == "   list all files including hidden ones"
        assert lines[2].endswith("] git diff HEAD^ HEAD")
        assert len(lines) == 4

    def test_list_with_count(self, mem, capsys):
        """Test limiting the number of listed memories."""
        mem("insert", "git diff HEAD^ HEAD", "show diff between last commit and current commit")
        mem("insert", "ls -la", "list all files including hidden ones")
        capsys.readouterr()

        mem("list", "files", "1")

        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 2
        assert lines[0].endswith("] ls -la")

    def test_list_default_count_from_config(self, mem, tmp_path, capsys):
        """Test that query.default_count applies when no count is given."""
        (tmp_path / "config.yml").write_text("query:\n  default_count: 1\n")
        mem("insert", "git diff HEAD^ HEAD", "show diff between last commit and current commit")
        mem("insert", "ls -la", "list all files including hidden ones")
        capsys.readouterr()

        mem("list", "anything")

        assert len(capsys.readouterr().out.splitlines()) == 2

    def test_list_empty_store(self, mem, capsys):
        """Test listing from an empty store."""
        mem("list", "anything")

        assert capsys.readouterr().out.strip() == "No memories found!"

    def test_list_invalid_count(self, mem, capsys):
        """Test that a zero count is an error."""
        mem("insert", "ls -la", "list all files including hidden ones")

        with pytest.raises(SystemExit) as exc_info:
            mem("list", "files", "0")

        assert exc_info.value.code == 1
        assert "Error: k must be a positive integer" in capsys.readouterr().err

    def test_insert_empty_description(self, mem, capsys):
        """Test that empty descriptions are rejected."""
        with pytest.raises(SystemExit) as exc_info:
            mem("insert", "ls -la", "  ")

        assert exc_info.value.code == 1
        assert "description must not be empty" in capsys.readouterr().err

    def test_set_key(self, tmp_path, capsys):
        """Test storing the API key."""
        run_cli("--data-dir", str(tmp_path), "set-key", "sk-test")

        assert (tmp_path / API_KEY_FILE_NAME).read_text() == "sk-test"
        assert "API key saved to" in capsys.readouterr().out

    def test_missing_api_key(self, tmp_path, capsys):
        """Test inserting with the OpenAI provider and no key."""
        with pytest.raises(SystemExit) as exc_info:
            run_cli("--data-dir", str(tmp_path), "insert", "ls -la", "list all files")

        assert exc_info.value.code == 1
        assert "No OpenAI API key found" in capsys.readouterr().err
        assert not (tmp_path / "store.jsonl").exists()

    def test_unknown_provider(self, tmp_path, capsys):
        """Test that an unknown provider is reported."""
        with pytest.raises(SystemExit) as exc_info:
            run_cli("--data-dir", str(tmp_path), "--provider", "nonexistent", "get", "files")

        assert exc_info.value.code == 1
        assert "Unknown embedding provider" in capsys.readouterr().err

    def test_corrupt_store(self, mem, tmp_path, capsys):
        """Test that a corrupt store names the bad line."""
        (tmp_path / "store.jsonl").write_text("garbage\n")

        with pytest.raises(SystemExit) as exc_info:
            mem("get", "files")

        assert exc_info.value.code == 1
        assert "store.jsonl:1" in capsys.readouterr().err

    def test_keyboard_interrupt(self, tmp_path, capsys):
        """Test that Ctrl-C exits with 130."""
        with patch("memstore.cli.handle_memory", side_effect=KeyboardInterrupt):
            with pytest.raises(SystemExit) as exc_info:
                run_cli("--data-dir", str(tmp_path), "get", "files")

        assert exc_info.value.code == 130
        assert "Interrupted." in capsys.readouterr().err

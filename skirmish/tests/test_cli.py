"""
Tests for the command line interface.
"""

import sys

import pytest

from .. import cli


def run_cli(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["skirmish", *argv])
    cli.main()


class TestCommands:
    """Tests for the CLI subcommands."""

    def test_cards(self, monkeypatch, capsys):
        run_cli(monkeypatch, "cards")
        out = capsys.readouterr().out
        assert "Steel Sentinel" in out
        assert "card_015" in out

    def test_validate(self, monkeypatch, capsys):
        run_cli(monkeypatch, "validate")
        out = capsys.readouterr().out
        assert "Standard deck: 35 cards" in out
        assert "Catalog is valid" in out

    def test_demo(self, monkeypatch, capsys):
        """A seeded demo plays through and reports both players."""
        run_cli(monkeypatch, "demo", "--seed", "7", "--max-turns", "3")
        out = capsys.readouterr().out
        assert "Game started" in out
        assert "alice:" in out
        assert "bob:" in out

    def test_no_command(self, monkeypatch):
        with pytest.raises(SystemExit):
            run_cli(monkeypatch)

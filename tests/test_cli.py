"""Tests for the wif command line."""

import json

import pytest

from wif.cli import main


class TestCompile:
    def test_prints_json(self, capsys):
        main(["compile", "-r", "acme/app", "-b", "main", "--require-actor"])
        out = json.loads(capsys.readouterr().out)
        assert out == {
            "title": "repo+branch+actor",
            "expression": "repository == 'acme/app' && ref == 'refs/heads/main' && has(actor)",
        }

    def test_claim_prefix(self, capsys):
        main(["compile", "-r", "acme/app", "--claim-prefix", "assertion."])
        out = json.loads(capsys.readouterr().out)
        assert out["expression"] == "assertion.repository == 'acme/app'"

    def test_invalid_repository(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["compile", "-r", "bad"])
        assert exc.value.code == 1
        assert "Error:" in capsys.readouterr().err


class TestLint:
    def test_valid(self, capsys):
        main(["lint", "repository == 'acme/app' && has(actor)"])
        assert capsys.readouterr().out.strip() == "OK"

    def test_invalid(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["lint", "repository = 'acme/app'"])
        assert exc.value.code == 1
        assert "single_equals" in capsys.readouterr().err

    def test_missing_command(self):
        with pytest.raises(SystemExit):
            main([])

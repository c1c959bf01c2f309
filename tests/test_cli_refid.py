"""
Tests for the RefID codec commands.

Tests `byggref generate`, `parse`, `normalize`, `validate`, `encode`,
`decode` and `version`.
"""

import json
import re
from pathlib import Path

import pytest
from typer.testing import CliRunner

from byggref import __version__
from byggref.cli import app
from byggref.cli.errors import ExitCode

runner = CliRunner()

CANONICAL = re.compile(r"^(DOC|FIL)-[0-9]{2}[0-9A-HJKMNP-TV-Z]{6,8}-[0-9A-HJKMNP-TV-Z]$")


@pytest.fixture(autouse=True)
def project_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run every command from an empty project directory."""
    project = tmp_path / "project"
    project.mkdir()
    monkeypatch.chdir(project)
    return project


class TestGenerate:
    """Tests for `byggref generate`."""

    def test_generates_one(self):
        """One valid FIL RefID for the given year."""
        result = runner.invoke(app, ["generate", "FIL", "--date", "2026-02-19"])

        assert result.exit_code == 0
        ref_id = result.stdout.strip()
        assert CANONICAL.match(ref_id)
        assert ref_id.startswith("FIL-26")

    def test_count_workspace_and_json(self):
        """--count, --workspace and --json together."""
        result = runner.invoke(
            app, ["generate", "doc", "-w", "brf", "-n", "3", "--date", "2026-01-01", "--json"]
        )

        assert result.exit_code == 0
        ref_ids = json.loads(result.stdout)
        assert len(ref_ids) == 3
        assert all(r.startswith("DOC-2689") for r in ref_ids)

    def test_workspace_from_environment(self, monkeypatch):
        """BYGGREF_WORKSPACE_ID supplies the default workspace."""
        monkeypatch.setenv("BYGGREF_WORKSPACE_ID", "brf")

        result = runner.invoke(app, ["generate", "FIL", "--date", "2026-02-19"])

        assert result.exit_code == 0
        assert result.stdout.strip().startswith("FIL-2689")

    def test_unknown_kind(self):
        """Unknown kinds are a user error."""
        result = runner.invoke(app, ["generate", "XYZ"])
        assert result.exit_code == ExitCode.USER_ERROR

    def test_bad_date(self):
        """Dates must be ISO formatted."""
        result = runner.invoke(app, ["generate", "FIL", "--date", "19/02/2026"])
        assert result.exit_code == ExitCode.USER_ERROR


class TestParse:
    """Tests for `byggref parse`."""

    def test_json(self):
        """Parts and checksum verdict as JSON."""
        result = runner.invoke(app, ["parse", "fil 2600000000 x", "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {
            "refId": "FIL-2600000000-X",
            "kind": "FIL",
            "body": "2600000000",
            "checksum": "X",
            "expectedChecksum": "X",
            "valid": True,
        }

    def test_wrong_checksum_still_parses(self):
        """Parsing reports a bad checksum rather than failing."""
        result = runner.invoke(app, ["parse", "FIL-2600000000-Y", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["valid"] is False
        assert data["expectedChecksum"] == "X"

    def test_table(self):
        """Default output is a table."""
        result = runner.invoke(app, ["parse", "FIL-2600000000-X"])

        assert result.exit_code == 0
        assert "2600000000" in result.stdout
        assert "yes" in result.stdout

    def test_malformed(self):
        """Input without the RefID shape fails."""
        result = runner.invoke(app, ["parse", "nonsense"])
        assert result.exit_code == ExitCode.GENERAL_ERROR


class TestNormalizeAndValidate:
    """Tests for `byggref normalize` and `byggref validate`."""

    def test_normalize(self):
        """Prints the canonical form."""
        result = runner.invoke(app, ["normalize", "fil.2600000000.x"])

        assert result.exit_code == 0
        assert result.stdout.strip() == "FIL-2600000000-X"

    def test_validate_valid(self):
        """Valid RefIDs exit 0."""
        result = runner.invoke(app, ["validate", "fil-2600000000-x"])

        assert result.exit_code == 0
        assert "FIL-2600000000-X is valid" in result.stdout

    def test_validate_invalid(self):
        """Wrong checksums exit 1."""
        result = runner.invoke(app, ["validate", "FIL-2600000000-Y"])
        assert result.exit_code == ExitCode.GENERAL_ERROR

    def test_validate_quiet(self):
        """--quiet prints nothing."""
        result = runner.invoke(app, ["validate", "-q", "FIL-2600000000-X"])

        assert result.exit_code == 0
        assert result.stdout == ""


class TestCodec:
    """Tests for `byggref encode` and `byggref decode`."""

    def test_encode_text_with_length(self):
        """Text is encoded as UTF-8."""
        result = runner.invoke(app, ["encode", "BRF", "--length", "2"])

        assert result.exit_code == 0
        assert result.stdout.strip() == "89"

    def test_encode_hex(self):
        """--hex reads the argument as bytes."""
        result = runner.invoke(app, ["encode", "--hex", "ff"])
        assert result.stdout.strip() == "ZW"

    def test_encode_bad_hex(self):
        """Invalid hex is a user error."""
        result = runner.invoke(app, ["encode", "--hex", "zz"])
        assert result.exit_code == ExitCode.USER_ERROR

    def test_decode_lenient(self):
        """Decoding forgives case, separators and confusable letters."""
        result = runner.invoke(app, ["decode", "o4-hm a s-w 9"])

        assert result.exit_code == 0
        assert result.stdout.strip() == "0123456789"

    def test_decode_strict(self):
        """--strict rejects bad padding."""
        ok = runner.invoke(app, ["decode", "--strict", "ZW"])
        bad = runner.invoke(app, ["decode", "--strict", "ZZ"])

        assert ok.stdout.strip() == "ff"
        assert bad.exit_code == ExitCode.GENERAL_ERROR


class TestVersion:
    """Tests for `byggref version`."""

    def test_version(self):
        """Prints the package version."""
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout

"""Tests for source readers, field extractors, name hints, and companion paths."""

from __future__ import annotations

from pathlib import Path

import pytest

from shellcred.exceptions import SourceParseError
from shellcred.importer import (
    FileContents,
    extract_fields,
    is_complete,
    merge_fields,
    resolve_companion_path,
    sanitize_name_hint,
)
from shellcred.importer.names import MAX_NAME_HINT_LENGTH
from shellcred.models import FieldName


class TestFileContents:
    def test_ini_accepts_value_less_keys(self) -> None:
        parser = FileContents(b"[mysqld]\nskip-name-resolve\n[client]\nuser = me\n").to_ini()
        assert parser["client"]["user"] == "me"
        assert parser["mysqld"]["skip-name-resolve"] is None

    def test_ini_keeps_percent_signs(self) -> None:
        parser = FileContents(b"[client]\npassword = 100%sure\n").to_ini()
        assert parser["client"]["password"] == "100%sure"

    def test_ini_invalid(self) -> None:
        with pytest.raises(SourceParseError):
            FileContents(b"no section header\n", path=Path("/tmp/x")).to_ini()

    def test_not_utf8(self) -> None:
        with pytest.raises(SourceParseError):
            FileContents(b"\xff\xfe\x00garbage").to_text()

    def test_json(self) -> None:
        assert FileContents(b'{"type": "authorized_user"}').to_json() == {"type": "authorized_user"}
        assert FileContents(b"   ").to_json() == {}
        with pytest.raises(SourceParseError):
            FileContents(b"{not json").to_json()

    def test_yaml(self) -> None:
        assert FileContents(b"profile: dev\nregion: eu\n").to_yaml() == {"profile": "dev", "region": "eu"}
        assert FileContents(b"").to_yaml() == {}
        with pytest.raises(SourceParseError):
            FileContents(b"key: [unclosed").to_yaml()


class TestFields:
    MAPPING = {"aws_access_key_id": FieldName.ACCESS_KEY_ID, "region": FieldName.DEFAULT_REGION}

    def test_extract_omits_absent_and_empty(self) -> None:
        section = {"aws_access_key_id": "AKIA", "region": "", "output": "json"}
        assert extract_fields(section, self.MAPPING) == {FieldName.ACCESS_KEY_ID: "AKIA"}

    def test_merge_fills_gaps_only(self) -> None:
        primary = {FieldName.ACCESS_KEY_ID: "AKIA", FieldName.DEFAULT_REGION: "eu-west-1"}
        merge_fields(primary, {FieldName.DEFAULT_REGION: "us-east-1", FieldName.USER: "bob"})
        assert primary == {
            FieldName.ACCESS_KEY_ID: "AKIA",
            FieldName.DEFAULT_REGION: "eu-west-1",
            FieldName.USER: "bob",
        }

    def test_merge_into_complete_set_is_noop(self) -> None:
        primary = {FieldName.ACCESS_KEY_ID: "AKIA", FieldName.SECRET_ACCESS_KEY: "S"}
        snapshot = dict(primary)
        merge_fields(primary, {FieldName.ACCESS_KEY_ID: "OTHER", FieldName.SECRET_ACCESS_KEY: "X"})
        assert primary == snapshot

    def test_merge_is_idempotent(self) -> None:
        secondary = {FieldName.DEFAULT_REGION: "us-east-1"}
        once = merge_fields({FieldName.ACCESS_KEY_ID: "A"}, secondary)
        twice = merge_fields(dict(once), secondary)
        assert once == twice

    def test_is_complete(self) -> None:
        required = [FieldName.ACCESS_KEY_ID, FieldName.SECRET_ACCESS_KEY]
        assert is_complete({FieldName.ACCESS_KEY_ID: "A", FieldName.SECRET_ACCESS_KEY: "S"}, required)
        assert not is_complete({FieldName.ACCESS_KEY_ID: "A"}, required)
        assert not is_complete({FieldName.ACCESS_KEY_ID: "A", FieldName.SECRET_ACCESS_KEY: ""}, required)


class TestSanitizeNameHint:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("user1", "user1"),
            ("  user1  ", "user1"),
            ("profile user1", "user1"),
            ("default", None),
            ("DEFAULT", None),
            ("profile default", None),
            ("", None),
            (None, None),
            ("dev/prod;rm -rf", "devprodrm -rf"),
            ("ci   deploy  bot", "ci deploy bot"),
            ("ops@example.com", "ops@example.com"),
            ("\x1b[31mred\x1b[0m", "31mred0m"),
        ],
    )
    def test_sanitize(self, raw, expected) -> None:
        assert sanitize_name_hint(raw) == expected

    def test_length_is_capped(self) -> None:
        assert len(sanitize_name_hint("x" * 500)) == MAX_NAME_HINT_LENGTH


class TestCompanionPath:
    """The four override scenarios, each with literal paths."""

    def test_unset_uses_home_default(self, sandbox) -> None:
        path = resolve_companion_path(sandbox.input(), "AWS_CONFIG_FILE", ".aws", "config")
        assert path == sandbox.home / ".aws" / "config"

    def test_tilde_override_is_home_relative(self, sandbox) -> None:
        sandbox.env["AWS_CONFIG_FILE"] = "~/.config-custom"
        path = resolve_companion_path(sandbox.input(), "AWS_CONFIG_FILE", ".aws", "config")
        assert path == sandbox.home / ".config-custom"

    def test_absolute_override_is_verbatim(self, sandbox, tmp_path: Path) -> None:
        absolute = tmp_path / "elsewhere" / "aws-config"
        sandbox.env["AWS_CONFIG_FILE"] = str(absolute)
        path = resolve_companion_path(sandbox.input(), "AWS_CONFIG_FILE", ".aws", "config")
        assert path == absolute

    def test_relative_override_is_root_relative(self, sandbox) -> None:
        sandbox.env["AWS_CONFIG_FILE"] = ".config-custom"
        path = resolve_companion_path(sandbox.input(), "AWS_CONFIG_FILE", ".aws", "config")
        assert path == sandbox.root / ".config-custom"

    def test_empty_override_counts_as_unset(self, sandbox) -> None:
        sandbox.env["AWS_CONFIG_FILE"] = ""
        path = resolve_companion_path(sandbox.input(), "AWS_CONFIG_FILE", ".aws", "config")
        assert path == sandbox.home / ".aws" / "config"

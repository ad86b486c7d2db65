"""Unit tests for merging credentials into KEY=VALUE files."""

import errno
import os
from pathlib import Path

import pytest

from autoenv.domain.envfile import LineKind, classify_line, merge_env_lines
from autoenv.envfile import (
    EnvFileError,
    InvalidCredentials,
    PathRequired,
    write_credentials_to_file,
)

CREDS = {"AWS_ACCESS_KEY_ID": "AKIANEW", "AWS_SECRET_ACCESS_KEY": "secret-new"}


class TestClassifyLine:
    def test_empty_line_is_blank(self):
        """
        Given an empty string
        When classify_line is called
        Then it is BLANK
        """
        assert classify_line("").kind is LineKind.BLANK

    def test_whitespace_line_is_blank(self):
        """
        Given a line of spaces and tabs
        When classify_line is called
        Then it is BLANK
        """
        assert classify_line("  \t ").kind is LineKind.BLANK

    def test_indented_hash_is_comment(self):
        """
        Given a line starting with whitespace then '#'
        When classify_line is called
        Then it is COMMENT
        """
        assert classify_line("   # AWS_ACCESS_KEY_ID=x").kind is LineKind.COMMENT

    def test_key_value_splits_on_first_equals(self):
        """
        Given a line whose value itself contains '='
        When classify_line is called
        Then the key is everything before the first '=' and the value keeps the rest
        """
        line = classify_line("TOKEN=abc==")
        assert line.kind is LineKind.KEY_VALUE
        assert line.key == "TOKEN"
        assert line.raw_value == "abc=="

    def test_key_is_stripped(self):
        """
        Given a line with spaces around the key
        When classify_line is called
        Then the key is stripped but the value is kept as written
        """
        line = classify_line("  API_URL = http://x ")
        assert line.key == "API_URL"
        assert line.raw_value == " http://x "

    def test_line_without_equals_is_other(self):
        """
        Given a line with no '='
        When classify_line is called
        Then it is OTHER
        """
        assert classify_line("export").kind is LineKind.OTHER

    def test_leading_equals_is_other(self):
        """
        Given a line that starts with '='
        When classify_line is called
        Then it is OTHER (there is no key)
        """
        assert classify_line("=value").kind is LineKind.OTHER


class TestMergeEnvLines:
    def test_existing_key_is_replaced_in_place(self):
        """
        Given lines containing a credential key with an old value
        When merge_env_lines is called
        Then that line is rewritten and the others are untouched
        """
        lines = ["# app", "AWS_ACCESS_KEY_ID=old", "OTHER=1"]
        result = merge_env_lines(lines, {"AWS_ACCESS_KEY_ID": "new"})
        assert result == ["# app", "AWS_ACCESS_KEY_ID=new", "OTHER=1"]

    def test_missing_keys_appended_after_blank_separator(self):
        """
        Given lines whose last line is not blank
        When merge_env_lines adds keys that were not present
        Then one blank line separates them from the original content
        """
        result = merge_env_lines(["OTHER=1"], {"A": "1", "B": "2"})
        assert result == ["OTHER=1", "", "A=1", "B=2"]

    def test_no_extra_separator_when_last_line_blank(self):
        """
        Given lines ending in a blank line (file ending with a newline)
        When merge_env_lines appends keys
        Then no second blank line is added
        """
        result = merge_env_lines(["OTHER=1", ""], {"A": "1"})
        assert result == ["OTHER=1", "", "A=1"]

    def test_empty_input_gets_only_credentials(self):
        """
        Given no existing lines
        When merge_env_lines is called
        Then the result is just the credentials, without a leading blank line
        """
        assert merge_env_lines([], {"A": "1", "B": "2"}) == ["A=1", "B=2"]

    def test_mixed_update_and_append(self):
        """
        Given lines containing one of two credential keys
        When merge_env_lines is called
        Then the existing key is updated in place and the other appended
        """
        result = merge_env_lines(["B=old"], {"A": "a", "B": "b"})
        assert result == ["B=b", "", "A=a"]

    def test_only_first_duplicate_is_updated(self):
        """
        Given a file that repeats a credential key
        When merge_env_lines is called
        Then only the first occurrence is rewritten and the later one is left as is
        """
        result = merge_env_lines(["K=old", "X=1", "K=older"], {"K": "new"})
        assert result == ["K=new", "X=1", "K=older"]

    def test_commented_key_is_not_updated(self):
        """
        Given a commented-out credential line
        When merge_env_lines is called
        Then the comment is kept and the key is appended as a real line
        """
        result = merge_env_lines(["# K=old"], {"K": "new"})
        assert result == ["# K=old", "", "K=new"]

    def test_spaced_key_is_normalised_when_updated(self):
        """
        Given a credential key written with surrounding spaces
        When merge_env_lines updates it
        Then the line is rewritten as KEY=value
        """
        assert merge_env_lines([" K = old"], {"K": "new"}) == ["K=new"]


class TestWriteCredentialsToFile:
    def test_creates_new_file_and_directories(self, tmp_path: Path):
        """
        Given a path inside directories that do not exist
        When write_credentials_to_file is called
        Then the directories and file are created with the credentials
        """
        target = tmp_path / "nested" / "dir" / ".env"

        result = write_credentials_to_file(CREDS, target)

        assert result.changed is True
        assert target.read_text() == "AWS_ACCESS_KEY_ID=AKIANEW\nAWS_SECRET_ACCESS_KEY=secret-new"

    def test_preserves_every_unrelated_line(self, tmp_path: Path):
        """
        Given a file with comments, blank lines, unrelated keys and an old credential
        When write_credentials_to_file updates that credential
        Then it appears once with the new value and every other line is byte-identical
        """
        target = tmp_path / ".env"
        target.write_text(
            "# header\n"
            "API_URL=https://example.com\n"
            "AWS_ACCESS_KEY_ID=AKIAOLD\n"
            "\n"
            "# tail\n"
            "DEBUG=true\n"
        )

        result = write_credentials_to_file({"AWS_ACCESS_KEY_ID": "AKIANEW"}, target)

        assert result.changed is True
        assert target.read_text() == (
            "# header\n"
            "API_URL=https://example.com\n"
            "AWS_ACCESS_KEY_ID=AKIANEW\n"
            "\n"
            "# tail\n"
            "DEBUG=true\n"
        )

    def test_appends_missing_keys(self, tmp_path: Path):
        """
        Given a file ending with a newline and lacking credential keys
        When write_credentials_to_file is called
        Then the keys are appended after the existing content and its trailing blank line
        """
        target = tmp_path / ".env"
        target.write_text("API_URL=https://example.com\n")

        write_credentials_to_file(CREDS, target)

        assert target.read_text() == (
            "API_URL=https://example.com\n"
            "\n"
            "AWS_ACCESS_KEY_ID=AKIANEW\n"
            "AWS_SECRET_ACCESS_KEY=secret-new"
        )

    def test_second_identical_write_is_unchanged(self, tmp_path: Path):
        """
        Given a file
        When the same credentials are written twice in a row
        Then the first call reports changed and the second does not
        """
        target = tmp_path / ".env"
        target.write_text("# app\nAPI_URL=x\n")

        first = write_credentials_to_file(CREDS, target)
        content_after_first = target.read_text()
        second = write_credentials_to_file(CREDS, target)

        assert first.changed is True
        assert second.changed is False
        assert target.read_text() == content_after_first

    def test_empty_credentials_is_noop(self, tmp_path: Path):
        """
        Given an existing file
        When an empty mapping is written
        Then the file is byte-identical and changed is False
        """
        target = tmp_path / ".env"
        original = "# keep\nA=1\n\nB=2"
        target.write_text(original)

        result = write_credentials_to_file({}, target)

        assert result.changed is False
        assert target.read_text() == original

    def test_empty_credentials_does_not_create_file(self, tmp_path: Path):
        """
        Given a path that does not exist
        When an empty mapping is written
        Then no file is created
        """
        target = tmp_path / "missing" / ".env"

        write_credentials_to_file({}, target)

        assert not target.exists()
        assert not target.parent.exists()

    def test_crlf_endings_on_untouched_lines_survive(self, tmp_path: Path):
        """
        Given a file with Windows line endings
        When one credential line is rewritten
        Then untouched lines keep their CRLF endings
        """
        target = tmp_path / ".env"
        target.write_bytes(b"A=1\r\nAWS_ACCESS_KEY_ID=old\r\nB=2\r\n")

        write_credentials_to_file({"AWS_ACCESS_KEY_ID": "new"}, target)

        assert target.read_bytes() == b"A=1\r\nAWS_ACCESS_KEY_ID=new\nB=2\r\n"

    def test_no_temporary_files_left_behind(self, tmp_path: Path):
        """
        Given a directory containing one destination file
        When credentials are written
        Then only the destination file remains in the directory
        """
        target = tmp_path / ".env"
        target.write_text("A=1\n")

        write_credentials_to_file(CREDS, target)

        assert [p.name for p in tmp_path.iterdir()] == [".env"]

    def test_empty_path_raises(self):
        """
        Given an empty path
        When write_credentials_to_file is called
        Then PathRequired is raised
        """
        with pytest.raises(PathRequired):
            write_credentials_to_file(CREDS, "")

    def test_non_mapping_credentials_raise(self, tmp_path: Path):
        """
        Given credentials that are not a mapping
        When write_credentials_to_file is called
        Then InvalidCredentials is raised
        """
        with pytest.raises(InvalidCredentials):
            write_credentials_to_file(["AWS_ACCESS_KEY_ID=x"], tmp_path / ".env")  # type: ignore[arg-type]

    def test_os_errors_are_wrapped(self, tmp_path: Path):
        """
        Given a destination path that is a directory
        When write_credentials_to_file is called
        Then an EnvFileError describes the failure
        """
        target = tmp_path / "actually-a-dir"
        target.mkdir()

        with pytest.raises(EnvFileError, match="Failed to write credentials"):
            write_credentials_to_file(CREDS, target)

    def test_non_utf8_file_is_wrapped(self, tmp_path: Path):
        """
        Given a destination containing bytes that are not valid UTF-8
        When write_credentials_to_file is called
        Then an EnvFileError is raised and the file is left as it was
        """
        target = tmp_path / "legacy.env"
        target.write_bytes(b"LEGACY=\xff\xfe\n")

        with pytest.raises(EnvFileError, match="not valid UTF-8"):
            write_credentials_to_file(CREDS, target)

        assert target.read_bytes() == b"LEGACY=\xff\xfe\n"

    def test_symlink_is_written_through(self, tmp_path: Path):
        """
        Given a destination that is a symlink to a file elsewhere
        When write_credentials_to_file is called
        Then the link is kept and the file it points to is updated
        """
        real = tmp_path / "shared" / "real.env"
        real.parent.mkdir()
        real.write_text("APP=1\n")
        link = tmp_path / "app.env"
        link.symlink_to(real)

        result = write_credentials_to_file({"AWS_ACCESS_KEY_ID": "new"}, link)

        assert result.changed is True
        assert link.is_symlink()
        assert real.read_text() == "APP=1\n\nAWS_ACCESS_KEY_ID=new"
        assert [p.name for p in real.parent.iterdir()] == ["real.env"]

    def test_failed_write_leaves_no_temporary_file(self, tmp_path: Path, monkeypatch):
        """
        Given the disk fills up while the new content is being written
        When write_credentials_to_file is called
        Then an EnvFileError is raised, the original is intact and no temp file remains
        """
        target = tmp_path / "app.env"
        target.write_text("APP=1\n")
        real_close = os.close

        def disk_full(fd, *args, **kwargs):
            real_close(fd)
            raise OSError(errno.ENOSPC, "No space left on device")

        monkeypatch.setattr("autoenv.envfile.os.fdopen", disk_full)

        with pytest.raises(EnvFileError, match="No space left"):
            write_credentials_to_file(CREDS, target)

        assert target.read_text() == "APP=1\n"
        assert [p.name for p in tmp_path.iterdir()] == ["app.env"]

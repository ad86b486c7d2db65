"""Writing credentials into local KEY=VALUE files.

The merge itself lives in ``autoenv.domain.envfile``; this module handles
validation, reading, and replacing the file on disk.
"""

import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import structlog

from autoenv.domain.envfile import merge_env_content

log = structlog.get_logger(__name__)


class EnvFileError(Exception):
    """Raised when a destination file cannot be updated."""


class PathRequired(EnvFileError):
    """Raised when no destination path was given."""


class InvalidCredentials(EnvFileError):
    """Raised when the credentials are not a mapping of strings."""


@dataclass(frozen=True)
class MergeResult:
    changed: bool


def write_credentials_to_file(credentials: Mapping[str, str], path: str | Path) -> MergeResult:
    """Update or append credential keys in the file at ``path``.

    Comments, blank lines, ordering and unrelated keys are preserved.  An
    empty ``credentials`` mapping leaves the file untouched.  The file is
    only rewritten when its content actually changes, via a temporary file
    in the same directory that then replaces the original.
    """
    if not path:
        raise PathRequired("File path is required")
    if not isinstance(credentials, Mapping):
        raise InvalidCredentials("Credentials must be a mapping")
    if not credentials:
        return MergeResult(changed=False)

    # Symlinked destinations are updated through the link.
    target = Path(path).expanduser().resolve()
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        original = _read(target) if target.exists() else None
        updated = merge_env_content(original, credentials)
        if updated == original:
            log.debug("env_file_unchanged", path=str(target))
            return MergeResult(changed=False)
        _replace(target, updated)
    except UnicodeDecodeError as exc:
        raise EnvFileError(f"File is not valid UTF-8: {target}") from exc
    except OSError as exc:
        raise EnvFileError(f"Failed to write credentials to file: {exc}") from exc

    log.debug("env_file_written", path=str(target), created=original is None)
    return MergeResult(changed=True)


def _read(target: Path) -> str:
    # newline="" keeps \r\n endings intact for lines we do not touch.
    with target.open(encoding="utf-8", newline="") as f:
        return f.read()


def _replace(target: Path, content: str) -> None:
    """Write ``content`` next to ``target`` and move it into place."""
    fd, name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    tmp = Path(name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        if target.exists():
            os.chmod(tmp, target.stat().st_mode & 0o777)
        os.replace(tmp, target)
    finally:
        tmp.unlink(missing_ok=True)

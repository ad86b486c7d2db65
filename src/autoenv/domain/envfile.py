"""Pure domain functions for merging credentials into KEY=VALUE files.

The destination format is narrow: one ``KEY=VALUE`` per line,
``#`` comments, blank lines, no quoting or escaping.  Lines are handled as
an ordered list of strings so that everything not being updated is emitted
byte-for-byte as it was read.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum, auto


class LineKind(Enum):
    BLANK = auto()
    COMMENT = auto()
    KEY_VALUE = auto()
    OTHER = auto()


@dataclass(frozen=True)
class FileLine:
    """One classified line of a destination file.

    ``key`` and ``raw_value`` are only set for KEY_VALUE lines.  ``key`` is
    stripped of surrounding whitespace; ``raw_value`` is kept as written.
    """

    kind: LineKind
    text: str
    key: str | None = None
    raw_value: str | None = None


def classify_line(line: str) -> FileLine:
    """Classify a single line.

    - Whitespace-only lines are BLANK.
    - Lines whose stripped content starts with ``#`` are COMMENT.
    - Lines with at least one character before the first ``=`` are
      KEY_VALUE, split on that first ``=`` so values may contain ``=``.
    - Anything else (no ``=``, or a leading ``=``) is OTHER and passes
      through untouched.
    """
    stripped = line.strip()
    if not stripped:
        return FileLine(LineKind.BLANK, line)
    if stripped.startswith("#"):
        return FileLine(LineKind.COMMENT, line)
    key, sep, value = line.partition("=")
    if not sep or not key:
        return FileLine(LineKind.OTHER, line)
    return FileLine(LineKind.KEY_VALUE, line, key=key.strip(), raw_value=value)


def merge_env_lines(lines: list[str], credentials: Mapping[str, str]) -> list[str]:
    """Return ``lines`` with credential keys updated or appended.

    The first line for each credential key is rewritten as ``KEY=value``.
    Later lines repeating the same key are left as they are.

    Keys not present in the file are appended in ``credentials`` order,
    after a single blank separator line when the last existing line is
    not already blank.
    """
    merged: list[str] = []
    seen: set[str] = set()

    for line in lines:
        parsed = classify_line(line)
        if parsed.kind is LineKind.KEY_VALUE and parsed.key not in seen:
            seen.add(parsed.key)
            if parsed.key in credentials:
                merged.append(f"{parsed.key}={credentials[parsed.key]}")
                continue
        merged.append(line)

    missing = [key for key in credentials if key not in seen]
    if missing:
        if merged and merged[-1].strip():
            merged.append("")
        merged.extend(f"{key}={credentials[key]}" for key in missing)

    return merged


def merge_env_content(content: str | None, credentials: Mapping[str, str]) -> str:
    """Merge credentials into file content; ``None`` or ``""`` means no existing lines."""
    lines = content.split("\n") if content else []
    return "\n".join(merge_env_lines(lines, credentials))

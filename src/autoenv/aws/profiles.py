"""Discovery of named AWS profiles from the local CLI configuration.

Only section headers are read: ``[name]`` in the credentials file and
``[profile name]`` (or ``[default]``) in the config file.  No other INI
semantics are interpreted.
"""

import re
from pathlib import Path

import structlog

log = structlog.get_logger(__name__)

_SECTION_RE = re.compile(r"^\[(?:profile\s+)?([^\]]+)\]$")

# Config sections that share the bracket syntax but are not profiles.
_NON_PROFILE_PREFIXES = ("sso-session ", "services ")


def get_credentials_path() -> Path:
    return Path("~/.aws/credentials").expanduser()


def get_config_path() -> Path:
    return Path("~/.aws/config").expanduser()


def parse_profiles_from_file(path: Path) -> list[str]:
    """Return profile names from the section headers of one INI-style file.

    A missing or unreadable file yields an empty list.
    """
    if not path.exists():
        return []
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        log.warning("profiles_file_unreadable", path=str(path), error=str(exc))
        return []

    profiles: list[str] = []
    for line in content.splitlines():
        match = _SECTION_RE.match(line.strip())
        if match and not match.group(1).startswith(_NON_PROFILE_PREFIXES):
            profiles.append(match.group(1).strip())
    return profiles


def get_available_profiles() -> list[str]:
    """Return all profile names from the credentials and config files, sorted and unique."""
    names = parse_profiles_from_file(get_credentials_path())
    names += parse_profiles_from_file(get_config_path())
    return sorted(set(names))

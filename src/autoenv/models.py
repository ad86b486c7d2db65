"""Domain models."""

from dataclasses import dataclass, field
from enum import Enum, auto

from autoenv.constants import (
    ENV_ACCESS_KEY_ID,
    ENV_SECRET_ACCESS_KEY,
    ENV_SESSION_TOKEN,
    REMOTE_ACCESS_KEY_ID,
    REMOTE_ACCESS_SECRET,
    REMOTE_SESSION_TOKEN,
)


@dataclass(frozen=True)
class CredentialSet:
    """Secret material resolved for one profile during one sync run.

    Never persisted. ``session_token`` and ``expiration`` are absent for
    long-lived access keys.
    """

    access_key_id: str
    secret_access_key: str
    session_token: str | None = None
    expiration: str | None = None

    def as_env_vars(self) -> dict[str, str]:
        """Return the credentials keyed by the variable names used in .env files."""
        result = {
            ENV_ACCESS_KEY_ID: self.access_key_id,
            ENV_SECRET_ACCESS_KEY: self.secret_access_key,
        }
        if self.session_token:
            result[ENV_SESSION_TOKEN] = self.session_token
        return result

    def as_remote_vars(self) -> dict[str, str]:
        """Return the credentials keyed by the reserved Postman variable names."""
        result = {
            REMOTE_ACCESS_KEY_ID: self.access_key_id,
            REMOTE_ACCESS_SECRET: self.secret_access_key,
        }
        if self.session_token:
            result[REMOTE_SESSION_TOKEN] = self.session_token
        return result

    def __repr__(self) -> str:
        return f"CredentialSet(access_key_id={self.access_key_id!r}, expiration={self.expiration!r})"


@dataclass(frozen=True)
class FileDestination:
    """A local KEY=VALUE file."""

    path: str

    @property
    def id(self) -> str:
        return self.path

    @property
    def label(self) -> str:
        return self.path


@dataclass(frozen=True)
class RemoteDestination:
    """A Postman environment, addressed by ID."""

    environment_id: str
    display_name: str | None = None

    @property
    def id(self) -> str:
        return self.environment_id

    @property
    def label(self) -> str:
        if self.display_name:
            return f"{self.display_name} ({self.environment_id})"
        return self.environment_id


Destination = FileDestination | RemoteDestination

# (destination, profile name)
SyncTarget = tuple[Destination, str]


class SyncStatus(Enum):
    UPDATED = auto()
    UNCHANGED = auto()
    FAILED = auto()


@dataclass
class DestinationOutcome:
    """The result of syncing a single destination.

    ``display_name`` is only populated for remote destinations that were
    updated, so callers can refresh a cached environment name.
    """

    destination: Destination
    profile: str
    status: SyncStatus
    reason: str | None = None
    display_name: str | None = None


@dataclass
class SyncReport:
    """Per-destination outcomes of a sync run plus run-level conditions.

    ``nothing_to_do`` is set when no destinations were selected. ``error`` is
    set when the run could not start at all; in that case ``outcomes`` is empty.
    """

    outcomes: list[DestinationOutcome] = field(default_factory=list)
    nothing_to_do: bool = False
    error: str | None = None

    def count(self, status: SyncStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def updated(self) -> int:
        return self.count(SyncStatus.UPDATED)

    @property
    def unchanged(self) -> int:
        return self.count(SyncStatus.UNCHANGED)

    @property
    def failed(self) -> int:
        return self.count(SyncStatus.FAILED)

    def summary(self) -> str:
        """Return the tally line, e.g. ``2 updated, 0 unchanged, 1 failed``."""
        return f"{self.updated} updated, {self.unchanged} unchanged, {self.failed} failed"

"""Batch credential sync across file and Postman destinations.

Destinations are grouped by profile so each profile's credentials are
fetched at most once per run.  Everything runs sequentially: a fetch may
hand the terminal to an interactive SSO login.

A failure is recorded against the destinations it affects and the run
carries on; only an unreachable provider stops a run before any work.
"""

from collections.abc import Iterable

import structlog

from autoenv.audit import AuditLogger
from autoenv.config import Settings
from autoenv.envfile import EnvFileError, write_credentials_to_file
from autoenv.models import (
    CredentialSet,
    Destination,
    DestinationOutcome,
    FileDestination,
    RemoteDestination,
    SyncReport,
    SyncStatus,
    SyncTarget,
)
from autoenv.postman.client import PostmanApiError, PostmanClient
from autoenv.providers import CredentialProvider, ProviderError

log = structlog.get_logger(__name__)

PROVIDER_UNAVAILABLE_MESSAGE = (
    "AWS CLI is not available. Please install it and make sure it is on your PATH."
)
NO_POSTMAN_CLIENT_MESSAGE = "Postman API key not set. Use 'postman key <api-key>' to set it."


def collect_targets(settings: Settings) -> list[SyncTarget]:
    """Return every configured (destination, profile) pair: files first, then Postman."""
    targets: list[SyncTarget] = [
        (FileDestination(path), profile) for path, profile in settings.mappings.items()
    ]
    targets += [
        (RemoteDestination(env_id, mapping.environment_name), mapping.aws_profile)
        for env_id, mapping in settings.postman_mappings.items()
    ]
    return targets


def select_targets(targets: list[SyncTarget], selector: str | None) -> list[SyncTarget]:
    """Narrow targets to one destination or one profile group.

    ``None`` selects everything.  A selector equal to a destination's path or
    environment ID selects that destination; otherwise it is taken as a
    profile name.  An unknown selector selects nothing.
    """
    if not selector:
        return list(targets)
    by_id = [t for t in targets if t[0].id == selector]
    if by_id:
        return by_id
    return [t for t in targets if t[1] == selector]


def group_by_profile(targets: Iterable[SyncTarget]) -> dict[str, list[Destination]]:
    """Group destinations by profile, keeping first-seen order for both."""
    groups: dict[str, list[Destination]] = {}
    for destination, profile in targets:
        groups.setdefault(profile, []).append(destination)
    return groups


class SyncEngine:
    """Fetches credentials per profile and writes them to each destination.

    Args:
        provider: Source of credentials.
        postman: Client for Postman destinations.  Without one, Postman
            destinations fail with a hint to configure an API key.
        audit: Optional audit trail.
    """

    def __init__(
        self,
        provider: CredentialProvider,
        postman: PostmanClient | None = None,
        audit: AuditLogger | None = None,
    ) -> None:
        self._provider = provider
        self._postman = postman
        self._audit = audit

    def sync(self, targets: list[SyncTarget]) -> SyncReport:
        if not targets:
            return SyncReport(nothing_to_do=True)

        if not self._provider.is_available():
            self._log_error(PROVIDER_UNAVAILABLE_MESSAGE)
            return SyncReport(error=PROVIDER_UNAVAILABLE_MESSAGE)

        report = SyncReport()
        for profile, destinations in group_by_profile(targets).items():
            try:
                credentials = self._provider.fetch(profile)
            except ProviderError as exc:
                reason = f"Could not get credentials: {exc}"
                log.warning("profile_fetch_failed", profile=profile, error=str(exc))
                self._log_error(reason)
                report.outcomes += [
                    DestinationOutcome(d, profile, SyncStatus.FAILED, reason) for d in destinations
                ]
                continue

            for destination in destinations:
                outcome = self._sync_destination(destination, profile, credentials)
                report.outcomes.append(outcome)

        if self._audit:
            self._audit.log(f"Sync complete: {report.summary()}")
        return report

    def _sync_destination(
        self, destination: Destination, profile: str, credentials: CredentialSet
    ) -> DestinationOutcome:
        try:
            if isinstance(destination, FileDestination):
                result = write_credentials_to_file(credentials.as_env_vars(), destination.path)
                status = SyncStatus.UPDATED if result.changed else SyncStatus.UNCHANGED
                outcome = DestinationOutcome(destination, profile, status)
            else:
                outcome = self._sync_remote(destination, profile, credentials)
        except (EnvFileError, PostmanApiError) as exc:
            reason = f"Failed to update: {exc}"
            log.warning("destination_failed", destination=destination.id, error=str(exc))
            self._log_error(f"{destination.label}: {reason}")
            return DestinationOutcome(destination, profile, SyncStatus.FAILED, reason)

        if self._audit:
            self._audit.log(
                f"Sync: {destination.label} {outcome.status.name.lower()} ({profile})"
            )
        return outcome

    def _sync_remote(
        self, destination: RemoteDestination, profile: str, credentials: CredentialSet
    ) -> DestinationOutcome:
        if self._postman is None:
            return DestinationOutcome(
                destination, profile, SyncStatus.FAILED, NO_POSTMAN_CLIENT_MESSAGE
            )
        result = self._postman.update_aws_credentials(
            destination.environment_id, credentials.as_remote_vars()
        )
        return DestinationOutcome(
            destination, profile, SyncStatus.UPDATED, display_name=result.display_name
        )

    def _log_error(self, message: str) -> None:
        if self._audit:
            self._audit.log_error(message)


_MARKERS = {
    SyncStatus.UPDATED: "✓ Updated",
    SyncStatus.UNCHANGED: "○ Unchanged",
    SyncStatus.FAILED: "✗ Failed",
}


def render_report(report: SyncReport) -> list[str]:
    """Render a report as output lines, one per destination plus a tally."""
    if report.error:
        return [f"✗ {report.error}"]
    if report.nothing_to_do:
        return ["No mappings configured. Use 'add <env-path> <profile>' to create one."]

    lines: list[str] = []
    for outcome in report.outcomes:
        name = outcome.destination.label
        if outcome.display_name and isinstance(outcome.destination, RemoteDestination):
            name = f"{outcome.display_name} ({outcome.destination.environment_id})"
        line = f"  {_MARKERS[outcome.status]}: {name} → {outcome.profile}"
        if outcome.reason:
            line += f"\n      {outcome.reason}"
        lines.append(line)
    lines.append("")
    lines.append(f"Sync complete: {report.summary()}")
    return lines

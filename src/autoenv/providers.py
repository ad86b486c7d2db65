"""Credential provider protocol and the AWS CLI implementation."""

import json
from collections.abc import Callable
from typing import Protocol

import structlog

from autoenv.aws.client import AwsCliClient, AwsCliNotFound, AwsClientError
from autoenv.constants import SSO_EXPIRY_PHRASES
from autoenv.models import CredentialSet

log = structlog.get_logger(__name__)


class ProviderError(Exception):
    """Base class for failures to obtain credentials."""


class ProviderUnavailable(ProviderError):
    """The provider binary cannot be invoked at all."""


class ProfileFetchError(ProviderError):
    """The provider reported an error for a profile."""

    def __init__(self, profile: str, detail: str) -> None:
        self.profile = profile
        self.detail = detail
        super().__init__(f'Failed to get credentials for profile "{profile}": {detail}')


class ReauthenticationFailed(ProviderError):
    """The interactive SSO login for a profile did not succeed."""

    def __init__(self, profile: str, detail: str) -> None:
        self.profile = profile
        self.detail = detail
        super().__init__(f'SSO login failed for profile "{profile}": {detail}')


class InvalidCredentialFormat(ProviderError):
    """The provider answered, but not with usable credentials."""

    def __init__(self, profile: str, detail: str) -> None:
        self.profile = profile
        self.detail = detail
        super().__init__(f'Invalid credentials format for profile "{profile}": {detail}')


class CredentialProvider(Protocol):
    """Protocol that all credential backends must satisfy."""

    def fetch(self, profile: str) -> CredentialSet:
        """Return current credentials for a profile. Raises ProviderError."""
        ...

    def is_available(self) -> bool:
        """Return True if the backend can be invoked. Never raises."""
        ...


def is_session_expired(output: str) -> bool:
    """Return True if provider output indicates an expired SSO session.

    This is a heuristic over free text; the phrases live in
    ``SSO_EXPIRY_PHRASES``.
    """
    lowered = output.lower()
    return any(phrase in lowered for phrase in SSO_EXPIRY_PHRASES)


def parse_credentials(profile: str, raw: str) -> CredentialSet:
    """Parse ``aws configure export-credentials --format process`` output."""
    try:
        data = json.loads(raw.strip())
    except json.JSONDecodeError as exc:
        raise InvalidCredentialFormat(profile, f"output is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidCredentialFormat(profile, "output is not a JSON object")

    access_key_id = data.get("AccessKeyId")
    secret_access_key = data.get("SecretAccessKey")
    if not access_key_id or not secret_access_key:
        raise InvalidCredentialFormat(profile, "AccessKeyId or SecretAccessKey is missing")

    return CredentialSet(
        access_key_id=access_key_id,
        secret_access_key=secret_access_key,
        session_token=data.get("SessionToken") or None,
        expiration=data.get("Expiration") or None,
    )


class AwsCredentialProvider:
    """CredentialProvider backed by the AWS CLI.

    When the CLI reports an expired SSO session, an interactive
    ``aws sso login`` is run in the current terminal and the export is
    retried exactly once.  ``notify`` receives a user-facing message before
    the login takes over the terminal.
    """

    def __init__(
        self,
        client: AwsCliClient | None = None,
        notify: Callable[[str], None] | None = None,
    ) -> None:
        self._client = client or AwsCliClient()
        self._notify = notify

    def fetch(self, profile: str, retry_after_login: bool = True) -> CredentialSet:
        if not profile:
            raise ProfileFetchError(profile, "profile name is required")

        try:
            raw = self._client.export_credentials(profile)
        except AwsCliNotFound as exc:
            raise ProviderUnavailable(str(exc)) from exc
        except AwsClientError as exc:
            expired = is_session_expired(exc.stderr) or is_session_expired(exc.stdout)
            if expired and retry_after_login:
                self._login(profile)
                return self.fetch(profile, retry_after_login=False)
            raise ProfileFetchError(profile, exc.detail) from exc

        credentials = parse_credentials(profile, raw)
        log.debug("credentials_fetched", profile=profile, expiration=credentials.expiration)
        return credentials

    def is_available(self) -> bool:
        try:
            self._client.version()
        except (AwsCliNotFound, AwsClientError):
            return False
        return True

    def _login(self, profile: str) -> None:
        if self._notify:
            self._notify(f'SSO session expired. Logging in for profile "{profile}"...')
        try:
            self._client.sso_login(profile)
        except AwsCliNotFound as exc:
            raise ProviderUnavailable(str(exc)) from exc
        except AwsClientError as exc:
            raise ReauthenticationFailed(profile, f"exit {exc.returncode}") from exc

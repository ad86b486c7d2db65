"""HTTP client for the Postman environments API.

Only the calls needed to keep credential variables current are wrapped:
list, get, and full replacement of an environment.  Authentication uses
the ``X-API-Key`` header.

Raises ``PostmanApiError`` for HTTP error statuses, transport failures and
undecodable responses.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from autoenv.constants import POSTMAN_BASE_URL
from autoenv.domain.postman import merge_environment_values
from autoenv.postman.models import Environment, EnvironmentSummary, EnvironmentValue

log = structlog.get_logger(__name__)


class PostmanApiError(Exception):
    """Raised when a Postman API call fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ApiKeyMissing(PostmanApiError):
    """Raised when no API key is configured."""


class CollectionIdRequired(PostmanApiError):
    """Raised when an environment ID is empty."""


class CollectionNotFound(PostmanApiError):
    """Raised when an environment does not exist."""

    def __init__(self, environment_id: str) -> None:
        self.environment_id = environment_id
        super().__init__(f"Environment {environment_id} not found", status_code=404)


@dataclass(frozen=True)
class PostmanConfig:
    """Connection settings, built once per command invocation."""

    api_key: str | None
    base_url: str = POSTMAN_BASE_URL


@dataclass(frozen=True)
class RemoteMergeResult:
    display_name: str
    environment_id: str


class PostmanClient:
    """Synchronous client for ``/environments``.

    Args:
        config: API key and base URL.
        transport: Optional httpx transport, used to stub the API in tests.
    """

    def __init__(self, config: PostmanConfig, transport: httpx.BaseTransport | None = None) -> None:
        self._config = config
        self._http = httpx.Client(
            base_url=config.base_url,
            headers={
                "X-API-Key": config.api_key or "",
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    def __enter__(self) -> "PostmanClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def list_environments(self) -> list[EnvironmentSummary]:
        """Return every environment visible to the API key."""
        data = self._request("GET", "/environments")
        try:
            return [EnvironmentSummary.model_validate(e) for e in data.get("environments") or []]
        except ValidationError as exc:
            raise PostmanApiError(f"Unexpected environments payload: {exc}") from exc

    def get_environment(self, environment_id: str) -> Environment | None:
        """Return an environment with its variables, or None if the response has none."""
        if not environment_id:
            raise CollectionIdRequired("Environment ID is required")
        data = self._request("GET", f"/environments/{environment_id}")
        raw = data.get("environment")
        if not raw:
            return None
        try:
            return Environment.model_validate(raw)
        except ValidationError as exc:
            raise PostmanApiError(f"Unexpected environment payload: {exc}") from exc

    def get_environment_name(self, environment_id: str) -> str | None:
        """Return an environment's name for display, or None on any API failure."""
        try:
            environment = self.get_environment(environment_id)
        except PostmanApiError as exc:
            log.debug("environment_name_lookup_failed", environment_id=environment_id, error=str(exc))
            return None
        return environment.name if environment else None

    def update_environment(
        self, environment_id: str, name: str, values: list[EnvironmentValue]
    ) -> dict[str, Any]:
        """Replace an environment's name and full variable list."""
        if not environment_id:
            raise CollectionIdRequired("Environment ID is required")
        body = {
            "environment": {
                "name": name,
                "values": [v.model_dump() for v in values],
            }
        }
        data = self._request("PUT", f"/environments/{environment_id}", json=body)
        return data.get("environment") or {}

    def update_aws_credentials(
        self, environment_id: str, credentials: Mapping[str, str]
    ) -> RemoteMergeResult:
        """Replace the reserved credential variables of an environment.

        Read-modify-write without concurrency control: a change made to the
        environment elsewhere between the read and the write is lost.
        """
        if not environment_id:
            raise CollectionIdRequired("Environment ID is required")
        try:
            current = self.get_environment(environment_id)
        except PostmanApiError as exc:
            if exc.status_code == 404:
                raise CollectionNotFound(environment_id) from exc
            raise
        if current is None:
            raise CollectionNotFound(environment_id)

        merged = merge_environment_values(current.values, credentials)
        self.update_environment(environment_id, current.name, merged)
        log.debug("environment_updated", environment_id=environment_id, variables=len(merged))
        return RemoteMergeResult(display_name=current.name, environment_id=environment_id)

    def _request(self, method: str, path: str, json: dict[str, Any] | None = None) -> dict[str, Any]:
        if not self._config.api_key:
            raise ApiKeyMissing("Postman API key not set. Use 'postman key <api-key>' to set it.")
        try:
            response = self._http.request(method, path, json=json)
        except httpx.HTTPError as exc:
            raise PostmanApiError(f"Request failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            if response.is_error:
                raise PostmanApiError(f"HTTP {response.status_code}", response.status_code) from exc
            raise PostmanApiError(f"Failed to parse response: {exc}") from exc
        if not isinstance(data, dict):
            raise PostmanApiError("Failed to parse response: expected a JSON object")

        if response.is_error:
            error = data.get("error")
            message = (
                (error.get("message") if isinstance(error, dict) else None)
                or data.get("message")
                or f"HTTP {response.status_code}"
            )
            raise PostmanApiError(message, response.status_code)
        return data

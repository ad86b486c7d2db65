"""Pure domain functions for merging credentials into a Postman environment."""

from collections.abc import Mapping

from autoenv.constants import REMOTE_CREDENTIAL_KEYS
from autoenv.postman.models import EnvironmentValue


def merge_environment_values(
    values: list[EnvironmentValue], credentials: Mapping[str, str]
) -> list[EnvironmentValue]:
    """Return the full variable list to submit for an environment.

    - Every existing variable named like a reserved credential key is dropped.
    - Remaining variables are deduplicated by key: the last occurrence wins
      and keeps the position where the key first appeared.
    - One enabled variable is appended for each reserved key that has a
      non-empty value in ``credentials``, in reserved-key order.
    """
    others: dict[str, EnvironmentValue] = {}
    for variable in values:
        if variable.key in REMOTE_CREDENTIAL_KEYS:
            continue
        others[variable.key] = variable

    appended = [
        EnvironmentValue(key=key, value=credentials[key], enabled=True)
        for key in REMOTE_CREDENTIAL_KEYS
        if credentials.get(key)
    ]
    return [*others.values(), *appended]

"""Settings file loading, validation, and persistence.

Schema on disk (~/.config/aws-auto-env/settings.json):

    {
        "mappings": {
            "./app.env": "production"
        },
        "postman_mappings": {
            "1234-abcd": {"aws_profile": "production", "environment_name": "Prod API"}
        },
        "postman": {"api_key": null},
        "logging": {"enabled": false, "log_file": "~/.config/aws-auto-env/aws-auto-env.log"}
    }

The location can be overridden with the AWS_AUTO_ENV_SETTINGS environment
variable.  Every accessor reads the file afresh and every mutator writes it
back, so the file is always the source of truth.
"""

import json
import os
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from autoenv.constants import (
    DEFAULT_LOG_FILE,
    DEFAULT_SETTINGS_PATH,
    POSTMAN_API_KEY_ENV_VAR,
    SETTINGS_ENV_VAR,
)

SETTINGS_PATH = Path(os.environ.get(SETTINGS_ENV_VAR) or DEFAULT_SETTINGS_PATH).expanduser()


class LoggingSettings(BaseModel):
    enabled: bool = False
    log_file: str = DEFAULT_LOG_FILE


class PostmanSettings(BaseModel):
    api_key: str | None = None


class RemoteMapping(BaseModel):
    """A Postman environment bound to a profile.

    ``environment_name`` is a display cache only; the ID is authoritative.
    """

    aws_profile: str
    environment_name: str | None = None


class Settings(BaseModel):
    mappings: dict[str, str] = Field(default_factory=dict)
    postman_mappings: dict[str, RemoteMapping] = Field(default_factory=dict)
    postman: PostmanSettings = Field(default_factory=PostmanSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


class ConfigError(Exception):
    """Raised when settings.json exists but cannot be parsed or validated."""


def load_settings() -> Settings:
    """Load and validate the settings file.

    Writes default settings on first run.  Raises ConfigError if the file
    exists but is malformed.
    """
    if not SETTINGS_PATH.exists():
        settings = Settings()
        save_settings(settings)
        return settings

    try:
        raw: object = json.loads(SETTINGS_PATH.read_text())
    except json.JSONDecodeError as exc:
        raise ConfigError(f"settings.json is not valid JSON: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError("settings.json must be a JSON object at the top level")

    try:
        return Settings.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings in {SETTINGS_PATH}: {exc}") from exc


def save_settings(settings: Settings) -> None:
    """Persist settings to disk, creating directories as needed."""
    SETTINGS_PATH.parent.mkdir(parents=True, exist_ok=True)
    SETTINGS_PATH.write_text(json.dumps(settings.model_dump(), indent=2))


# File mappings


def get_mappings() -> dict[str, str]:
    return load_settings().mappings


def add_mapping(env_path: str, profile: str) -> None:
    """Map a file to a profile, replacing any existing mapping for that file."""
    settings = load_settings()
    settings.mappings[env_path] = profile
    save_settings(settings)


def remove_mapping(env_path: str) -> bool:
    """Remove a file mapping. Returns False if there was none."""
    settings = load_settings()
    if env_path not in settings.mappings:
        return False
    del settings.mappings[env_path]
    save_settings(settings)
    return True


# Postman mappings


def get_remote_mappings() -> dict[str, RemoteMapping]:
    return load_settings().postman_mappings


def add_remote_mapping(environment_id: str, profile: str, environment_name: str | None = None) -> None:
    """Map a Postman environment to a profile, replacing any existing mapping."""
    settings = load_settings()
    settings.postman_mappings[environment_id] = RemoteMapping(
        aws_profile=profile, environment_name=environment_name
    )
    save_settings(settings)


def remove_remote_mapping(environment_id: str) -> bool:
    """Remove a Postman mapping. Returns False if there was none."""
    settings = load_settings()
    if environment_id not in settings.postman_mappings:
        return False
    del settings.postman_mappings[environment_id]
    save_settings(settings)
    return True


def update_remote_mapping_name(environment_id: str, environment_name: str) -> None:
    """Refresh the cached display name. No-op for unmapped environments."""
    settings = load_settings()
    mapping = settings.postman_mappings.get(environment_id)
    if mapping is None:
        return
    mapping.environment_name = environment_name
    save_settings(settings)


# Postman API key


def get_postman_api_key() -> str | None:
    """Return the API key; the POSTMAN_API_KEY environment variable takes precedence."""
    return os.environ.get(POSTMAN_API_KEY_ENV_VAR) or load_settings().postman.api_key


def set_postman_api_key(api_key: str) -> None:
    settings = load_settings()
    settings.postman.api_key = api_key
    save_settings(settings)


# Logging


def get_logging_settings() -> LoggingSettings:
    return load_settings().logging


def enable_logging() -> None:
    settings = load_settings()
    settings.logging.enabled = True
    save_settings(settings)


def disable_logging() -> None:
    settings = load_settings()
    settings.logging.enabled = False
    save_settings(settings)


def set_log_file(log_file: str) -> None:
    settings = load_settings()
    settings.logging.log_file = log_file
    save_settings(settings)

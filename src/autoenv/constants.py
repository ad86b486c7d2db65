"""Application-wide constants."""

from pathlib import Path

APP_TITLE = "AWS Auto Env"

SETTINGS_ENV_VAR = "AWS_AUTO_ENV_SETTINGS"
DEFAULT_SETTINGS_PATH = Path("~/.config/aws-auto-env/settings.json").expanduser()
DEFAULT_LOG_FILE = "~/.config/aws-auto-env/aws-auto-env.log"

POSTMAN_API_KEY_ENV_VAR = "POSTMAN_API_KEY"
POSTMAN_BASE_URL = "https://api.getpostman.com"

# Variable names written into .env files.
ENV_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
ENV_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
ENV_SESSION_TOKEN = "AWS_SESSION_TOKEN"

# Variable names reserved for credentials inside a Postman environment.
REMOTE_ACCESS_KEY_ID = "aws_access_key_id"
REMOTE_ACCESS_SECRET = "aws_access_secret"
REMOTE_SESSION_TOKEN = "aws_session_token"
REMOTE_CREDENTIAL_KEYS: tuple[str, ...] = (
    REMOTE_ACCESS_KEY_ID,
    REMOTE_ACCESS_SECRET,
    REMOTE_SESSION_TOKEN,
)

# Lowercase phrases in AWS CLI output that mean the SSO session must be renewed.
SSO_EXPIRY_PHRASES: tuple[str, ...] = (
    "token has expired",
    "refresh failed",
    "sso session",
    "sso",
)

RULE = "─" * 60

# Seconds within which a second Ctrl+C exits the REPL.
EXIT_CONFIRM_WINDOW = 2.0

HELP_TEXT = f"""\
{APP_TITLE} - Interactive REPL

Available Commands:
  list                          List all configured mappings
  add <env-path> <profile>      Add a new mapping
  remove <env-path>             Remove a mapping
  profiles                      List available AWS profiles
  settings                      Display current settings
  sync [target]                 Sync credentials (all, one path/env-id, or a profile)
  log enable                    Enable logging
  log disable                   Disable logging
  log file <path>               Set log file path

Postman:
  postman key <api-key>         Set the Postman API key
  postman environments          List environments in your Postman workspace
  postman list                  List Postman environment mappings
  postman add <env-id> <profile>
                                Map a Postman environment to a profile
  postman remove <env-id>       Remove a Postman environment mapping

  help                          Show this help message
  exit                          Exit the REPL\
"""

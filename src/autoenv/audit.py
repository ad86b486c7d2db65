"""Best-effort audit trail of commands and sync results.

Lines are appended as ``[<ISO-8601 UTC timestamp>] <message>`` to the file
configured in settings, only while logging is enabled.  Failing to write the
audit trail never fails the operation being audited.
"""

from datetime import UTC, datetime
from pathlib import Path

import structlog

from autoenv import config

log = structlog.get_logger(__name__)


class AuditLogger:
    def log(self, message: str) -> None:
        """Append one timestamped line if logging is enabled."""
        try:
            settings = config.get_logging_settings()
            if not settings.enabled:
                return
            path = Path(settings.log_file).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now(UTC).isoformat(timespec="milliseconds")
            with path.open("a", encoding="utf-8") as f:
                f.write(f"[{timestamp}] {message}\n")
        except (OSError, config.ConfigError) as exc:
            log.warning("audit_log_write_failed", error=str(exc))

    def log_command(self, command: str) -> None:
        self.log(f"Command executed: {command}")

    def log_error(self, error: str) -> None:
        self.log(f"ERROR: {error}")

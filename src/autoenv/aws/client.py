"""Thin wrapper around the AWS CLI for credential export and SSO login.

All calls shell out to ``aws`` so no AWS SDK dependency is required.  The
CLI resolves profiles, SSO caches and credential processes on our behalf.

Raises ``AwsCliNotFound`` when the binary cannot be executed and
``AwsClientError`` on any non-zero exit code.
"""

import subprocess

import structlog

log = structlog.get_logger(__name__)


class AwsClientError(Exception):
    """Raised when an ``aws`` CLI call returns a non-zero exit code.

    The captured output streams are kept so callers can inspect them
    instead of parsing the message.
    """

    def __init__(self, cmd: list[str], returncode: int, stdout: str = "", stderr: str = "") -> None:
        self.cmd = cmd
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            f"Command failed (exit {returncode}):\n"
            f"  {' '.join(cmd)}\n"
            f"  stderr: {stderr.strip()}"
        )

    @property
    def detail(self) -> str:
        """The most informative captured output: stderr, then stdout, then the message."""
        return self.stderr.strip() or self.stdout.strip() or str(self)


class AwsCliNotFound(Exception):
    """Raised when the ``aws`` executable cannot be started at all."""


class AwsCliClient:
    """Shells out to the AWS CLI.

    Args:
        executable: Name or path of the AWS CLI binary.
    """

    def __init__(self, executable: str = "aws") -> None:
        self._aws = executable

    def export_credentials(self, profile: str) -> str:
        """Return the raw JSON credential export for a profile.

        Uses the ``process`` format, which yields ``AccessKeyId``,
        ``SecretAccessKey`` and, for temporary credentials, ``SessionToken``
        and ``Expiration``.
        """
        return self._run(
            [
                self._aws,
                "configure",
                "export-credentials",
                "--profile",
                profile,
                "--format",
                "process",
            ]
        )

    def sso_login(self, profile: str) -> None:
        """Run ``aws sso login`` attached to the user's terminal.

        Blocks until the browser/device flow finishes.  Interrupting it with
        Ctrl+C is reported as exit code 130.
        """
        cmd = [self._aws, "sso", "login", "--profile", profile]
        log.info("sso_login_started", profile=profile)
        try:
            result = subprocess.run(cmd)
        except OSError as exc:
            raise AwsCliNotFound(f"Could not run {self._aws}: {exc}") from exc
        except KeyboardInterrupt as exc:
            # Ctrl+C aborts this login only, not the whole sync.
            raise AwsClientError(cmd, 130) from exc
        if result.returncode != 0:
            raise AwsClientError(cmd, result.returncode)

    def version(self) -> str:
        """Return the CLI version banner."""
        return self._run([self._aws, "--version"]).strip()

    def _run(self, cmd: list[str]) -> str:
        """Run a command, returning stdout. Raises AwsClientError on failure."""
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as exc:
            raise AwsCliNotFound(f"Could not run {self._aws}: {exc}") from exc
        if result.returncode != 0:
            raise AwsClientError(cmd, result.returncode, result.stdout, result.stderr)
        return result.stdout

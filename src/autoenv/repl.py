"""Interactive command loop.

Input lines are tokenized with ``shlex`` (so quoted paths work) and looked
up in a command table; each handler takes the remaining arguments.  Handler
errors are printed and the prompt continues.
"""

import json
import shlex
import time
from collections.abc import Callable

from rich.console import Console

from autoenv import config
from autoenv.audit import AuditLogger
from autoenv.aws.profiles import get_available_profiles
from autoenv.constants import APP_TITLE, EXIT_CONFIRM_WINDOW, HELP_TEXT, RULE
from autoenv.models import RemoteDestination, SyncTarget
from autoenv.postman.client import PostmanApiError, PostmanClient, PostmanConfig
from autoenv.providers import AwsCredentialProvider, CredentialProvider
from autoenv.sync import SyncEngine, collect_targets, render_report, select_targets

Handler = Callable[[list[str]], None]


class Repl:
    """Command dispatcher plus the prompt loop around it.

    Args:
        console: Where all output goes.
        provider: Credential provider; defaults to the AWS CLI.
        postman_factory: Builds a Postman client from a config; swapped in tests.
        audit: Audit trail; defaults to the settings-driven file logger.
    """

    def __init__(
        self,
        console: Console | None = None,
        provider: CredentialProvider | None = None,
        postman_factory: Callable[[PostmanConfig], PostmanClient] | None = None,
        audit: AuditLogger | None = None,
    ) -> None:
        self.console = console or Console()
        self._provider = provider
        self._postman_factory = postman_factory or PostmanClient
        self._audit = audit or AuditLogger()
        self._running = True
        self._commands: dict[str, Handler] = {
            "list": self.handle_list,
            "add": self.handle_add,
            "remove": self.handle_remove,
            "profiles": self.handle_profiles,
            "settings": self.handle_settings,
            "log": self.handle_log,
            "sync": self.handle_sync,
            "postman": self.handle_postman,
            "help": self.handle_help,
            "exit": self.handle_exit,
            "quit": self.handle_exit,
        }

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def run(self) -> None:
        self._say(f"{APP_TITLE} - Interactive REPL")
        self._say('Type "help" for available commands, "exit" to quit.\n')
        last_interrupt: float | None = None
        while self._running:
            try:
                line = self.console.input("> ")
            except KeyboardInterrupt:
                now = time.monotonic()
                if last_interrupt is not None and now - last_interrupt < EXIT_CONFIRM_WINDOW:
                    self._say("\nGoodbye!")
                    return
                last_interrupt = now
                self._say("\n(Press Ctrl+C again to exit)")
                continue
            except EOFError:
                self._say("\nGoodbye!")
                return
            last_interrupt = None
            self.dispatch(line)

    def dispatch(self, line: str) -> bool:
        """Run one input line. Returns False once the user has asked to exit."""
        try:
            parts = shlex.split(line)
        except ValueError as exc:
            self._say(f"Error: could not parse input: {exc}", style="red")
            return self._running
        if not parts:
            return self._running

        command, args = parts[0].lower(), parts[1:]
        handler = self._commands.get(command)
        if handler is None:
            self._say(f"Unknown command: {command}")
            self._say('Type "help" for available commands.')
            return self._running

        try:
            handler(args)
        except (config.ConfigError, PostmanApiError, OSError) as exc:
            self._say(f"Error: {exc}", style="red")
            self._audit.log_error(f"{command} failed: {exc}")
        return self._running

    # ------------------------------------------------------------------
    # File mappings
    # ------------------------------------------------------------------

    def handle_list(self, args: list[str]) -> None:
        mappings = config.get_mappings()
        remote = config.get_remote_mappings()
        if not mappings and not remote:
            self._say("No mappings configured.")
            return

        if mappings:
            self._say("\nConfigured Mappings:")
            self._say(RULE)
            for env_path, profile in mappings.items():
                self._say(f"{env_path} → {profile}")
            self._say(RULE)
        if remote:
            self._list_remote(remote)

    def handle_add(self, args: list[str]) -> None:
        if len(args) < 2:
            self._say("Error: Both <env-file-path> and <aws-profile> are required.", style="red")
            self._say("Usage: add <env-file-path> <aws-profile>")
            return
        env_path, profile = args[0], args[1]
        config.add_mapping(env_path, profile)
        self._say(f"✓ Added mapping: {env_path} → {profile}", style="green")
        self._audit.log_command(f"add {env_path} {profile}")

    def handle_remove(self, args: list[str]) -> None:
        if not args:
            self._say("Error: <env-file-path> is required.", style="red")
            self._say("Usage: remove <env-file-path>")
            return
        env_path = args[0]
        if config.remove_mapping(env_path):
            self._say(f"✓ Removed mapping for: {env_path}", style="green")
            self._audit.log_command(f"remove {env_path}")
        else:
            self._say(f"No mapping found for: {env_path}")

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def handle_profiles(self, args: list[str]) -> None:
        profiles = get_available_profiles()
        if not profiles:
            self._say("No AWS profiles found.")
            self._say("Make sure AWS CLI is configured with profiles.")
            return
        self._say("\nAvailable AWS Profiles:")
        self._say(RULE)
        for profile in profiles:
            self._say(f"  {profile}")
        self._say(RULE)
        self._audit.log_command("profiles")

    def handle_settings(self, args: list[str]) -> None:
        data = config.load_settings().model_dump()
        api_key = data["postman"]["api_key"]
        if api_key:
            data["postman"]["api_key"] = f"****{api_key[-4:]}"
        self._say("\nCurrent Settings:")
        self._say(RULE)
        self.console.print_json(json.dumps(data))
        self._say(RULE)
        self._audit.log_command("settings")

    def handle_log(self, args: list[str]) -> None:
        subcommand = args[0].lower() if args else ""
        if subcommand == "enable":
            config.enable_logging()
            self._say("✓ Logging enabled", style="green")
            self._audit.log_command("log enable")
        elif subcommand == "disable":
            config.disable_logging()
            self._say("✓ Logging disabled", style="green")
        elif subcommand == "file":
            if len(args) < 2:
                self._say("Error: <path> is required.", style="red")
                self._say("Usage: log file <path>")
                return
            config.set_log_file(args[1])
            self._say(f"✓ Log file set to: {args[1]}", style="green")
            self._audit.log_command(f"log file {args[1]}")
        else:
            self._say("Unknown log command. Available: enable, disable, file <path>")

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def handle_sync(self, args: list[str]) -> None:
        selector = args[0] if args else None
        settings = config.load_settings()
        all_targets = collect_targets(settings)
        targets = select_targets(all_targets, selector)
        if selector and all_targets and not targets:
            self._say(f"No mapping or profile found for: {selector}")
            return

        self._audit.log_command(f"sync {selector}" if selector else "sync")
        provider = self._provider or AwsCredentialProvider(notify=self._say)
        postman = self._open_postman() if _has_remote(targets) else None
        try:
            if targets:
                self._say(f"Syncing credentials for {len(targets)} destination(s)...")
            report = SyncEngine(provider, postman=postman, audit=self._audit).sync(targets)
        finally:
            if postman is not None:
                postman.close()

        for line in render_report(report):
            self._say(line, style="red" if report.error else None)

        for outcome in report.outcomes:
            destination = outcome.destination
            if (
                isinstance(destination, RemoteDestination)
                and outcome.display_name
                and outcome.display_name != destination.display_name
            ):
                config.update_remote_mapping_name(destination.environment_id, outcome.display_name)

    # ------------------------------------------------------------------
    # Postman
    # ------------------------------------------------------------------

    def handle_postman(self, args: list[str]) -> None:
        subcommand = args[0].lower() if args else ""
        rest = args[1:]
        if subcommand == "key":
            if not rest:
                self._say("Error: <api-key> is required.", style="red")
                self._say("Usage: postman key <api-key>")
                return
            config.set_postman_api_key(rest[0])
            self._say("✓ Postman API key saved", style="green")
            self._audit.log_command("postman key ****")
        elif subcommand == "environments":
            self._postman_environments()
        elif subcommand == "list":
            remote = config.get_remote_mappings()
            if not remote:
                self._say("No Postman mappings configured.")
                return
            self._list_remote(remote)
        elif subcommand == "add":
            if len(rest) < 2:
                self._say("Error: Both <env-id> and <aws-profile> are required.", style="red")
                self._say("Usage: postman add <env-id> <aws-profile>")
                return
            self._postman_add(rest[0], rest[1])
        elif subcommand == "remove":
            if not rest:
                self._say("Error: <env-id> is required.", style="red")
                self._say("Usage: postman remove <env-id>")
                return
            if config.remove_remote_mapping(rest[0]):
                self._say(f"✓ Removed Postman mapping for: {rest[0]}", style="green")
                self._audit.log_command(f"postman remove {rest[0]}")
            else:
                self._say(f"No Postman mapping found for: {rest[0]}")
        else:
            self._say(
                "Unknown postman command. Available: key <api-key>, environments, list, "
                "add <env-id> <profile>, remove <env-id>"
            )

    def _postman_environments(self) -> None:
        with self._open_postman() as postman:
            environments = postman.list_environments()
        if not environments:
            self._say("No Postman environments found.")
            return
        mapped = config.get_remote_mappings()
        self._say("\nPostman Environments:")
        self._say(RULE)
        for environment in environments:
            line = f"  {environment.id}  {environment.name}"
            if environment.id in mapped:
                line += f"  → {mapped[environment.id].aws_profile}"
            self._say(line)
        self._say(RULE)
        self._audit.log_command("postman environments")

    def _postman_add(self, environment_id: str, profile: str) -> None:
        with self._open_postman() as postman:
            name = postman.get_environment_name(environment_id)
        config.add_remote_mapping(environment_id, profile, name)
        label = f"{name} ({environment_id})" if name else environment_id
        self._say(f"✓ Added Postman mapping: {label} → {profile}", style="green")
        self._audit.log_command(f"postman add {environment_id} {profile}")

    def _list_remote(self, remote: dict[str, config.RemoteMapping]) -> None:
        self._say("\nPostman Mappings:")
        self._say(RULE)
        for env_id, mapping in remote.items():
            label = f"{mapping.environment_name} ({env_id})" if mapping.environment_name else env_id
            self._say(f"{label} → {mapping.aws_profile}")
        self._say(RULE)

    def _open_postman(self) -> PostmanClient:
        return self._postman_factory(PostmanConfig(api_key=config.get_postman_api_key()))

    # ------------------------------------------------------------------
    # Misc
    # ------------------------------------------------------------------

    def handle_help(self, args: list[str]) -> None:
        self._say(HELP_TEXT)

    def handle_exit(self, args: list[str]) -> None:
        self._say("Goodbye!")
        self._running = False

    def _say(self, message: str, style: str | None = None) -> None:
        self.console.print(message, style=style, markup=False, highlight=False)


def _has_remote(targets: list[SyncTarget]) -> bool:
    return any(isinstance(destination, RemoteDestination) for destination, _ in targets)

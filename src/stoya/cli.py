"""Command line interface for the Stoya billboard client."""

from __future__ import annotations

import asyncio
import difflib
from typing import Any, Awaitable, Callable, TypeVar

import click
import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from stoya.accounts import AuthenticationError
from stoya.classification import ClassificationFailure
from stoya.cli_support import (
    Services,
    open_services,
    resolve_media_path,
    result_payload,
    screens_payload,
)
from stoya.config import ConfigError, ConfigManager, StoyaConfig, redacted
from stoya.logging_setup import configure_logging
from stoya.media import MediaValidationError
from stoya.naming import NamingError
from stoya.reconcile import LifecycleState, ReconcilePoller, ReconcileResult
from stoya.remote import StoreError
from stoya.state import MissingStateError, SessionRepository, SignedInUser, StateError
from stoya.uploads import ScreenFullError, SubmitResult, UploadError

console = Console()

T = TypeVar("T")

_STATE_STYLES = {
    LifecycleState.NONE: "dim",
    LifecycleState.PENDING: "yellow",
    LifecycleState.PUBLISHED: "green",
    LifecycleState.REJECTED: "red",
}

_STATE_LABELS = {
    LifecycleState.NONE: "No upload for this screen.",
    LifecycleState.PENDING: "Waiting for moderation.",
    LifecycleState.PUBLISHED: "Published and on display.",
    LifecycleState.REJECTED: "Rejected by the moderator.",
}

# Subclasses first: the first matching entry decides the error code.
_ERROR_CODES: tuple[tuple[type[Exception], str], ...] = (
    (MissingStateError, "not_signed_in"),
    (StateError, "state_error"),
    (ConfigError, "config_error"),
    (MediaValidationError, "invalid_media"),
    (NamingError, "invalid_owner"),
    (ScreenFullError, "screen_full"),
    (ClassificationFailure, "unsafe_content"),
    (AuthenticationError, "auth_failed"),
    (UploadError, "upload_failed"),
    (StoreError, "store_error"),
)


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool = False) -> None:
    """Conditionally print CLI output according to quiet/summary settings.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """

    if quiet and mode != "error":
        return

    important_modes = {"summary", "warning", "error"}
    if summary_only and mode not in important_modes:
        return

    console.print(message)


def _load_config(*, json_output: bool) -> StoyaConfig:
    """Load the effective configuration and install logging handlers.

    Args:
        json_output: Indicates whether JSON mode is active.

    Returns:
        StoyaConfig: Validated configuration.
    """
    try:
        config = ConfigManager().load()
    except ConfigError as exc:
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
        raise  # unreachable; _handle_cli_error always raises
    configure_logging(config.logging)
    return config


def _output_flags(config: StoyaConfig, quiet: bool) -> tuple[bool, bool]:
    """Combine the ``--quiet`` flag with configured presentation defaults."""
    return quiet or config.cli.quiet_default, config.cli.summary_default


def _run_with_services(
    config: StoyaConfig,
    action: Callable[[Services], Awaitable[T]],
    *,
    json_output: bool,
) -> T:
    """Open services, run ``action`` on the event loop, and map domain errors.

    Args:
        config: Effective configuration.
        action: Coroutine factory receiving the wired services.
        json_output: Indicates whether JSON mode is active.

    Returns:
        T: Value returned by ``action``.
    """

    async def _runner() -> T:
        async with open_services(config) as services:
            return await action(services)

    try:
        return asyncio.run(_runner())
    except tuple(error for error, _ in _ERROR_CODES) as exc:
        code = next(code for error, code in _ERROR_CODES if isinstance(exc, error))
        _handle_cli_error(str(exc), code=code, json_output=json_output, original=exc)
        raise  # unreachable; _handle_cli_error always raises


def _render_result(
    result: ReconcileResult, *, display_days: int, quiet: bool, summary_only: bool = False
) -> None:
    """Print a human-readable lifecycle summary for one screen."""
    style = _STATE_STYLES[result.state]
    _emit_message(
        f"[{style}]Screen {result.screen_id}: {result.state.value}[/{style}] - "
        f"{_STATE_LABELS[result.state]}",
        mode="summary",
        quiet=quiet,
    )
    payload = result_payload(result, display_days=display_days)
    file_info = payload["file"]
    if file_info is None:
        return
    _emit_message(
        f"  File: {file_info['display_name']}",
        mode="detail",
        quiet=quiet,
        summary_only=summary_only,
    )
    if result.state == LifecycleState.PUBLISHED and file_info["remaining_days"] is not None:
        _emit_message(
            f"  Days left on display: {file_info['remaining_days']}",
            mode="detail",
            quiet=quiet,
            summary_only=summary_only,
        )


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="stoya")
def cli() -> None:
    """Stoya submits photos and short videos to public billboard screens.

    Returns:
        None: This function is invoked for its side effects.
    """


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Emit screens and free slots as JSON.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
def screens(json_output: bool, quiet: bool) -> None:
    """List the available screens with their free upload slots.

    Args:
        json_output: When True, emit JSON instead of a table.
        quiet: When True, suppress non-error output.
    """
    config = _load_config(json_output=json_output)

    async def _collect(services: Services) -> list[dict[str, Any]]:
        containers = await services.catalog.list_screens()
        occupancy = await services.catalog.compute_occupancy(containers)
        return screens_payload(containers, occupancy)

    rows = _run_with_services(config, _collect, json_output=json_output)

    if json_output:
        console.print_json(data={"screens": rows})
        return

    quiet, _ = _output_flags(config, quiet)
    if not rows:
        _emit_message("[yellow]No screens found.[/yellow]", mode="warning", quiet=quiet)
        return

    table = Table(title="Screens")
    table.add_column("Screen", justify="right")
    table.add_column("Name")
    table.add_column("Files", justify="right")
    table.add_column("Free slots", justify="right")
    for row in rows:
        files = "?" if row["files"] is None else str(row["files"])
        if row["free_slots"] is None:
            free = "[yellow]unknown[/yellow]"
        elif row["full"]:
            free = "[red]full[/red]"
        else:
            free = f"[green]{row['free_slots']}[/green]"
        table.add_row(str(row["screen_id"]), row["name"], files, free)
    _emit_message(table, mode="summary", quiet=quiet)


@cli.command()
@click.argument("screen_id", type=int)
@click.option("--json", "json_output", is_flag=True, help="Emit the upload state as JSON.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
def status(screen_id: int, json_output: bool, quiet: bool) -> None:
    """Show the moderation state of your upload for SCREEN_ID.

    Args:
        screen_id: Screen to reconcile.
        json_output: When True, emit JSON instead of text.
        quiet: When True, suppress non-error output.
    """
    config = _load_config(json_output=json_output)

    async def _evaluate(services: Services) -> ReconcileResult:
        user = services.session.current_user()
        return await services.reconciler.evaluate(user.id, screen_id)

    result = _run_with_services(config, _evaluate, json_output=json_output)
    if json_output:
        console.print_json(data=result_payload(result, display_days=config.uploads.display_days))
        return
    quiet, summary_only = _output_flags(config, quiet)
    _render_result(
        result, display_days=config.uploads.display_days, quiet=quiet, summary_only=summary_only
    )


@cli.command()
@click.argument("screen_id", type=int)
@click.option("--interval", type=float, help="Override the polling interval in seconds.")
@click.option("--once", is_flag=True, help="Reconcile a single time and exit.")
@click.option("--json", "json_output", is_flag=True, help="Emit each state change as JSON.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
def watch(
    screen_id: int,
    interval: float | None,
    once: bool,
    json_output: bool,
    quiet: bool,
) -> None:
    """Follow your upload for SCREEN_ID, printing every state change.

    Args:
        screen_id: Screen to poll.
        interval: Optional polling interval override in seconds.
        once: When True, reconcile once and exit.
        json_output: When True, emit JSON payloads instead of text.
        quiet: When True, suppress non-error output.

    Raises:
        click.ClickException: If option values are invalid.
    """
    if interval is not None and interval <= 0:
        raise click.ClickException("--interval must be greater than zero.")

    config = _load_config(json_output=json_output)
    display_days = config.uploads.display_days
    quiet, summary_only = _output_flags(config, quiet)
    last_state: dict[str, LifecycleState] = {}

    def _report(result: ReconcileResult) -> None:
        if last_state.get("state") == result.state:
            return
        last_state["state"] = result.state
        if json_output:
            console.print_json(data=result_payload(result, display_days=display_days))
        else:
            _render_result(
                result, display_days=display_days, quiet=quiet, summary_only=summary_only
            )

    async def _follow(services: Services) -> None:
        user = services.session.current_user()
        poller = ReconcilePoller(
            services.reconciler,
            user.id,
            interval_seconds=interval or config.polling.interval_seconds,
        )
        poller.add_listener(_report)
        async with poller:
            if once:
                _report(await services.reconciler.evaluate(user.id, screen_id))
                return
            await poller.select(screen_id)
            await asyncio.Event().wait()

    if not once and not json_output:
        _emit_message(
            f"[cyan]Watching screen {screen_id}. Press Ctrl+C to stop.[/cyan]",
            mode="detail",
            quiet=quiet,
        )

    try:
        _run_with_services(config, _follow, json_output=json_output)
    except KeyboardInterrupt:
        if not json_output:
            _emit_message(
                "[yellow]Watch stopped by user request.[/yellow]", mode="summary", quiet=quiet
            )


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=str))
@click.option("--screen", "screen_id", type=int, required=True, help="Target screen number.")
@click.option("--json", "json_output", is_flag=True, help="Emit the submission result as JSON.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
def upload(path: str, screen_id: int, json_output: bool, quiet: bool) -> None:
    """Review PATH and submit it for moderation on a screen.

    The safety review sees the image itself, or only the first frame of a video.

    Args:
        path: Local photo or video.
        screen_id: Screen the upload is meant for.
        json_output: When True, emit JSON instead of text.
        quiet: When True, suppress non-error output.
    """
    config = _load_config(json_output=json_output)
    media_path = resolve_media_path(path)

    async def _submit(services: Services) -> SubmitResult:
        user = services.session.current_user()
        return await services.orchestrator.submit(media_path, screen_id, user.id)

    result = _run_with_services(config, _submit, json_output=json_output)

    if json_output:
        console.print_json(
            data={
                "file_name": result.file_name,
                "path": result.path,
                "state": result.state.value,
                "tagged": result.tagged,
                "verdict": {"safe": result.verdict.safe, "reason": result.verdict.reason},
            }
        )
        return

    quiet, summary_only = _output_flags(config, quiet)
    _emit_message(
        f"[green]Uploaded {media_path.name} to screen {screen_id} for moderation.[/green]",
        mode="summary",
        quiet=quiet,
    )
    _emit_message(
        f"  Safety review: {result.verdict.reason}",
        mode="detail",
        quiet=quiet,
        summary_only=summary_only,
    )
    _emit_message(
        f"  Current state: {result.state.value}",
        mode="detail",
        quiet=quiet,
        summary_only=summary_only,
    )
    if not result.tagged:
        _emit_message(
            "[yellow]Routing tag could not be attached; the moderator may need to route "
            "this file manually.[/yellow]",
            mode="warning",
            quiet=quiet,
        )


@cli.command()
@click.option("--screen", "screen_id", type=int, required=True, help="Screen of the upload.")
@click.option("--path", "remote_path", type=str, help="Remote path to delete instead of the tracked file.")
@click.option("--json", "json_output", is_flag=True, help="Emit the result as JSON.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
def delete(screen_id: int, remote_path: str | None, json_output: bool, quiet: bool) -> None:
    """Delete your upload for a screen, wherever it currently lives.

    Args:
        screen_id: Screen whose upload is deleted.
        remote_path: Optional explicit remote path.
        json_output: When True, emit JSON instead of text.
        quiet: When True, suppress non-error output.
    """
    config = _load_config(json_output=json_output)

    async def _delete(services: Services) -> dict[str, Any]:
        user = services.session.current_user()
        target = remote_path
        hint = None
        if target is None:
            result = await services.reconciler.evaluate(user.id, screen_id)
            if result.tracked is None:
                return {"deleted": False, "path": None}
            target = result.tracked.path
            hint = result.tracked.file_name
        deleted = await services.orchestrator.delete(
            target, owner_id=user.id, screen_id=screen_id, name_hint=hint
        )
        return {"deleted": deleted, "path": target}

    outcome = _run_with_services(config, _delete, json_output=json_output)

    if outcome["path"] is None:
        _handle_cli_error(
            f"No upload found for screen {screen_id}.",
            code="not_found",
            json_output=json_output,
        )
    if not outcome["deleted"]:
        _handle_cli_error(
            f"Could not delete {outcome['path']}.",
            code="delete_failed",
            json_output=json_output,
            details={"path": outcome["path"]},
        )

    if json_output:
        console.print_json(data=outcome)
        return
    quiet, _ = _output_flags(config, quiet)
    _emit_message(f"[green]Deleted {outcome['path']}.[/green]", mode="summary", quiet=quiet)


@cli.command()
@click.option("--screen", "screen_id", type=int, required=True, help="Screen whose record is cleared.")
def reset(screen_id: int) -> None:
    """Forget the tracked upload for a screen so a new one can be submitted.

    Args:
        screen_id: Screen whose local record is cleared.
    """
    session = SessionRepository()
    try:
        user = session.current_user()
    except StateError as exc:
        raise click.ClickException(str(exc)) from exc
    if session.clear_upload(user.id, screen_id):
        console.print(f"[green]Cleared the tracked upload for screen {screen_id}.[/green]")
    else:
        console.print(f"[yellow]No tracked upload for screen {screen_id}.[/yellow]")


@cli.command()
@click.argument("email")
@click.password_option("--password", help="Password for the new account.")
@click.option("--json", "json_output", is_flag=True, help="Emit the new identity as JSON.")
def register(email: str, password: str, json_output: bool) -> None:
    """Create an account for EMAIL and sign in.

    Args:
        email: Account email.
        password: Account password.
        json_output: When True, emit JSON instead of text.
    """
    config = _load_config(json_output=json_output)

    async def _register(services: Services) -> SignedInUser:
        user = await services.accounts.register(email, password)
        services.session.sign_in(user)
        return user

    user = _run_with_services(config, _register, json_output=json_output)
    if json_output:
        console.print_json(data={"user": user.model_dump(mode="json")})
        return
    console.print(f"[green]Registered and signed in as {user.email}.[/green]")


@cli.command()
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True, help="Account password.")
@click.option("--json", "json_output", is_flag=True, help="Emit the identity as JSON.")
def login(email: str, password: str, json_output: bool) -> None:
    """Sign in as EMAIL.

    Args:
        email: Account email.
        password: Account password.
        json_output: When True, emit JSON instead of text.
    """
    config = _load_config(json_output=json_output)

    async def _login(services: Services) -> SignedInUser:
        user = await services.accounts.authenticate(email, password)
        services.session.sign_in(user)
        return user

    user = _run_with_services(config, _login, json_output=json_output)
    if json_output:
        console.print_json(data={"user": user.model_dump(mode="json")})
        return
    console.print(f"[green]Signed in as {user.email}.[/green]")


@cli.command()
def logout() -> None:
    """Sign out; tracked uploads stay on this machine."""
    session = SessionRepository()
    try:
        session.sign_out()
    except StateError as exc:
        raise click.ClickException(str(exc)) from exc
    console.print("[green]Signed out.[/green]")


@cli.command()
@click.argument("choice", required=False, type=click.Choice(["light", "dark"]))
def theme(choice: str | None) -> None:
    """Set the presentation theme, or toggle it when CHOICE is omitted.

    Args:
        choice: Explicit theme to store.
    """
    session = SessionRepository()
    try:
        if choice is None:
            selected = session.toggle_theme()
        else:
            session.set_theme(choice)  # type: ignore[arg-type]
            selected = choice
    except StateError as exc:
        raise click.ClickException(str(exc)) from exc
    console.print(f"[green]Theme set to {selected}.[/green]")


@cli.group()
def config() -> None:
    """Manage Stoya configuration files and overrides.

    Returns:
        None: This function is invoked for its side effects.
    """


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules.

    Args:
        no_env: If True, ignore environment-derived overrides.

    Raises:
        click.ClickException: If configuration cannot be loaded.
    """
    try:
        config = ConfigManager().load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(redacted(config), sort_keys=False, allow_unicode=True)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY path.

    Args:
        key: Dotted path describing the configuration field to update.
        value: YAML-literal value to write into the configuration file.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    manager.ensure_exists()
    before = manager.body_lines()

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        manager.set_value(key, parsed_value)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    diff = list(
        difflib.unified_diff(
            before,
            manager.body_lines(),
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    if not diff:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {key.strip()}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Open the configuration file in an interactive editor session.

    Raises:
        click.ClickException: If edited content is invalid or cannot be saved.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    original = manager.read_text()
    edited = click.edit(original, extension=".yaml")

    if edited is None:
        console.print("[yellow]Edit cancelled; no changes applied.[/yellow]")
        return

    if edited == original:
        console.print("[yellow]No changes detected.[/yellow]")
        return

    try:
        manager.replace_text(edited)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    console.print("[green]Configuration updated successfully.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point.

    Returns:
        None: This function is invoked for its side effects.
    """
    cli()


if __name__ == "__main__":
    main()

"""Invoke tasks for developing Stoya.

Every task shells out to `uv` so the virtual environment, the test run and the
lint run all resolve the same locked dependency set.
"""

from __future__ import annotations

import shlex
import shutil
from collections.abc import Mapping, Sequence
from pathlib import Path

from invoke import Collection, Context, task

PROJECT_ROOT = Path(__file__).parent
DIST_DIR = PROJECT_ROOT / "dist"
SOURCE_DIRS = ("src", "tests")


def _uv(
    ctx: Context,
    args: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
    dry_run: bool = False,
) -> None:
    """Run ``uv`` with the given arguments.

    Args:
        ctx: Invoke execution context.
        args: Arguments placed after the `uv` executable.
        env: Extra environment variables for the command.
        dry_run: Print the command instead of running it.
    """
    command = shlex.join(("uv", *args))
    if dry_run:
        print(f"[dry-run] {command}")
        return
    run_env = dict(ctx.config.run.env or {})
    run_env.update(env or {})
    ctx.run(command, echo=True, pty=True, env=run_env)


@task
def sync(ctx: Context, dev: bool = True) -> None:
    """Install the project and, by default, the dev extra into the uv venv."""
    _uv(ctx, ["sync", "--extra", "dev"] if dev else ["sync"])


@task(help={"clean": "Empty dist/ first."})
def build(ctx: Context, clean: bool = False) -> None:
    """Build the sdist and wheel into `dist/`.

    Args:
        ctx: Invoke execution context.
        clean: Remove earlier artifacts before building.
    """
    if clean and DIST_DIR.exists():
        shutil.rmtree(DIST_DIR)
    _uv(ctx, ["build"])


@task(
    help={
        "k": "pytest -k expression.",
        "path": "Test path (defaults to tests/).",
        "options": "Extra flags forwarded to pytest.",
    }
)
def tests(ctx: Context, k: str = "", path: str = "tests", options: str = "") -> None:
    """Run the pytest suite.

    Runs with the log level raised to CRITICAL.

    Args:
        ctx: Invoke execution context.
        k: Test selection expression.
        path: File or directory handed to pytest.
        options: Additional pytest arguments.
    """
    args = ["run", "pytest"]
    if k:
        args.extend(["-k", k])
    args.extend(shlex.split(options))
    args.append(path)
    _uv(ctx, args, env={"STOYA__LOGGING__LEVEL": "CRITICAL"})


@task(help={"fix": "Let ruff apply fixes."})
def lint(ctx: Context, fix: bool = False) -> None:
    """Check formatting, then lint with ruff."""
    _uv(ctx, ["run", "ruff", "format", "--check", *SOURCE_DIRS])
    args = ["run", "ruff", "check", *SOURCE_DIRS]
    if fix:
        args.append("--fix")
    _uv(ctx, args)


@task
def mypy(ctx: Context) -> None:
    """Type-check the package."""
    _uv(ctx, ["run", "mypy", "src"])


@task(help={"screen": "Screen number to reconcile once after listing screens."})
def smoke(ctx: Context, screen: int | None = None) -> None:
    """Exercise the installed CLI against the configured store.

    Lists screens as JSON and, when ``screen`` is given, reconciles that
    screen a single time. Requires a configured token and a signed-in user.

    Args:
        ctx: Invoke execution context.
        screen: Optional screen number for a one-shot `watch`.
    """
    _uv(ctx, ["run", "stoya", "screens", "--json"])
    if screen is not None:
        _uv(ctx, ["run", "stoya", "watch", str(screen), "--once", "--json"])


@task
def ci(ctx: Context) -> None:
    """Run lint, type checks and tests in the same order as CI."""
    ctx.invoke(lint)
    ctx.invoke(mypy)
    ctx.invoke(tests)


namespace = Collection(sync, build, tests, lint, mypy, smoke, ci)

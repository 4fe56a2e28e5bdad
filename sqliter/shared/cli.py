"""Click plumbing shared by the ``sqliter`` command."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, TypeVar

import click

from .config import AppConfig, load_config
from .exceptions import ConfigurationError, SQLiterError
from .logging import Logger, get_logger

F = TypeVar("F", bound=Callable[..., Any])

MISSING_DATABASE_MESSAGE = "Database path is required. Use --db to specify the SQLite database file."


@dataclass(slots=True)
class CLIContext:
    """Resolved configuration plus the database the command will open."""

    config: AppConfig
    db_path: Path
    verbose: bool
    logger: Logger


def build_cli_context(config_path: str | None, db_path: str | None, verbose: bool) -> CLIContext:
    """Load config, apply ``--db`` and insist that some database path is known."""
    try:
        config = load_config(config_path)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc

    if db_path:
        config = config.with_database_path(db_path)
    if config.database.path is None:
        raise click.UsageError(MISSING_DATABASE_MESSAGE)
    return CLIContext(
        config=config,
        db_path=config.database.path,
        verbose=verbose,
        logger=get_logger(verbose=verbose),
    )


def common_cli_options(func: F) -> F:
    """Add --config/--db/--verbose and pass the built context as ``cli_ctx``."""

    @click.option("--config", "config_path", type=click.Path(path_type=str), help="Path to config file.")
    @click.option("--db", "db_path", type=click.Path(path_type=str), help="Path to the SQLite database file.")
    @click.option("--verbose", is_flag=True, help="Enable verbose logging output.")
    @click.pass_context
    @functools.wraps(func)
    def wrapper(
        ctx: click.Context,
        *args: Any,
        config_path: str | None = None,
        db_path: str | None = None,
        verbose: bool = False,
        **kwargs: Any,
    ) -> Any:
        ctx.obj = build_cli_context(config_path, db_path, verbose)
        return func(*args, cli_ctx=ctx.obj, **kwargs)

    return wrapper  # type: ignore[return-value]


def handle_cli_errors(func: F) -> F:
    """Report SQLiter errors as Click errors (exit status 1)."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ConfigurationError as exc:
            raise click.ClickException(f"Configuration error: {exc}") from exc
        except SQLiterError as exc:
            raise click.ClickException(str(exc)) from exc

    return wrapper  # type: ignore[return-value]

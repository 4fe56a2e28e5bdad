"""sqliter CLI entrypoint."""

from __future__ import annotations

import click
import uvicorn

from sqliter.browser import SQLiteBrowser
from sqliter.shared.cli import CLIContext, common_cli_options, handle_cli_errors
from sqliter.shared.exceptions import DatabaseError

from .app import create_app


@click.command(help="Browse and edit a SQLite database from a web browser.")
@click.option("--port", type=click.IntRange(1, 65535), help="Port to run the server on.")
@click.option("--host", type=str, help="Interface to bind (default 127.0.0.1).")
@click.option("--read-only", is_flag=True, help="Open the database read-only.")
@click.option(
    "--allow-raw-where",
    is_flag=True,
    help="Accept raw where_clause SQL fragments in addition to structured filters.",
)
@click.option(
    "--static-dir",
    type=click.Path(file_okay=False, path_type=str),
    help="Directory holding a built frontend bundle (index.html + assets/).",
)
@common_cli_options
@handle_cli_errors
def cli(
    port: int | None,
    host: str | None,
    read_only: bool,
    allow_raw_where: bool,
    static_dir: str | None,
    cli_ctx: CLIContext,
) -> None:
    """Open the database and serve the API plus frontend until interrupted."""
    config = cli_ctx.config.with_overrides(
        port=port,
        host=host,
        allow_raw_where=True if allow_raw_where else None,
        static_dir=static_dir,
    )
    if read_only:
        config = config.with_read_only(True)
    logger = cli_ctx.logger
    server = config.server

    try:
        browser = SQLiteBrowser(
            cli_ctx.db_path,
            read_only=config.database.read_only,
            allow_raw_where=server.allow_raw_where,
            logger=logger.child("db"),
        )
    except DatabaseError as exc:
        logger.error(f"Failed to connect to database: {exc}")
        raise SystemExit(1) from exc

    if server.allow_raw_where:
        logger.warning("Raw where_clause fragments are enabled; only expose this server locally.")

    app = create_app(browser, server, logger=logger.child("server"))
    logger.info(f"Starting SQLiter on {server.host}:{server.port} with database {cli_ctx.db_path}")
    try:
        uvicorn.run(
            app,
            host=server.host,
            port=server.port,
            log_level="info" if cli_ctx.verbose else "warning",
            access_log=cli_ctx.verbose,
        )
    except SystemExit as exc:
        # uvicorn exits with status 1 when the listener cannot bind
        if exc.code:
            logger.error(f"Failed to start server on {server.host}:{server.port}")
            raise SystemExit(1) from exc
        raise
    except OSError as exc:
        logger.error(f"Failed to start server on {server.host}:{server.port}: {exc}")
        raise SystemExit(1) from exc
    finally:
        browser.close()


def main() -> None:
    """Entry point for console_scripts."""
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()

"""Admin service command."""

from pathlib import Path

import typer

from codewith.config.messages import INFO_MESSAGES
from codewith.config.settings import ServerSettings
from codewith.utils import print_info
from codewith.utils.log_utils import configure_logging

server_app = typer.Typer(
    name="server",
    help="Run the admin service",
    no_args_is_help=True,
)


@server_app.command("run")
def server_run(
    host: str | None = typer.Option(None, "--host", help="Bind address"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port"),
    database: Path | None = typer.Option(None, "--db", help="SQLite database file"),
    log_level: str = typer.Option("INFO", "--log-level", help="Log level"),
) -> None:
    """Serve the device sync and admin API with uvicorn.

    Credentials come from CODEWITH_SERVER_SYNC_TOKEN, CODEWITH_SERVER_ADMIN_TOKEN
    and (optionally) CODEWITH_SERVER_ADMIN_BASIC_USER / _PASSWORD.
    """
    import uvicorn

    from codewith.server import create_app

    overrides: dict[str, object] = {}
    if host:
        overrides["host"] = host
    if port:
        overrides["port"] = port
    if database:
        overrides["database_path"] = database
    settings = ServerSettings(**overrides)

    configure_logging(log_level)

    print_info(INFO_MESSAGES["server_starting"].format(host=settings.host, port=settings.port))
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=log_level.lower(),
    )

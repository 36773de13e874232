"""Serve command: run an app with uvicorn."""

import click

UVICORN_LOG_LEVELS = ["critical", "error", "warning", "info", "debug", "trace"]


@click.command()
@click.argument("target")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
@click.option("--reload", is_flag=True, default=False, help="Reload on code changes.")
@click.option(
    "--log-level",
    type=click.Choice(UVICORN_LOG_LEVELS, case_sensitive=False),
    default=None,
    help="uvicorn log level (default: CRUDFORGE_LOG_LEVEL or info).",
)
def serve(target: str, host: str, port: int, reload: bool, log_level: str | None):
    """Serve TARGET (MODULE:APP), e.g. myproject.app:app."""
    import uvicorn

    from crudforge.config import Settings

    if ":" not in target:
        raise click.BadParameter(f"Expected MODULE:APP, got '{target}'", param_hint="TARGET")

    uvicorn.run(
        target,
        host=host,
        port=port,
        reload=reload,
        log_level=(log_level or Settings.from_env().log_level).lower(),
    )

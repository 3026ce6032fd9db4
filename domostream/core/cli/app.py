"""domostream CLI entry point."""

import logging

import typer

from domostream import __version__
from domostream.core.cli.stream_commands import (
    abort_execution,
    commit_execution,
    configure,
    execution_info,
    list_executions,
    upload,
)

app = typer.Typer(
    add_completion=False, help="Domo stream upload command line interface."
)


def _version_callback(value: bool) -> bool:
    if value:
        typer.echo(__version__)
        raise typer.Exit()
    return value


@app.callback()
def callback(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show the domostream version and exit.",
        callback=_version_callback,
        is_eager=True,
        is_flag=True,
    ),
    log_level: str = typer.Option(
        "WARNING", "--log-level", help="Logging level, e.g. INFO or DEBUG."
    ),
) -> None:
    """Handle global CLI options."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


app.command("upload")(upload)
app.command("executions")(list_executions)
app.command("execution-info")(execution_info)
app.command("commit")(commit_execution)
app.command("abort")(abort_execution)
app.command("configure")(configure)


def main() -> None:
    """CLI entrypoint for the domostream command."""
    app()


if __name__ == "__main__":
    main()

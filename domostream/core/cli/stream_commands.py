"""Stream upload and execution CLI commands."""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterator
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from tqdm import tqdm

from domostream.core.cli.execution_display import print_execution_table
from domostream.core.config import ConfigManager, StreamUploadConfig
from domostream.core.exceptions import ConfigError, DomoStreamError
from domostream.core.streaming.stream_upload_client import StreamUploadClient
from domostream.core.streaming.transport import StreamTransport

logger = logging.getLogger(__name__)
console = Console()

DEFAULT_BATCH_ROWS = 500
DEFAULT_WORKERS = 4

PROFILE_OPTION = typer.Option(
    None, "--profile", "-p", help="Configuration profile to load."
)


def _resolve_config(profile: str | None, **overrides: Any) -> StreamUploadConfig:
    try:
        return ConfigManager(profile).resolve(overrides)
    except ConfigError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=1)


def _build_transport(config: StreamUploadConfig) -> StreamTransport:
    try:
        token_provider = config.build_token_provider()
    except ConfigError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=1)
    return StreamTransport(
        token_provider, api_url=config.api_url, timeout=config.request_timeout
    )


def _read_batches(
    path: Path, batch_rows: int, has_header: bool
) -> Iterator[list[list[str]]]:
    """Yield lists of CSV rows of at most ``batch_rows`` rows."""
    with path.open(newline="", encoding="utf-8") as handle:
        reader = csv.reader(handle)
        if has_header:
            next(reader, None)
        batch: list[list[str]] = []
        for row in reader:
            batch.append(row)
            if len(batch) >= batch_rows:
                yield batch
                batch = []
        if batch:
            yield batch


def _collect_finished(
    done: set[Future], pending: dict[Future, int], progress: tqdm
) -> None:
    for future in done:
        rows = pending.pop(future)
        future.result()
        progress.update(rows)


def _upload_in_window(
    pool: ThreadPoolExecutor,
    client: StreamUploadClient,
    batches: Iterator[list[list[str]]],
    max_pending: int,
    progress: tqdm,
) -> None:
    """Upload batches from a pool with at most ``max_pending`` in flight.

    Batches are read lazily, so only a bounded part of the file is held in
    memory. The first failing batch raises and stops further submissions.
    """
    pending: dict[Future, int] = {}
    for batch in batches:
        if len(pending) >= max_pending:
            done, _ = wait(pending, return_when=FIRST_COMPLETED)
            _collect_finished(done, pending, progress)
        pending[pool.submit(client.clone().upload, batch)] = len(batch)
    done, _ = wait(pending)
    _collect_finished(done, pending, progress)


def upload(
    file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, help="CSV file to upload."
    ),
    stream_id: int | None = typer.Option(
        None, "--stream-id", "-d", help="Domo stream to upload to."
    ),
    buffer_size: str | None = typer.Option(
        None, "--buffer-size", "-b", help="Data part size, e.g. 750kb or 5mb."
    ),
    batch_rows: int = typer.Option(
        DEFAULT_BATCH_ROWS, "--batch-rows", min=1, help="Rows per upload call."
    ),
    workers: int = typer.Option(
        DEFAULT_WORKERS, "--workers", "-w", min=1, help="Concurrent upload threads."
    ),
    has_header: bool = typer.Option(
        True, "--has-header/--no-header", help="Skip the first line of the file."
    ),
    profile: str | None = PROFILE_OPTION,
) -> None:
    """Upload a CSV file to a stream and commit the execution."""
    config = _resolve_config(profile, stream_id=stream_id, buffer_size=buffer_size)
    try:
        client = StreamUploadClient.from_config(config)
    except ConfigError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=1)

    pool = ThreadPoolExecutor(max_workers=workers)
    try:
        with tqdm(desc=f"Uploading {file.name}", unit="rows") as progress:
            _upload_in_window(
                pool,
                client,
                _read_batches(file, batch_rows, has_header),
                max_pending=workers * 2,
                progress=progress,
            )
        pool.shutdown()
        execution = client.commit()
    except DomoStreamError as e:
        # Queued batches are dropped; running ones finish before the abort.
        pool.shutdown(cancel_futures=True)
        typer.echo(f"Upload failed: {e}", err=True)
        if client.execution_id is not None:
            try:
                client.abort()
                typer.echo(f"Aborted execution on stream {client.stream_id}.", err=True)
            except DomoStreamError as abort_error:
                logger.error("Failed to abort execution: %s", abort_error)
        raise typer.Exit(code=1)
    finally:
        pool.shutdown(cancel_futures=True)

    typer.echo(
        f"Committed execution {execution.id} on stream {client.stream_id} "
        f"({execution.current_state or 'UNKNOWN'})."
    )


def list_executions(
    stream_id: int = typer.Argument(..., help="Domo stream id."),
    limit: int = typer.Option(50, "--limit", "-l", min=1, max=500),
    offset: int = typer.Option(0, "--offset", "--skip", "-s", min=0),
    profile: str | None = PROFILE_OPTION,
) -> None:
    """List executions of a stream."""
    transport = _build_transport(_resolve_config(profile))
    try:
        executions = transport.list_executions(stream_id, limit=limit, offset=offset)
    except DomoStreamError as e:
        typer.echo(f"Failed to list executions: {e}", err=True)
        raise typer.Exit(code=1)

    if not executions:
        typer.echo(f"No executions found for stream {stream_id}.")
        return
    print_execution_table(console, f"Stream {stream_id} Executions", executions)


def execution_info(
    stream_id: int = typer.Argument(..., help="Domo stream id."),
    execution_id: int = typer.Argument(..., help="Execution id."),
    profile: str | None = PROFILE_OPTION,
) -> None:
    """Show details of one execution."""
    transport = _build_transport(_resolve_config(profile))
    try:
        execution = transport.get_execution(stream_id, execution_id)
    except DomoStreamError as e:
        typer.echo(f"Failed to fetch execution: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(execution.model_dump_json(indent=2))


def commit_execution(
    stream_id: int = typer.Argument(..., help="Domo stream id."),
    execution_id: int = typer.Argument(..., help="Execution id."),
    profile: str | None = PROFILE_OPTION,
) -> None:
    """Commit an execution by id."""
    transport = _build_transport(_resolve_config(profile))
    try:
        execution = transport.commit_execution(stream_id, execution_id)
    except DomoStreamError as e:
        typer.echo(f"Failed to commit execution: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Committed execution {execution.id}.")


def abort_execution(
    stream_id: int = typer.Argument(..., help="Domo stream id."),
    execution_id: int = typer.Argument(..., help="Execution id."),
    profile: str | None = PROFILE_OPTION,
) -> None:
    """Abort an execution by id."""
    transport = _build_transport(_resolve_config(profile))
    try:
        execution = transport.abort_execution(stream_id, execution_id)
    except DomoStreamError as e:
        typer.echo(f"Failed to abort execution: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Aborted execution {execution.id}.")


def configure(
    profile: str = typer.Argument(..., help="Profile name to write."),
    stream_id: int | None = typer.Option(None, "--stream-id", "-d"),
    client_id: str | None = typer.Option(None, "--client-id"),
    client_secret: str = typer.Option(
        "",
        "--client-secret",
        prompt=True,
        hide_input=True,
        show_default=False,
        help="Leave empty to keep the stored secret.",
    ),
    buffer_size: str | None = typer.Option(None, "--buffer-size", "-b"),
) -> None:
    """Create a configuration profile or update the given fields of one."""
    try:
        path = ConfigManager(profile).update_profile(
            {
                "stream_id": stream_id,
                "client_id": client_id,
                "client_secret": client_secret or None,
                "buffer_size": buffer_size,
            }
        )
    except ConfigError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Saved profile {profile!r} to {path}.")

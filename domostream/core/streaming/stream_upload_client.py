"""Shareable client handle for uploading data to a Domo stream.

``StreamUploadClient`` makes it easy to upload data to Domo from many threads
at once, for example when data is pulled from another API with many calls that
each return a variable number of rows. Rows are buffered and uploaded as data
parts once the buffer is full; ``commit`` uploads the rest and commits the
stream execution.

Example:
    client = StreamUploadClient(stream_id, client_id, client_secret, 750_000)
    with ThreadPoolExecutor() as pool:
        pool.map(lambda page: client.upload(fetch_rows(page)), pages)
    client.commit()
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from domostream.core.auth import ClientCredentialsTokenProvider
from domostream.core.config import StreamUploadConfig
from domostream.core.const import API_URL
from domostream.core.streaming.models import StreamExecution
from domostream.core.streaming.transport import StreamTransport
from domostream.core.streaming.upload_coordinator import UploadCoordinator

logger = logging.getLogger(__name__)


class StreamUploadClient:
    """Handle to a shared upload coordinator for one Domo stream.

    Copies of a client share the same buffer, execution and part counter, so
    a copy can be handed to each worker thread.
    """

    def __init__(
        self,
        stream_id: int,
        client_id: str,
        client_secret: str,
        buffer_size: int,
        api_url: str = API_URL,
    ):
        """Initialize a client authenticating with client credentials.

        Args:
            stream_id: Domo stream to upload to.
            client_id: Domo client application id.
            client_secret: Domo client application secret.
            buffer_size: Target size in bytes of each uploaded data part.
            api_url: Base URL of the Domo API.
        """
        transport = StreamTransport(
            ClientCredentialsTokenProvider(client_id, client_secret), api_url=api_url
        )
        self._coordinator = UploadCoordinator(stream_id, transport, buffer_size)

    @classmethod
    def from_coordinator(cls, coordinator: UploadCoordinator) -> StreamUploadClient:
        """Wrap an existing coordinator."""
        client = cls.__new__(cls)
        client._coordinator = coordinator
        return client

    @classmethod
    def from_config(cls, config: StreamUploadConfig) -> StreamUploadClient:
        """Build a client from a resolved configuration.

        Raises:
            ConfigError: If the stream id or credentials are missing.
        """
        transport = StreamTransport(
            config.build_token_provider(),
            api_url=config.api_url,
            timeout=config.request_timeout,
        )
        coordinator = UploadCoordinator(
            config.require_stream_id(), transport, config.buffer_size
        )
        return cls.from_coordinator(coordinator)

    @property
    def stream_id(self) -> int:
        return self._coordinator.stream_id

    @property
    def execution_id(self) -> int | None:
        return self._coordinator.execution_id

    def clone(self) -> StreamUploadClient:
        """Return a new handle sharing this client's state."""
        return self.from_coordinator(self._coordinator)

    def __copy__(self) -> StreamUploadClient:
        return self.clone()

    def upload(self, rows: Sequence[Any]) -> StreamExecution | None:
        """Upload rows, buffering them until a full data part is available.

        A stream execution is created with the first data part. Returns the
        execution when this call uploaded a part, otherwise None.
        """
        return self._coordinator.upload(rows)

    def commit(self) -> StreamExecution:
        """Upload any buffered rows as a final data part and commit."""
        return self._coordinator.commit()

    def abort(self) -> StreamExecution:
        """Abort the active execution and discard buffered rows."""
        return self._coordinator.abort()


@dataclass
class BatchUploadReport:
    """Outcome of draining row batches through a client.

    Attributes:
        execution: The committed execution.
        batches: Number of batches read.
        parts_uploaded: Number of batches that triggered a data part upload.
        errors: Exceptions raised by individual batch uploads.
    """

    execution: StreamExecution
    batches: int = 0
    parts_uploaded: int = 0
    errors: list[Exception] = field(default_factory=list)


def upload_batches(
    client: StreamUploadClient, batches: Iterable[Sequence[Any]]
) -> BatchUploadReport:
    """Upload every batch of rows, then commit the execution.

    Failing batches are logged and collected rather than raised so one bad
    batch does not stop the rest from being uploaded.

    Args:
        client: Client to upload through.
        batches: Row batches to upload.

    Returns:
        A report with the committed execution and the collected errors.

    Raises:
        DomoStreamError: If the final commit fails.
    """
    batch_count = 0
    parts_uploaded = 0
    errors: list[Exception] = []
    for batch in batches:
        batch_count += 1
        try:
            if client.upload(batch) is not None:
                parts_uploaded += 1
        except Exception as e:
            logger.warning("Batch %d failed to upload: %s", batch_count, e)
            errors.append(e)

    execution = client.commit()
    return BatchUploadReport(
        execution=execution,
        batches=batch_count,
        parts_uploaded=parts_uploaded,
        errors=errors,
    )

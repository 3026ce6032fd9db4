"""Buffered, thread-safe upload of rows to a Domo stream execution.

The coordinator lets any number of producer threads push rows into one shared
buffer. Once the buffer reaches the configured size it is flushed as a
numbered data part of the current stream execution, which is created on
demand. ``commit`` flushes the remainder and commits the execution; ``abort``
discards everything. After either, the coordinator starts over with a new
execution on the next flush.

Three pieces of state are shared between threads:

- the buffer, guarded by ``_buffer_lock``,
- the execution id, guarded by ``_execution_lock``,
- the part counter, an ``itertools.count`` whose ``next()`` is atomic.

No network call is made while holding the buffer lock. Execution creation,
commit and abort run under the execution lock, so at most one execution is
created per upload cycle. A flusher re-checks the buffer once it holds the
execution lock and backs off if the buffer was drained in the meantime, so no
execution is created without data to upload into it.

A flusher that obtained the execution id before ``commit`` or ``abort`` took
the execution lock can still upload its part after the execution was
finalized. Domo rejects that part and the error is raised to that caller.
"""

import itertools
import logging
import threading
from collections.abc import Callable, Sequence
from typing import Any

from domostream.core.exceptions import NoActiveExecutionError
from domostream.core.streaming.csv_codec import serialize_rows
from domostream.core.streaming.models import StreamExecution
from domostream.core.streaming.transport import StreamTransport

logger = logging.getLogger(__name__)

Codec = Callable[[Sequence[Any]], bytes]


class UploadCoordinator:
    """Buffers serialized rows and flushes them as stream execution data parts."""

    def __init__(
        self,
        stream_id: int,
        transport: StreamTransport,
        buffer_size: int,
        codec: Codec = serialize_rows,
    ):
        """Initialize the coordinator.

        Args:
            stream_id: Domo stream to upload to.
            transport: Transport used for all execution requests.
            buffer_size: Buffered byte count at which a data part is uploaded.
            codec: Serializes a batch of rows into data part bytes.
        """
        if buffer_size <= 0:
            raise ValueError("buffer_size must be positive")
        self.stream_id = stream_id
        self.buffer_size = buffer_size
        self._transport = transport
        self._codec = codec

        self._buffer = bytearray()
        self._buffer_lock = threading.Lock()
        self._execution_id: int | None = None
        self._execution_lock = threading.Lock()
        self._part_numbers = itertools.count()

    @property
    def execution_id(self) -> int | None:
        """Id of the active execution, or None if none has been started."""
        with self._execution_lock:
            return self._execution_id

    @property
    def buffered_bytes(self) -> int:
        """Number of bytes waiting in the buffer."""
        with self._buffer_lock:
            return len(self._buffer)

    def _ensure_execution_locked(self) -> int:
        """Return the active execution id, creating an execution if needed.

        Must be called with ``_execution_lock`` held.
        """
        if self._execution_id is None:
            execution = self._transport.create_execution(self.stream_id)
            self._execution_id = execution.id
            logger.info(
                "Created execution %d on stream %d", execution.id, self.stream_id
            )
        return self._execution_id

    def _drain_buffer(self) -> bytes:
        with self._buffer_lock:
            data = bytes(self._buffer)
            self._buffer.clear()
        return data

    def _upload_part(self, execution_id: int, data: bytes) -> StreamExecution:
        part = next(self._part_numbers)
        logger.debug(
            "Uploading part %d of execution %d (%d bytes)",
            part,
            execution_id,
            len(data),
        )
        return self._transport.upload_part(self.stream_id, execution_id, part, data)

    def _reset_locked(self) -> None:
        self._execution_id = None
        self._part_numbers = itertools.count()

    def upload(self, rows: Sequence[Any]) -> StreamExecution | None:
        """Buffer rows and upload a data part once the buffer is full.

        Args:
            rows: Rows to serialize and append to the buffer.

        Returns:
            The execution returned by the part upload if this call flushed the
            buffer, otherwise None.

        Raises:
            SerializationError: If the rows cannot be serialized. Nothing is
                buffered in that case.
            TransportError: If creating the execution or uploading the part
                fails. Bytes already taken from the buffer are not restored.
        """
        data = self._codec(rows)
        with self._buffer_lock:
            self._buffer.extend(data)
            buffered = len(self._buffer)

        if buffered < self.buffer_size:
            logger.debug("Buffering upload: %d/%d bytes", buffered, self.buffer_size)
            return None

        with self._execution_lock:
            if self.buffered_bytes < self.buffer_size:
                # Drained by commit or another producer while waiting.
                return None
            execution_id = self._ensure_execution_locked()

        part_data = self._drain_buffer()
        if not part_data:
            # Another producer flushed the buffer first.
            return None
        return self._upload_part(execution_id, part_data)

    def commit(self) -> StreamExecution:
        """Upload the remaining buffer as a final data part and commit.

        An execution is created if none is active, and the final part is
        uploaded even when the buffer is empty. On success the coordinator is
        reset and the next flush starts a new execution.

        Returns:
            The committed execution.

        Raises:
            TransportError: If any request fails. The execution stays active
                so the caller may retry ``commit`` or call ``abort``.
        """
        with self._execution_lock:
            execution_id = self._ensure_execution_locked()
            self._upload_part(execution_id, self._drain_buffer())

            logger.info(
                "Committing execution %d on stream %d", execution_id, self.stream_id
            )
            result = self._transport.commit_execution(self.stream_id, execution_id)
            self._reset_locked()
        return result

    def abort(self) -> StreamExecution:
        """Abort the active execution and discard buffered data.

        Returns:
            The aborted execution.

        Raises:
            NoActiveExecutionError: If no execution has been started. No
                request is made in that case.
            TransportError: If the abort request fails. Local state is kept.
        """
        with self._execution_lock:
            if self._execution_id is None:
                raise NoActiveExecutionError(
                    f"No active execution on stream {self.stream_id}"
                )
            execution_id = self._execution_id

            logger.info(
                "Aborting execution %d on stream %d", execution_id, self.stream_id
            )
            result = self._transport.abort_execution(self.stream_id, execution_id)
            with self._buffer_lock:
                self._buffer.clear()
            self._reset_locked()
        return result

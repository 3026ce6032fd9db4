"""Serialize rows into headerless CSV data parts."""

import csv
import dataclasses
import io
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

from domostream.core.exceptions import SerializationError

_SCALAR_TYPES = (str, int, float, bool, type(None))


def _row_values(row: Any) -> list[Any]:
    """Return the column values of a row in declaration order."""
    if isinstance(row, BaseModel):
        values = list(row.model_dump().values())
    elif dataclasses.is_dataclass(row) and not isinstance(row, type):
        values = [getattr(row, f.name) for f in dataclasses.fields(row)]
    elif isinstance(row, Mapping):
        values = list(row.values())
    elif isinstance(row, Sequence) and not isinstance(row, (str, bytes)):
        values = list(row)
    else:
        raise SerializationError(f"Unsupported row type: {type(row).__name__}")

    for value in values:
        if not isinstance(value, _SCALAR_TYPES):
            raise SerializationError(
                f"Cannot serialize value of type {type(value).__name__} to CSV"
            )
    return values


def serialize_rows(rows: Sequence[Any]) -> bytes:
    """Serialize rows as headerless CSV.

    Rows may be mappings, dataclass instances, pydantic models, or plain
    sequences. Nested containers are rejected.

    Args:
        rows: Rows to serialize.

    Returns:
        UTF-8 encoded CSV, one line per row, no header.

    Raises:
        SerializationError: If a row or one of its values cannot be written.
    """
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    try:
        writer.writerows(_row_values(row) for row in rows)
    except csv.Error as e:
        raise SerializationError(str(e)) from e
    return out.getvalue().encode("utf-8")

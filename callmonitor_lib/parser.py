"""
Call monitor line parser.

The router writes one event per line, fields separated by ';':

    RING:       timestamp;RING;id;caller;callee;line;
    CALL:       timestamp;CALL;id;extension;caller;callee;line;
    CONNECT:    timestamp;CONNECT;id;external;internal;
    DISCONNECT: timestamp;DISCONNECT;id;duration;

Parsing is pure and never raises; malformed lines come back as a failed Result.
"""

from __future__ import annotations

from typing import Optional

from .const import FIELD_DELIMITER
from .errors import CallEventParseError
from .types import CallEvent, CallType, Result

_MIN_FIELDS: dict[CallType, int] = {
    CallType.RING: 5,
    CallType.CALL: 6,
    CallType.CONNECT: 5,
    CallType.DISCONNECT: 3,
}

# Fields shared by every layout: timestamp, call type, connection id
_HEADER_FIELDS = 3


def parse_call_event(line: str) -> Result[CallEvent]:
    """Parse one raw notification line into a CallEvent."""
    raw = line.strip()
    fields = raw.removesuffix(FIELD_DELIMITER).split(FIELD_DELIMITER) if raw else []
    if len(fields) < _HEADER_FIELDS:
        return _failure(
            f"Expected at least {_HEADER_FIELDS} fields, got {len(fields)}.", line
        )

    try:
        call_type = CallType(fields[1])
    except ValueError:
        return _failure(f"Unknown call type {fields[1]!r}.", line)

    required = _MIN_FIELDS[call_type]
    if len(fields) < required:
        return _failure(
            f"{call_type.value} needs at least {required} fields, got {len(fields)}.",
            line,
        )

    timestamp, _, connection_id = fields[:_HEADER_FIELDS]
    if call_type is CallType.RING:
        event = CallEvent(
            timestamp=timestamp,
            call_type=call_type,
            connection_id=connection_id,
            external_number=fields[3],
            internal_number=fields[4],
            line=_optional_field(fields, 5),
            raw=raw,
        )
    elif call_type is CallType.CALL:
        # outgoing: own number first, destination second
        event = CallEvent(
            timestamp=timestamp,
            call_type=call_type,
            connection_id=connection_id,
            line=fields[3],
            internal_number=fields[4],
            external_number=fields[5],
            raw=raw,
        )
    elif call_type is CallType.CONNECT:
        event = CallEvent(
            timestamp=timestamp,
            call_type=call_type,
            connection_id=connection_id,
            external_number=fields[3],
            internal_number=fields[4],
            raw=raw,
        )
    else:
        event = CallEvent(
            timestamp=timestamp,
            call_type=call_type,
            connection_id=connection_id,
            duration_s=_parse_duration(_optional_field(fields, 3)),
            raw=raw,
        )
    return Result.success(event)


def _optional_field(fields: list[str], index: int) -> str:
    return fields[index] if len(fields) > index else ""


def _parse_duration(value: str) -> Optional[int]:
    try:
        return int(value)
    except ValueError:
        return None


def _failure(message: str, line: str) -> Result[CallEvent]:
    return Result.failure(CallEventParseError(message, line=line))


__all__ = ["parse_call_event"]

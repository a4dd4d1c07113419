"""Map parsed call events to subscriber values."""

from __future__ import annotations

from typing import Optional

from .types import (
    CallDetail,
    CallEvent,
    CallType,
    PresenceState,
    TargetKind,
    UpdateValue,
)


def map_event(event: CallEvent, target_kind: TargetKind) -> Optional[UpdateValue]:
    """
    Return the value a subscriber of target_kind should take for event.

    Every call type maps to a value for both known target kinds; None is only
    returned for an unrecognized target kind.
    """
    if target_kind is TargetKind.BOOLEAN_PRESENCE:
        if event.call_type is CallType.DISCONNECT:
            return PresenceState.OFF
        return PresenceState.ON

    if target_kind is TargetKind.CALL_DETAIL:
        if event.call_type is CallType.DISCONNECT:
            return CallDetail.empty()
        if event.call_type is CallType.CALL:
            # Outgoing calls report the numbers in reverse order.
            return CallDetail(
                external_number=event.internal_number,
                internal_number=event.external_number,
            )
        return CallDetail(
            external_number=event.external_number,
            internal_number=event.internal_number,
        )

    return None


__all__ = ["map_event"]

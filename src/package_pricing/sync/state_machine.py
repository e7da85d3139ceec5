"""
Sync state machine - price status of a quote linked to a package.

`next_status` is a pure lookup over the transition table. An event with
no entry for the current status is not permitted there, and callers
treat it as a no-op.
"""
from enum import Enum
from typing import Optional


class SyncStatus(str, Enum):
    SYNCED = "synced"
    CALCULATING = "calculating"
    CUSTOM = "custom"
    OUT_OF_SYNC = "out-of-sync"
    ERROR = "error"


class SyncEvent(str, Enum):
    LINK = "link"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    PARAMETERS_CHANGED = "parameters_changed"
    PARAMETERS_RESTORED = "parameters_restored"
    RECALCULATE = "recalculate"
    MANUAL_PRICE = "manual_price"
    RESET = "reset"
    RETRY = "retry"
    UNLINK = "unlink"


_ANY = tuple(SyncStatus)

_TRANSITIONS: dict[tuple[SyncStatus, SyncEvent], SyncStatus] = {
    (SyncStatus.CALCULATING, SyncEvent.SUCCEEDED): SyncStatus.SYNCED,
    (SyncStatus.CALCULATING, SyncEvent.FAILED): SyncStatus.ERROR,

    (SyncStatus.SYNCED, SyncEvent.PARAMETERS_CHANGED): SyncStatus.OUT_OF_SYNC,
    (SyncStatus.OUT_OF_SYNC, SyncEvent.PARAMETERS_CHANGED): SyncStatus.OUT_OF_SYNC,
    # The in-flight response belongs to the old parameters and is discarded
    (SyncStatus.CALCULATING, SyncEvent.PARAMETERS_CHANGED): SyncStatus.OUT_OF_SYNC,
    (SyncStatus.OUT_OF_SYNC, SyncEvent.PARAMETERS_RESTORED): SyncStatus.SYNCED,

    (SyncStatus.SYNCED, SyncEvent.RECALCULATE): SyncStatus.CALCULATING,
    (SyncStatus.OUT_OF_SYNC, SyncEvent.RECALCULATE): SyncStatus.CALCULATING,

    (SyncStatus.CUSTOM, SyncEvent.RESET): SyncStatus.CALCULATING,
    (SyncStatus.ERROR, SyncEvent.RETRY): SyncStatus.CALCULATING,
}

for _status in _ANY:
    _TRANSITIONS[(_status, SyncEvent.LINK)] = SyncStatus.CALCULATING
    _TRANSITIONS[(_status, SyncEvent.MANUAL_PRICE)] = SyncStatus.CUSTOM
    _TRANSITIONS[(_status, SyncEvent.UNLINK)] = SyncStatus.CUSTOM


def next_status(status: SyncStatus, event: SyncEvent) -> Optional[SyncStatus]:
    """Status after `event`, or None when the event is not permitted in `status`."""
    return _TRANSITIONS.get((SyncStatus(status), SyncEvent(event)))


def allowed_events(status: SyncStatus) -> list[SyncEvent]:
    """Events permitted in `status`, in declaration order."""
    return [event for event in SyncEvent if (SyncStatus(status), event) in _TRANSITIONS]

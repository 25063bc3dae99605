"""Record ownership and sharing control plane for personal health records."""

from .access import can_read, can_write
from .config import ControlPlaneSettings, get_settings
from .errors import (
    ControlPlaneError,
    DuplicateIdError,
    ErrorKind,
    ExpiredError,
    InconsistentStateError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)
from .facade import ApiResponse, ControlPlane, build_control_plane
from .identity import Clock, Identity, SystemClock, new_id
from .models import HealthRecord, RecordPatch, RecordType, ShareRequest, ShareStatus
from .record_store import RecordStore
from .share_ledger import ShareLedger

__all__ = [
    "ApiResponse",
    "Clock",
    "ControlPlane",
    "ControlPlaneError",
    "ControlPlaneSettings",
    "DuplicateIdError",
    "ErrorKind",
    "ExpiredError",
    "HealthRecord",
    "Identity",
    "InconsistentStateError",
    "InvalidArgumentError",
    "InvalidStateError",
    "NotFoundError",
    "RecordPatch",
    "RecordStore",
    "RecordType",
    "ShareLedger",
    "ShareRequest",
    "ShareStatus",
    "SystemClock",
    "UnauthorizedError",
    "build_control_plane",
    "can_read",
    "can_write",
    "get_settings",
    "new_id",
]

"""
Control-plane facade used by the service layer.

Every operation takes the caller identity supplied by the transport, checks
access, forwards to the record store or share ledger and wraps the outcome in
an :class:`ApiResponse`. Control-plane errors never escape as exceptions.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import structlog

from .access import can_read
from .config import ID_SCHEME, ControlPlaneSettings, get_settings
from .errors import (
    ControlPlaneError,
    ErrorKind,
    InvalidArgumentError,
    UnauthorizedError,
)
from .identity import Clock, Identity, SystemClock
from .log_config import configure_logging
from .models import HealthRecord, RecordPatch, RecordType, ShareRequest
from .record_store import RecordStore
from .share_ledger import ShareLedger
from .validation import require_identity

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass
class ApiResponse(Generic[T]):
    """Uniform result envelope returned by every facade operation."""
    
    success: bool
    data: T | None = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    
    @classmethod
    def ok(cls, data: T | None = None) -> ApiResponse[T]:
        return cls(success=True, data=data)
    
    @classmethod
    def fail(cls, exc: ControlPlaneError) -> ApiResponse[T]:
        return cls(success=False, error=str(exc), error_kind=exc.kind)


def _coerce_record_type(record_type: RecordType | str) -> RecordType:
    try:
        return RecordType(record_type)
    except (TypeError, ValueError):
        valid = ", ".join(t.value for t in RecordType)
        raise InvalidArgumentError(
            f"unknown record type {record_type!r}; expected one of: {valid}"
        ) from None


class ControlPlane:
    """
    Facade over the record store and share ledger.
    
    Example:
        plane = build_control_plane()
        created = plane.create_record(patient, "Bloodwork", "", "LabResult", {})
        request = plane.create_share_request(patient, provider, [created.data.id])
        plane.approve_share_request(patient, request.data.id)
        plane.get_record(provider, created.data.id).success  # True
    """
    
    def __init__(self, records: RecordStore, ledger: ShareLedger) -> None:
        self._records = records
        self._ledger = ledger
    
    @property
    def records(self) -> RecordStore:
        return self._records
    
    @property
    def ledger(self) -> ShareLedger:
        return self._ledger
    
    def _call(
        self,
        operation: str,
        caller: Identity | None,
        action: Callable[[Identity], T],
    ) -> ApiResponse[T]:
        try:
            if caller is None:
                raise UnauthorizedError("caller identity is required")
            require_identity(caller, "caller")
            return ApiResponse.ok(action(caller))
        except ControlPlaneError as exc:
            logger.info(
                "operation_failed",
                operation=operation,
                caller=caller.value if isinstance(caller, Identity) else None,
                error_kind=exc.kind.value,
                detail=exc.detail,
            )
            return ApiResponse.fail(exc)
    
    # Records
    
    def create_record(
        self,
        caller: Identity | None,
        title: str,
        description: str,
        record_type: RecordType | str,
        payload: Any = None,
    ) -> ApiResponse[HealthRecord]:
        def action(owner: Identity) -> HealthRecord:
            return self._records.create(
                owner, title, description, _coerce_record_type(record_type), payload
            )
        
        return self._call("create_record", caller, action)
    
    def update_record(
        self,
        caller: Identity | None,
        record_id: str,
        patch: RecordPatch,
    ) -> ApiResponse[HealthRecord]:
        return self._call(
            "update_record",
            caller,
            lambda identity: self._records.update(record_id, identity, patch),
        )
    
    def delete_record(self, caller: Identity | None, record_id: str) -> ApiResponse[None]:
        return self._call(
            "delete_record",
            caller,
            lambda identity: self._records.delete(record_id, identity),
        )
    
    def get_record(self, caller: Identity | None, record_id: str) -> ApiResponse[HealthRecord]:
        def action(identity: Identity) -> HealthRecord:
            record = self._records.get(record_id)
            if not can_read(record, identity):
                logger.warning(
                    "record_access_denied",
                    record_id=record_id,
                    caller=identity.value,
                    action="read",
                )
                raise UnauthorizedError(f"no read access to record {record_id}")
            return record
        
        return self._call("get_record", caller, action)
    
    def list_owned_records(self, caller: Identity | None) -> ApiResponse[list[HealthRecord]]:
        return self._call("list_owned_records", caller, self._records.records_owned_by)
    
    def list_accessible_records(self, caller: Identity | None) -> ApiResponse[list[HealthRecord]]:
        return self._call("list_accessible_records", caller, self._records.records_shared_with)
    
    def share_record(
        self,
        caller: Identity | None,
        record_id: str,
        provider: Identity,
    ) -> ApiResponse[HealthRecord]:
        return self._call(
            "share_record",
            caller,
            lambda identity: self._records.share_record(record_id, identity, provider),
        )
    
    def revoke_access(
        self,
        caller: Identity | None,
        record_id: str,
        grantee: Identity,
    ) -> ApiResponse[HealthRecord]:
        return self._call(
            "revoke_access",
            caller,
            lambda identity: self._records.revoke_access(record_id, identity, grantee),
        )
    
    # Share requests
    
    def create_share_request(
        self,
        caller: Identity | None,
        provider: Identity,
        record_ids: Iterable[str],
        message: str = "",
    ) -> ApiResponse[ShareRequest]:
        return self._call(
            "create_share_request",
            caller,
            lambda patient: self._ledger.create(patient, provider, record_ids, message),
        )
    
    def approve_share_request(
        self,
        caller: Identity | None,
        request_id: str,
    ) -> ApiResponse[ShareRequest]:
        return self._call(
            "approve_share_request",
            caller,
            lambda patient: self._ledger.approve(request_id, patient),
        )
    
    def reject_share_request(
        self,
        caller: Identity | None,
        request_id: str,
    ) -> ApiResponse[ShareRequest]:
        return self._call(
            "reject_share_request",
            caller,
            lambda patient: self._ledger.reject(request_id, patient),
        )
    
    def list_share_requests_as_patient(
        self,
        caller: Identity | None,
    ) -> ApiResponse[list[ShareRequest]]:
        return self._call("list_share_requests_as_patient", caller, self._ledger.for_patient)
    
    def list_share_requests_as_provider(
        self,
        caller: Identity | None,
    ) -> ApiResponse[list[ShareRequest]]:
        return self._call("list_share_requests_as_provider", caller, self._ledger.for_provider)
    
    def reset(self) -> None:
        """Teardown hook: drop all requests and records."""
        self._ledger.clear()
        self._records.clear()
        logger.info("control_plane_reset")


def build_control_plane(
    settings: ControlPlaneSettings | None = None,
    clock: Clock | None = None,
    configure_logs: bool = False,
) -> ControlPlane:
    """
    Wire the stores and facade. Call once at process start.
    
    Args:
        settings: Overrides environment-loaded settings
        clock: Time source shared by both stores
        configure_logs: Also apply the settings' logging configuration
    """
    settings = settings or get_settings()
    if configure_logs:
        configure_logging(settings.log_level, settings.json_logs)
    
    clock = clock or SystemClock()
    records = RecordStore(clock=clock)
    ledger = ShareLedger(records, clock=clock, ttl=settings.share_request_ttl)
    
    logger.info(
        "control_plane_initialized",
        share_request_ttl_days=settings.share_request_ttl_days,
        id_scheme=ID_SCHEME,
    )
    return ControlPlane(records, ledger)

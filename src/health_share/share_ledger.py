"""
Share request ledger.

State machine::

    Pending --approve--> Approved
    Pending --reject---> Rejected
    Pending --approve/reject after expires_at--> Expired

All three outcomes are final. Expiry is not swept in the background: it is
detected and written back when someone next tries to approve or reject.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta

import structlog

from .config import DEFAULT_SHARE_REQUEST_TTL_DAYS
from .errors import (
    DuplicateIdError,
    ExpiredError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)
from .identity import Clock, Identity, SystemClock, new_id
from .models import ShareRequest, ShareStatus
from .record_store import RecordStore
from .validation import require_id, require_identity, require_record_ids, require_text

logger = structlog.get_logger(__name__)


class ShareLedger:
    """
    Stores share requests and drives their lifecycle.
    
    Approval writes grants into the record store. Lock order is always
    ledger first, then record store.
    """
    
    def __init__(
        self,
        records: RecordStore,
        clock: Clock | None = None,
        ttl: timedelta = timedelta(days=DEFAULT_SHARE_REQUEST_TTL_DAYS),
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        if ttl <= timedelta(0):
            raise ValueError("share request TTL must be positive")
        self._records = records
        self._clock = clock or SystemClock()
        self._ttl = ttl
        self._id_factory = id_factory
        self._requests: dict[str, ShareRequest] = {}
        self._lock = threading.RLock()
    
    @property
    def ttl(self) -> timedelta:
        return self._ttl
    
    def __len__(self) -> int:
        with self._lock:
            return len(self._requests)
    
    def create(
        self,
        patient: Identity,
        provider: Identity,
        record_ids: Iterable[str],
        message: str = "",
    ) -> ShareRequest:
        """
        Open a pending request for *provider* to read *record_ids*.
        
        Ownership of the records is not checked here; it is re-checked per
        record at approval time.
        
        Raises:
            InvalidArgumentError: If an identity, the record ids or the message
                are malformed, or no record ids are given
        """
        require_identity(patient, "patient")
        require_identity(provider, "provider")
        unique_ids = require_record_ids(record_ids)
        require_text(message, "message")
        
        with self._lock:
            request_id = self._id_factory()
            if request_id in self._requests:
                logger.error("share_request_id_collision", request_id=request_id)
                raise DuplicateIdError(f"share request id {request_id} already exists")
            
            now = self._clock.now()
            request = ShareRequest(
                id=request_id,
                patient=patient,
                provider=provider,
                record_ids=unique_ids,
                requested_at=now,
                expires_at=now + self._ttl,
                message=message,
            )
            self._requests[request_id] = request
            
            logger.info(
                "share_request_created",
                request_id=request_id,
                patient=patient.value,
                provider=provider.value,
                record_count=len(unique_ids),
                expires_at=request.expires_at.isoformat(),
            )
            return request.snapshot()
    
    def get(self, request_id: str) -> ShareRequest:
        with self._lock:
            return self._require(request_id).snapshot()
    
    def approve(self, request_id: str, caller: Identity) -> ShareRequest:
        """
        Approve a pending request and grant the provider access.
        
        Records the patient no longer owns, or that no longer exist, are
        skipped.
        
        Raises:
            NotFoundError: Unknown request
            UnauthorizedError: Caller is not the request's patient
            InvalidStateError: Request already approved or rejected
            ExpiredError: Request is past its expiry; it is stored as Expired
        """
        with self._lock:
            request, now = self._decidable(request_id, caller, "approve")
            granted = self._records.grant_access(
                request.record_ids, request.patient, request.provider
            )
            request.status = ShareStatus.APPROVED
            request.decided_at = now
            
            logger.info(
                "share_request_approved",
                request_id=request_id,
                provider=request.provider.value,
                granted_record_ids=granted,
            )
            return request.snapshot()
    
    def reject(self, request_id: str, caller: Identity) -> ShareRequest:
        """Reject a pending request. Same checks as :meth:`approve`."""
        with self._lock:
            request, now = self._decidable(request_id, caller, "reject")
            request.status = ShareStatus.REJECTED
            request.decided_at = now
            
            logger.info("share_request_rejected", request_id=request_id)
            return request.snapshot()
    
    def for_patient(self, identity: Identity) -> list[ShareRequest]:
        with self._lock:
            return [r.snapshot() for r in self._requests.values() if r.patient == identity]
    
    def for_provider(self, identity: Identity) -> list[ShareRequest]:
        with self._lock:
            return [r.snapshot() for r in self._requests.values() if r.provider == identity]
    
    def clear(self) -> None:
        with self._lock:
            self._requests.clear()
    
    def _require(self, request_id: str) -> ShareRequest:
        require_id(request_id, "request_id")
        request = self._requests.get(request_id)
        if request is None:
            raise NotFoundError(f"share request {request_id} not found")
        return request
    
    def _decidable(
        self,
        request_id: str,
        caller: Identity,
        action: str,
    ) -> tuple[ShareRequest, datetime]:
        """Return the live request and the decision time if *caller* may decide it now."""
        require_identity(caller, "caller")
        request = self._require(request_id)
        
        if caller != request.patient:
            logger.warning(
                "share_request_access_denied",
                request_id=request_id,
                caller=caller.value,
                action=action,
            )
            raise UnauthorizedError(f"only the requesting patient may {action} {request_id}")
        
        if request.status == ShareStatus.EXPIRED:
            raise ExpiredError(f"share request {request_id} expired at {request.expires_at.isoformat()}")
        if request.status.is_terminal:
            raise InvalidStateError(
                f"share request {request_id} is {request.status.value}, not Pending"
            )
        
        now = self._clock.now()
        if request.is_past_due(now):
            # Persisted even though the caller gets an error.
            request.status = ShareStatus.EXPIRED
            request.decided_at = now
            logger.info(
                "share_request_expired",
                request_id=request_id,
                expires_at=request.expires_at.isoformat(),
            )
            raise ExpiredError(f"share request {request_id} expired at {request.expires_at.isoformat()}")
        
        return request, now

"""
Record store: owns health records and the per-owner record index.

The record map and the owner index are always mutated together under the
store lock, so no caller can observe one without the other.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

import structlog

from .access import can_write
from .errors import (
    DuplicateIdError,
    InconsistentStateError,
    InvalidArgumentError,
    NotFoundError,
    UnauthorizedError,
)
from .identity import Clock, Identity, SystemClock, new_id
from .models import HealthRecord, RecordPatch, RecordType
from .validation import require_id, require_identity, require_text

logger = structlog.get_logger(__name__)


class RecordStore:
    """
    In-memory store of health records with single-owner semantics.
    
    Records handed out are snapshots; changing them has no effect on the
    store. Every public method runs under one re-entrant lock.
    
    Example:
        store = RecordStore(clock=SystemClock())
        record = store.create(owner, "Bloodwork", "", RecordType.LAB_RESULT, {})
        store.update(record.id, owner, RecordPatch(title="Bloodwork 2024"))
    """
    
    def __init__(
        self,
        clock: Clock | None = None,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        self._clock = clock or SystemClock()
        self._id_factory = id_factory
        self._records: dict[str, HealthRecord] = {}
        # dict used as an insertion-ordered set of record ids
        self._index: dict[Identity, dict[str, None]] = {}
        self._lock = threading.RLock()
    
    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
    
    def _now(self, not_before: datetime | None = None) -> datetime:
        now = self._clock.now()
        if not_before is not None and now < not_before:
            return not_before
        return now
    
    def _require(self, record_id: str) -> HealthRecord:
        require_id(record_id, "record_id")
        record = self._records.get(record_id)
        if record is None:
            raise NotFoundError(f"record {record_id} not found")
        return record
    
    def _require_owner(self, record: HealthRecord, caller: Identity, action: str) -> None:
        if not can_write(record, caller):
            logger.warning(
                "record_access_denied",
                record_id=record.id,
                caller=caller.value,
                action=action,
            )
            raise UnauthorizedError(f"only the owner may {action} record {record.id}")
    
    def create(
        self,
        owner: Identity,
        title: str,
        description: str,
        record_type: RecordType,
        payload: Any,
    ) -> HealthRecord:
        """
        Create a record owned by *owner*.
        
        Returns:
            Snapshot of the stored record
            
        Raises:
            InvalidArgumentError: On a malformed owner, text field or record type
            DuplicateIdError: If the id factory returned an id already in use
        """
        require_identity(owner, "owner")
        require_text(title, "title")
        require_text(description, "description")
        if not isinstance(record_type, RecordType):
            raise InvalidArgumentError("record_type must be a RecordType")
        
        with self._lock:
            record_id = self._id_factory()
            if record_id in self._records:
                logger.error("record_id_collision", record_id=record_id)
                raise DuplicateIdError(f"record id {record_id} already exists")
            
            now = self._now()
            record = HealthRecord(
                id=record_id,
                owner=owner,
                title=title,
                description=description,
                record_type=record_type,
                payload=payload,
                created_at=now,
                updated_at=now,
            )
            self._records[record_id] = record
            self._index.setdefault(owner, {})[record_id] = None
            
            logger.info(
                "record_created",
                record_id=record_id,
                owner=owner.value,
                record_type=record_type.value,
            )
            return record.snapshot()
    
    def get(self, record_id: str) -> HealthRecord:
        """Return a snapshot of the record or raise NotFoundError."""
        with self._lock:
            return self._require(record_id).snapshot()
    
    def update(self, record_id: str, caller: Identity, patch: RecordPatch) -> HealthRecord:
        """Apply the fields set in *patch*; only the owner may do this."""
        if not isinstance(patch, RecordPatch):
            raise InvalidArgumentError(f"patch must be a RecordPatch, got {type(patch).__name__}")
        if patch.title is not None:
            require_text(patch.title, "title")
        if patch.description is not None:
            require_text(patch.description, "description")
        
        with self._lock:
            record = self._require(record_id)
            self._require_owner(record, caller, "update")
            
            changed = []
            if patch.title is not None:
                record.title = patch.title
                changed.append("title")
            if patch.description is not None:
                record.description = patch.description
                changed.append("description")
            if patch.payload is not None:
                record.payload = patch.payload
                changed.append("payload")
            record.updated_at = self._now(not_before=record.updated_at)
            
            logger.info("record_updated", record_id=record_id, fields=changed)
            return record.snapshot()
    
    def delete(self, record_id: str, caller: Identity) -> None:
        """Remove the record and its owner index entry in one step."""
        with self._lock:
            record = self._require(record_id)
            self._require_owner(record, caller, "delete")
            
            owned = self._index.get(record.owner)
            if owned is None or record_id not in owned:
                raise InconsistentStateError(
                    f"record {record_id} missing from index of {record.owner}"
                )
            del owned[record_id]
            if not owned:
                del self._index[record.owner]
            del self._records[record_id]
            
            logger.info("record_deleted", record_id=record_id, owner=record.owner.value)
    
    def records_owned_by(self, identity: Identity) -> list[HealthRecord]:
        """Records created by *identity*, in creation order."""
        with self._lock:
            results = []
            for record_id in self._index.get(identity, {}):
                record = self._records.get(record_id)
                if record is None:
                    raise InconsistentStateError(
                        f"index of {identity} references missing record {record_id}"
                    )
                results.append(record.snapshot())
            return results
    
    def records_shared_with(self, identity: Identity) -> list[HealthRecord]:
        """Records listing *identity* as a grantee, in store order."""
        with self._lock:
            return [
                record.snapshot()
                for record in self._records.values()
                if identity in record.shared_with
            ]
    
    def grant_access(
        self,
        record_ids: Iterable[str],
        owner: Identity,
        grantee: Identity,
    ) -> list[str]:
        """
        Add *grantee* to every listed record that still belongs to *owner*.
        
        Missing records and records owned by someone else are skipped.
        Granting twice is a no-op, and the owner is never listed as its own
        grantee.
        
        Returns:
            IDs of the records *grantee* can now read through this grant
        """
        require_identity(owner, "owner")
        require_identity(grantee, "grantee")
        record_ids = list(record_ids)
        
        with self._lock:
            covered = []
            skipped = []
            for record_id in record_ids:
                record = self._records.get(record_id)
                if record is None or record.owner != owner:
                    skipped.append(record_id)
                    continue
                covered.append(record_id)
                if grantee == owner or grantee in record.shared_with:
                    continue
                record.shared_with.append(grantee)
                record.updated_at = self._now(not_before=record.updated_at)
            
            logger.info(
                "record_access_granted",
                owner=owner.value,
                grantee=grantee.value,
                record_ids=covered,
                skipped_record_ids=skipped,
            )
            return covered
    
    def share_record(self, record_id: str, caller: Identity, grantee: Identity) -> HealthRecord:
        """Grant *grantee* read access directly, without a share request; owner only."""
        require_identity(grantee, "grantee")
        with self._lock:
            record = self._require(record_id)
            self._require_owner(record, caller, "share")
            self.grant_access([record_id], caller, grantee)
            return record.snapshot()
    
    def revoke_access(self, record_id: str, caller: Identity, grantee: Identity) -> HealthRecord:
        """Remove *grantee* from the record's grantees; owner only."""
        require_identity(grantee, "grantee")
        with self._lock:
            record = self._require(record_id)
            self._require_owner(record, caller, "revoke access to")
            
            if grantee in record.shared_with:
                record.shared_with.remove(grantee)
                record.updated_at = self._now(not_before=record.updated_at)
                logger.info(
                    "record_access_revoked",
                    record_id=record_id,
                    grantee=grantee.value,
                )
            return record.snapshot()
    
    def verify_index(self) -> None:
        """
        Check that the owner index and the record map agree.
        
        Raises:
            InconsistentStateError: On any dangling, misfiled or missing entry
        """
        with self._lock:
            indexed = set()
            for owner, record_ids in self._index.items():
                for record_id in record_ids:
                    record = self._records.get(record_id)
                    if record is None:
                        raise InconsistentStateError(
                            f"index of {owner} references missing record {record_id}"
                        )
                    if record.owner != owner:
                        raise InconsistentStateError(
                            f"record {record_id} indexed under {owner}, owned by {record.owner}"
                        )
                    indexed.add(record_id)
            
            unindexed = set(self._records) - indexed
            if unindexed:
                raise InconsistentStateError(f"records missing from index: {sorted(unindexed)}")
    
    def clear(self) -> None:
        """Drop all records and index entries."""
        with self._lock:
            self._records.clear()
            self._index.clear()

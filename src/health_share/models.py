"""
Health records and share requests.

Record payloads (vitals, medications, attachments, notes) are carried as-is and
never inspected here.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .identity import Identity


class RecordType(str, Enum):
    """Kinds of health record a patient can store."""
    
    MEDICAL_HISTORY = "MedicalHistory"
    PRESCRIPTION = "Prescription"
    LAB_RESULT = "LabResult"
    VACCINATION = "Vaccination"
    ALLERGY = "Allergy"
    SURGERY = "Surgery"
    CONSULTATION = "Consultation"
    OTHER = "Other"


class ShareStatus(str, Enum):
    """Lifecycle states of a share request."""
    
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    EXPIRED = "Expired"
    
    @property
    def is_terminal(self) -> bool:
        return self is not ShareStatus.PENDING


@dataclass
class HealthRecord:
    """A patient-owned health record and the identities it is shared with."""
    
    id: str
    owner: Identity
    title: str
    description: str
    record_type: RecordType
    payload: Any
    created_at: datetime
    updated_at: datetime
    shared_with: list[Identity] = field(default_factory=list)
    
    @property
    def is_shared(self) -> bool:
        """True while at least one grantee holds read access."""
        return bool(self.shared_with)
    
    def snapshot(self) -> HealthRecord:
        """Detached copy safe to hand to callers."""
        return copy.deepcopy(self)
    
    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner": self.owner.value,
            "title": self.title,
            "description": self.description,
            "record_type": self.record_type.value,
            "payload": copy.deepcopy(self.payload),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "shared_with": [grantee.value for grantee in self.shared_with],
            "is_shared": self.is_shared,
        }


@dataclass(frozen=True)
class RecordPatch:
    """Partial update of a record; fields left as ``None`` are not touched."""
    
    title: str | None = None
    description: str | None = None
    payload: Any = None


@dataclass
class ShareRequest:
    """Patient proposal to give a provider read access to some records."""
    
    id: str
    patient: Identity
    provider: Identity
    record_ids: list[str]
    requested_at: datetime
    expires_at: datetime
    message: str = ""
    status: ShareStatus = ShareStatus.PENDING
    decided_at: datetime | None = None
    
    def is_past_due(self, now: datetime) -> bool:
        """Check if the request can no longer be approved at *now*."""
        return now > self.expires_at
    
    def snapshot(self) -> ShareRequest:
        return copy.deepcopy(self)
    
    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "patient": self.patient.value,
            "provider": self.provider.value,
            "record_ids": list(self.record_ids),
            "requested_at": self.requested_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "message": self.message,
            "status": self.status.value,
            "decided_at": self.decided_at.isoformat() if self.decided_at else None,
        }

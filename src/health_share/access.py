"""
Read/write authorization for health records.

Both predicates look only at the record passed in. Callers must fetch the
current record on every check; results are never cached because ownership
and grants change between calls.
"""

from __future__ import annotations

from .identity import Identity
from .models import HealthRecord


def can_read(record: HealthRecord, identity: Identity) -> bool:
    """Owner and current grantees may read."""
    return identity == record.owner or identity in record.shared_with


def can_write(record: HealthRecord, identity: Identity) -> bool:
    """Only the owner may modify, share or delete."""
    return identity == record.owner

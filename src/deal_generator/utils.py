"""
Identifier helpers for the Deal Generator.

Deals that exist only locally (created during a run, not yet pushed to the
CRM) need a stable key before they get a CRM id. Both the local keys and the
ids handed out by the in-memory deal manager are UUIDv7, so they sort by
creation time.

fastuuid.UUID is a Rust-backed type that is NOT isinstance-compatible with
uuid.UUID, so uuid7() roundtrips through the string representation.
"""

from uuid import UUID

import fastuuid


def uuid7() -> UUID:
    """Generate a UUIDv7 (time-sortable) as a stdlib uuid.UUID."""
    return UUID(str(fastuuid.uuid7()))


def new_local_key() -> str:
    """Key for a deal that has no CRM id yet."""
    return f'local_{uuid7().hex[-16:]}'


def new_deal_id() -> str:
    """CRM-style id for a deal created by the in-memory deal manager."""
    return str(uuid7())

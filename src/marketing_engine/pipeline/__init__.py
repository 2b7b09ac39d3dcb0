"""
Marketing engine pipeline components.

Currently the contact reconciler: normalization of license and transaction
contacts, alias-aware duplicate merging, and output validation.
"""

from .contacts import (
    generate_contacts,
    merge_contact_properties,
    merge_duplicate_contacts,
    normalize_contacts,
)

__all__ = [
    'generate_contacts',
    'merge_contact_properties',
    'merge_duplicate_contacts',
    'normalize_contacts',
]

"""
Data models for the Marketing Engine.

Provides the marketplace source records (License, Transaction) and the
contact models used by the contact reconciler.
"""

from .contact import Contact, ContactRecord, ContactType, GeneratedContact
from .records import (
    EVAL_LICENSE_TYPES,
    ContactDetails,
    ContactInfo,
    License,
    PartnerDetails,
    PurchaseDetails,
    Record,
    SaleType,
    Transaction,
)

__all__ = [
    # Source records
    'License',
    'Transaction',
    'Record',
    'SaleType',
    'ContactInfo',
    'ContactDetails',
    'PartnerDetails',
    'PurchaseDetails',
    'EVAL_LICENSE_TYPES',
    # Contacts
    'Contact',
    'ContactRecord',
    'ContactType',
    'GeneratedContact',
]

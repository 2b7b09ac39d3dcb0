"""
Data models for the Deal Generator.

Provides the Deal entity (with its immutable DealData snapshot and stage
enum) and the deal-relevant event types derived from related record sets.
"""

from .deal import Deal, DealData, DealStage, diff_deal_data
from .events import (
    DealRelevantEvent,
    EvalEvent,
    PurchaseEvent,
    RefundEvent,
    RelatedLicenseSet,
    RelatedRecordGroup,
    RenewalEvent,
    UpgradeEvent,
    abbr_event_details,
)

__all__ = [
    # Deal entity
    'Deal',
    'DealData',
    'DealStage',
    'diff_deal_data',
    # Events
    'DealRelevantEvent',
    'EvalEvent',
    'PurchaseEvent',
    'RenewalEvent',
    'UpgradeEvent',
    'RefundEvent',
    'RelatedRecordGroup',
    'RelatedLicenseSet',
    'abbr_event_details',
]

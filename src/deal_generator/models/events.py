"""
Deal-relevant events.

A related record set (every license and transaction believed to belong to one
commercial relationship) is interpreted as a chronological list of events.
Each event carries the set it came from plus the records that triggered it:

- EvalEvent: one or more evaluation licenses
- PurchaseEvent: a first paid license and/or a New transaction
- RenewalEvent / UpgradeEvent: a Renewal / Upgrade transaction
- RefundEvent: one or more Refund transactions
"""

from dataclasses import dataclass, field
from typing import Any, Literal

from marketing_engine.models.records import License, Transaction


@dataclass(frozen=True)
class RelatedRecordGroup:
    """Licenses and at most one transaction for the same commercial relationship."""

    licenses: tuple[License, ...]
    transaction: Transaction | None = None


# All groups of one relationship over time, as produced by the license matcher
RelatedLicenseSet = list[RelatedRecordGroup]


@dataclass(frozen=True)
class EvalEvent:
    groups: RelatedLicenseSet
    licenses: tuple[License, ...]
    type: Literal['eval'] = field(default='eval', init=False)


@dataclass(frozen=True)
class PurchaseEvent:
    groups: RelatedLicenseSet
    licenses: tuple[License, ...]
    transaction: Transaction | None
    type: Literal['purchase'] = field(default='purchase', init=False)


@dataclass(frozen=True)
class RenewalEvent:
    groups: RelatedLicenseSet
    transaction: Transaction
    type: Literal['renewal'] = field(default='renewal', init=False)


@dataclass(frozen=True)
class UpgradeEvent:
    groups: RelatedLicenseSet
    transaction: Transaction
    type: Literal['upgrade'] = field(default='upgrade', init=False)


@dataclass(frozen=True)
class RefundEvent:
    groups: RelatedLicenseSet
    refunded_txs: tuple[Transaction, ...]
    type: Literal['refund'] = field(default='refund', init=False)


DealRelevantEvent = EvalEvent | PurchaseEvent | RenewalEvent | UpgradeEvent | RefundEvent


def abbr_event_details(event: DealRelevantEvent) -> dict[str, Any]:
    """Short description of an event for log messages."""
    details: dict[str, Any] = {'type': event.type}
    if isinstance(event, (EvalEvent, PurchaseEvent)):
        details['lics'] = [lic.addon_license_id for lic in event.licenses]
    if isinstance(event, PurchaseEvent) and event.transaction:
        details['txs'] = [event.transaction.transaction_id]
    elif isinstance(event, (RenewalEvent, UpgradeEvent)):
        details['txs'] = [event.transaction.transaction_id]
    elif isinstance(event, RefundEvent):
        details['txs'] = [tx.transaction_id for tx in event.refunded_txs]
    return details

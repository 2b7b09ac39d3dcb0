"""
Event classifier.

Interprets a related license set (all groups the license matcher believes
belong to one commercial relationship) as a chronological list of
deal-relevant events.

Records are walked in date order (licenses by maintenance start date,
transactions by sale date; licenses first on the same day):
- consecutive evaluation licenses collapse into one EvalEvent, unless a
  purchase follows them directly: then they ride along in that purchase's
  licenses, so the purchase converts the evaluation deal instead of leaving a
  second deal behind
- a paid license with no New transaction becomes a PurchaseEvent on its own
- a New transaction becomes a PurchaseEvent carrying the licenses it belongs to
- Renewal / Upgrade transactions become RenewalEvent / UpgradeEvent
- consecutive Refund transactions collapse into one RefundEvent

A purchase never carries licenses of an earlier purchase; each sale keeps
finding its own deal.
"""

from collections.abc import Iterable

import structlog

from marketing_engine.models.records import License, Record, Transaction

from ..errors import EventClassificationError
from ..models.events import (
    DealRelevantEvent,
    EvalEvent,
    PurchaseEvent,
    RefundEvent,
    RelatedLicenseSet,
    RenewalEvent,
    UpgradeEvent,
)

logger = structlog.get_logger(__name__)


def _record_date(record: Record) -> str:
    if isinstance(record, Transaction):
        return record.purchase_details.sale_date
    return record.maintenance_start_date or record.last_updated


class EventGenerator:
    """Turns related license sets into ordered deal-relevant events."""

    def interpret_all(self, license_sets: Iterable[RelatedLicenseSet]) -> list[DealRelevantEvent]:
        """Events for every related license set, set by set."""
        events: list[DealRelevantEvent] = []
        for license_set in license_sets:
            events.extend(self.interpret(license_set))
        return events

    def interpret(self, license_set: RelatedLicenseSet) -> list[DealRelevantEvent]:
        """
        Events for a single related license set, in chronological order.

        Raises:
            EventClassificationError: The set holds no license and no transaction
        """
        licenses: dict[str, License] = {}
        transactions: dict[str, Transaction] = {}
        for group in license_set:
            for license in group.licenses:
                licenses.setdefault(license.addon_license_id, license)
            if group.transaction:
                tx_key = f'{group.transaction.transaction_id}:{group.transaction.sale_type}'
                transactions.setdefault(tx_key, group.transaction)

        if not licenses and not transactions:
            raise EventClassificationError('Related license set is empty')

        purchased_license_ids = {
            tx.addon_license_id for tx in transactions.values() if tx.sale_type == 'New'
        }

        timeline: list[tuple[str, int, Record]] = [
            (_record_date(lic), 0, lic) for lic in licenses.values()
        ]
        timeline.extend((_record_date(tx), 1, tx) for tx in transactions.values())
        timeline.sort(key=lambda item: (item[0], item[1]))

        events: list[DealRelevantEvent] = []
        pending_evals: list[License] = []
        pending_refunds: list[Transaction] = []

        def flush() -> None:
            if pending_evals:
                events.append(EvalEvent(groups=license_set, licenses=tuple(pending_evals)))
                pending_evals.clear()
            if pending_refunds:
                events.append(RefundEvent(groups=license_set, refunded_txs=tuple(pending_refunds)))
                pending_refunds.clear()

        def purchase(own: list[License], transaction: Transaction | None) -> None:
            # evaluations directly before a purchase belong to it
            related = pending_evals + [lic for lic in own if lic not in pending_evals]
            pending_evals.clear()
            flush()
            events.append(PurchaseEvent(
                groups=license_set,
                licenses=tuple(related),
                transaction=transaction,
            ))

        for _, _, record in timeline:
            if isinstance(record, License):
                if record.is_eval:
                    if pending_refunds:
                        flush()
                    pending_evals.append(record)
                elif record.addon_license_id not in purchased_license_ids:
                    purchase([record], None)
                continue

            if record.sale_type == 'Refund':
                if pending_evals:
                    flush()
                pending_refunds.append(record)
            elif record.sale_type == 'New':
                purchase(
                    [lic for lic in licenses.values() if lic.addon_license_id == record.addon_license_id],
                    record,
                )
            else:
                flush()
                if record.sale_type == 'Renewal':
                    events.append(RenewalEvent(groups=license_set, transaction=record))
                else:
                    events.append(UpgradeEvent(groups=license_set, transaction=record))

        flush()

        logger.debug(
            'event_generator.interpreted',
            licenses=len(licenses),
            transactions=len(transactions),
            events=[event.type for event in events],
        )
        return events

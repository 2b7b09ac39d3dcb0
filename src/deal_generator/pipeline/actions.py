"""
Deal action generator.

Turns the chronological event list of a run into deal actions:
- create: no existing deal matched the event
- update: an existing deal's properties change
- noop: an existing deal matched but nothing changes

Each event type has its own policy for which records to search deals by and
which stage to set (see ActionGenerator). When a search finds more than one
deal, the duplicates are resolved on the spot: one deal is kept, the others
are evicted from the deal manager and recorded for deletion.

Deals are never mutated here. Per-run state (pending deal data, which event
last touched each deal) lives in a GenerationRun created per call, so one
generator can serve several runs.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

import structlog

from marketing_engine.models.records import License, Record

from ..config import DealConfig
from ..models.deal import Deal, DealData, DealStage, diff_deal_data
from ..models.events import (
    DealRelevantEvent,
    EvalEvent,
    PurchaseEvent,
    RefundEvent,
    RelatedLicenseSet,
    RenewalEvent,
    UpgradeEvent,
    abbr_event_details,
)
from .records import deal_creation_properties, updated_deal_data

if TYPE_CHECKING:
    from ..manager import DealManager

logger = structlog.get_logger(__name__)


# =============================================================================
# Actions
# =============================================================================


@dataclass
class CreateDealAction:
    """Create a new deal with the given properties."""

    groups: RelatedLicenseSet
    properties: DealData
    type: Literal['create'] = field(default='create', init=False)


@dataclass
class UpdateDealAction:
    """
    Update an existing deal.

    properties holds only the changed properties; data is the deal's full
    data once the update is applied.
    """

    groups: RelatedLicenseSet
    deal: Deal
    properties: dict[str, Any]
    data: DealData
    type: Literal['update'] = field(default='update', init=False)


@dataclass
class NoDealAction:
    """An existing deal matched and needs no change."""

    groups: RelatedLicenseSet
    deal: Deal
    data: DealData
    type: Literal['noop'] = field(default='noop', init=False)


Action = CreateDealAction | UpdateDealAction | NoDealAction


# =============================================================================
# Per-run state
# =============================================================================


@dataclass
class GenerationRun:
    """
    State of a single generate_from() call.

    handled_deals maps a deal key to the first event that selected the deal;
    pending maps a deal key to its data as changed by this run's actions.
    """

    handled_deals: dict[str, DealRelevantEvent] = field(default_factory=dict)
    pending: dict[str, DealData] = field(default_factory=dict)

    def current_data(self, deal: Deal) -> DealData:
        return self.pending.get(deal.key, deal.data)

    def is_eval(self, deal: Deal) -> bool:
        return self.current_data(deal).deal_stage == DealStage.EVAL

    def record_seen(self, deal: Deal, event: DealRelevantEvent) -> None:
        """Remember which event selected a deal; report a second selection."""
        first_event = self.handled_deals.get(deal.key)
        if first_event is None:
            self.handled_deals[deal.key] = event
            return
        logger.error(
            'action_generator.updating_deal_twice',
            first_event=abbr_event_details(first_event),
            current_event=abbr_event_details(event),
            deal={'id': deal.id, 'data': self.current_data(deal).model_dump(mode='json')},
        )


# =============================================================================
# ActionGenerator
# =============================================================================


class ActionGenerator:
    """
    Generates deal actions from deal-relevant events.

    Responsibilities:
    - Find the existing deal for each event via the deal manager
    - Resolve duplicate deals found by a single search
    - Decide create / update / noop per event type
    - Report deals selected by more than one event in the same run
    """

    def __init__(
        self,
        deal_manager: DealManager,
        delete_active_duplicates: bool | None = None,
    ):
        """
        Initialize the generator.

        Args:
            deal_manager: Live deal collection to search and evict duplicates from
            delete_active_duplicates: Also delete duplicates that have activity
                when several matched deals do (default: DealConfig)
        """
        self.deal_manager = deal_manager
        self.delete_active_duplicates = (
            delete_active_duplicates
            if delete_active_duplicates is not None
            else DealConfig.DELETE_ACTIVE_DUPLICATES
        )

    def generate_from(self, events: Iterable[DealRelevantEvent]) -> list[Action]:
        """
        Generate the actions for a run.

        Args:
            events: Events in chronological order (not re-sorted)

        Returns:
            Actions in event order
        """
        run = GenerationRun()
        actions: list[Action] = []
        event_count = 0
        for event in events:
            event_count += 1
            actions.extend(self._actions_for(run, event))

        counts = Counter(action.type for action in actions)
        logger.info(
            'action_generator.generated',
            events=event_count,
            creates=counts['create'],
            updates=counts['update'],
            noops=counts['noop'],
        )
        return actions

    def _actions_for(self, run: GenerationRun, event: DealRelevantEvent) -> list[Action]:
        if isinstance(event, EvalEvent):
            return [self._action_for_eval(run, event)]
        if isinstance(event, PurchaseEvent):
            return [self._action_for_purchase(run, event)]
        if isinstance(event, (RenewalEvent, UpgradeEvent)):
            return [self._action_for_renewal(run, event)]
        if isinstance(event, RefundEvent):
            return self._actions_for_refund(run, event)
        raise TypeError(f'Unknown event type: {type(event).__name__}')

    def _action_for_eval(self, run: GenerationRun, event: EvalEvent) -> Action:
        deal = self.single_deal(self.deal_manager.get_deals_for_records(event.licenses))
        if deal is not None:
            run.record_seen(deal, event)

        latest_license = event.licenses[-1]
        eval_stage = (
            DealStage.EVAL
            if any(lic.active for lic in event.licenses)
            else DealStage.CLOSED_LOST
        )

        if deal is None:
            return _make_create_action(
                event,
                latest_license,
                deal_stage=eval_stage,
                addon_license_id=latest_license.addon_license_id,
                transaction_id=None,
            )
        if run.is_eval(deal):
            return _make_update_action(run, event, deal, latest_license, eval_stage)
        return _make_update_action(run, event, deal, latest_license)

    def _action_for_purchase(self, run: GenerationRun, event: PurchaseEvent) -> Action:
        records_to_search: list[Record] = list(event.licenses)
        if event.transaction:
            records_to_search.insert(0, event.transaction)
        deal = self.single_deal(self.deal_manager.get_deals_for_records(records_to_search))
        if deal is not None:
            run.record_seen(deal, event)

        if deal is not None:
            record = event.transaction or _latest_license(event)
            deal_stage = DealStage.CLOSED_WON if run.is_eval(deal) else None
            return _make_update_action(run, event, deal, record, deal_stage)
        if event.transaction:
            return _make_create_action(
                event,
                event.transaction,
                deal_stage=DealStage.CLOSED_WON,
                addon_license_id=event.transaction.addon_license_id,
                transaction_id=event.transaction.transaction_id,
            )
        license = _latest_license(event)
        return _make_create_action(
            event,
            license,
            deal_stage=DealStage.CLOSED_WON,
            addon_license_id=license.addon_license_id,
            transaction_id=None,
        )

    def _action_for_renewal(
        self,
        run: GenerationRun,
        event: RenewalEvent | UpgradeEvent,
    ) -> Action:
        deal = self.single_deal(self.deal_manager.get_deals_for_records([event.transaction]))
        if deal is not None:
            run.record_seen(deal, event)
            return _make_update_action(run, event, deal, event.transaction)
        return _make_create_action(
            event,
            event.transaction,
            deal_stage=DealStage.CLOSED_WON,
            addon_license_id=event.transaction.addon_license_id,
            transaction_id=event.transaction.transaction_id,
        )

    def _actions_for_refund(self, run: GenerationRun, event: RefundEvent) -> list[Action]:
        deals = self.deal_manager.get_deals_for_records(event.refunded_txs)
        for deal in deals.values():
            run.record_seen(deal, event)

        return [
            _make_update_action(run, event, deal, None, DealStage.CLOSED_LOST)
            for deal in deals.values()
            if run.current_data(deal).deal_stage != DealStage.CLOSED_LOST
        ]

    def single_deal(self, found_deals: dict[str, Deal]) -> Deal | None:
        """
        Pick the one deal to use from a search result, resolving duplicates.

        With several matches, the deals with activity decide:
        - none: keep the first match, delete the rest
        - one: keep it, delete the rest
        - several: keep the first, warn that the others can't be resolved
          automatically, and delete the rest (only the inactive ones when
          delete_active_duplicates is off)

        Deleted deals are evicted from the deal manager and recorded in its
        duplicates_to_delete ledger against the kept deal.

        Returns:
            The deal to use, or None when nothing matched
        """
        deals = list(found_deals.values())
        if not deals:
            return None
        if len(deals) == 1:
            return deals[0]

        important = [deal for deal in deals if deal.has_activity]
        if not important:
            keep, *to_delete = deals
        else:
            keep = important[0]
            if len(important) > 1:
                logger.warning(
                    'action_generator.unresolvable_duplicates',
                    message="Found duplicates that can't be auto-deleted.",
                    deals=[deal.summary() for deal in important],
                )
            if self.delete_active_duplicates:
                to_delete = [deal for deal in deals if deal.key != keep.key]
            else:
                to_delete = [deal for deal in deals if not deal.has_activity]

        self.deal_manager.remove_locally(to_delete)
        for deal in to_delete:
            self.deal_manager.duplicates_to_delete.setdefault(deal.key, set()).add(keep.key)

        logger.info(
            'action_generator.duplicates_resolved',
            kept=keep.key,
            deleted=[deal.key for deal in to_delete],
        )
        return keep


# =============================================================================
# Action construction
# =============================================================================


def _make_create_action(
    event: DealRelevantEvent,
    record: Record,
    deal_stage: DealStage,
    addon_license_id: str | None,
    transaction_id: str | None,
) -> CreateDealAction:
    return CreateDealAction(
        groups=event.groups,
        properties=deal_creation_properties(
            record,
            deal_stage=deal_stage,
            addon_license_id=addon_license_id,
            transaction_id=transaction_id,
        ),
    )


def _make_update_action(
    run: GenerationRun,
    event: DealRelevantEvent,
    deal: Deal,
    record: Record | None,
    deal_stage: DealStage | None = None,
) -> UpdateDealAction | NoDealAction:
    """
    Compute a deal's new data and diff it against its last synced snapshot.

    The stage is applied first, then the record's properties. The result is
    kept as the deal's pending data for the rest of the run.
    """
    data = run.current_data(deal)
    if deal_stage is not None:
        data = data.model_copy(update={'deal_stage': deal_stage})
    if record is not None:
        data = updated_deal_data(data, record)
    run.pending[deal.key] = data

    changes = diff_deal_data(deal.synced, data)
    if not changes:
        return NoDealAction(groups=event.groups, deal=deal, data=data)
    return UpdateDealAction(groups=event.groups, deal=deal, properties=changes, data=data)


def _latest_license(event: PurchaseEvent) -> License:
    """License with the most recent maintenance start date (first one on ties)."""
    return sorted(event.licenses, key=lambda lic: lic.maintenance_start_date, reverse=True)[0]

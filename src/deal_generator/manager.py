"""
Deal lookup and local deal bookkeeping.

DealManager is the narrow interface the action generator needs from whatever
holds the CRM's deals: lookup by record, local eviction of duplicates, and the
duplicates-to-delete ledger shared with the generator.

MemoryDealManager is the in-memory implementation used for local runs and
tests. It also accepts the generator's actions, which is the only point where
deal data is actually changed.

Key design decisions:
- Deals are looked up by lookup key: addon_license_id for license-only deals,
  addon_license_id[transaction_id] for deals tied to a transaction
- Several deals may share a lookup key; that is how CRM duplicates show up
- All collections are keyed by Deal.key, never by object identity
"""

from collections.abc import Iterable
from typing import Protocol

import structlog

from marketing_engine.models.records import Record, Transaction

from .errors import DealManagerError
from .models.deal import Deal, DealData, DealStage
from .pipeline.actions import Action, CreateDealAction
from .utils import new_deal_id

logger = structlog.get_logger(__name__)


def record_lookup_key(record: Record) -> str:
    """Lookup key of the deal a record belongs to."""
    if isinstance(record, Transaction):
        return f'{record.addon_license_id}[{record.transaction_id}]'
    return record.addon_license_id


def deal_lookup_key(data: DealData) -> str | None:
    """Lookup key of a deal, from its identity properties."""
    if not data.addon_license_id:
        return None
    if data.transaction_id:
        return f'{data.addon_license_id}[{data.transaction_id}]'
    return data.addon_license_id


class DealManager(Protocol):
    """What the action generator needs from the live deal collection."""

    # deleted deal key -> keys of the deals it duplicated
    duplicates_to_delete: dict[str, set[str]]

    def get_deals_for_records(self, records: Iterable[Record]) -> dict[str, Deal]:
        """Deals matching any of the records, keyed by deal key, in lookup order."""
        ...

    def remove_locally(self, deals: Iterable[Deal]) -> None:
        """Evict deals from the live collection."""
        ...


class MemoryDealManager:
    """
    In-memory deal collection.

    Holds the live deals, indexes them by lookup key, and applies the actions
    produced by an ActionGenerator run. Deals evicted as duplicates are kept
    in `removed` so the sync layer can delete them from the CRM.
    """

    def __init__(self, deals: Iterable[Deal] = ()):
        self._deals: dict[str, Deal] = {}
        self._index: dict[str, dict[str, Deal]] = {}
        self.removed: dict[str, Deal] = {}
        self.duplicates_to_delete: dict[str, set[str]] = {}
        for deal in deals:
            self.add(deal)

    @property
    def deals(self) -> list[Deal]:
        return list(self._deals.values())

    def get(self, key: str) -> Deal | None:
        return self._deals.get(key)

    def add(self, deal: Deal) -> None:
        """Add a deal to the live collection."""
        self._deals[deal.key] = deal
        lookup_key = deal_lookup_key(deal.data)
        if lookup_key:
            self._index.setdefault(lookup_key, {})[deal.key] = deal

    def get_deals_for_records(self, records: Iterable[Record]) -> dict[str, Deal]:
        found: dict[str, Deal] = {}
        for record in records:
            found.update(self._index.get(record_lookup_key(record), {}))
        return found

    def remove_locally(self, deals: Iterable[Deal]) -> None:
        for deal in deals:
            self._deals.pop(deal.key, None)
            lookup_key = deal_lookup_key(deal.data)
            if lookup_key and lookup_key in self._index:
                self._index[lookup_key].pop(deal.key, None)
                if not self._index[lookup_key]:
                    del self._index[lookup_key]
            self.removed[deal.key] = deal

    def delete_duplicates(self) -> list[Deal]:
        """Forget evicted duplicates, as the sync layer does once it deleted them in the CRM."""
        deleted = list(self.removed.values())
        self.removed.clear()
        self.duplicates_to_delete.clear()
        return deleted

    def apply(self, actions: Iterable[Action]) -> list[Deal]:
        """
        Accept a run's actions as if the CRM had applied them.

        Creates get a fresh id; updates and noops replace the deal's data and
        synced snapshot (actions carry the full resulting data, so applying
        them in order leaves each deal in its final state). Actions for deals
        evicted as duplicates later in the run are skipped.

        Returns:
            The deals that were created

        Raises:
            DealManagerError: An action refers to a deal this manager never held
        """
        created: list[Deal] = []
        for action in actions:
            if isinstance(action, CreateDealAction):
                deal = Deal(
                    id=new_deal_id(),
                    data=action.properties,
                    synced=action.properties,
                    has_activity=action.properties.deal_stage != DealStage.EVAL,
                )
                self.add(deal)
                created.append(deal)
                continue

            key = action.deal.key
            if key in self.removed:
                logger.debug('deal_manager.skipped_removed_deal', deal_id=key, action=action.type)
                continue
            deal = self._deals.get(key)
            if deal is None:
                raise DealManagerError(
                    'Action refers to an unknown deal',
                    context={'deal_key': key, 'action': action.type},
                )
            deal.data = action.data
            deal.synced = action.data
            if action.data.deal_stage != DealStage.EVAL:
                deal.has_activity = True

        logger.info(
            'deal_manager.applied',
            created=len(created),
            live_deals=len(self._deals),
            removed=len(self.removed),
        )
        return created

"""
Engine runner.

Wires one marketing engine run:
1. Contacts: normalize + merge the license and transaction contacts
2. Events: interpret every related license set as deal events
3. Deals: generate deal actions against the deal manager

Everything is synchronous and in memory. Broken invariants (InvariantError)
propagate to the caller, which owns retries; data-quality problems are only
logged by the stages themselves.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import structlog

from deal_generator.manager import DealManager
from deal_generator.models.events import DealRelevantEvent, RelatedLicenseSet
from deal_generator.pipeline.actions import (
    Action,
    ActionGenerator,
    CreateDealAction,
    UpdateDealAction,
)
from deal_generator.pipeline.events import EventGenerator
from deal_generator.utils import uuid7
from marketing_engine.config import Config
from marketing_engine.logging import PipelineTimer, logging_context
from marketing_engine.models.contact import Contact, GeneratedContact
from marketing_engine.models.records import License, Transaction
from marketing_engine.pipeline.contacts import generate_contacts

logger = structlog.get_logger(__name__)


# =============================================================================
# Input / Result Models
# =============================================================================


@dataclass
class RunInput:
    """Everything one run consumes, already downloaded and grouped."""

    licenses: list[License] = field(default_factory=list)
    transactions: list[Transaction] = field(default_factory=list)
    license_sets: list[RelatedLicenseSet] = field(default_factory=list)
    initial_contacts: list[Contact] = field(default_factory=list)
    partner_domains: set[str] = field(default_factory=set)


@dataclass
class RunResult:
    """
    Aggregate result of one engine run.

    deals_created counts create actions; deals_updated counts every update
    action, even when a later action for the same deal is a noop.
    """

    run_id: str
    contacts: list[GeneratedContact] = field(default_factory=list)
    events: list[DealRelevantEvent] = field(default_factory=list)
    actions: list[Action] = field(default_factory=list)
    duplicates_to_delete: dict[str, set[str]] = field(default_factory=dict)

    # Timing
    started_at: datetime | None = None
    completed_at: datetime | None = None
    stage_timings: dict[str, float] = field(default_factory=dict)

    @property
    def deals_created(self) -> int:
        return sum(1 for action in self.actions if isinstance(action, CreateDealAction))

    @property
    def deals_updated(self) -> int:
        return sum(1 for action in self.actions if isinstance(action, UpdateDealAction))

    @property
    def has_changes(self) -> bool:
        """True when applying this run would change the CRM."""
        return bool(self.deals_created or self.deals_updated or self.duplicates_to_delete)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging."""
        return {
            'run_id': self.run_id,
            'contacts': len(self.contacts),
            'events': len(self.events),
            'actions': len(self.actions),
            'deals_created': self.deals_created,
            'deals_updated': self.deals_updated,
            'duplicates_to_delete': len(self.duplicates_to_delete),
            'stage_timings': self.stage_timings,
        }


# =============================================================================
# EngineRunner
# =============================================================================


class EngineRunner:
    """Runs the contact and deal stages for one set of downloaded records."""

    def __init__(
        self,
        deal_manager: DealManager,
        event_generator: EventGenerator | None = None,
        action_generator: ActionGenerator | None = None,
    ):
        """
        Initialize the runner.

        Args:
            deal_manager: Live deal collection for this run
            event_generator: Event classifier (default: EventGenerator())
            action_generator: Action generator (default: one bound to deal_manager)
        """
        self.deal_manager = deal_manager
        self.event_generator = event_generator or EventGenerator()
        self.action_generator = action_generator or ActionGenerator(deal_manager)

    def run(self, run_input: RunInput) -> RunResult:
        """
        Execute one run.

        Args:
            run_input: Records, related license sets, and initial contacts

        Returns:
            RunResult with contacts, events, actions and duplicate deletions

        Raises:
            InvariantError: A generated contact or alias grouping is malformed
        """
        run_id = str(uuid7())
        timer = PipelineTimer()
        result = RunResult(run_id=run_id, started_at=datetime.now())
        partner_domains = set(run_input.partner_domains) | set(Config.PARTNER_DOMAINS)

        with logging_context(run_id=run_id):
            logger.info(
                'engine.started',
                licenses=len(run_input.licenses),
                transactions=len(run_input.transactions),
                license_sets=len(run_input.license_sets),
            )

            with logging_context(stage='contacts'), timer.stage('contacts'):
                result.contacts = generate_contacts(
                    licenses=run_input.licenses,
                    transactions=run_input.transactions,
                    initial_contacts=run_input.initial_contacts,
                    partner_domains=partner_domains,
                )

            with logging_context(stage='events'), timer.stage('events'):
                result.events = self.event_generator.interpret_all(run_input.license_sets)

            with logging_context(stage='deals'), timer.stage('deals'):
                result.actions = self.action_generator.generate_from(result.events)

            result.duplicates_to_delete = {
                key: set(kept) for key, kept in self.deal_manager.duplicates_to_delete.items()
            }
            result.completed_at = datetime.now()
            result.stage_timings = timer.summary()['stages']

            logger.info('engine.complete', **result.to_dict())

        return result


def run_once(
    deal_manager: DealManager,
    run_input: RunInput,
) -> RunResult:
    """Convenience wrapper: run the engine once with default components."""
    return EngineRunner(deal_manager).run(run_input)


def collect_records(license_sets: Iterable[RelatedLicenseSet]) -> RunInput:
    """Build a RunInput whose licenses and transactions come from the license sets."""
    license_sets = list(license_sets)
    licenses: dict[str, License] = {}
    transactions: dict[tuple[str, str], Transaction] = {}
    for license_set in license_sets:
        for group in license_set:
            for license in group.licenses:
                licenses.setdefault(license.addon_license_id, license)
            if group.transaction:
                tx = group.transaction
                transactions.setdefault((tx.transaction_id, tx.sale_type), tx)
    return RunInput(
        licenses=list(licenses.values()),
        transactions=list(transactions.values()),
        license_sets=license_sets,
    )

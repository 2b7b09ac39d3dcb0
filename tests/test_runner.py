"""
Tests for the engine runner.

Tests cover:
- A full run producing contacts, events and deal actions
- Convergence: applying a run's actions makes the next run a no-op
- Duplicate deletions surfaced in the result
- Broken contact invariants propagating to the caller
- collect_records deduplication

Run with: pytest tests/test_runner.py -v
"""

import pytest
from structlog.testing import capture_logs

from deal_generator.manager import MemoryDealManager, deal_lookup_key
from deal_generator.models.deal import DealStage
from deal_generator.models.events import RelatedRecordGroup
from deal_generator.pipeline.actions import NoDealAction, UpdateDealAction
from engine_runner import EngineRunner, RunInput, RunResult, collect_records, run_once
from marketing_engine.errors import InvariantError


@pytest.fixture
def license_sets(make_license, make_transaction):
    """Two customers: one evaluated then bought and renewed, one evaluation that lapsed."""
    eval_license = make_license('L1', license_type='EVALUATION', start='2023-01-01')
    paid = make_license('L2', start='2023-03-01')
    sale = make_transaction('T1', addon_license_id='L2', sale_date='2023-03-01')
    renewal = make_transaction(
        'T2', addon_license_id='L2', sale_type='Renewal', sale_date='2024-03-01'
    )
    lapsed = make_license(
        'L5',
        license_type='EVALUATION',
        status='inactive',
        start='2023-05-01',
        email='dev@globex.com',
        name='sam lee',
        company='Globex',
    )
    return [
        [
            RelatedRecordGroup(licenses=(eval_license,)),
            RelatedRecordGroup(licenses=(paid,), transaction=sale),
            RelatedRecordGroup(licenses=(paid,), transaction=renewal),
        ],
        [RelatedRecordGroup(licenses=(lapsed,))],
    ]


class TestEngineRunner:
    """Test a single run."""

    def test_first_run(self, license_sets):
        manager = MemoryDealManager()

        result = run_once(manager, collect_records(license_sets))

        assert {c.email for c in result.contacts} == {'tech@acme.com', 'dev@globex.com'}
        assert [event.type for event in result.events] == ['purchase', 'renewal', 'eval']
        assert result.deals_created == 3
        assert result.deals_updated == 0
        assert result.has_changes
        stages = [action.properties.deal_stage for action in result.actions]
        assert stages == [DealStage.CLOSED_WON, DealStage.CLOSED_WON, DealStage.CLOSED_LOST]

    def test_result_metadata(self, license_sets):
        result = run_once(MemoryDealManager(), collect_records(license_sets))

        assert result.run_id
        assert result.started_at <= result.completed_at
        assert set(result.stage_timings) == {'contacts', 'events', 'deals'}
        assert result.to_dict()['deals_created'] == 3

    def test_invariant_error_propagates(self, make_license):
        license = make_license(region='')
        run_input = collect_records([[RelatedRecordGroup(licenses=(license,))]])

        with pytest.raises(InvariantError):
            run_once(MemoryDealManager(), run_input)

    def test_empty_input(self):
        result = run_once(MemoryDealManager(), RunInput())

        assert result.contacts == []
        assert result.actions == []
        assert not result.has_changes


class TestRunResult:
    """Test change detection on a run result."""

    def test_update_followed_by_noop_is_a_change(self, make_deal):
        deal = make_deal('L1', deal_stage=DealStage.EVAL)
        won = deal.data.model_copy(update={'deal_stage': DealStage.CLOSED_WON})
        result = RunResult(
            run_id='run-1',
            actions=[
                UpdateDealAction(
                    groups=[],
                    deal=deal,
                    properties={'deal_stage': DealStage.CLOSED_WON},
                    data=won,
                ),
                NoDealAction(groups=[], deal=deal, data=won),
            ],
        )

        assert result.deals_updated == 1
        assert result.has_changes


def _all_noops(result) -> bool:
    return all(isinstance(action, NoDealAction) for action in result.actions)


class TestConvergence:
    """Test that repeated runs settle."""

    def test_second_run_has_no_changes(self, license_sets):
        manager = MemoryDealManager()
        runner = EngineRunner(manager)
        run_input = collect_records(license_sets)

        first = runner.run(run_input)
        manager.apply(first.actions)
        second = runner.run(run_input)

        assert _all_noops(second)
        assert not second.has_changes
        assert len(manager.deals) == 3

    def test_eval_converted_on_purchase(self, make_license, make_transaction):
        """An evaluation deal from an earlier run becomes the won deal."""
        manager = MemoryDealManager()
        runner = EngineRunner(manager)
        eval_license = make_license('L1', license_type='EVALUATION', start='2023-01-01')

        first = runner.run(collect_records([[RelatedRecordGroup(licenses=(eval_license,))]]))
        manager.apply(first.actions)
        (eval_deal,) = manager.deals

        paid = make_license('L2', start='2023-03-01')
        sale = make_transaction('T1', addon_license_id='L2', sale_date='2023-03-01')
        purchase_input = collect_records([[
            RelatedRecordGroup(licenses=(eval_license,)),
            RelatedRecordGroup(licenses=(paid,), transaction=sale),
        ]])
        second = runner.run(purchase_input)
        manager.apply(second.actions)
        third = runner.run(purchase_input)

        assert second.deals_created == 0
        assert second.deals_updated == 1
        assert manager.deals == [eval_deal]
        assert eval_deal.data.deal_stage == DealStage.CLOSED_WON
        assert _all_noops(third)

    def test_each_sale_keeps_its_own_deal(self, make_license, make_transaction):
        """A later sale neither takes over nor duplicates the earlier sale's deal."""
        manager = MemoryDealManager()
        runner = EngineRunner(manager)
        eval_license = make_license('L1', license_type='EVALUATION', start='2023-01-01')

        first = runner.run(collect_records([[RelatedRecordGroup(licenses=(eval_license,))]]))
        manager.apply(first.actions)

        first_paid = make_license('L2', start='2023-02-01')
        first_sale = make_transaction(
            'T2', addon_license_id='L2', sale_date='2023-02-01', vendor_amount=999.0
        )
        second_paid = make_license('L3', start='2023-03-01')
        second_sale = make_transaction(
            'T3', addon_license_id='L3', sale_date='2023-03-01', vendor_amount=100.0
        )
        sales_input = collect_records([[
            RelatedRecordGroup(licenses=(eval_license,)),
            RelatedRecordGroup(licenses=(first_paid,), transaction=first_sale),
            RelatedRecordGroup(licenses=(second_paid,), transaction=second_sale),
        ]])

        second = runner.run(sales_input)
        manager.apply(second.actions)
        with capture_logs() as logs:
            third = runner.run(sales_input)
        manager.apply(third.actions)

        assert [action.type for action in second.actions] == ['update', 'create']
        assert _all_noops(third)
        assert not third.duplicates_to_delete
        assert not [log for log in logs if log['event'] == 'action_generator.updating_deal_twice']
        amounts = {deal_lookup_key(deal.data): deal.data.amount for deal in manager.deals}
        assert amounts == {'L1': 999.0, 'L3[T3]': 100.0}

    def test_paid_licenses_without_sales_converge(self, make_license):
        manager = MemoryDealManager()
        runner = EngineRunner(manager)
        run_input = collect_records([[
            RelatedRecordGroup(licenses=(make_license('L2', start='2023-02-01'),)),
            RelatedRecordGroup(licenses=(make_license('L3', start='2023-03-01'),)),
        ]])

        first = runner.run(run_input)
        manager.apply(first.actions)
        second = runner.run(run_input)
        manager.apply(second.actions)
        third = runner.run(run_input)

        assert first.deals_created == 2
        assert _all_noops(second)
        assert _all_noops(third)
        assert not second.duplicates_to_delete
        assert sorted(deal.data.addon_license_id for deal in manager.deals) == ['L2', 'L3']

    def test_duplicates_resolved_once(self, license_sets, make_deal):
        first_dup = make_deal('L5', deal_stage=DealStage.EVAL)
        second_dup = make_deal('L5', deal_stage=DealStage.EVAL)
        manager = MemoryDealManager([first_dup, second_dup])
        runner = EngineRunner(manager)
        run_input = collect_records(license_sets)

        first = runner.run(run_input)

        assert first.duplicates_to_delete == {second_dup.key: {first_dup.key}}

        manager.apply(first.actions)
        manager.delete_duplicates()
        second = runner.run(run_input)

        assert _all_noops(second)
        assert not second.has_changes
        assert first_dup.data.deal_stage == DealStage.CLOSED_LOST


class TestCollectRecords:
    """Test building a RunInput from license sets."""

    def test_deduplicates_records(self, make_license, make_transaction):
        license = make_license('L1')
        sale = make_transaction('T1')
        refund = make_transaction('T1', sale_type='Refund', sale_date='2023-03-01')
        sets = iter([
            [RelatedRecordGroup(licenses=(license,), transaction=sale)],
            [RelatedRecordGroup(licenses=(license,), transaction=refund)],
        ])

        run_input = collect_records(sets)

        assert run_input.licenses == [license]
        assert run_input.transactions == [sale, refund]
        assert len(run_input.license_sets) == 2

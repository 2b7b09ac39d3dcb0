"""
Deal pipeline components: event classification, record mapping, and action
generation.

Turns related license sets into chronological deal events, then into the
create / update / noop actions the sync layer applies to the CRM.
"""

from .actions import (
    Action,
    ActionGenerator,
    CreateDealAction,
    GenerationRun,
    NoDealAction,
    UpdateDealAction,
)
from .events import EventGenerator
from .records import deal_creation_properties, updated_deal_data

__all__ = [
    'Action',
    'ActionGenerator',
    'CreateDealAction',
    'UpdateDealAction',
    'NoDealAction',
    'GenerationRun',
    'EventGenerator',
    'deal_creation_properties',
    'updated_deal_data',
]

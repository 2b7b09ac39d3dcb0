"""
Deal Generator

Turns the license and transaction history of each customer into CRM deal
actions, finding existing deals by their marketplace ids and resolving
duplicate deals along the way. Repeated runs over the same history converge
to no changes.
"""

__version__ = '0.1.0'

from .config import DealConfig, deal_config
from .errors import (
    DealGeneratorError,
    DealManagerError,
    EventClassificationError,
)
from .manager import DealManager, MemoryDealManager
from .models import (
    Deal,
    DealData,
    DealRelevantEvent,
    DealStage,
    RelatedLicenseSet,
    RelatedRecordGroup,
)
from .pipeline import (
    Action,
    ActionGenerator,
    CreateDealAction,
    EventGenerator,
    NoDealAction,
    UpdateDealAction,
)

__all__ = [
    # Version
    '__version__',
    # Config
    'DealConfig',
    'deal_config',
    # Errors
    'DealGeneratorError',
    'DealManagerError',
    'EventClassificationError',
    # Deal manager
    'DealManager',
    'MemoryDealManager',
    # Models
    'Deal',
    'DealData',
    'DealStage',
    'DealRelevantEvent',
    'RelatedRecordGroup',
    'RelatedLicenseSet',
    # Pipeline
    'Action',
    'ActionGenerator',
    'CreateDealAction',
    'UpdateDealAction',
    'NoDealAction',
    'EventGenerator',
]

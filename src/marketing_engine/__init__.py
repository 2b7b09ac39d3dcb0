"""
Marketing Engine

Reconciles Atlassian Marketplace license and transaction feeds into CRM
contacts and deals. This base package holds the shared config, error
hierarchy, logging, source record models, and the contact reconciler.
"""

__version__ = '0.1.0'

from .config import Config, config
from .errors import (
    InvariantError,
    MarketingEngineError,
    PipelineError,
)
from .logging import (
    PipelineTimer,
    configure_logging,
    logging_context,
)
from .models import (
    Contact,
    ContactRecord,
    GeneratedContact,
    License,
    Transaction,
)
from .pipeline import generate_contacts, merge_contact_properties

__all__ = [
    # Version
    '__version__',
    # Config
    'Config',
    'config',
    # Logging
    'configure_logging',
    'logging_context',
    'PipelineTimer',
    # Errors
    'MarketingEngineError',
    'PipelineError',
    'InvariantError',
    # Models
    'License',
    'Transaction',
    'Contact',
    'ContactRecord',
    'GeneratedContact',
    # Contacts
    'generate_contacts',
    'merge_contact_properties',
]

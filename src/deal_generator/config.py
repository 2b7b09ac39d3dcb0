"""
Configuration management for the Deal Generator.

Loads DEAL_* settings from environment variables. These control the fixed
properties stamped on every generated deal and how duplicate deals are
resolved.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root (idempotent if already loaded by marketing_engine)
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / '.env'
if _env_file.exists():
    load_dotenv(_env_file)


class DealConfig:
    """Configuration for the Deal Generator, loaded from environment."""

    # Fixed deal properties
    DEAL_ORIGIN: str = os.getenv('DEAL_ORIGIN', 'Atlassian Marketplace')
    DEAL_RELATED_PRODUCTS: str = os.getenv('DEAL_RELATED_PRODUCTS', 'Marketplace Apps')
    DEAL_PIPELINE: str = os.getenv('DEAL_PIPELINE', 'marketplace')
    DEAL_NAME_TEMPLATE: str = os.getenv('DEAL_NAME_TEMPLATE', '{addon_name} at {company}')

    # Duplicate resolution: also delete duplicates that have real activity
    DELETE_ACTIVE_DUPLICATES: bool = (
        os.getenv('DEAL_DELETE_ACTIVE_DUPLICATES', 'true').lower() in ('1', 'true', 'yes')
    )

    # Fields available to DEAL_NAME_TEMPLATE
    NAME_TEMPLATE_FIELDS = frozenset({
        'addon_name',
        'addon_key',
        'addon_license_id',
        'transaction_id',
        'company',
        'country',
        'hosting',
        'tier',
    })

    @classmethod
    def validate(cls) -> list[str]:
        """
        Validate the configuration.

        Returns:
            List of problems found (empty when valid)
        """
        problems = []
        if not cls.DEAL_PIPELINE:
            problems.append('DEAL_PIPELINE is empty')
        try:
            cls.DEAL_NAME_TEMPLATE.format_map({k: '' for k in cls.NAME_TEMPLATE_FIELDS})
        except (KeyError, IndexError, ValueError) as exc:
            problems.append(f'DEAL_NAME_TEMPLATE is invalid: {exc}')
        return problems


# Singleton config instance
deal_config = DealConfig()

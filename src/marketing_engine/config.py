"""
Configuration management for the Marketing Engine.

Loads settings from environment variables with sensible defaults.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / '.env'
if _env_file.exists():
    load_dotenv(_env_file)


def _split_list(value: str) -> list[str]:
    return [item.strip().lower() for item in value.split(',') if item.strip()]


class Config:
    """Configuration settings loaded from environment."""

    # Contacts
    PARTNER_DOMAINS: list[str] = _split_list(os.getenv('PARTNER_DOMAINS', ''))

    # Logging
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')
    LOG_JSON: bool = os.getenv('LOG_JSON', 'false').lower() in ('1', 'true', 'yes')

    @classmethod
    def validate(cls) -> list[str]:
        """
        Validate the configuration.

        Returns:
            List of problems found (empty when valid)
        """
        problems = []
        if cls.LOG_LEVEL.upper() not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            problems.append(f'LOG_LEVEL: unknown level {cls.LOG_LEVEL!r}')
        for domain in cls.PARTNER_DOMAINS:
            if '@' in domain or '.' not in domain:
                problems.append(f'PARTNER_DOMAINS: invalid domain {domain!r}')
        return problems


# Singleton config instance
config = Config()

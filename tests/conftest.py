"""
Pytest configuration and shared fixtures.

Key fixtures:
- make_license: factory for License records
- make_transaction: factory for Transaction records
- make_deal: factory for deals already synced with the CRM
- deal_manager: empty MemoryDealManager

All tests run in memory; no CRM or marketplace access is needed.
"""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

# Load environment variables
from dotenv import load_dotenv

env_file = Path(__file__).parent.parent / '.env'
if env_file.exists():
    load_dotenv(env_file)

from deal_generator.manager import MemoryDealManager
from deal_generator.models.deal import Deal, DealData, DealStage
from marketing_engine.models.records import (
    ContactDetails,
    ContactInfo,
    License,
    PartnerDetails,
    PurchaseDetails,
    Transaction,
)


def _contact_details(
    email: str,
    name: str | None,
    company: str,
    country: str,
    region: str,
    billing_email: str | None,
) -> ContactDetails:
    return ContactDetails(
        company=company,
        country=country,
        region=region,
        technical_contact=ContactInfo(email=email, name=name),
        billing_contact=ContactInfo(email=billing_email) if billing_email else None,
    )


@pytest.fixture
def make_license():
    """Factory for License records with sensible defaults."""

    def _make(
        addon_license_id: str = 'L1',
        license_type: str = 'COMMERCIAL',
        start: str = '2023-01-01',
        status: str = 'active',
        email: str = 'tech@acme.com',
        name: str | None = 'Jo Smith',
        billing_email: str | None = None,
        partner_email: str | None = None,
        hosting: str = 'Cloud',
        tier: str = '10 Users',
        company: str = 'Acme',
        country: str = 'united states',
        region: str = 'Americas',
        last_updated: str | None = None,
    ) -> License:
        return License(
            addon_license_id=addon_license_id,
            license_id=f'SEN-{addon_license_id}',
            addon_key='com.example.app',
            addon_name='Example App',
            hosting=hosting,
            last_updated=last_updated or start,
            license_type=license_type,
            tier=tier,
            maintenance_start_date=start,
            status=status,
            contact_details=_contact_details(
                email, name, company, country, region, billing_email
            ),
            partner_details=(
                PartnerDetails(
                    partner_name='Resellers Inc',
                    billing_contact=ContactInfo(email=partner_email),
                )
                if partner_email
                else None
            ),
        )

    return _make


@pytest.fixture
def make_transaction():
    """Factory for Transaction records with sensible defaults."""

    def _make(
        transaction_id: str = 'T1',
        addon_license_id: str = 'L1',
        sale_type: str = 'New',
        sale_date: str = '2023-02-01',
        vendor_amount: float = 100.0,
        email: str = 'tech@acme.com',
        name: str | None = 'Jo Smith',
        billing_email: str | None = None,
        partner_email: str | None = None,
        hosting: str = 'Cloud',
        tier: str = '10 Users',
        company: str = 'Acme',
        country: str = 'united states',
        region: str = 'Americas',
    ) -> Transaction:
        return Transaction(
            transaction_id=transaction_id,
            addon_license_id=addon_license_id,
            license_id=f'SEN-{addon_license_id}',
            addon_key='com.example.app',
            addon_name='Example App',
            last_updated=sale_date,
            customer_details=_contact_details(
                email, name, company, country, region, billing_email
            ),
            partner_details=(
                PartnerDetails(
                    partner_name='Resellers Inc',
                    billing_contact=ContactInfo(email=partner_email),
                )
                if partner_email
                else None
            ),
            purchase_details=PurchaseDetails(
                sale_date=sale_date,
                sale_type=sale_type,
                tier=tier,
                hosting=hosting,
                vendor_amount=vendor_amount,
                maintenance_start_date=sale_date,
            ),
        )

    return _make


@pytest.fixture
def make_deal():
    """Factory for deals loaded from the CRM (synced == data)."""
    counter = iter(range(1, 10_000))

    def _make(
        addon_license_id: str | None = 'L1',
        transaction_id: str | None = None,
        deal_stage: DealStage | str = DealStage.EVAL,
        has_activity: bool | None = None,
        id: str | None = None,
        **properties,
    ) -> Deal:
        data = DealData(
            addon_license_id=addon_license_id,
            transaction_id=transaction_id,
            deal_stage=deal_stage,
            **properties,
        )
        return Deal.from_crm(
            id=id or f'crm-{next(counter)}',
            data=data,
            has_activity=has_activity,
        )

    return _make


@pytest.fixture
def deal_manager() -> MemoryDealManager:
    """Empty in-memory deal manager."""
    return MemoryDealManager()

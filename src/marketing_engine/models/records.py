"""
License and Transaction models for the marketplace feeds.

Both records arrive fully materialized from the marketplace downloader and are
treated as immutable. They share the same contact block shape:
- technical_contact: always present (email is required)
- billing_contact: optional
- partner_details.billing_contact: optional, set when a partner bought on
  behalf of the customer

Dates are kept as ISO 8601 strings (YYYY-MM-DD), as delivered by the
marketplace, so chronological ordering is plain string ordering.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


SaleType = Literal['New', 'Renewal', 'Upgrade', 'Refund']

# License types that represent an evaluation rather than a paid purchase
EVAL_LICENSE_TYPES = frozenset({
    'EVALUATION',
    'OPEN_SOURCE',
    'DEMONSTRATION',
    'COMMUNITY',
    'DEVELOPER',
})


class ContactInfo(BaseModel):
    """A single person block inside a license or transaction."""

    model_config = ConfigDict(frozen=True)

    email: str = Field(..., description='Contact email (required by the marketplace)')
    name: str | None = Field(default=None, description='Full name as a single string')
    phone: str | None = None
    address1: str | None = None
    address2: str | None = None
    city: str | None = None
    state: str | None = None
    postcode: str | None = None


class ContactDetails(BaseModel):
    """Customer block: company, location, and its contacts."""

    model_config = ConfigDict(frozen=True)

    company: str = ''
    country: str = ''
    region: str = ''
    technical_contact: ContactInfo
    billing_contact: ContactInfo | None = None


class PartnerDetails(BaseModel):
    """Partner (reseller) block."""

    model_config = ConfigDict(frozen=True)

    partner_name: str = ''
    partner_type: str | None = None
    billing_contact: ContactInfo


class License(BaseModel):
    """
    A marketplace license record.

    addon_license_id is the identifier shared with transactions and with CRM
    deals; license_id is the marketplace's own (SEN) identifier.
    """

    model_config = ConfigDict(frozen=True)

    addon_license_id: str
    license_id: str | None = None
    addon_key: str
    addon_name: str = ''
    hosting: str
    last_updated: str
    license_type: str = 'COMMERCIAL'
    tier: str = ''
    maintenance_start_date: str = ''
    maintenance_end_date: str | None = None
    status: Literal['active', 'inactive', 'cancelled'] = 'active'
    contact_details: ContactDetails
    partner_details: PartnerDetails | None = None

    @property
    def active(self) -> bool:
        return self.status == 'active'

    @property
    def is_eval(self) -> bool:
        """True for evaluation, open source and other non-paying license types."""
        return self.license_type.upper() in EVAL_LICENSE_TYPES


class PurchaseDetails(BaseModel):
    """Sale block of a transaction."""

    model_config = ConfigDict(frozen=True)

    sale_date: str
    sale_type: SaleType
    tier: str = ''
    license_type: str = 'COMMERCIAL'
    hosting: str
    billing_period: str = ''
    purchase_price: float = 0.0
    sale_price: float = 0.0
    vendor_amount: float = 0.0
    maintenance_start_date: str = ''
    maintenance_end_date: str | None = None


class Transaction(BaseModel):
    """A marketplace transaction (sale, renewal, upgrade or refund) record."""

    model_config = ConfigDict(frozen=True)

    transaction_id: str
    addon_license_id: str
    license_id: str | None = None
    addon_key: str
    addon_name: str = ''
    last_updated: str = ''
    customer_details: ContactDetails
    partner_details: PartnerDetails | None = None
    purchase_details: PurchaseDetails

    @property
    def sale_type(self) -> SaleType:
        return self.purchase_details.sale_type

    @property
    def hosting(self) -> str:
        return self.purchase_details.hosting


Record = License | Transaction

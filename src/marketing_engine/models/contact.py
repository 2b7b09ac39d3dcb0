"""
Contact models.

- Contact: an existing CRM contact from the initial snapshot. Only the
  primary email and its recorded alias emails matter to the reconciler.
- GeneratedContact: the final contact produced by a run.
- ContactRecord: GeneratedContact plus the transient `updated` timestamp used
  only while merging duplicates. It never leaves the reconciler.
"""

from typing import Literal

from pydantic import BaseModel, Field


ContactType = Literal['Customer', 'Partner']


class Contact(BaseModel):
    """Existing CRM contact, as loaded from the initial snapshot."""

    id: str | None = Field(default=None, description='CRM identifier')
    email: str = Field(..., description='Primary email')
    other_emails: list[str] = Field(
        default_factory=list, description='Alias emails known to belong to this contact'
    )
    contact_type: ContactType | None = None


class GeneratedContact(BaseModel):
    """
    A contact derived from licenses and transactions.

    Required strings (email, contact_type, country, region, hosting) must be
    non-empty; optional strings are either None or non-empty.
    """

    email: str
    firstname: str | None = None
    lastname: str | None = None
    phone: str | None = None
    city: str | None = None
    state: str | None = None
    country: str
    region: str
    hosting: str
    contact_type: ContactType
    company_id: str | None = None

    def problems(self) -> list[str]:
        """List every broken field invariant (empty when valid)."""
        problems = []
        for name in ('email', 'contact_type', 'country', 'region', 'hosting'):
            if not getattr(self, name):
                problems.append(f'{name} is empty')
        for name in ('firstname', 'lastname', 'phone', 'city', 'state'):
            value = getattr(self, name)
            if value is not None and len(value) == 0:
                problems.append(f'{name} is an empty string')
        return problems


class ContactRecord(GeneratedContact):
    """Normalized contact carrying the timestamp of its source record."""

    updated: str

    def to_generated(self) -> GeneratedContact:
        """Drop transient merge-only fields."""
        return GeneratedContact(**self.model_dump(exclude={'updated'}))

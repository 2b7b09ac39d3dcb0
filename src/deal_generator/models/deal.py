"""
Deal and DealData models for the Deal Generator.

A Deal is the CRM entity tracking one marketplace licensing opportunity.
Its properties are split into:
- DealData: user-editable properties synced to the CRM (frozen snapshot)
- Computed: has_activity, derived from CRM stage history, never diffed

Key design decisions:
- DealData is immutable. A deal holds the snapshot it was last synced with
  and its current data; changes are computed as a diff between the two
- A deal is identified by key: its CRM id, or a local key until created
- deal_stage keeps unknown CRM stages as plain strings
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils import new_local_key


class DealStage(str, Enum):
    """Deal stage lifecycle."""

    EVAL = 'eval'
    QUALIFICATION = 'qualification'
    PROPOSAL = 'proposal'
    NEGOTIATION = 'negotiation'
    CLOSED_WON = 'closed_won'
    CLOSED_LOST = 'closed_lost'


class DealData(BaseModel):
    """User-editable deal properties, as synced to the CRM."""

    model_config = ConfigDict(frozen=True)

    # Lookup identity (never changed by updates)
    addon_license_id: str | None = Field(default=None, description='Marketplace addon license id')
    transaction_id: str | None = Field(default=None, description='Marketplace transaction id')

    deal_stage: DealStage | str = Field(..., description='Current deal stage')
    deal_name: str = ''
    close_date: str = Field(default='', description='ISO date the deal closed or evaluation began')
    amount: float | None = Field(default=None, description='Vendor amount; None for evaluations')
    country: str = ''
    hosting: str = ''
    app: str = Field(default='', description='Addon key')
    license_tier: str = ''
    origin: str = ''
    related_products: str = ''
    pipeline: str = ''

    @field_validator('deal_stage', mode='before')
    @classmethod
    def _known_stage(cls, value: Any) -> Any:
        try:
            return DealStage(value)
        except ValueError:
            return value


def diff_deal_data(old: DealData | None, new: DealData) -> dict[str, Any]:
    """
    Properties of new that differ from old.

    Only DealData fields are compared; computed deal fields never show up as
    changes. A deal that was never synced (old is None) reports every field.
    """
    new_props = new.model_dump()
    if old is None:
        return new_props
    old_props = old.model_dump()
    return {k: v for k, v in new_props.items() if old_props.get(k) != v}


class Deal(BaseModel):
    """
    Deal entity.

    `synced` is the snapshot last written to (or read from) the CRM; `data` is
    the current state. They only diverge once a deal manager applies an action.
    """

    id: str | None = Field(default=None, description='CRM id, None until created')
    data: DealData
    synced: DealData | None = Field(default=None, description='Last synced snapshot')
    has_activity: bool = Field(
        default=False, description='Deal has left the eval stage at least once'
    )
    local_key: str = Field(default_factory=new_local_key)

    @classmethod
    def from_crm(cls, id: str, data: DealData, has_activity: bool | None = None) -> 'Deal':
        """Build a deal loaded from the CRM; its data is already synced."""
        if has_activity is None:
            has_activity = data.deal_stage != DealStage.EVAL
        return cls(id=id, data=data, synced=data, has_activity=has_activity)

    @property
    def key(self) -> str:
        return self.id or self.local_key

    def is_eval(self) -> bool:
        return self.data.deal_stage == DealStage.EVAL

    def has_property_changes(self) -> bool:
        return bool(self.get_property_changes())

    def get_property_changes(self) -> dict[str, Any]:
        return diff_deal_data(self.synced, self.data)

    def summary(self) -> dict[str, Any]:
        """Id and data, for diagnostics."""
        return {'id': self.id, **self.data.model_dump(mode='json')}

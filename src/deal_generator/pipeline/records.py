"""
Deal record mapper.

Translates a license or transaction into deal properties:
- deal_creation_properties: the full DealData for a new deal
- updated_deal_data: a deal's data recomputed from a newer record, keeping
  its stage and lookup identity

Both are pure functions of their inputs (plus DealConfig), so the same record
and stage always produce the same properties.
"""

from marketing_engine.models.records import License, Record, Transaction

from ..config import DealConfig
from ..models.deal import DealData, DealStage


class _BlankDict(dict):
    """format_map() source that renders unknown fields as empty strings."""

    def __missing__(self, key: str) -> str:
        return ''


def _deal_name(record: Record) -> str:
    if isinstance(record, Transaction):
        details = record.customer_details
        fields = {
            'transaction_id': record.transaction_id,
            'hosting': record.purchase_details.hosting,
            'tier': record.purchase_details.tier,
        }
    else:
        details = record.contact_details
        fields = {
            'transaction_id': '',
            'hosting': record.hosting,
            'tier': record.tier,
        }
    fields.update(
        addon_name=record.addon_name or record.addon_key,
        addon_key=record.addon_key,
        addon_license_id=record.addon_license_id,
        company=details.company,
        country=details.country,
    )
    return DealConfig.DEAL_NAME_TEMPLATE.format_map(_BlankDict(fields)).strip()


def _record_properties(record: Record, deal_stage: DealStage | str) -> dict:
    """Properties that come from the record itself."""
    if isinstance(record, Transaction):
        close_date = record.purchase_details.sale_date
        hosting = record.purchase_details.hosting
        tier = record.purchase_details.tier
        country = record.customer_details.country
        amount = record.purchase_details.vendor_amount
    else:
        close_date = record.maintenance_start_date or record.last_updated
        hosting = record.hosting
        tier = record.tier
        country = record.contact_details.country
        amount = 0.0

    return {
        'deal_name': _deal_name(record),
        'close_date': close_date,
        'amount': None if deal_stage == DealStage.EVAL else amount,
        'country': country,
        'hosting': hosting,
        'app': record.addon_key,
        'license_tier': tier,
        'origin': DealConfig.DEAL_ORIGIN,
        'related_products': DealConfig.DEAL_RELATED_PRODUCTS,
        'pipeline': DealConfig.DEAL_PIPELINE,
    }


def deal_creation_properties(
    record: Record,
    deal_stage: DealStage,
    addon_license_id: str | None,
    transaction_id: str | None,
) -> DealData:
    """
    Build the properties of a new deal.

    Args:
        record: License or transaction the deal is created from
        deal_stage: Stage of the new deal
        addon_license_id: Lookup id of the new deal
        transaction_id: Lookup transaction id (None for license-only deals)

    Returns:
        Complete DealData for the deal
    """
    return DealData(
        addon_license_id=addon_license_id,
        transaction_id=transaction_id,
        deal_stage=deal_stage,
        **_record_properties(record, deal_stage),
    )


def updated_deal_data(data: DealData, record: License | Transaction) -> DealData:
    """
    Recompute a deal's record-driven properties from a newer record.

    The stage and the lookup ids (addon_license_id, transaction_id) are kept
    as they are. The input is not modified.
    """
    return data.model_copy(update=_record_properties(record, data.deal_stage))

"""
Contact reconciliation.

Builds the final contact set for a run from the license and transaction
feeds:

1. normalize_contacts: one ContactRecord per contact slot (technical, billing,
   partner billing) of every license and transaction
2. merge_duplicate_contacts: group by email, fold known alias emails into
   their primary email, collapse each group with merge_contact_properties
3. generate_contacts: run both steps and check the output invariants

Contacts are rebuilt from scratch every run; the only input carried over is
the initial CRM snapshot, which supplies alias email links.
"""

from collections.abc import Iterable

import structlog

from ..errors import InvariantError
from ..models.contact import Contact, ContactRecord, ContactType, GeneratedContact
from ..models.records import ContactInfo, License, Transaction
from ..utils import capitalize_words, defuse_url_like, non_blank

logger = structlog.get_logger(__name__)


# =============================================================================
# Normalization
# =============================================================================


def _split_name(name: str | None) -> tuple[str, str]:
    """Split on the first space; the remaining non-empty parts form the last name."""
    first, *rest = (name or ' ').split(' ')
    return first, ' '.join(part for part in rest if part)


def _common_fields(info: ContactInfo, partner_domains: set[str]) -> dict:
    first, last = _split_name(info.name)
    first = defuse_url_like(first)
    last = defuse_url_like(last)

    domain = info.email.split('@')[-1].lower()
    contact_type: ContactType = 'Partner' if domain in partner_domains else 'Customer'

    return {
        'email': info.email,
        'firstname': non_blank(capitalize_words(first)),
        'lastname': non_blank(capitalize_words(last)),
        'phone': non_blank(info.phone),
        'city': non_blank(capitalize_words(info.city) if info.city else None),
        'state': non_blank(capitalize_words(info.state) if info.state else None),
        'company_id': None,
        'contact_type': contact_type,
    }


def _license_fields(license: License) -> dict:
    return {
        'country': capitalize_words(license.contact_details.country),
        'region': license.contact_details.region,
        'hosting': license.hosting,
        'updated': license.last_updated,
    }


def _transaction_fields(transaction: Transaction) -> dict:
    return {
        'country': capitalize_words(transaction.customer_details.country),
        'region': transaction.customer_details.region,
        'hosting': transaction.purchase_details.hosting,
        'updated': transaction.purchase_details.sale_date,
    }


def normalize_contacts(
    licenses: Iterable[License],
    transactions: Iterable[Transaction],
    partner_domains: set[str],
) -> list[ContactRecord]:
    """
    Emit a normalized contact for every contact slot of every record.

    Per record: the technical contact (when it has an email), the billing
    contact (when present), and the partner billing contact (when present,
    always typed Partner).

    Args:
        licenses: License records
        transactions: Transaction records
        partner_domains: Lower-cased email domains that belong to partners

    Returns:
        One ContactRecord per emitted slot, in record order
    """
    records: list[ContactRecord] = []

    def emit(info: ContactInfo | None, specific: dict, partner: bool = False) -> None:
        if info is None or not info.email:
            return
        fields = {**_common_fields(info, partner_domains), **specific}
        if partner:
            fields['contact_type'] = 'Partner'
        records.append(ContactRecord(**fields))

    for license in licenses:
        specific = _license_fields(license)
        emit(license.contact_details.technical_contact, specific)
        emit(license.contact_details.billing_contact, specific)
        if license.partner_details:
            emit(license.partner_details.billing_contact, specific, partner=True)

    for transaction in transactions:
        specific = _transaction_fields(transaction)
        emit(transaction.customer_details.technical_contact, specific)
        emit(transaction.customer_details.billing_contact, specific)
        if transaction.partner_details:
            emit(transaction.partner_details.billing_contact, specific, partner=True)

    return records


# =============================================================================
# Merging
# =============================================================================


def merge_contact_properties(
    primary_email: str,
    contacts: list[ContactRecord],
) -> ContactRecord:
    """
    Collapse a group of records for the same person into one.

    The most recently updated record wins and is renamed to primary_email.
    Missing or weaker fields are then filled from the rest of the group,
    scanned newest first:
    - contact_type: Customer is promoted to Partner if any record is Partner
    - name: the first record with both names, else first/last independently
    - phone: the first non-empty phone
    - address: the first record with both city and state, else independently

    Args:
        primary_email: Email the merged contact is filed under
        contacts: Records of the group (not modified)

    Returns:
        The merged record
    """
    ordered = sorted(contacts, key=lambda c: c.updated, reverse=True)
    updates: dict = {'email': primary_email}
    ideal = ordered[0]

    if ideal.contact_type == 'Customer' and any(c.contact_type == 'Partner' for c in ordered):
        updates['contact_type'] = 'Partner'

    has_name = next((c for c in ordered if c.firstname and c.lastname), None)
    if has_name:
        updates['firstname'] = has_name.firstname
        updates['lastname'] = has_name.lastname
    else:
        has_first = next((c for c in ordered if c.firstname), None)
        if has_first:
            updates['firstname'] = has_first.firstname
        has_last = next((c for c in ordered if c.lastname), None)
        if has_last:
            updates['lastname'] = has_last.lastname

    has_phone = next((c for c in ordered if c.phone), None)
    if has_phone:
        updates['phone'] = has_phone.phone

    has_address = next((c for c in ordered if c.city and c.state), None)
    if has_address:
        updates['city'] = has_address.city
        updates['state'] = has_address.state
    else:
        has_city = next((c for c in ordered if c.city), None)
        if has_city:
            updates['city'] = has_city.city
        has_state = next((c for c in ordered if c.state), None)
        if has_state:
            updates['state'] = has_state.state

    return ideal.model_copy(update=updates)


def merge_duplicate_contacts(
    contacts: list[ContactRecord],
    initial_contacts: Iterable[Contact],
) -> list[GeneratedContact]:
    """
    Group records by email and merge each group into a single contact.

    Groups keyed by a known alias email are folded into the group of the
    contact's primary email.

    Raises:
        InvariantError: An alias email has a group but its primary email does not
    """
    groups: dict[str, list[ContactRecord]] = {}
    for contact in contacts:
        groups.setdefault(contact.email, []).append(contact)

    for initial in initial_contacts:
        # a contact may list its own primary email among its aliases
        aliases = [other for other in initial.other_emails if other != initial.email]
        if not aliases:
            continue

        primary_group = groups.get(initial.email)
        if primary_group is not None:
            for other in aliases:
                other_group = groups.pop(other, None)
                if other_group:
                    primary_group.extend(other_group)
        else:
            orphans = [other for other in aliases if other in groups]
            if orphans:
                raise InvariantError(
                    'Alias email group found without a primary email group',
                    context={'primary_email': initial.email, 'alias_emails': orphans},
                )

    merged: list[GeneratedContact] = []
    for primary_email, group in groups.items():
        contact = merge_contact_properties(primary_email, group) if len(group) > 1 else group[0]
        merged.append(contact.to_generated())

    logger.debug(
        'contacts.merged',
        records=len(contacts),
        contacts=len(merged),
    )
    return merged


def generate_contacts(
    licenses: Iterable[License],
    transactions: Iterable[Transaction],
    initial_contacts: Iterable[Contact],
    partner_domains: Iterable[str],
) -> list[GeneratedContact]:
    """
    Build the final contact list for a run.

    Args:
        licenses: License records
        transactions: Transaction records
        initial_contacts: Contacts already known to the CRM (for alias emails)
        partner_domains: Email domains belonging to partners

    Returns:
        One GeneratedContact per distinct person, in no guaranteed order

    Raises:
        InvariantError: A generated contact breaks the field invariants
    """
    domains = {domain.lower() for domain in partner_domains}
    all_contacts = normalize_contacts(licenses, transactions, domains)
    final_contacts = merge_duplicate_contacts(all_contacts, initial_contacts)

    for contact in final_contacts:
        problems = contact.problems()
        if problems:
            raise InvariantError(
                'Generated contact is malformed',
                context={'email': contact.email, 'problems': problems},
            )

    logger.info(
        'contacts.generated',
        normalized=len(all_contacts),
        generated=len(final_contacts),
    )
    return final_contacts

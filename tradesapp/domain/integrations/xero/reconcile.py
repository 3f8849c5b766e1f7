"""
Bulk reconciliation of Xero contacts into local customer / supplier rows

Each remote contact is matched against the user's rows in a fixed order:
1. a row already linked to the same ContactID is updated in place
2. otherwise an unlinked row with the same name (case-insensitive) is linked;
   a linked name leaves the lookup so it cannot match a second contact
3. otherwise the contact is inserted as a new row

Updates are committed first, then all new rows go in one batch insert. If
that insert fails every queued row is counted as skipped.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import client as xero_client
from .client import XeroRequestContext
from .exceptions import PersistenceError
from .schemas import SyncResult, XeroContact

logger = logging.getLogger(__name__)

FieldMapper = Callable[[XeroContact], dict[str, Any]]


@dataclass
class ReconciliationPlan:
    """What to do with each remote contact; rows are not touched while planning"""

    updates: list[tuple[Any, XeroContact]] = field(default_factory=list)
    links: list[tuple[Any, XeroContact]] = field(default_factory=list)
    inserts: list[XeroContact] = field(default_factory=list)
    skipped: list[XeroContact] = field(default_factory=list)


def plan_reconciliation(remote_contacts: list[XeroContact], local_rows: list) -> ReconciliationPlan:
    """Match remote contacts to local rows (anything with id, name, xero_contact_id)"""
    by_external_id = {row.xero_contact_id: row for row in local_rows if row.xero_contact_id}
    by_name: dict[str, Any] = {}
    for row in local_rows:
        if not row.xero_contact_id and row.name:
            by_name.setdefault(row.name.lower(), row)

    plan = ReconciliationPlan()
    for contact in remote_contacts:
        if not contact.contact_id:
            plan.skipped.append(contact)
            continue

        linked = by_external_id.get(contact.contact_id)
        if linked is not None:
            plan.updates.append((linked, contact))
            continue

        name_match = by_name.pop(contact.name.lower(), None)
        if name_match is not None:
            plan.links.append((name_match, contact))
        else:
            plan.inserts.append(contact)
    return plan


def apply_reconciliation(
    db: Session,
    model,
    user_id: str,
    plan: ReconciliationPlan,
    to_fields: FieldMapper,
    total: int,
    insert_defaults: Optional[dict] = None,
) -> SyncResult:
    result = SyncResult(total=total, skipped=len(plan.skipped))

    for row, contact in plan.updates:
        for key, value in to_fields(contact).items():
            setattr(row, key, value)

    for row, contact in plan.links:
        row.xero_contact_id = contact.contact_id
        # Linking keeps the local name and never blanks user-entered fields
        for key, value in to_fields(contact).items():
            if key != "name" and value:
                setattr(row, key, value)

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Failed to update {model.__tablename__} from Xero for user {user_id}: {e}")
        raise PersistenceError(f"Failed to update {model.__tablename__}") from e
    result.updated = len(plan.updates) + len(plan.links)

    if plan.inserts:
        logger.info(f"Inserting {len(plan.inserts)} new {model.__tablename__}...")
        new_rows = [
            model(
                user_id=user_id,
                xero_contact_id=contact.contact_id,
                **to_fields(contact),
                **(insert_defaults or {}),
            )
            for contact in plan.inserts
        ]
        try:
            db.add_all(new_rows)
            db.commit()
            result.created = len(new_rows)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Batch insert of {model.__tablename__} failed: {e}")
            result.skipped += len(new_rows)

    return result


async def sync_contacts_into(
    db: Session,
    ctx: XeroRequestContext,
    model,
    predicate: Callable[[XeroContact], bool],
    to_fields: FieldMapper,
    insert_defaults: Optional[dict] = None,
) -> SyncResult:
    """Pull every Xero contact and reconcile the matching ones into ``model``"""
    all_contacts = await xero_client.get_contacts(db, ctx)
    contacts = [contact for contact in all_contacts if predicate(contact)]
    logger.info(
        f"📊 Found {len(all_contacts)} contacts in Xero, processing {len(contacts)} for {model.__tablename__}"
    )

    local_rows = db.query(model).filter(model.user_id == ctx.user_id).all()
    plan = plan_reconciliation(contacts, local_rows)
    result = apply_reconciliation(
        db, model, ctx.user_id, plan, to_fields, total=len(contacts), insert_defaults=insert_defaults
    )
    logger.info(
        f"✅ {model.__tablename__} sync complete: {result.created} created, "
        f"{result.updated} updated, {result.skipped} skipped"
    )
    return result

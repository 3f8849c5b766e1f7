"""Xero repository - Token store and local default contact/item rows"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ....models_xero import XeroContact, XeroItem, XeroToken
from .exceptions import PersistenceError

logger = logging.getLogger(__name__)


class XeroTokenRepository:
    """Repository for the per-user Xero token row"""

    @staticmethod
    def get_token(db: Session, user_id: str) -> Optional[XeroToken]:
        """Get the token row for a user (at most one exists)"""
        return db.query(XeroToken).filter(XeroToken.user_id == user_id).first()

    @staticmethod
    def create_token(db: Session, user_id: str, **token_data) -> XeroToken:
        """Create the token row when the user begins setup"""
        token = XeroToken(user_id=user_id, **token_data)
        db.add(token)
        db.commit()
        db.refresh(token)
        return token

    @staticmethod
    def update_token(db: Session, token: XeroToken, **updates) -> XeroToken:
        """Write the given fields in one update; None clears a field"""
        for key, value in updates.items():
            if hasattr(token, key):
                setattr(token, key, value)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Failed to update Xero token for user {token.user_id}: {e}")
            raise PersistenceError("Failed to save Xero token") from e
        db.refresh(token)
        return token

    @staticmethod
    def save_refreshed_tokens(
        db: Session,
        user_id: str,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
    ) -> None:
        """Persist a renewed token pair; raises PersistenceError if the write fails"""
        try:
            token = db.query(XeroToken).filter(XeroToken.user_id == user_id).first()
            if not token:
                raise PersistenceError("Xero token row disappeared during refresh")
            token.access_token = access_token
            token.refresh_token = refresh_token
            token.expires_at = expires_at
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Failed to save refreshed Xero token for user {user_id}: {e}")
            raise PersistenceError("Failed to save refreshed Xero token") from e

    @staticmethod
    def delete_token(db: Session, token: XeroToken) -> None:
        """Delete the token row together with the user's cached Xero rows"""
        user_id = token.user_id
        db.query(XeroContact).filter(XeroContact.user_id == user_id).delete(synchronize_session=False)
        db.query(XeroItem).filter(XeroItem.user_id == user_id).delete(synchronize_session=False)
        db.delete(token)
        db.commit()


class XeroCacheRepository:
    """Repository for the locally cached default contact and items"""

    @staticmethod
    def get_contacts(db: Session, user_id: str) -> list[XeroContact]:
        return (
            db.query(XeroContact)
            .filter(XeroContact.user_id == user_id)
            .order_by(XeroContact.name)
            .all()
        )

    @staticmethod
    def get_items(db: Session, user_id: str) -> list[XeroItem]:
        return db.query(XeroItem).filter(XeroItem.user_id == user_id).order_by(XeroItem.code).all()

    @staticmethod
    def get_default_contact(db: Session, user_id: str) -> Optional[XeroContact]:
        return (
            db.query(XeroContact)
            .filter(XeroContact.user_id == user_id, XeroContact.is_default.is_(True))
            .first()
        )

    @staticmethod
    def get_default_labour_item(db: Session, user_id: str) -> Optional[XeroItem]:
        return (
            db.query(XeroItem)
            .filter(XeroItem.user_id == user_id, XeroItem.is_default_labour.is_(True))
            .first()
        )

    @staticmethod
    def get_default_materials_item(db: Session, user_id: str) -> Optional[XeroItem]:
        return (
            db.query(XeroItem)
            .filter(XeroItem.user_id == user_id, XeroItem.is_default_materials.is_(True))
            .first()
        )

    @staticmethod
    def upsert_default_contact(db: Session, user_id: str, xero_contact_id: str, **values) -> XeroContact:
        """
        Write the default contact keyed on (user_id, xero_contact_id) and make
        it the only row of the user with is_default set.
        """
        values["is_default"] = True
        try:
            row = _upsert(db, XeroContact, user_id, "xero_contact_id", xero_contact_id, values)
            (
                db.query(XeroContact)
                .filter(
                    XeroContact.user_id == user_id,
                    XeroContact.id != row.id,
                    XeroContact.is_default.is_(True),
                )
                .update({XeroContact.is_default: False}, synchronize_session=False)
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Failed to save Xero contact {xero_contact_id} for user {user_id}: {e}")
            raise PersistenceError(f"Failed to save contact: {e.__class__.__name__}") from e
        db.refresh(row)
        return row

    @staticmethod
    def upsert_default_item(
        db: Session, user_id: str, xero_item_id: str, default_flag: str, **values
    ) -> XeroItem:
        """
        Write a default item keyed on (user_id, xero_item_id) and make it the
        only row of the user carrying ``default_flag``.
        """
        flag_column = getattr(XeroItem, default_flag)
        values[default_flag] = True
        try:
            row = _upsert(db, XeroItem, user_id, "xero_item_id", xero_item_id, values)
            (
                db.query(XeroItem)
                .filter(XeroItem.user_id == user_id, XeroItem.id != row.id, flag_column.is_(True))
                .update({flag_column: False}, synchronize_session=False)
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Failed to save Xero item {xero_item_id} for user {user_id}: {e}")
            raise PersistenceError(f"Failed to save item: {e.__class__.__name__}") from e
        db.refresh(row)
        return row


def _upsert(db: Session, model, user_id: str, key_field: str, key_value: str, values: dict):
    """Insert or update the row of ``model`` keyed on (user_id, key_field).

    Every value is written whether or not the row existed. A unique-constraint
    conflict from a concurrent writer is resolved by re-reading and updating.
    """
    key_column = getattr(model, key_field)

    def find():
        return db.query(model).filter(model.user_id == user_id, key_column == key_value).first()

    row = find()
    if row is None:
        row = model(user_id=user_id, **{key_field: key_value})
        db.add(row)
    for key, value in values.items():
        setattr(row, key, value)

    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        logger.info(f"Concurrent insert of {model.__tablename__} {key_value}, updating existing row")
        row = find()
        if row is None:
            raise
        for key, value in values.items():
            setattr(row, key, value)
        db.flush()
    return row

"""Xero connection service - Token record management for the settings page"""

import logging
from typing import Optional

import httpx
from fastapi import HTTPException
from sqlalchemy.orm import Session

from ....models import Profile
from ....models_xero import XeroToken
from ....security_utils import mask_sensitive_data
from .repository import XeroCacheRepository, XeroTokenRepository
from .schemas import XeroContactOut, XeroItemOut, XeroTokenCreate, XeroTokenOut, XeroTokenUpdate
from .token_service import revoke_refresh_token

logger = logging.getLogger(__name__)


def token_to_response(token: XeroToken) -> XeroTokenOut:
    """Token record without secrets: client secret masked, tokens omitted"""
    return XeroTokenOut(
        id=token.id,
        user_id=token.user_id,
        client_id=token.client_id,
        client_secret=mask_sensitive_data(token.client_secret),
        scope=token.scope,
        expires_at=token.expires_at,
        tenant_id=token.tenant_id,
        tenant_name=token.tenant_name,
        tenant_type=token.tenant_type,
        connected=bool(token.access_token and token.refresh_token and token.tenant_id),
        created_at=token.created_at,
        updated_at=token.updated_at,
    )


class XeroConnectionService:
    """Service layer for the user's Xero token record"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = XeroTokenRepository()

    def get_token(self, user: Profile) -> Optional[XeroToken]:
        return self.repo.get_token(self.db, user.id)

    def create_token(self, data: XeroTokenCreate, user: Profile) -> XeroToken:
        """Start setup with the user's Xero app credentials (one record per user)"""
        if self.repo.get_token(self.db, user.id):
            raise HTTPException(status_code=409, detail="Xero credentials already exist. Update them instead.")

        logger.info(f"📥 Creating Xero token record for user_id: {user.id}")
        return self.repo.create_token(
            self.db,
            user.id,
            client_id=data.client_id.strip(),
            client_secret=data.client_secret.strip(),
            scope=data.scope,
        )

    def update_token(self, data: XeroTokenUpdate, user: Profile) -> XeroToken:
        token = self.repo.get_token(self.db, user.id)
        if not token:
            raise HTTPException(status_code=404, detail="Xero token not found")
        return self.repo.update_token(self.db, token, **data.model_dump(exclude_unset=True))

    async def disconnect(self, user: Profile, http: httpx.AsyncClient) -> None:
        """Revoke at Xero (best effort) and delete the record plus cached rows"""
        token = self.repo.get_token(self.db, user.id)
        if not token:
            raise HTTPException(status_code=404, detail="Xero token not found")

        if token.refresh_token and token.client_id and token.client_secret:
            await revoke_refresh_token(http, token.client_id, token.client_secret, token.refresh_token)

        self.repo.delete_token(self.db, token)
        logger.info(f"✅ Xero disconnected for user_id: {user.id}")

    def get_cached_contacts(self, user: Profile) -> dict:
        contacts = [XeroContactOut.model_validate(c) for c in XeroCacheRepository.get_contacts(self.db, user.id)]
        return {
            "contacts": contacts,
            "default_contact": next((c for c in contacts if c.is_default), None),
        }

    def get_cached_items(self, user: Profile) -> dict:
        items = [XeroItemOut.model_validate(i) for i in XeroCacheRepository.get_items(self.db, user.id)]
        return {
            "items": items,
            "default_labour_item": next((i for i in items if i.is_default_labour), None),
            "default_materials_item": next((i for i in items if i.is_default_materials), None),
        }

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from ..auth import AuthIdentity, get_auth_identity, get_profile_for_identity
from ..database import get_db
from ..models import Profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


class ProfileUpsert(BaseModel):
    email: Optional[str] = None
    full_name: Optional[str] = None
    trade: Optional[str] = None
    company_name: Optional[str] = None


class ProfileResponse(BaseModel):
    id: str
    auth_provider: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    trade: Optional[str] = None
    company_name: Optional[str] = None
    phone: Optional[str] = None
    default_labour_rate: float
    default_markup_pct: float
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


@router.get("/profile")
async def get_profile(
    identity: AuthIdentity = Depends(get_auth_identity),
    db: Session = Depends(get_db),
):
    """Fetch the signed-in user's profile"""
    profile = get_profile_for_identity(db, identity)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return {"profile": ProfileResponse.model_validate(profile)}


@router.post("/profile")
async def upsert_profile(
    data: ProfileUpsert,
    identity: AuthIdentity = Depends(get_auth_identity),
    db: Session = Depends(get_db),
):
    """Create the profile on first sign-in, refresh name/email afterwards"""
    profile = get_profile_for_identity(db, identity)
    if profile:
        if data.email is not None:
            profile.email = data.email
        if data.full_name is not None:
            profile.full_name = data.full_name
        db.commit()
        db.refresh(profile)
        return {"profile": ProfileResponse.model_validate(profile), "created": False}

    profile = Profile(
        auth_provider=identity.provider,
        auth_provider_id=identity.provider_id,
        email=data.email,
        full_name=data.full_name,
        trade=data.trade or "general",
        company_name=data.company_name,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    logger.info(f"✅ Created profile {profile.id} for {identity.provider} sign-in")
    return {"profile": ProfileResponse.model_validate(profile), "created": True}

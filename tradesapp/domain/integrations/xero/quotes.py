"""Xero quotes - Build a Xero quote from a job's labour and material lines"""

import logging
from datetime import date, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ....models import Job
from ....models_xero import XeroItem
from ...jobs.repository import JobRepository
from . import client as xero_client
from .client import XeroRequestContext
from .exceptions import NotConnected, PersistenceError
from .repository import XeroCacheRepository
from .schemas import XeroLineItem
from .token_service import utcnow

logger = logging.getLogger(__name__)

DEFAULT_SALES_ACCOUNT_CODE = "200"
QUOTE_VALIDITY_DAYS = 30


def _material_description(name: str, supplier: Optional[str]) -> str:
    return f"{name} ({supplier})" if supplier else name


def build_quote_line_items(job: Job, labour_item: XeroItem, materials_item: XeroItem) -> list[XeroLineItem]:
    """One line per labour entry, then one per material"""
    lines = []
    for labour in job.labour:
        lines.append(
            XeroLineItem(
                item_code=labour_item.code,
                description=labour.description,
                quantity=labour.hours,
                unit_amount=labour.rate,
                account_code=labour_item.sales_account_code or DEFAULT_SALES_ACCOUNT_CODE,
            )
        )
    for material in job.materials:
        lines.append(
            XeroLineItem(
                item_code=materials_item.code,
                description=_material_description(material.name, material.supplier),
                quantity=material.qty,
                unit_amount=material.sell_price,
                account_code=materials_item.sales_account_code or DEFAULT_SALES_ACCOUNT_CODE,
            )
        )
    return lines


def build_quote_payload(job: Job, contact_id: str, lines: list[XeroLineItem], today: date) -> dict:
    # Amounts are exclusive of GST
    return {
        "Contact": {"ContactID": contact_id},
        "LineItems": [line.to_xero() for line in lines],
        "Date": today.isoformat(),
        "ExpiryDate": (today + timedelta(days=QUOTE_VALIDITY_DAYS)).isoformat(),
        "Reference": f"Job: {job.title}",
        "Title": job.title,
        "Summary": job.description or "",
        "LineAmountTypes": "Exclusive",
    }


async def create_quote_for_job(db: Session, ctx: XeroRequestContext, job_id: str) -> dict:
    """Create a Xero quote for a job and remember its id/number on the job"""
    if ctx.token is None:
        raise NotConnected()

    job = JobRepository.get_job(db, job_id, ctx.user_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    contact = XeroCacheRepository.get_default_contact(db, ctx.user_id)
    labour_item = XeroCacheRepository.get_default_labour_item(db, ctx.user_id)
    materials_item = XeroCacheRepository.get_default_materials_item(db, ctx.user_id)
    if not contact or not labour_item or not materials_item:
        raise HTTPException(status_code=400, detail="Please sync Xero data first (contacts and items)")

    lines = build_quote_line_items(job, labour_item, materials_item)
    if not lines:
        raise HTTPException(status_code=400, detail="No materials or labour to quote. Please add items first.")

    payload = build_quote_payload(job, contact.xero_contact_id, lines, utcnow().date())
    quote = await xero_client.create_quote(db, ctx, payload)
    logger.info(f"✅ Xero quote {quote.quote_number} created for job {job.id}")

    try:
        job.xero_quote_id = quote.quote_id
        job.xero_quote_number = quote.quote_number
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"❌ Quote {quote.quote_id} created in Xero but not saved on job {job.id}: {e}")
        raise PersistenceError("Quote created in Xero but could not be saved on the job") from e

    return {
        "success": True,
        "quote_id": quote.quote_id,
        "quote_number": quote.quote_number,
        "total": quote.total,
    }

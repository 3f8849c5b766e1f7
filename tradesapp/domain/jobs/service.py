"""Job service - Business logic for jobs, labour and materials"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Job, JobLabour, JobMaterial, Profile
from ..customers.repository import CustomerRepository
from .repository import JobRepository
from .schemas import JobCreate, LabourCreate, MaterialCreate

logger = logging.getLogger(__name__)


class JobService:
    """Service layer for job business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = JobRepository()

    def get_jobs(self, user: Profile, status: str | None = None) -> list[Job]:
        return self.repo.get_jobs(self.db, user.id, status)

    def get_job(self, job_id: str, user: Profile) -> Job:
        job = self.repo.get_job(self.db, job_id, user.id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        return job

    def create_job(self, data: JobCreate, user: Profile) -> Job:
        if data.customer_id and not CustomerRepository.get_customer_by_id(self.db, data.customer_id, user.id):
            raise HTTPException(status_code=404, detail="Customer not found")

        job_data = data.model_dump()
        job_data["labour_rate"] = data.labour_rate or user.default_labour_rate
        logger.info(f"📥 Creating job '{data.title}' for user_id: {user.id}")
        return self.repo.create_job(self.db, user.id, **job_data)

    def add_labour(self, job_id: str, data: LabourCreate, user: Profile) -> JobLabour:
        """Add a labour entry; rate falls back to the job rate, then the profile default"""
        job = self.get_job(job_id, user)
        rate = data.rate if data.rate is not None else (job.labour_rate or user.default_labour_rate)
        return self.repo.add_labour(
            self.db,
            job,
            description=data.description,
            hours=data.hours,
            rate=rate,
            total=round(data.hours * rate, 2),
        )

    def add_material(self, job_id: str, data: MaterialCreate, user: Profile) -> JobMaterial:
        """Add a material; sell price defaults to buy price plus markup"""
        job = self.get_job(job_id, user)
        markup_pct = data.markup_pct if data.markup_pct is not None else user.default_markup_pct
        sell_price = data.sell_price
        if sell_price is None:
            sell_price = round(data.buy_price * (1 + markup_pct / 100), 2)
        return self.repo.add_material(
            self.db,
            job,
            name=data.name,
            supplier=data.supplier,
            qty=data.qty,
            unit=data.unit,
            buy_price=data.buy_price,
            markup_pct=markup_pct,
            sell_price=sell_price,
            line_total=round(data.qty * sell_price, 2),
        )

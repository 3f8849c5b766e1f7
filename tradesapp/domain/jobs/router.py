"""Job router - FastAPI endpoints for jobs"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_profile
from ...database import get_db
from ...models import Profile
from .schemas import (
    JobCreate,
    JobDetailResponse,
    JobResponse,
    LabourCreate,
    LabourResponse,
    MaterialCreate,
    MaterialResponse,
)
from .service import JobService

router = APIRouter(prefix="/jobs", tags=["Jobs"])


def get_job_service(db: Session = Depends(get_db)) -> JobService:
    """Dependency injection for JobService"""
    return JobService(db)


@router.get("", response_model=list[JobResponse])
async def get_jobs(
    status: Optional[str] = Query(None),
    current_user: Profile = Depends(get_current_profile),
    service: JobService = Depends(get_job_service),
):
    return service.get_jobs(current_user, status)


@router.post("", response_model=JobResponse, status_code=201)
async def create_job(
    data: JobCreate,
    current_user: Profile = Depends(get_current_profile),
    service: JobService = Depends(get_job_service),
):
    return service.create_job(data, current_user)


@router.get("/{job_id}", response_model=JobDetailResponse)
async def get_job(
    job_id: str,
    current_user: Profile = Depends(get_current_profile),
    service: JobService = Depends(get_job_service),
):
    """Get a job with its labour and material lines"""
    return service.get_job(job_id, current_user)


@router.post("/{job_id}/labour", response_model=LabourResponse, status_code=201)
async def add_labour(
    job_id: str,
    data: LabourCreate,
    current_user: Profile = Depends(get_current_profile),
    service: JobService = Depends(get_job_service),
):
    return service.add_labour(job_id, data, current_user)


@router.post("/{job_id}/materials", response_model=MaterialResponse, status_code=201)
async def add_material(
    job_id: str,
    data: MaterialCreate,
    current_user: Profile = Depends(get_current_profile),
    service: JobService = Depends(get_job_service),
):
    return service.add_material(job_id, data, current_user)

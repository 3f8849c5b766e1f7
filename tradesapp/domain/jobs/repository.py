"""Job repository - Database operations for jobs and their line entries"""

from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ...models import Job, JobLabour, JobMaterial


class JobRepository:
    """Repository for job database operations"""

    @staticmethod
    def get_jobs(db: Session, user_id: str, status: Optional[str] = None) -> list[Job]:
        query = db.query(Job).filter(Job.user_id == user_id)
        if status:
            query = query.filter(Job.status == status)
        return query.order_by(Job.created_at.desc()).all()

    @staticmethod
    def get_job(db: Session, job_id: str, user_id: str) -> Optional[Job]:
        """Get a job with its labour and material lines"""
        return (
            db.query(Job)
            .options(selectinload(Job.labour), selectinload(Job.materials))
            .filter(Job.id == job_id, Job.user_id == user_id)
            .first()
        )

    @staticmethod
    def create_job(db: Session, user_id: str, **job_data) -> Job:
        job = Job(user_id=user_id, **job_data)
        db.add(job)
        db.commit()
        db.refresh(job)
        return job

    @staticmethod
    def add_labour(db: Session, job: Job, **labour_data) -> JobLabour:
        labour = JobLabour(job_id=job.id, user_id=job.user_id, **labour_data)
        db.add(labour)
        db.commit()
        db.refresh(labour)
        return labour

    @staticmethod
    def add_material(db: Session, job: Job, **material_data) -> JobMaterial:
        material = JobMaterial(job_id=job.id, user_id=job.user_id, **material_data)
        db.add(material)
        db.commit()
        db.refresh(material)
        return material

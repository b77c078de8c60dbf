"""Job and job application data access."""

from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from ..core.enums import ApplicationStatus
from ..models.job import Job, JobApplication
from .base_repository import BaseRepository


class JobRepository(BaseRepository[Job]):
    def __init__(self, db: Session):
        super().__init__(db, Job)


class JobApplicationRepository(BaseRepository[JobApplication]):
    def __init__(self, db: Session):
        super().__init__(db, JobApplication)

    def get_full(self, application_id: str) -> Optional[JobApplication]:
        query = (
            self._build_query()
            .options(
                selectinload(JobApplication.job),
                selectinload(JobApplication.signatures),
                selectinload(JobApplication.messages),
            )
            .filter(JobApplication.id == application_id)
        )
        results = self._execute_query(query)
        return results[0] if results else None

    def find_for_driver(self, job_id: str, driver_id: str) -> Optional[JobApplication]:
        return self.find_one_by(job_id=job_id, driver_id=driver_id)

    def list_for_job(self, job_id: str) -> List[JobApplication]:
        query = (
            self._build_query()
            .filter(JobApplication.job_id == job_id)
            .order_by(JobApplication.created_at.asc())
        )
        return self._execute_query(query)

    def has_accepted_with_owner(self, driver_id: str, owner_id: str) -> bool:
        query = (
            self._build_query()
            .join(Job, Job.id == JobApplication.job_id)
            .filter(
                JobApplication.driver_id == driver_id,
                JobApplication.status == ApplicationStatus.ACCEPTED.value,
                Job.owner_id == owner_id,
            )
        )
        return query.first() is not None

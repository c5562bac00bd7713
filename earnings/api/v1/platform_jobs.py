# earnings/api/v1/platform_jobs.py
from __future__ import annotations

from dataclasses import asdict, is_dataclass

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from earnings.api.deps.auth import require_platform_admin
from earnings.core.scheduled import run_job
from earnings.db.session import get_db
from earnings.models.user import User
from earnings.schemas.jobs import JobRunOut

router = APIRouter(prefix="/platform/jobs", tags=["platform-jobs"])


@router.post("/{job_name}", response_model=JobRunOut)
async def trigger_job(
    job_name: str,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_platform_admin),
):
    """Disabled jobs answer 501 NOT_IMPLEMENTED."""
    result = await run_job(db, job_name)
    return JobRunOut(job=job_name, result=asdict(result) if is_dataclass(result) else {})

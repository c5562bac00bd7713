# earnings/schemas/jobs.py
from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, Field


class JobRunOut(BaseModel):
    job: str
    status: str = "completed"
    result: Dict[str, Any] = Field(default_factory=dict)

"""
Candidate (talent record) data model.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class Candidate(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str
    profile_url: str                     # unique key
    title: Optional[str] = None
    current_company: Optional[str] = None
    skills: set[str] = Field(default_factory=set)
    location: Optional[str] = None
    email: Optional[str] = None
    years_of_experience: Optional[float] = None
    sector: str = "other"
    rating: int = Field(default=3, ge=1, le=5)
    tags: set[str] = Field(default_factory=set)
    source: str = "import"
    created_at: Optional[datetime] = None

    def model_post_init(self, __context):
        if self.created_at is None:
            self.created_at = datetime.now(timezone.utc)

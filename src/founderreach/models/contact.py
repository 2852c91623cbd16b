"""
Contact data models.

Contact is ephemeral: produced by the contact resolver and consumed right
away by the job processor, which copies what it needs onto the Posting.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class Contact(BaseModel):
    name: str
    title: Optional[str] = None
    profile_url: Optional[str] = None
    email: Optional[str] = None
    source: str = "unknown"          # provider that found them


class EmailMatch(BaseModel):
    email: str
    source: str
    score: Optional[int] = None      # provider confidence, when given

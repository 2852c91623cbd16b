"""
Email template data model.

Templates are picked by sector. Body and subject carry {{placeholders}}
that the composer fills in at send time.
"""
from __future__ import annotations

import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Sector(str, Enum):
    FINTECH     = "fintech"
    SAAS        = "saas"
    MARKETPLACE = "marketplace"
    AI          = "ai"
    HEALTHTECH  = "healthtech"
    EDTECH      = "edtech"
    GENERAL     = "general"


class PerformanceMetrics(BaseModel):
    sent: int = 0
    opened: int = 0
    clicked: int = 0
    replied: int = 0

    def _rate(self, count: int) -> Optional[float]:
        return round(count / self.sent, 4) if self.sent else None

    @property
    def open_rate(self) -> Optional[float]:
        return self._rate(self.opened)

    @property
    def click_rate(self) -> Optional[float]:
        return self._rate(self.clicked)

    @property
    def reply_rate(self) -> Optional[float]:
        return self._rate(self.replied)


class EmailTemplate(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str                                   # unique
    sector: Sector = Sector.GENERAL
    subject: str = ""
    body: str = ""
    variables: list[str] = Field(default_factory=lambda: ["ceo_name", "company_name", "candidates"])
    candidates_count: int = 3
    active: bool = True
    performance: PerformanceMetrics = Field(default_factory=PerformanceMetrics)

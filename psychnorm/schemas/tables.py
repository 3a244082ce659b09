from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from psychnorm.services.profile import ExamineeProfile

__all__ = [
    "ProfileIn",
    "NormativeRowOut",
    "NormativeTableOut",
    "TableSummaryOut",
    "CandidateOut",
    "WarningOut",
    "SuggestionsOut",
]


class ProfileIn(BaseModel):
    age: Optional[int] = Field(default=None, ge=0, le=130)
    birth_date: Optional[date] = None
    education: Optional[str] = Field(default=None, max_length=100)
    region: Optional[str] = Field(default=None, max_length=100)
    context: Optional[str] = Field(default=None, max_length=100)
    transit_type: Optional[str] = Field(default=None, max_length=100)

    def to_profile(self) -> ExamineeProfile:
        return ExamineeProfile(
            age=self.age,
            birth_date=self.birth_date,
            education=self.education,
            region=self.region,
            context=self.context,
            transit_type=self.transit_type,
        )


class NormativeRowOut(BaseModel):
    id: int
    category: Optional[str]
    min_value: float
    max_value: float
    percentile: Optional[float]
    classification: str
    iq: Optional[int]
    model_config = {"from_attributes": True}


class NormativeTableOut(BaseModel):
    id: int
    test_type: str
    name: str
    version: str
    criterion: Optional[str]
    description: Optional[str]
    reference_curve: Optional[str]
    evaluation_subtype: Optional[str]
    rows: List[NormativeRowOut] = Field(default_factory=list)
    model_config = {"from_attributes": True}


class TableSummaryOut(BaseModel):
    id: int
    test_type: str
    name: str
    version: str
    criterion: Optional[str]
    model_config = {"from_attributes": True}


class CandidateOut(BaseModel):
    table_id: int
    table_name: str
    score: int
    reasons: List[str]


class WarningOut(BaseModel):
    level: str
    message: str


class SuggestionsOut(BaseModel):
    test_type: str
    suggestions: List[CandidateOut]
    warnings: List[WarningOut]

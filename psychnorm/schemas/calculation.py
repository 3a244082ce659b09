from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from psychnorm.models.enums import LinkageMode
from psychnorm.schemas.tables import CandidateOut, ProfileIn, WarningOut
from psychnorm.services.calculation import CalculationRequest, EvaluationContext

__all__ = [
    "EvaluationContextIn",
    "CalculateRequest",
    "ScoreResultOut",
    "InventoryOut",
    "CalculateResponse",
]


class EvaluationContextIn(BaseModel):
    examinee_id: Optional[int] = Field(default=None, ge=1)
    report_number: Optional[str] = Field(default=None, max_length=50)
    application_date: Optional[date] = None


class CalculateRequest(BaseModel):
    raw_input: Dict[str, Any]
    table_id: Optional[int] = Field(default=None, ge=1)
    profile: Optional[ProfileIn] = None
    linkage_mode: LinkageMode = LinkageMode.unlinked
    evaluation_context: Optional[EvaluationContextIn] = None
    deduct_stock: bool = True

    def to_request(self, client_address: str | None = None) -> CalculationRequest:
        ctx = self.evaluation_context or EvaluationContextIn()
        return CalculationRequest(
            raw_input=self.raw_input,
            profile=self.profile.to_profile() if self.profile else None,
            table_id=self.table_id,
            linkage_mode=self.linkage_mode,
            evaluation=EvaluationContext(
                examinee_id=ctx.examinee_id,
                report_number=ctx.report_number,
                application_date=ctx.application_date,
            ),
            deduct_stock=self.deduct_stock,
            client_address=client_address,
        )


class ScoreResultOut(BaseModel):
    test_type: str
    raw_score: Optional[float]
    percentile: Optional[float]
    classification: str
    status: str
    components: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    extras: Dict[str, Any] = Field(default_factory=dict)


class InventoryOut(BaseModel):
    success: bool
    message: str
    quantity_deducted: Optional[int] = None
    new_balance: Optional[int] = None


class CalculateResponse(BaseModel):
    result: ScoreResultOut
    table_used: str
    table_id: int
    suggestions: List[CandidateOut] = Field(default_factory=list)
    warnings: List[WarningOut] = Field(default_factory=list)
    evaluation_id: Optional[int] = None
    report_number: Optional[str] = None
    saved: bool = False
    anonymous: bool = False
    inventory: Optional[InventoryOut] = None
    stock_exempt: bool = False

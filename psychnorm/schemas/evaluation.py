from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel


class StoredResultOut(BaseModel):
    id: int
    evaluation_id: int
    test_type: str
    raw_score: Optional[float]
    percentile: Optional[float]
    classification: Optional[str]
    raw_input: Optional[Dict[str, Any]]
    components: Optional[Dict[str, Any]]
    normative_table_id: Optional[int]
    normative_table_name: Optional[str]
    created_at: Optional[datetime]
    model_config = {"from_attributes": True}

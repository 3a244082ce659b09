from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel


class StockItemOut(BaseModel):
    id: int
    name: str
    quantity: int
    minimum_quantity: int
    active: bool
    updated_at: Optional[datetime]
    model_config = {"from_attributes": True}

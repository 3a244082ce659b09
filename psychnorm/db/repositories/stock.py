from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from psychnorm.db.repositories.base import Repository
from psychnorm.models import MovementType, StockItem, StockMovement


@dataclass
class StockRepository(Repository[Session]):
    """Stock items and their movement ledger."""

    def find_active_by_name(self, name: str) -> Optional[StockItem]:
        stmt = (
            select(StockItem)
            .where(StockItem.name == name)
            .where(StockItem.active.is_(True))
            .order_by(StockItem.id)
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def decrement_if_available(self, item_id: int, quantity: int) -> bool:
        """Conditional decrement; False when the balance would go negative."""
        result = self.db.execute(
            update(StockItem)
            .where(StockItem.id == item_id)
            .where(StockItem.quantity >= quantity)
            .values(quantity=StockItem.quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)

    def current_quantity(self, item_id: int) -> int:
        value = self.db.execute(select(StockItem.quantity).where(StockItem.id == item_id)).scalar_one()
        return int(value)

    def add_movement(
        self,
        *,
        item_id: int,
        quantity: int,
        movement_type: MovementType,
        notes: str | None,
        owner_id: int | None,
        evaluation_id: int | None,
    ) -> StockMovement:
        signed = -abs(quantity) if movement_type is MovementType.outbound else abs(quantity)
        movement = StockMovement(
            item_id=item_id,
            movement_type=movement_type.value,
            quantity=signed,
            notes=notes,
            owner_id=owner_id,
            evaluation_id=evaluation_id,
        )
        self.db.add(movement)
        self.db.flush()
        return movement

    def list_active(self) -> List[StockItem]:
        stmt = select(StockItem).where(StockItem.active.is_(True)).order_by(StockItem.name)
        return list(self.db.execute(stmt).scalars())

    def list_low_stock(self) -> List[StockItem]:
        stmt = (
            select(StockItem)
            .where(StockItem.active.is_(True))
            .where(StockItem.quantity <= StockItem.minimum_quantity)
            .order_by(StockItem.quantity, StockItem.name)
        )
        return list(self.db.execute(stmt).scalars())

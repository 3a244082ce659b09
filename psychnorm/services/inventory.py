from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from psychnorm.core.logging import get_logger
from psychnorm.core.metrics import inc_counter
from psychnorm.db.repositories import StockRepository
from psychnorm.i18n.pt_messages import InventoryMessages
from psychnorm.models import MovementType, TestType

__all__ = ["Consumption", "CONSUMPTION", "DeductionOutcome", "deduct"]

logger = get_logger("psychnorm.inventory", component="inventory")


@dataclass(frozen=True, slots=True)
class Consumption:
    item_name: str
    sheets: int


CONSUMPTION: Mapping[TestType, Consumption] = {
    TestType.memore: Consumption("Memore - Memória", 1),
    TestType.mig: Consumption("MIG - Avaliação Psicológica", 1),
    TestType.r1: Consumption("R-1 - Raciocínio", 1),
    TestType.ac: Consumption("AC - Atenção Concentrada", 1),
    TestType.beta_iii: Consumption("BETA-III - Raciocínio Matricial", 1),
    TestType.bpa2: Consumption("BPA-2 - Atenção", 1),
    TestType.mvt: Consumption("MVT - Memória Visual", 1),
    TestType.rotas: Consumption("Rotas de Atenção", 3),
}


@dataclass(frozen=True, slots=True)
class DeductionOutcome:
    success: bool
    message: str
    quantity_deducted: Optional[int] = None
    new_balance: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "quantity_deducted": self.quantity_deducted,
            "new_balance": self.new_balance,
        }


def _soft_failure(event: str, message: str, **fields: object) -> DeductionOutcome:
    inc_counter("inventory.deduction.failures")
    logger.warning(event, extra={"structured_data": fields})
    return DeductionOutcome(success=False, message=message)


def deduct(
    db: Session,
    test_type: TestType,
    evaluation_id: int | None,
    owner_id: int | None,
) -> DeductionOutcome:
    """Take the test's sheets out of stock and record an outbound movement.

    Never raises for business conditions: unmapped tests, missing items and
    shortfalls come back as ``success=False``. The decrement is a conditional
    update, so concurrent deductions cannot push the balance below zero.
    """
    consumption = CONSUMPTION.get(test_type)
    if consumption is None:
        return _soft_failure(
            "stock_unmapped_test",
            InventoryMessages.UNMAPPED_TEST.format(test_type=test_type.value),
            test_type=test_type.value,
        )

    repo = StockRepository(db)
    item = repo.find_active_by_name(consumption.item_name)
    if item is None:
        return _soft_failure(
            "stock_item_missing",
            InventoryMessages.ITEM_NOT_FOUND.format(item_name=consumption.item_name),
            test_type=test_type.value,
            item_name=consumption.item_name,
        )

    try:
        with db.begin_nested():
            if not repo.decrement_if_available(item.id, consumption.sheets):
                available = repo.current_quantity(item.id)
                return _soft_failure(
                    "stock_insufficient",
                    InventoryMessages.INSUFFICIENT.format(
                        item_name=consumption.item_name,
                        available=available,
                        required=consumption.sheets,
                    ),
                    item_id=item.id,
                    available=available,
                    required=consumption.sheets,
                )
            repo.add_movement(
                item_id=item.id,
                quantity=consumption.sheets,
                movement_type=MovementType.outbound,
                notes=InventoryMessages.MOVEMENT_NOTE.format(
                    test_type=test_type.value.upper(),
                    evaluation_id=evaluation_id,
                ),
                owner_id=owner_id,
                evaluation_id=evaluation_id,
            )
            balance = repo.current_quantity(item.id)
    except SQLAlchemyError as exc:
        logger.exception(
            "stock_deduction_failed",
            extra={"structured_data": {"item_id": item.id, "error": str(exc)}},
        )
        inc_counter("inventory.deduction.failures")
        return DeductionOutcome(
            success=False,
            message=InventoryMessages.DEDUCTION_FAILED.format(item_name=consumption.item_name),
        )

    db.refresh(item)
    inc_counter("inventory.deduction.successes")
    logger.info(
        "stock_deducted",
        extra={
            "structured_data": {
                "item_id": item.id,
                "quantity": consumption.sheets,
                "new_balance": balance,
                "evaluation_id": evaluation_id,
            }
        },
    )
    return DeductionOutcome(
        success=True,
        message=InventoryMessages.DEDUCTED.format(quantity=consumption.sheets, item_name=consumption.item_name),
        quantity_deducted=consumption.sheets,
        new_balance=balance,
    )

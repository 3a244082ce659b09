from sqlalchemy import select

from psychnorm.core.metrics import get_counters
from psychnorm.i18n.pt_messages import InventoryMessages
from psychnorm.models import StockItem, StockMovement, TestType
from psychnorm.services.inventory import CONSUMPTION, deduct


def test_every_test_type_consumes_stock():
    assert set(CONSUMPTION) == set(TestType)
    assert CONSUMPTION[TestType.rotas].sheets == 3


def test_deduct_updates_balance_and_records_movement(seed, db):
    user = seed.user()
    item = seed.stock_item("Memore - Memória", 10)

    outcome = deduct(db, TestType.memore, 7, user.id)
    db.commit()

    assert outcome.success is True
    assert outcome.quantity_deducted == 1
    assert outcome.new_balance == 9
    assert outcome.message == InventoryMessages.DEDUCTED.format(quantity=1, item_name="Memore - Memória")
    movement = db.execute(select(StockMovement).where(StockMovement.item_id == item.id)).scalar_one()
    assert movement.quantity == -1
    assert movement.movement_type == "outbound"
    assert movement.notes == "Aplicação de teste MEMORE - Avaliação #7"
    assert get_counters()["inventory.deduction.successes"] == 1


def test_rotas_takes_three_sheets(seed, db):
    seed.stock_item("Rotas de Atenção", 5)
    outcome = deduct(db, TestType.rotas, None, None)
    assert outcome.success is True
    assert outcome.new_balance == 2


def test_insufficient_stock_is_a_soft_failure(seed, db):
    item = seed.stock_item("Rotas de Atenção", 2)

    outcome = deduct(db, TestType.rotas, 1, None)
    db.commit()

    assert outcome.success is False
    assert outcome.new_balance is None
    assert "disponível 2" in outcome.message
    db.expire_all()
    assert db.get(StockItem, item.id).quantity == 2
    assert db.execute(select(StockMovement)).first() is None
    assert get_counters()["inventory.deduction.failures"] == 1


def test_missing_or_inactive_item_is_a_soft_failure(seed, db):
    seed.stock_item("AC - Atenção Concentrada", 50, active=False)
    outcome = deduct(db, TestType.ac, 1, None)
    assert outcome.success is False
    assert outcome.message == InventoryMessages.ITEM_NOT_FOUND.format(item_name="AC - Atenção Concentrada")


def test_balance_never_goes_negative(seed, db):
    item = seed.stock_item("BPA-2 - Atenção", 2)
    results = [deduct(db, TestType.bpa2, None, None).success for _ in range(4)]
    db.commit()
    assert results == [True, True, False, False]
    db.expire_all()
    assert db.get(StockItem, item.id).quantity == 0

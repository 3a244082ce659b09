from datetime import date

import pytest
from sqlalchemy import JSON, Column, DateTime, Float, Integer, MetaData, String, Table, UniqueConstraint, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from psychnorm.core.errors import EvaluationNotFoundError, NotFoundError, ValidationError
from psychnorm.core.metrics import get_counters
from psychnorm.db.database import Base, SchemaCapabilities, build_engine, schema_capabilities
from psychnorm.db.repositories import CalculationLogRepository, EvaluationRepository
from psychnorm.i18n.pt_messages import InventoryMessages
from psychnorm.models import (
    CalculationLog,
    Evaluation,
    Examinee,
    LinkageMode,
    StockItem,
    StockMovement,
    TestResult,
    TestType,
)
from psychnorm.scoring.types import ScoreResult, ScoreStatus
from psychnorm.services.evaluations import (
    list_results,
    persist_result,
    record_calculation,
    resolve_evaluation,
)

CLOCK = lambda: 1700000001234  # noqa: E731


def _result(percentile=50.0, raw=12):
    return ScoreResult(
        test_type=TestType.memore,
        raw_score=raw,
        percentile=percentile,
        classification="Median",
        status=ScoreStatus.ok,
    )


class TestResolveEvaluation:
    def test_linked_creates_with_generated_report_number(self, seed, db):
        examinee = seed.examinee()
        evaluation = resolve_evaluation(
            db,
            LinkageMode.linked,
            examinee_id=examinee.id,
            owner_id=None,
            application_date=date(2025, 3, 10),
            clock=CLOCK,
        )
        assert evaluation.report_number == f"LAU-2025-{examinee.id:04d}-1234"
        assert evaluation.category == "Psicológica"
        assert evaluation.application_mode == "Individual"
        assert evaluation.is_anonymous is False

    def test_linked_reuses_by_report_number_and_refreshes_date(self, seed, db):
        examinee = seed.examinee()
        first = resolve_evaluation(
            db, LinkageMode.linked, examinee_id=examinee.id, owner_id=None,
            report_number="LAU-2025-0001-0001", application_date=date(2025, 1, 1),
        )
        db.commit()
        second = resolve_evaluation(
            db, LinkageMode.linked, examinee_id=examinee.id, owner_id=None,
            report_number="LAU-2025-0001-0001", application_date=date(2025, 2, 2),
        )
        db.commit()
        assert second.id == first.id
        assert second.application_date == date(2025, 2, 2)
        assert db.scalar(select(func.count()).select_from(Evaluation)) == 1

    def test_linked_without_report_number_reuses_latest(self, seed, db):
        examinee = seed.examinee()
        older = resolve_evaluation(db, LinkageMode.linked, examinee_id=examinee.id, owner_id=None, report_number="A")
        newer = resolve_evaluation(db, LinkageMode.linked, examinee_id=examinee.id, owner_id=None, report_number="B")
        db.commit()
        reused = resolve_evaluation(db, LinkageMode.linked, examinee_id=examinee.id, owner_id=None)
        assert reused.id == newer.id != older.id

    def test_linked_requires_known_examinee(self, db):
        with pytest.raises(ValidationError):
            resolve_evaluation(db, LinkageMode.linked, examinee_id=None, owner_id=None)
        with pytest.raises(NotFoundError):
            resolve_evaluation(db, LinkageMode.linked, examinee_id=999, owner_id=None)

    def test_concurrent_creation_rereads_the_winner(self, seed, db, monkeypatch):
        examinee = seed.examinee()
        winner = Evaluation(
            examinee_id=examinee.id,
            report_number="LAU-2025-0001-9999",
            application_date=date(2025, 1, 1),
            category="Psicológica",
        )
        db.add(winner)
        db.commit()

        original = EvaluationRepository.find_by_report
        calls = []

        def stale_first_read(self, examinee_id, report_number):
            calls.append(report_number)
            if len(calls) == 1:
                return None
            return original(self, examinee_id, report_number)

        monkeypatch.setattr(EvaluationRepository, "find_by_report", stale_first_read)
        evaluation = resolve_evaluation(
            db, LinkageMode.linked, examinee_id=examinee.id, owner_id=None,
            report_number="LAU-2025-0001-9999", application_date=date(2025, 5, 5),
        )
        db.commit()
        assert evaluation.id == winner.id
        assert evaluation.application_date == date(2025, 5, 5)
        assert db.scalar(select(func.count()).select_from(Evaluation)) == 1

    def test_anonymous_always_creates(self, db):
        first = resolve_evaluation(db, LinkageMode.anonymous, examinee_id=None, owner_id=None, clock=CLOCK)
        second = resolve_evaluation(db, LinkageMode.anonymous, examinee_id=None, owner_id=None, clock=CLOCK)
        assert first.id != second.id
        assert first.examinee_id is None
        assert first.category == "Anônima"
        assert first.is_anonymous is True
        assert first.report_number == f"ANON-{date.today().year}-001234"

    def test_unlinked_has_no_evaluation(self, db):
        assert resolve_evaluation(db, LinkageMode.unlinked, examinee_id=None, owner_id=None) is None
        assert db.scalar(select(func.count()).select_from(Evaluation)) == 0


def _evaluation(seed, db):
    examinee = seed.examinee()
    evaluation = resolve_evaluation(db, LinkageMode.linked, examinee_id=examinee.id, owner_id=None)
    db.commit()
    return evaluation


class TestPersistResult:
    def test_second_save_replaces_the_first(self, seed, db):
        evaluation = _evaluation(seed, db)
        table = seed.table("memore", "MEMORE - Geral")
        for percentile in (40.0, 60.0):
            persist_result(
                db,
                test_type=TestType.memore,
                evaluation_id=evaluation.id,
                raw_input={"vp": 18},
                result=_result(percentile),
                should_deduct_stock=False,
                owner_id=None,
                table_id=table.id,
            )
        db.commit()
        rows = db.execute(select(TestResult).where(TestResult.evaluation_id == evaluation.id)).scalars().all()
        assert len(rows) == 1
        assert rows[0].percentile == 60.0
        assert rows[0].normative_table_id == table.id
        assert rows[0].raw_input == {"vp": 18}

    def test_deducts_stock_for_regular_owner(self, seed, db):
        evaluation = _evaluation(seed, db)
        user = seed.user()
        seed.stock_item("Memore - Memória", 3)
        outcome = persist_result(
            db, test_type=TestType.memore, evaluation_id=evaluation.id, raw_input={}, result=_result(),
            should_deduct_stock=True, owner_id=user.id, table_id=None,
        )
        assert outcome.stock_exempt is False
        assert outcome.inventory.success is True
        assert outcome.inventory.new_balance == 2

    def test_exempt_role_never_deducts(self, seed, db):
        evaluation = _evaluation(seed, db)
        user = seed.user(role="psicologo_externo")
        item = seed.stock_item("Memore - Memória", 3)
        outcome = persist_result(
            db, test_type=TestType.memore, evaluation_id=evaluation.id, raw_input={}, result=_result(),
            should_deduct_stock=True, owner_id=user.id, table_id=None,
        )
        db.commit()
        assert outcome.stock_exempt is True
        assert outcome.inventory.success is False
        assert outcome.inventory.message == InventoryMessages.EXEMPT_ROLE
        db.expire_all()
        assert db.get(StockItem, item.id).quantity == 3

    def test_deduction_can_be_skipped(self, seed, db):
        evaluation = _evaluation(seed, db)
        seed.stock_item("Memore - Memória", 3)
        outcome = persist_result(
            db, test_type=TestType.memore, evaluation_id=evaluation.id, raw_input={}, result=_result(),
            should_deduct_stock=False, owner_id=None, table_id=None,
        )
        assert outcome.inventory is None

    def test_no_deduction_without_owner(self, seed, db):
        evaluation = _evaluation(seed, db)
        item = seed.stock_item("Memore - Memória", 3)
        outcome = persist_result(
            db, test_type=TestType.memore, evaluation_id=evaluation.id, raw_input={}, result=_result(),
            should_deduct_stock=True, owner_id=None, table_id=None,
        )
        db.commit()
        assert outcome.inventory is None
        assert outcome.stock_exempt is False
        db.expire_all()
        assert db.get(StockItem, item.id).quantity == 3
        assert db.scalar(select(func.count()).select_from(StockMovement)) == 0

    def test_stale_capability_is_refreshed_and_retried(self, legacy_db, monkeypatch):
        evaluation = _legacy_evaluation(legacy_db)
        monkeypatch.setattr(SchemaCapabilities, "has_column", lambda self, bind, table, column: True)
        outcome = persist_result(
            legacy_db, test_type=TestType.memore, evaluation_id=evaluation.id, raw_input={}, result=_result(),
            should_deduct_stock=False, owner_id=None, table_id=None,
        )
        legacy_db.commit()
        assert outcome.result_id > 0
        monkeypatch.undo()
        assert "normative_table_id" not in schema_capabilities.columns(legacy_db.get_bind(), "test_results")


def _legacy_evaluation(db):
    examinee = Examinee(name="Paciente Antigo")
    db.add(examinee)
    db.flush()
    evaluation = resolve_evaluation(db, LinkageMode.linked, examinee_id=examinee.id, owner_id=None)
    db.commit()
    return evaluation


@pytest.fixture()
def legacy_db():
    """Database whose ``test_results`` predates the normative-table column."""
    engine = build_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=engine, tables=[t for t in Base.metadata.sorted_tables if t.name != "test_results"])
    legacy = MetaData()
    Table(
        "test_results",
        legacy,
        Column("id", Integer, primary_key=True),
        Column("evaluation_id", Integer, nullable=False),
        Column("test_type", String(20), nullable=False),
        Column("raw_input", JSON),
        Column("raw_score", Float),
        Column("percentile", Float),
        Column("classification", String(60)),
        Column("components", JSON),
        Column("created_at", DateTime),
        UniqueConstraint("evaluation_id", "test_type"),
    )
    legacy.create_all(bind=engine)
    schema_capabilities.refresh()
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        schema_capabilities.refresh()
        engine.dispose()


def test_legacy_schema_saves_and_lists_without_table_column(legacy_db):
    evaluation = _legacy_evaluation(legacy_db)
    persist_result(
        legacy_db, test_type=TestType.memore, evaluation_id=evaluation.id, raw_input={"vp": 1}, result=_result(),
        should_deduct_stock=False, owner_id=None, table_id=42,
    )
    legacy_db.commit()
    rows = list_results(legacy_db, evaluation.id)
    assert len(rows) == 1
    assert rows[0].normative_table_id is None
    assert rows[0].normative_table_name is None
    assert rows[0].percentile == 50.0


def test_list_results_includes_table_name(seed, db):
    evaluation = _evaluation(seed, db)
    table = seed.table("memore", "MEMORE - Trânsito")
    persist_result(
        db, test_type=TestType.memore, evaluation_id=evaluation.id, raw_input={}, result=_result(),
        should_deduct_stock=False, owner_id=None, table_id=table.id,
    )
    db.commit()
    rows = list_results(db, evaluation.id)
    assert [(r.test_type, r.normative_table_name) for r in rows] == [("memore", "MEMORE - Trânsito")]


def test_list_results_unknown_evaluation(db):
    with pytest.raises(EvaluationNotFoundError):
        list_results(db, 12345)


def test_record_calculation_writes_audit_entry(db):
    assert record_calculation(
        db, owner_id=None, test_type=TestType.memore, raw_input={"vp": 18}, result=_result(),
        table_id=3, client_address="10.0.0.1",
    ) is True
    db.commit()
    entry = db.execute(select(CalculationLog)).scalar_one()
    assert entry.test_type == "memore"
    assert entry.result["percentile"] == 50.0
    assert entry.client_address == "10.0.0.1"


def test_record_calculation_failure_is_swallowed(db, monkeypatch, caplog):
    def broken_add(self, **kwargs):
        raise OperationalError("INSERT INTO calculation_logs", {}, Exception("disk I/O error"))

    monkeypatch.setattr(CalculationLogRepository, "add", broken_add)
    with caplog.at_level("WARNING"):
        saved = record_calculation(
            db, owner_id=None, test_type=TestType.ac, raw_input={}, result=_result(),
            table_id=None, client_address=None,
        )
    assert saved is False
    assert get_counters()["calculation.audit.failures"] == 1
    assert any(record.getMessage() == "calculation_audit_failed" for record in caplog.records)

from datetime import date
from types import SimpleNamespace

import pytest

from psychnorm.core.errors import TableSelectionError
from psychnorm.i18n.pt_messages import SelectionMessages
from psychnorm.models import TestType
from psychnorm.services.profile import ExamineeProfile, age_on
from psychnorm.services.selector import rank_tables, score_table, select_table, selection_warnings, suggest_tables


def _tables(*names):
    return [SimpleNamespace(id=index, name=name) for index, name in enumerate(names, start=1)]


def test_age_on_counts_birthday():
    assert age_on(date(2000, 6, 15), date(2025, 6, 14)) == 24
    assert age_on(date(2000, 6, 15), date(2025, 6, 15)) == 25


def test_region_age_education_and_general_points_add_up():
    profile = ExamineeProfile(age=30, education="Ensino Médio")
    ranked = rank_tables(
        _tables(
            "MIG - Nordeste",
            "MIG - População Brasileira",
            "MIG - Sudeste Geral",
            "MIG - São Paulo 26-35 anos Ensino Médio",
        ),
        profile,
    )
    assert [(c.table_name, c.score) for c in ranked] == [
        ("MIG - São Paulo 26-35 anos Ensino Médio", 1500),
        ("MIG - Sudeste Geral", 900),
        ("MIG - População Brasileira", 100),
        ("MIG - Nordeste", 0),
    ]
    assert ranked[0].reasons == (
        SelectionMessages.REASON_PRIMARY_REGION.format(region="São Paulo"),
        SelectionMessages.REASON_AGE_BAND.format(low=26, high=35),
        SelectionMessages.REASON_EDUCATION.format(tier="Médio"),
    )


def test_profile_region_replaces_default_primary_region():
    profile = ExamineeProfile(region="Rio de Janeiro")
    ranked = rank_tables(_tables("AC - São Paulo", "AC - Rio de Janeiro"), profile)
    assert ranked[0].table_name == "AC - Rio de Janeiro"
    assert ranked[0].score == 1000
    assert ranked[1].score == 0


def test_transit_exact_subcontext_beats_professional_table():
    profile = ExamineeProfile(context="Trânsito", transit_type="Renovação")
    ranked = rank_tables(
        _tables("AC - 1ª Habilitação", "AC - Motoristas Profissionais", "AC - Renovação CNH"),
        profile,
    )
    assert [(c.table_name, c.score) for c in ranked] == [
        ("AC - Renovação CNH", 900),
        ("AC - Motoristas Profissionais", 850),
        ("AC - 1ª Habilitação", 0),
    ]


def test_category_addition_matches_category_change_tables():
    profile = ExamineeProfile(context="transito", transit_type="Adição de Categoria")
    candidate = score_table(profile, SimpleNamespace(id=1, name="AC - Mudança de Categoria"))
    assert candidate.score == 900
    assert candidate.reasons == (SelectionMessages.REASON_CATEGORY_ADDITION,)


def test_transit_points_require_transit_context():
    profile = ExamineeProfile(context="Clínico", transit_type="Renovação")
    assert score_table(profile, SimpleNamespace(id=1, name="AC - Renovação")).score == 0


def test_ties_keep_fetch_order():
    ranked = rank_tables(_tables("BPA-2 - Geral B", "BPA-2 - Geral A"), ExamineeProfile())
    assert [c.table_id for c in ranked] == [1, 2]


def test_age_band_uses_birth_date_on_reference_day():
    profile = ExamineeProfile(birth_date=date(2000, 6, 15))
    table = SimpleNamespace(id=1, name="R-1 - 18-24 anos")
    assert score_table(profile, table, today=date(2025, 6, 14)).score == 300
    assert score_table(profile, table, today=date(2025, 6, 15)).score == 0


def test_selection_warnings():
    warnings = selection_warnings(ExamineeProfile(age=15, context="Trânsito", education="Não Escolarizado"))
    assert [w.level for w in warnings] == ["warning", "info", "warning"]
    assert warnings[0].message == SelectionMessages.WARN_TRANSIT_AGE.format(age=15, minimum=18)
    assert warnings[1].message == SelectionMessages.INFO_UNSCHOOLED
    assert selection_warnings(ExamineeProfile(age=40)) == []


def test_select_table_from_database(seed, db):
    for name in (
        "AC - Nordeste",
        "AC - Sul",
        "AC - Norte",
        "AC - Centro-Oeste",
        "AC - Geral",
        "AC - São Paulo",
    ):
        seed.table("ac", name)
    seed.table("ac", "AC - São Paulo Ensino Superior", active=False)
    seed.table("r1", "R-1 - São Paulo Ensino Superior")

    selection = select_table(db, TestType.ac, ExamineeProfile(education="Superior"))
    assert selection.table_name == "AC - São Paulo"
    assert selection.score == 1000
    assert len(selection.candidates) == 5
    assert selection.candidates[1].table_name == "AC - Geral"


def test_select_table_without_active_tables(seed, db):
    seed.table("mvt", "MVT - Geral", active=False)
    with pytest.raises(TableSelectionError) as excinfo:
        select_table(db, TestType.mvt, ExamineeProfile(age=14))
    assert excinfo.value.status_code == 404
    assert excinfo.value.detail["suggestions"] == []
    assert len(excinfo.value.detail["warnings"]) == 1


def test_suggest_tables_is_empty_without_tables(db):
    suggestions, warnings = suggest_tables(db, TestType.rotas, ExamineeProfile())
    assert suggestions == []
    assert warnings == []

import pytest

from psychnorm.scoring.classification import (
    OUT_OF_RANGE,
    general_classification,
    memore_classification,
)
from psychnorm.scoring.curves import REFERENCE_CURVES, ReferenceCurve, select_curve
from psychnorm.scoring.keywords import education_tier, normalize_text, parse_age_range


def test_normalize_text_strips_accents_and_case():
    assert normalize_text("  Ensino MÉDIO ") == "ensino medio"
    assert normalize_text(None) == ""


@pytest.mark.parametrize(
    "value,tier",
    [
        ("Ensino Médio Completo", "medio"),
        ("E. Fundamental", "fundamental"),
        ("superior incompleto", "superior"),
        ("Não Escolarizado", None),
        (None, None),
    ],
)
def test_education_tier(value, tier):
    assert education_tier(value) == tier


def test_parse_age_range():
    assert parse_age_range("MIG - São Paulo 26-35 anos") == (26, 35)
    assert parse_age_range("MIG - 18 - 25 Anos") == (18, 25)
    assert parse_age_range("MIG - adultos") is None


@pytest.mark.parametrize(
    "name,key",
    [
        ("MEMORE - Trânsito", "transit"),
        ("MEMORE - Trânsito Geral", "transit"),
        ("MEMORE - Amostra Geral", "general"),
        ("MEMORE - Escolaridade Ensino Fundamental", "education_fundamental"),
        ("MEMORE - Escolaridade Superior", "education_superior"),
        ("MEMORE - Escolaridade Ensino Médio", "education_medio"),
        ("MEMORE - Escolaridade", "education_medio"),
        ("MEMORE - Idade 35-44 anos", "age_35_44"),
        ("MEMORE - Idade 55-64 anos", "age_55_64"),
        ("MEMORE - Idade", "age_14_24"),
    ],
)
def test_select_curve_by_name(name, key):
    curve = select_curve(name)
    assert curve is not None
    assert curve.key == key


def test_select_curve_explicit_key_wins_and_unknown_name_has_no_curve():
    assert select_curve("MEMORE - Geral", "age_55_64").key == "age_55_64"
    assert select_curve("MEMORE - Regional") is None


def test_general_curve_anchor_points():
    general = REFERENCE_CURVES["general"]
    assert general.percentile_for(0) == 5
    assert general.percentile_for(12) == 50
    assert general.percentile_for(-9) == 1
    assert general.percentile_for(30) == 99


def test_general_curve_interpolates_to_multiples_of_five():
    general = REFERENCE_CURVES["general"]
    # between the highest percentiles at 12 (60) and 14 (70)
    assert general.percentile_for(13) == 65
    # between -8 (1) and 0 (5)
    assert general.percentile_for(-4) == 5
    assert general.percentile_for(7) == 30


@pytest.mark.parametrize(
    "key,raw,expected",
    [
        ("general", 11, 55),
        ("general", 9, 40),
        ("general", 15, 75),
        ("general", 23, 95),
        ("transit", 15, 70),
        ("transit", 11, 50),
        ("transit", 13, 55),
        ("transit", 21, 90),
        ("education_fundamental", 1, 25),
        ("education_fundamental", 3, 40),
        ("education_fundamental", 14, 95),
    ],
)
def test_interpolation_runs_between_highest_percentiles_of_repeated_anchors(key, raw, expected):
    assert REFERENCE_CURVES[key].percentile_for(raw) == expected


def test_exact_anchor_returns_its_lowest_percentile():
    general = REFERENCE_CURVES["general"]
    # 12 is listed with 50, 55 and 60
    assert general.percentile_for(12) == 50
    assert REFERENCE_CURVES["transit"].percentile_for(16) == 65


def test_transit_curve_clamps_below_lowest_anchor():
    transit = REFERENCE_CURVES["transit"]
    assert transit.percentile_for(-5) == 1
    assert transit.percentile_for(0) == 5


@pytest.mark.parametrize("key", sorted(REFERENCE_CURVES))
def test_every_curve_is_monotone_between_anchors(key):
    curve = REFERENCE_CURVES[key]
    anchors = {raw for raw, _ in curve.anchors}
    values = [curve.percentile_for(raw) for raw in range(-12, 30) if raw not in anchors]
    assert values == sorted(values)
    assert values[0] == curve.lowest
    assert values[-1] == curve.highest


def test_curve_requires_anchors():
    with pytest.raises(ValueError):
        ReferenceCurve(key="empty", label="Empty", anchors=())


def test_classification_ladders():
    assert general_classification(95) == "Superior"
    assert general_classification(94.9) == "Above-average"
    assert general_classification(50) == "Average"
    assert general_classification(49) == "Below-average-median"
    assert general_classification(15) == "Below-average"
    assert general_classification(14) == "Inferior"
    assert general_classification(None) == OUT_OF_RANGE
    assert memore_classification(80) == "Above-median"
    assert memore_classification(50) == "Median"
    assert memore_classification(29) == "Below-median"
    assert memore_classification(9) == "Inferior"

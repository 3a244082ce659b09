import pytest

from psychnorm.core.errors import UnsupportedTestTypeError
from psychnorm.models import TestType
from psychnorm.scoring.registry import ScorerRegistry, get_scorer, list_scorers, snapshot_scorers
from psychnorm.scoring.scorers import ConcentratedAttentionScorer, MemoryRecognitionScorer


def test_every_test_type_has_a_default_scorer():
    assert list_scorers() == sorted(t.value for t in TestType)
    for test_type in TestType:
        assert get_scorer(test_type).test_type is test_type


def test_snapshot_is_read_only():
    snapshot = snapshot_scorers()
    assert isinstance(snapshot[TestType.memore], MemoryRecognitionScorer)
    with pytest.raises(TypeError):
        snapshot[TestType.memore] = ConcentratedAttentionScorer()  # type: ignore[index]


def test_duplicate_registration_requires_allow_replace():
    registry = ScorerRegistry()
    registry.register(MemoryRecognitionScorer())
    with pytest.raises(ValueError):
        registry.register(MemoryRecognitionScorer())

    replacement = MemoryRecognitionScorer()
    registry.register(replacement, allow_replace=True)
    assert registry.get(TestType.memore) is replacement


def test_unregistered_type_lists_available_scorers():
    registry = ScorerRegistry()
    registry.register(ConcentratedAttentionScorer())
    with pytest.raises(UnsupportedTestTypeError) as excinfo:
        registry.get(TestType.rotas)
    assert excinfo.value.detail == {"available": ["ac"]}

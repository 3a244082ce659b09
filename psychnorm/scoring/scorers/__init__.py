from __future__ import annotations

from psychnorm.scoring.registry import register_scorer

from .attention import ConcentratedAttentionScorer, MultiRouteAttentionScorer, ThreeModalityAttentionScorer
from .base import Scorer, ScoringContext
from .memory import MemoryRecognitionScorer, VisualMemoryScorer
from .reasoning import GeneralIntelligenceScorer, MatrixReasoningScorer, ReasoningScorer

for _scorer in (
    MemoryRecognitionScorer(),
    GeneralIntelligenceScorer(),
    ReasoningScorer(),
    ConcentratedAttentionScorer(),
    MatrixReasoningScorer(),
    ThreeModalityAttentionScorer(),
    VisualMemoryScorer(),
    MultiRouteAttentionScorer(),
):
    register_scorer(_scorer)

__all__ = [
    "Scorer",
    "ScoringContext",
    "ConcentratedAttentionScorer",
    "ThreeModalityAttentionScorer",
    "MultiRouteAttentionScorer",
    "MatrixReasoningScorer",
    "ReasoningScorer",
    "GeneralIntelligenceScorer",
    "VisualMemoryScorer",
    "MemoryRecognitionScorer",
]

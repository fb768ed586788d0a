"""Default configurations for the validation engine."""

from ...shared.config import get_settings
from .models import (
    ConfidenceWeights,
    CoverageRequirements,
    ExpectedCharacteristics,
    ExpectedQuality,
    ImportanceWeights,
    RandomParameters,
    SamplingParameters,
    SamplingStrategy,
    Stratification,
    ThresholdConfig,
)

DEFAULT_THRESHOLD_CONFIG = ThresholdConfig(
    auto_approve_threshold=0.75,
    auto_reject_threshold=0.50,
    weights=ConfidenceWeights(
        claude_confidence=0.30,
        emotional_coherence=0.25,
        relationship_accuracy=0.20,
        temporal_consistency=0.15,
        content_quality=0.10,
    ),
)

DEFAULT_COVERAGE_REQUIREMENTS = CoverageRequirements(
    emotional_diversity=0.80,
    temporal_span=30,
    participant_coverage=0.90,
)

DEFAULT_SAMPLING_STRATEGY = SamplingStrategy(
    name="balanced-stratified-sampling",
    parameters=SamplingParameters(
        target_size=100,
        stratification=Stratification(
            by_emotion=True,
            by_time_period=True,
            by_participant=True,
            by_quality=True,
        ),
        random=RandomParameters(enabled=True, seed=None),
        importance_weights=ImportanceWeights(
            emotional_significance=0.40,
            relationship_impact=0.35,
            temporal_importance=0.25,
        ),
    ),
    expected_characteristics=ExpectedCharacteristics(
        expected_coverage=0.85,
        expected_quality=ExpectedQuality(high=0.20, medium=0.50, low=0.30),
    ),
)


def load_threshold_config() -> ThresholdConfig:
    """Build the startup threshold configuration from settings."""
    validation = get_settings().validation
    return ThresholdConfig(
        auto_approve_threshold=validation.auto_approve_threshold,
        auto_reject_threshold=validation.auto_reject_threshold,
        weights=ConfidenceWeights(
            claude_confidence=validation.weight_claude_confidence,
            emotional_coherence=validation.weight_emotional_coherence,
            relationship_accuracy=validation.weight_relationship_accuracy,
            temporal_consistency=validation.weight_temporal_consistency,
            content_quality=validation.weight_content_quality,
        ),
    )

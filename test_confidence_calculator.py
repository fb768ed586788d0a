# Tests for the five-factor confidence score
from datetime import timedelta

import pytest

from memoryflow.services.validation.confidence_calculator import (
    ConfidenceCalculator,
    clamp,
    weighted_average,
)
from memoryflow.services.validation.defaults import DEFAULT_THRESHOLD_CONFIG
from memoryflow.services.validation.models import ConfidenceWeights, ThresholdConfig
from memoryflow.services.validation.threshold_manager import ThresholdManager
from memoryflow.shared.timestamp_utils import to_iso, utc_now


# A complete record scores at the top of every factor
def test_complete_memory_scores_high(memory_factory):
    score = ConfidenceCalculator().calculate_confidence(memory_factory())

    assert score.factors.claude_confidence == pytest.approx(0.9)
    assert score.factors.emotional_coherence == pytest.approx(1.0)
    assert score.factors.relationship_accuracy == pytest.approx(1.0)
    assert score.factors.temporal_consistency == pytest.approx(1.0)
    assert score.factors.content_quality == pytest.approx(1.0)
    assert score.overall == pytest.approx(0.97)


# Missing sections fall back to fixed neutral-low values
def test_sparse_memory_defaults(sparse_memory_factory):
    score = ConfidenceCalculator().calculate_confidence(sparse_memory_factory())

    assert score.factors.claude_confidence == pytest.approx(0.1)
    assert score.factors.emotional_coherence == pytest.approx(0.3)
    assert score.factors.relationship_accuracy == pytest.approx(0.4)
    assert score.factors.temporal_consistency == pytest.approx(0.3)
    assert score.factors.content_quality == pytest.approx(0.5)
    assert score.overall == pytest.approx(0.28)


# No extraction confidence counts as 0.5, an explicit zero stays zero
def test_missing_extraction_confidence(memory_factory):
    calculator = ConfidenceCalculator()

    assert calculator.extract_claude_confidence(memory_factory(metadata={})) == 0.5
    assert calculator.extract_claude_confidence(memory_factory(metadata={"confidence": 0.0})) == 0.0


# Out-of-range extraction confidence is clamped
def test_extraction_confidence_clamped(memory_factory):
    calculator = ConfidenceCalculator()

    assert calculator.extract_claude_confidence(memory_factory(metadata={"confidence": 1.7})) == 1.0
    assert calculator.extract_claude_confidence(memory_factory(metadata={"confidence": -0.2})) == 0.0


# Intensity outside [0, 1] earns no credit
def test_emotional_coherence_ignores_invalid_intensity(memory_factory):
    memory = memory_factory(emotionalContext={
        "primaryEmotion": "joy",
        "secondaryEmotions": [],
        "intensity": 3.0,
        "themes": [],
    })

    assert ConfidenceCalculator().calculate_emotional_coherence(memory) == pytest.approx(0.5)


# Future timestamps and ones older than ten years lose the recency bonus
def test_temporal_consistency_window(memory_factory):
    calculator = ConfidenceCalculator()
    now = utc_now()

    future = memory_factory(timestamp=to_iso(now + timedelta(days=30)), metadata={})
    ancient = memory_factory(timestamp="1990-06-01T00:00:00Z", metadata={})

    assert calculator.check_temporal_consistency(future) == pytest.approx(0.7)
    assert calculator.check_temporal_consistency(ancient) == pytest.approx(0.7)


# Processed-at before the event itself earns no ordering bonus
def test_temporal_consistency_processed_before_event(memory_factory):
    now = utc_now()
    memory = memory_factory(
        timestamp=to_iso(now - timedelta(days=10)),
        metadata={"processedAt": to_iso(now - timedelta(days=20))},
    )

    assert ConfidenceCalculator().check_temporal_consistency(memory) == pytest.approx(0.85)


# Content quality counts length, meaningful words and tag count
def test_content_quality(memory_factory):
    calculator = ConfidenceCalculator()

    short = memory_factory(content="1 2 3 4 5 6 7 8 9 10 11 12", tags=[])
    too_many_tags = memory_factory(tags=[f"tag{i}" for i in range(11)])

    assert calculator.evaluate_content_quality(short) == pytest.approx(0.7)
    assert calculator.evaluate_content_quality(too_many_tags) == pytest.approx(0.85)


# Every factor stays inside [0, 1]
def test_factors_bounded(memory_factory, sparse_memory_factory):
    calculator = ConfidenceCalculator()
    for memory in (memory_factory(), sparse_memory_factory()):
        score = calculator.calculate_confidence(memory)
        assert 0.0 <= score.overall <= 1.0
        for value in score.factors.as_dict().values():
            assert 0.0 <= value <= 1.0


# Weights come from the threshold manager's active configuration
def test_uses_threshold_manager_weights(sparse_memory_factory):
    manager = ThresholdManager(ThresholdConfig(
        weights=ConfidenceWeights(
            claude_confidence=1.0,
            emotional_coherence=0.0,
            relationship_accuracy=0.0,
            temporal_consistency=0.0,
            content_quality=0.0,
        ),
    ))

    score = ConfidenceCalculator(manager).calculate_confidence(sparse_memory_factory())

    assert score.overall == pytest.approx(0.1)


# An explicit config snapshot wins over the manager's current one
def test_explicit_config_snapshot(sparse_memory_factory):
    manager = ThresholdManager()
    snapshot = ThresholdConfig(weights=ConfidenceWeights(
        claude_confidence=0.0,
        emotional_coherence=0.0,
        relationship_accuracy=0.0,
        temporal_consistency=0.0,
        content_quality=1.0,
    ))

    score = ConfidenceCalculator(manager).calculate_confidence(sparse_memory_factory(), snapshot)

    assert score.overall == pytest.approx(0.5)
    assert manager.get_config() == DEFAULT_THRESHOLD_CONFIG


# Zero total weight yields zero rather than dividing by zero
def test_weighted_average_zero_weight():
    assert weighted_average({"a": 0.9}, {"a": 0.0}) == 0.0
    assert weighted_average({"a": 0.5, "b": 1.0}, {"a": 1.0, "b": 1.0}) == pytest.approx(0.75)


def test_clamp():
    assert clamp(1.5) == 1.0
    assert clamp(-1) == 0.0
    assert clamp(0.3) == 0.3
    assert clamp(float("nan")) == 0.0


# Non-finite or unparseable extraction confidence is treated as missing
def test_non_finite_extraction_confidence(memory_factory):
    calculator = ConfidenceCalculator()

    assert calculator.extract_claude_confidence(memory_factory(metadata={"confidence": float("nan")})) == 0.5
    assert calculator.extract_claude_confidence(memory_factory(metadata={"confidence": float("inf")})) == 0.5
    assert calculator.extract_claude_confidence(memory_factory(metadata={"confidence": "high"})) == 0.5


# Null lists and a non-numeric intensity score like empty sections
def test_null_optional_fields(memory_factory):
    memory = memory_factory(
        tags=None,
        participants=None,
        emotionalContext={
            "primaryEmotion": "joy",
            "secondaryEmotions": None,
            "intensity": "very high",
            "themes": None,
        },
        relationshipDynamics={"interactionQuality": None, "communicationPatterns": None},
    )
    calculator = ConfidenceCalculator()

    assert memory.emotional_context.intensity is None
    assert calculator.calculate_emotional_coherence(memory) == pytest.approx(0.5)
    assert calculator.assess_relationship_accuracy(memory) == pytest.approx(0.5)
    assert 0.0 <= calculator.calculate_confidence(memory).overall <= 1.0


# The same record scored twice gives the same result
def test_calculate_confidence_is_repeatable(memory_factory):
    memory = memory_factory(
        timestamp="2023-03-15T12:00:00Z",
        metadata={"confidence": 0.8, "processedAt": "2023-03-20T09:00:00Z"},
    )
    calculator = ConfidenceCalculator()

    assert calculator.calculate_confidence(memory) == calculator.calculate_confidence(memory)

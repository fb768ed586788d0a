# Tests for the feedback accuracy ledger
import pytest

from memoryflow.services.validation.accuracy_tracker import (
    AccuracyTracker,
    is_false_negative,
    is_false_positive,
    pearson_correlation,
)
from memoryflow.services.validation.models import (
    AutoConfirmationResult,
    ConfidenceFactors,
    DecisionType,
    HumanDecision,
    ValidationFeedback,
)


def entry(decision, human, confidence=0.85, factors=None, memory_id="m"):
    result = AutoConfirmationResult(
        memory_id=memory_id,
        decision=decision,
        confidence=confidence,
        confidence_factors=factors or ConfidenceFactors(0.8, 0.8, 0.8, 0.8, 0.8),
    )
    return ValidationFeedback(memory_id=memory_id, original_result=result, human_decision=human)


def test_empty_tracker():
    metrics = AccuracyTracker().get_accuracy_metrics()

    assert metrics.total_decisions == 0
    assert metrics.overall_accuracy == 0.0
    assert metrics.accuracy_by_decision == {"auto-approve": 0.0, "needs-review": 0.0, "auto-reject": 0.0}


# All approvals confirmed by humans
def test_perfect_approvals():
    tracker = AccuracyTracker()
    tracker.add_feedback_batch([
        entry(DecisionType.AUTO_APPROVE, HumanDecision.VALIDATED, memory_id=f"m{i}") for i in range(100)
    ])

    metrics = tracker.get_accuracy_metrics()

    assert metrics.accuracy_by_decision["auto-approve"] == pytest.approx(1.0)
    assert metrics.overall_accuracy == pytest.approx(1.0)
    assert metrics.decision_distribution["auto-approve"] == 100


# Ten rejected approvals out of a hundred
def test_approval_mismatches():
    tracker = AccuracyTracker()
    tracker.add_feedback_batch(
        [entry(DecisionType.AUTO_APPROVE, HumanDecision.VALIDATED) for _ in range(90)]
        + [entry(DecisionType.AUTO_APPROVE, HumanDecision.REJECTED) for _ in range(10)]
    )

    metrics = tracker.get_accuracy_metrics()

    assert metrics.accuracy_by_decision["auto-approve"] == pytest.approx(0.9)
    assert metrics.false_positive_rate == pytest.approx(0.1)
    assert metrics.false_negative_rate == 0.0


def test_mixed_decisions():
    tracker = AccuracyTracker()
    for item in [
        entry(DecisionType.AUTO_APPROVE, HumanDecision.VALIDATED),
        entry(DecisionType.AUTO_REJECT, HumanDecision.VALIDATED, confidence=0.3),
        entry(DecisionType.AUTO_REJECT, HumanDecision.REJECTED, confidence=0.3),
        entry(DecisionType.NEEDS_REVIEW, HumanDecision.REJECTED, confidence=0.6),
    ]:
        tracker.add_feedback(item)

    metrics = tracker.get_accuracy_metrics()

    assert metrics.total_decisions == 4
    assert metrics.correct_decisions == 3
    assert metrics.false_negative_rate == pytest.approx(0.25)
    assert metrics.accuracy_by_decision["auto-reject"] == pytest.approx(0.5)
    assert metrics.accuracy_by_decision["needs-review"] == pytest.approx(1.0)


def test_error_predicates():
    assert is_false_positive(entry(DecisionType.AUTO_APPROVE, HumanDecision.REJECTED))
    assert not is_false_positive(entry(DecisionType.NEEDS_REVIEW, HumanDecision.REJECTED))
    assert is_false_negative(entry(DecisionType.AUTO_REJECT, HumanDecision.VALIDATED))
    assert not is_false_negative(entry(DecisionType.AUTO_REJECT, HumanDecision.REJECTED))


# The ledger keeps only the most recent entries
def test_bounded_window():
    tracker = AccuracyTracker(max_entries=5)
    for i in range(8):
        tracker.add_feedback(entry(DecisionType.AUTO_APPROVE, HumanDecision.VALIDATED, memory_id=f"m{i}"))

    assert len(tracker) == 5
    assert [f.memory_id for f in tracker.get_feedback()] == ["m3", "m4", "m5", "m6", "m7"]
    assert [f.memory_id for f in tracker.get_recent_feedback(2)] == ["m6", "m7"]
    assert tracker.get_recent_feedback(0) == []


def test_window_from_settings(monkeypatch):
    monkeypatch.setenv("MEMORYFLOW_FEEDBACK_WINDOW", "3")
    from memoryflow.shared.config import get_settings
    get_settings.cache_clear()

    assert AccuracyTracker().max_entries == 3


# Sliding windows advance by half a window
def test_accuracy_trend():
    tracker = AccuracyTracker()
    tracker.add_feedback_batch(
        [entry(DecisionType.AUTO_APPROVE, HumanDecision.VALIDATED) for _ in range(50)]
        + [entry(DecisionType.AUTO_APPROVE, HumanDecision.REJECTED) for _ in range(50)]
    )

    trend = tracker.get_accuracy_trend(window_size=50)

    assert len(trend) == 3
    assert [point.accuracy for point in trend] == pytest.approx([1.0, 0.5, 0.0])
    assert trend[-1].false_positive_rate == pytest.approx(1.0)
    assert tracker.get_accuracy_trend(window_size=200) == []


# Confidence of exactly 1.0 lands in the top bucket
def test_performance_by_confidence():
    tracker = AccuracyTracker()
    tracker.add_feedback_batch([
        entry(DecisionType.AUTO_APPROVE, HumanDecision.VALIDATED, confidence=1.0),
        entry(DecisionType.AUTO_APPROVE, HumanDecision.REJECTED, confidence=0.9),
        entry(DecisionType.AUTO_REJECT, HumanDecision.REJECTED, confidence=0.1),
    ])

    buckets = tracker.get_performance_by_confidence()

    assert [b.confidence_range for b in buckets] == ["0-20%", "20-40%", "40-60%", "60-80%", "80-100%"]
    assert buckets[-1].count == 2
    assert buckets[-1].accuracy == pytest.approx(0.5)
    assert buckets[-1].average_confidence == pytest.approx(0.95)
    assert buckets[0].count == 1
    assert buckets[2].count == 0
    assert buckets[2].average_confidence == pytest.approx(0.5)


# Perfectly calibrated predictions score 1
def test_confidence_calibration():
    tracker = AccuracyTracker()
    tracker.add_feedback_batch([
        entry(DecisionType.AUTO_APPROVE, HumanDecision.VALIDATED, confidence=1.0) for _ in range(10)
    ])

    assert tracker.get_accuracy_metrics().confidence_calibration == pytest.approx(1.0)


def test_factor_performance():
    tracker = AccuracyTracker()
    tracker.add_feedback_batch([
        entry(DecisionType.AUTO_APPROVE, HumanDecision.VALIDATED, factors=ConfidenceFactors(0.9, 0.5, 0.5, 0.5, 0.5)),
        entry(DecisionType.AUTO_APPROVE, HumanDecision.REJECTED, factors=ConfidenceFactors(0.2, 0.5, 0.5, 0.5, 0.5)),
    ])

    performance = tracker.get_accuracy_metrics().factor_performance

    assert performance["claude_confidence"].correlation == pytest.approx(1.0)
    assert performance["emotional_coherence"].correlation == 0.0
    assert performance["claude_confidence"].average_value == pytest.approx(0.55)
    assert performance["claude_confidence"].sample_size == 2


def test_pearson_correlation():
    assert pearson_correlation([], []) == 0.0
    assert pearson_correlation([1, 1, 1], [0, 1, 0]) == 0.0
    assert pearson_correlation([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)


def test_clear_history():
    tracker = AccuracyTracker()
    tracker.add_feedback(entry(DecisionType.AUTO_APPROVE, HumanDecision.VALIDATED))
    tracker.clear_history()

    assert len(tracker) == 0
    assert tracker.get_accuracy_metrics().total_decisions == 0

"""
Accuracy tracking for auto-confirmation decisions.

Keeps a bounded, append-only ledger of human feedback and derives accuracy,
error rates, confidence calibration and per-factor predictiveness from it.
"""

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import numpy as np

from ...shared.config import get_settings
from ...shared.monitoring import get_logger
from .metrics import update_accuracy_metrics
from .models import CONFIDENCE_FACTORS, DecisionType, HumanDecision, ValidationFeedback
from .threshold_manager import was_decision_correct

logger = get_logger(__name__)

# (lower bound, upper bound, label); the last bucket includes 1.0
CONFIDENCE_BUCKETS = (
    (0.0, 0.2, "0-20%"),
    (0.2, 0.4, "20-40%"),
    (0.4, 0.6, "40-60%"),
    (0.6, 0.8, "60-80%"),
    (0.8, 1.0, "80-100%"),
)


def is_false_positive(feedback: ValidationFeedback) -> bool:
    return (feedback.original_result.decision == DecisionType.AUTO_APPROVE
            and feedback.human_decision != HumanDecision.VALIDATED)


def is_false_negative(feedback: ValidationFeedback) -> bool:
    return (feedback.original_result.decision == DecisionType.AUTO_REJECT
            and feedback.human_decision == HumanDecision.VALIDATED)


def is_correct(feedback: ValidationFeedback) -> bool:
    return was_decision_correct(feedback.original_result.decision, feedback.human_decision)


def pearson_correlation(values: Sequence[float], outcomes: Sequence[float]) -> float:
    """Pearson correlation; 0 when either series has no variance."""
    if len(values) == 0:
        return 0.0
    x = np.asarray(values, dtype=float)
    y = np.asarray(outcomes, dtype=float)
    dx = x - x.mean()
    dy = y - y.mean()
    denominator = np.sqrt(np.sum(dx * dx) * np.sum(dy * dy))
    if denominator <= 0:
        return 0.0
    return float(np.sum(dx * dy) / denominator)


@dataclass
class FactorPerformance:
    correlation: float
    average_value: float
    correct_rate: float
    sample_size: int


@dataclass
class ConfidencePerformance:
    confidence_range: str
    count: int
    accuracy: float
    average_confidence: float


@dataclass
class AccuracyTrend:
    timestamp: datetime
    window_size: int
    accuracy: float
    false_positive_rate: float
    false_negative_rate: float
    average_confidence: float


@dataclass
class AccuracyMetrics:
    total_decisions: int = 0
    correct_decisions: int = 0
    overall_accuracy: float = 0.0
    false_positive_rate: float = 0.0
    false_negative_rate: float = 0.0
    decision_distribution: Dict[str, int] = field(
        default_factory=lambda: {decision.value: 0 for decision in DecisionType}
    )
    accuracy_by_decision: Dict[str, float] = field(
        default_factory=lambda: {decision.value: 0.0 for decision in DecisionType}
    )
    confidence_calibration: float = 0.0
    factor_performance: Dict[str, FactorPerformance] = field(default_factory=dict)


class AccuracyTracker:
    """
    Bounded feedback ledger.

    Appends are serialized with a lock; the deque drops the oldest entries
    once the window is full.
    """

    def __init__(self, max_entries: Optional[int] = None):
        self.max_entries = max_entries or get_settings().validation.feedback_window
        self._history: deque = deque(maxlen=self.max_entries)
        self._lock = threading.Lock()
        logger.info(f"📈 Accuracy Tracker initialized (window: {self.max_entries})")

    def __len__(self) -> int:
        return len(self._history)

    def _snapshot(self) -> List[ValidationFeedback]:
        with self._lock:
            return list(self._history)

    def add_feedback(self, feedback: ValidationFeedback) -> None:
        with self._lock:
            self._history.append(feedback)

    def add_feedback_batch(self, feedback: Sequence[ValidationFeedback]) -> None:
        with self._lock:
            self._history.extend(feedback)
        logger.debug(f"📝 Recorded {len(feedback)} feedback entries", total=len(self))

    def get_accuracy_metrics(self) -> AccuracyMetrics:
        history = self._snapshot()
        if not history:
            return AccuracyMetrics()

        total = len(history)
        metrics = AccuracyMetrics(total_decisions=total)
        per_decision = {decision.value: [0, 0] for decision in DecisionType}
        false_positives = 0
        false_negatives = 0

        for item in history:
            decision = item.original_result.decision.value
            metrics.decision_distribution[decision] += 1
            per_decision[decision][1] += 1
            if is_correct(item):
                metrics.correct_decisions += 1
                per_decision[decision][0] += 1
            elif is_false_positive(item):
                false_positives += 1
            elif is_false_negative(item):
                false_negatives += 1

        metrics.overall_accuracy = metrics.correct_decisions / total
        metrics.false_positive_rate = false_positives / total
        metrics.false_negative_rate = false_negatives / total
        metrics.accuracy_by_decision = {
            decision: correct / count if count else 0.0
            for decision, (correct, count) in per_decision.items()
        }
        metrics.confidence_calibration = self._calibration(self._bucket_performance(history))
        metrics.factor_performance = self._factor_performance(history)

        update_accuracy_metrics(metrics.overall_accuracy, metrics.confidence_calibration)
        return metrics

    def get_accuracy_trend(self, window_size: int = 50) -> List[AccuracyTrend]:
        """Metrics over sliding windows that advance by half a window."""
        history = self._snapshot()
        if window_size <= 0 or len(history) < window_size:
            return []

        step = max(1, window_size // 2)
        trend = []
        for end in range(window_size, len(history) + 1, step):
            window = history[end - window_size:end]
            trend.append(AccuracyTrend(
                timestamp=window[-1].timestamp,
                window_size=window_size,
                accuracy=sum(1 for f in window if is_correct(f)) / window_size,
                false_positive_rate=sum(1 for f in window if is_false_positive(f)) / window_size,
                false_negative_rate=sum(1 for f in window if is_false_negative(f)) / window_size,
                average_confidence=sum(f.original_result.confidence for f in window) / window_size,
            ))
        return trend

    def get_performance_by_confidence(self) -> List[ConfidencePerformance]:
        return self._bucket_performance(self._snapshot())

    def get_recent_feedback(self, count: int = 10) -> List[ValidationFeedback]:
        if count <= 0:
            return []
        return self._snapshot()[-count:]

    def get_feedback(self) -> List[ValidationFeedback]:
        return self._snapshot()

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()
        logger.info(f"🧹 Accuracy history cleared")

    def _bucket_performance(self, history: List[ValidationFeedback]) -> List[ConfidencePerformance]:
        performance = []
        for index, (low, high, label) in enumerate(CONFIDENCE_BUCKETS):
            last = index == len(CONFIDENCE_BUCKETS) - 1
            in_bucket = [
                f for f in history
                if low <= f.original_result.confidence < high
                or (last and f.original_result.confidence == high)
            ]
            if not in_bucket:
                performance.append(ConfidencePerformance(label, 0, 0.0, (low + high) / 2))
                continue

            correct = sum(1 for f in in_bucket if is_correct(f))
            average = sum(f.original_result.confidence for f in in_bucket) / len(in_bucket)
            performance.append(ConfidencePerformance(label, len(in_bucket),
                                                     correct / len(in_bucket), average))
        return performance

    def _calibration(self, buckets: List[ConfidencePerformance]) -> float:
        counted = [bucket for bucket in buckets if bucket.count > 0]
        total = sum(bucket.count for bucket in counted)
        if total == 0:
            return 0.0
        error = sum(abs(b.average_confidence - b.accuracy) * b.count for b in counted)
        return 1 - error / total

    def _factor_performance(self, history: List[ValidationFeedback]) -> Dict[str, FactorPerformance]:
        outcomes = [1.0 if is_correct(f) else 0.0 for f in history]
        performance = {}
        for name in CONFIDENCE_FACTORS:
            values = [getattr(f.original_result.confidence_factors, name) for f in history]
            performance[name] = FactorPerformance(
                correlation=pearson_correlation(values, outcomes),
                average_value=float(np.mean(values)),
                correct_rate=float(np.mean(outcomes)),
                sample_size=len(values),
            )
        return performance

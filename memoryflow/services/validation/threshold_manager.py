"""
Threshold Management for Auto-Confirmation
Holds the active threshold configuration and proposes recalibrations from
human feedback.
"""

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ...shared.monitoring import get_logger
from .defaults import DEFAULT_THRESHOLD_CONFIG
from .metrics import update_threshold_metrics
from .models import (
    CONFIDENCE_FACTORS,
    ConfidenceWeights,
    DecisionType,
    HumanDecision,
    ThresholdConfig,
    ThresholdUpdate,
    ValidationFeedback,
)

logger = get_logger(__name__)

HIGH_ERROR_RATE = 0.05
LOW_FALSE_POSITIVE_RATE = 0.02
HIGH_ACCURACY = 0.9
APPROVE_RAISE_STEP = 0.05
APPROVE_LOWER_STEP = 0.02
REJECT_LOWER_STEP = 0.05
MAX_APPROVE_THRESHOLD = 0.95
MIN_APPROVE_THRESHOLD = 0.65
MIN_REJECT_THRESHOLD = 0.30
FACTOR_CONTRIBUTION_LEVEL = 0.7
MAX_EXPECTED_IMPROVEMENT = 0.1


def was_decision_correct(decision: DecisionType, human_decision: HumanDecision) -> bool:
    """needs-review defers to a human and always counts as correct."""
    if decision == DecisionType.AUTO_APPROVE:
        return human_decision == HumanDecision.VALIDATED
    if decision == DecisionType.AUTO_REJECT:
        return human_decision == HumanDecision.REJECTED
    return True


@dataclass
class FactorTally:
    correct: int = 0
    total: int = 0

    @property
    def rate(self) -> float:
        return self.correct / self.total if self.total else 0.0


@dataclass
class FeedbackAnalysis:
    total_feedback: int = 0
    correct_decisions: int = 0
    false_positives: int = 0
    false_negatives: int = 0
    factor_performance: Dict[str, FactorTally] = field(
        default_factory=lambda: {name: FactorTally() for name in CONFIDENCE_FACTORS}
    )

    @property
    def accuracy(self) -> float:
        return self.correct_decisions / self.total_feedback

    @property
    def false_positive_rate(self) -> float:
        return self.false_positives / self.total_feedback

    @property
    def false_negative_rate(self) -> float:
        return self.false_negatives / self.total_feedback


class ThresholdManager:
    """
    Owns the process-wide threshold configuration.

    Reads return the current immutable snapshot; writes replace it whole
    under a lock, so readers never observe a partially updated config.
    """

    def __init__(self, initial_config: Optional[ThresholdConfig] = None):
        self._config = initial_config or DEFAULT_THRESHOLD_CONFIG
        self._lock = threading.Lock()
        update_threshold_metrics(self._config.auto_approve_threshold,
                                 self._config.auto_reject_threshold)

        logger.info(f"🎚️ Threshold Manager initialized")
        logger.info(f"   Approve threshold: {self._config.auto_approve_threshold}")
        logger.info(f"   Reject threshold: {self._config.auto_reject_threshold}")

    def get_config(self) -> ThresholdConfig:
        with self._lock:
            return self._config

    def set_config(self, config: ThresholdConfig) -> None:
        if not isinstance(config, ThresholdConfig):
            config = ThresholdConfig.model_validate(config)
        with self._lock:
            self._config = config
        update_threshold_metrics(config.auto_approve_threshold, config.auto_reject_threshold)

    def calculate_threshold_update(self, feedback: List[ValidationFeedback]) -> ThresholdUpdate:
        """
        Propose a new configuration from a batch of feedback.

        Never changes the active configuration; committing the proposal is
        the caller's decision.
        """
        current = self.get_config()

        if not feedback:
            return ThresholdUpdate(
                previous_thresholds=current,
                recommended_thresholds=current,
                update_reasons=["No feedback provided"],
                expected_accuracy_improvement=0.0,
            )

        analysis = self.analyze_feedback(feedback)
        recommended = self._calculate_new_thresholds(current, analysis)
        reasons = self._generate_update_reasons(analysis)
        improvement = self._estimate_accuracy_improvement(current, recommended, analysis)

        logger.debug(f"📐 Threshold proposal from {analysis.total_feedback} feedback entries",
                     accuracy=analysis.accuracy, improvement=improvement)

        return ThresholdUpdate(
            previous_thresholds=current,
            recommended_thresholds=recommended,
            update_reasons=reasons,
            expected_accuracy_improvement=improvement,
        )

    def analyze_feedback(self, feedback: List[ValidationFeedback]) -> FeedbackAnalysis:
        analysis = FeedbackAnalysis(total_feedback=len(feedback))

        for item in feedback:
            decision = item.original_result.decision
            correct = was_decision_correct(decision, item.human_decision)

            if correct:
                analysis.correct_decisions += 1
            elif decision == DecisionType.AUTO_APPROVE:
                analysis.false_positives += 1
            elif decision == DecisionType.AUTO_REJECT:
                analysis.false_negatives += 1

            for name, value in item.original_result.confidence_factors.as_dict().items():
                tally = analysis.factor_performance[name]
                tally.total += 1
                if correct and value > FACTOR_CONTRIBUTION_LEVEL:
                    tally.correct += 1

        return analysis

    def _calculate_new_thresholds(self, current: ThresholdConfig,
                                  analysis: FeedbackAnalysis) -> ThresholdConfig:
        approve = current.auto_approve_threshold
        reject = current.auto_reject_threshold

        if analysis.false_positive_rate > HIGH_ERROR_RATE:
            approve = min(MAX_APPROVE_THRESHOLD, approve + APPROVE_RAISE_STEP)
        elif (analysis.false_positive_rate < LOW_FALSE_POSITIVE_RATE
              and analysis.accuracy > HIGH_ACCURACY):
            approve = max(MIN_APPROVE_THRESHOLD, approve - APPROVE_LOWER_STEP)

        if analysis.false_negative_rate > HIGH_ERROR_RATE:
            reject = max(MIN_REJECT_THRESHOLD, reject - REJECT_LOWER_STEP)

        # Lowering approve below reject would make the ranges overlap
        if approve < reject:
            approve = current.auto_approve_threshold

        weights = current.weights.as_dict()
        for name, tally in analysis.factor_performance.items():
            if tally.total == 0:
                continue
            if tally.rate > 0.8:
                weights[name] *= 1.1
            elif tally.rate < 0.5:
                weights[name] *= 0.9

        total = sum(weights.values())
        if total > 0:
            weights = {name: value / total for name, value in weights.items()}

        return ThresholdConfig(
            auto_approve_threshold=approve,
            auto_reject_threshold=reject,
            weights=ConfidenceWeights(**weights),
        )

    def _generate_update_reasons(self, analysis: FeedbackAnalysis) -> List[str]:
        reasons = [f"Current accuracy: {analysis.accuracy * 100:.1f}%"]

        if analysis.false_positive_rate > HIGH_ERROR_RATE:
            reasons.append(
                f"High false positive rate ({analysis.false_positive_rate * 100:.1f}%) "
                f"- increasing approval threshold"
            )
        if analysis.false_negative_rate > HIGH_ERROR_RATE:
            reasons.append(
                f"High false negative rate ({analysis.false_negative_rate * 100:.1f}%) "
                f"- decreasing rejection threshold"
            )

        for name, tally in analysis.factor_performance.items():
            if tally.total == 0:
                continue
            if tally.rate > 0.8:
                reasons.append(f"{name} performing well ({tally.rate * 100:.1f}% accuracy)")
            elif tally.rate < 0.5:
                reasons.append(f"{name} underperforming ({tally.rate * 100:.1f}% accuracy)")

        return reasons

    def _estimate_accuracy_improvement(self, current: ThresholdConfig,
                                       recommended: ThresholdConfig,
                                       analysis: FeedbackAnalysis) -> float:
        improvement = 0.0

        increase = recommended.auto_approve_threshold - current.auto_approve_threshold
        if increase > 0:
            improvement += increase * analysis.false_positive_rate

        decrease = current.auto_reject_threshold - recommended.auto_reject_threshold
        if decrease > 0:
            improvement += decrease * analysis.false_negative_rate

        return min(MAX_EXPECTED_IMPROVEMENT, max(0.0, improvement))

"""
Auto-Confirmation Engine
Classifies memories as auto-approve, needs-review or auto-reject from their
confidence score and the active thresholds, and recalibrates the thresholds
from human feedback.
"""

from typing import Any, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from ...shared.config import get_settings
from ...shared.models import Memory
from ...shared.monitoring import PerformanceTracker, get_logger
from .confidence_calculator import ConfidenceCalculator
from .metrics import (
    observe_batch_duration,
    record_decision,
    record_evaluation_failure,
    record_threshold_update,
)
from .models import (
    AutoConfirmationResult,
    BatchValidationResult,
    ConfidenceFactors,
    ConfidenceScore,
    DecisionCounts,
    DecisionType,
    EvaluationOutcome,
    ThresholdConfig,
    ThresholdUpdate,
    ValidationFeedback,
)
from .threshold_manager import ThresholdManager

logger = get_logger(__name__)

MemoryInput = Union[Memory, Mapping[str, Any]]

STRONG_FACTOR = 0.8
WEAK_FACTOR = 0.5
SUGGESTED_REVIEW_FACTORS = 3


def classify_confidence(score: float, config: ThresholdConfig) -> DecisionType:
    """
    Map an overall confidence score onto a decision.

    The three ranges ``[0, reject)``, ``[reject, approve)`` and
    ``[approve, 1]`` partition the score space.
    """
    if score >= config.auto_approve_threshold:
        return DecisionType.AUTO_APPROVE
    if score < config.auto_reject_threshold:
        return DecisionType.AUTO_REJECT
    return DecisionType.NEEDS_REVIEW


def coerce_memory(item: MemoryInput) -> Memory:
    """Accept a Memory or a raw mapping (camelCase or snake_case keys)."""
    if isinstance(item, Memory):
        return item
    return Memory.model_validate(item)


def memory_id_of(item: Any) -> str:
    if isinstance(item, Memory):
        return item.id
    if isinstance(item, Mapping):
        value = item.get("id")
        if isinstance(value, str) and value:
            return value
    return "unknown"


def describe_error(error: Exception) -> str:
    if isinstance(error, ValidationError):
        return f"invalid memory record ({error.error_count()} validation errors)"
    return str(error) or error.__class__.__name__


def error_result(memory_id: str, message: str) -> AutoConfirmationResult:
    """Safe default for a record that could not be evaluated."""
    return AutoConfirmationResult(
        memory_id=memory_id,
        decision=DecisionType.NEEDS_REVIEW,
        confidence=0.0,
        confidence_factors=ConfidenceFactors(),
        reasons=[f"Evaluation error: {message} - requires manual review"],
        suggested_actions=["Check memory data integrity"],
    )


def _pct(value: float) -> str:
    return f"{value * 100:.1f}%"


class AutoConfirmationEngine:
    """
    Orchestrates confidence scoring and threshold decisions.

    The engine owns a ThresholdManager and shares it with its
    ConfidenceCalculator, so both always see the same configuration.
    """

    def __init__(self, config: Optional[ThresholdConfig] = None,
                 min_accuracy_improvement: Optional[float] = None):
        settings = get_settings()
        self.threshold_manager = ThresholdManager(config)
        self.confidence_calculator = ConfidenceCalculator(self.threshold_manager)
        self.min_accuracy_improvement = (
            min_accuracy_improvement
            if min_accuracy_improvement is not None
            else settings.validation.min_accuracy_improvement
        )

        logger.info(f"🤖 Auto-Confirmation Engine initialized")
        logger.info(f"   Minimum accuracy improvement: {self.min_accuracy_improvement}")

    def evaluate_memory(self, memory: MemoryInput,
                        config: Optional[ThresholdConfig] = None) -> AutoConfirmationResult:
        """
        Evaluate a single memory.

        Raises on malformed input; use process_batch for failure isolation.
        """
        memory = coerce_memory(memory)
        if config is None:
            config = self.threshold_manager.get_config()

        logger.debug(f"🔍 Evaluating memory: {memory.id}")
        score = self.confidence_calculator.calculate_confidence(memory, config)
        result = self._build_result(memory.id, score, config)

        record_decision(result.decision.value, result.confidence)
        logger.debug(f"📋 Decision for {memory.id}: {result.decision.value}",
                     confidence=round(result.confidence, 4))
        return result

    def _build_result(self, memory_id: str, score: ConfidenceScore,
                      config: ThresholdConfig) -> AutoConfirmationResult:
        overall = score.overall
        factors = score.factors.as_dict()
        decision = classify_confidence(overall, config)
        reasons: List[str] = []
        suggested_actions: List[str] = []

        if decision == DecisionType.AUTO_APPROVE:
            reasons.append(
                f"Confidence score ({_pct(overall)}) exceeds approval threshold "
                f"({_pct(config.auto_approve_threshold)})"
            )
        elif decision == DecisionType.AUTO_REJECT:
            reasons.append(
                f"Confidence score ({_pct(overall)}) below rejection threshold "
                f"({_pct(config.auto_reject_threshold)})"
            )
        else:
            reasons.append(f"Confidence score ({_pct(overall)}) requires human review")

        for name, value in factors.items():
            if value > STRONG_FACTOR:
                reasons.append(f"Strong {name}: {_pct(value)}")
            elif value < WEAK_FACTOR:
                reasons.append(f"Weak {name}: {_pct(value)}")

        if decision == DecisionType.NEEDS_REVIEW:
            weakest = sorted(factors.items(), key=lambda item: item[1])[:SUGGESTED_REVIEW_FACTORS]
            for name, value in weakest:
                suggested_actions.append(f"Review {name} (currently {_pct(value)})")

        return AutoConfirmationResult(
            memory_id=memory_id,
            decision=decision,
            confidence=overall,
            confidence_factors=score.factors,
            reasons=reasons,
            suggested_actions=suggested_actions,
        )

    def _evaluate_isolated(self, item: MemoryInput, config: ThresholdConfig) -> EvaluationOutcome:
        memory_id = memory_id_of(item)
        try:
            return EvaluationOutcome(memory_id=memory_id, result=self.evaluate_memory(item, config))
        except Exception as e:
            logger.error(f"❌ Error evaluating memory {memory_id}: {describe_error(e)}",
                         memory_id=memory_id, error_type=e.__class__.__name__)
            record_evaluation_failure("auto_confirmation", e.__class__.__name__)
            return EvaluationOutcome(memory_id=memory_id, error=describe_error(e))

    def process_batch(self, memories: Iterable[MemoryInput]) -> BatchValidationResult:
        """
        Evaluate every memory in a batch against one threshold snapshot.

        A record that fails evaluation becomes a needs-review result; the
        rest of the batch is unaffected.
        """
        items = list(memories)
        config = self.threshold_manager.get_config()
        logger.info(f"📦 Processing batch of {len(items)} memories")

        results: List[AutoConfirmationResult] = []
        failed_ids: List[str] = []
        counts = DecisionCounts()
        total_confidence = 0.0

        tracker = PerformanceTracker("auto_confirmation.process_batch")
        with tracker:
            for item in items:
                outcome = self._evaluate_isolated(item, config)
                if outcome.ok:
                    result = outcome.result
                else:
                    result = error_result(outcome.memory_id, outcome.error)
                    failed_ids.append(outcome.memory_id)

                results.append(result)
                counts.record(result.decision)
                total_confidence += result.confidence

        processing_time_ms = tracker.elapsed_ms
        observe_batch_duration("process_batch", processing_time_ms / 1000)
        batch_confidence = total_confidence / len(items) if items else 0.0

        logger.info(f"✅ Batch complete: {len(items)} memories in {processing_time_ms:.1f}ms",
                    auto_approved=counts.auto_approved,
                    needs_review=counts.needs_review,
                    auto_rejected=counts.auto_rejected,
                    failed=len(failed_ids),
                    batch_confidence=round(batch_confidence, 4))

        return BatchValidationResult(
            total_memories=len(items),
            decisions=counts,
            batch_confidence=batch_confidence,
            results=results,
            processing_time_ms=processing_time_ms,
            failed_memory_ids=failed_ids,
        )

    def update_thresholds(self, feedback: List[ValidationFeedback]) -> ThresholdUpdate:
        """
        Propose a recalibration from feedback and commit it only when the
        expected improvement clears the minimum bar.
        """
        logger.info(f"🔄 Updating thresholds from {len(feedback)} feedback entries")
        update = self.threshold_manager.calculate_threshold_update(feedback)

        if update.expected_accuracy_improvement > self.min_accuracy_improvement:
            self.threshold_manager.set_config(update.recommended_thresholds)
            update.applied = True
            logger.info(f"✅ Thresholds updated "
                        f"(expected improvement {update.expected_accuracy_improvement:.3f})",
                        reasons=update.update_reasons)
        else:
            logger.info(f"ℹ️ No threshold update needed "
                        f"(expected improvement {update.expected_accuracy_improvement:.3f})")

        record_threshold_update(update.applied)
        return update

    def get_config(self) -> ThresholdConfig:
        return self.threshold_manager.get_config()

    def set_config(self, config: ThresholdConfig) -> None:
        self.threshold_manager.set_config(config)
        logger.info(f"⚙️ Configuration updated",
                    approve=self.threshold_manager.get_config().auto_approve_threshold,
                    reject=self.threshold_manager.get_config().auto_reject_threshold)


def create_auto_confirmation_engine(config: Optional[ThresholdConfig] = None) -> AutoConfirmationEngine:
    """Factory function to create an auto-confirmation engine"""
    return AutoConfirmationEngine(config)

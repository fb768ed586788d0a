"""
Validation Analytics
Batch throughput tracking, system health scoring and tuning recommendations
on top of the accuracy ledger.
"""

import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from ...shared.config import get_settings
from ...shared.monitoring import get_logger
from ...shared.timestamp_utils import utc_now
from .accuracy_tracker import AccuracyMetrics, AccuracyTracker, AccuracyTrend
from .metrics import update_health_metric
from .models import (
    AutoConfirmationResult,
    BatchValidationResult,
    DecisionCounts,
    QualityDistribution,
    SampledMemories,
    ThresholdUpdate,
    ValidationFeedback,
)

logger = get_logger(__name__)

MIN_ACCURACY = 0.8
TARGET_ACCURACY = 0.85
MAX_ERROR_RATE = 0.05
MIN_THROUGHPUT_PER_MINUTE = 30
MIN_BATCH_CONFIDENCE = 0.6
MAX_AVERAGE_PROCESSING_MS = 100
CALIBRATION_MIN_SAMPLES = 10
CALIBRATION_MAX_GAP = 0.2
HEALTH_WINDOW = 5
EFFECTIVENESS_WINDOW = 10
TREND_WINDOW = 20

EFFECTIVENESS_WEIGHTS = {
    "auto_approval_rate": 0.3,
    "human_workload_reduction": 0.3,
    "quality_maintenance": 0.3,
    "time_efficiency": 0.1,
}


@dataclass
class BatchAnalytics:
    timestamp: datetime
    total_memories: int
    decisions: DecisionCounts
    batch_confidence: float
    processing_time_ms: float
    throughput: float  # memories per minute
    quality_distribution: QualityDistribution
    failed_memories: int = 0

    @property
    def auto_approval_rate(self) -> float:
        return self.decisions.auto_approved / self.total_memories if self.total_memories else 0.0


@dataclass
class PerformanceMetrics:
    total_memories_processed: int = 0
    total_validation_time_ms: float = 0.0
    average_processing_time_ms: float = 0.0
    throughput_per_hour: float = 0.0
    system_uptime_seconds: float = 0.0


@dataclass
class BatchTrend:
    timestamp: datetime
    throughput: float
    average_confidence: float
    auto_approval_rate: float
    processing_time_ms: float


@dataclass
class SystemHealth:
    overall: str
    score: float
    issues: List[str] = field(default_factory=list)
    uptime_seconds: float = 0.0


@dataclass
class ValidationAnalyticsReport:
    timestamp: datetime
    accuracy: AccuracyMetrics
    performance: PerformanceMetrics
    batch_trends: List[BatchTrend]
    system_health: SystemHealth
    recommendations: List[str]


@dataclass
class EffectivenessMetrics:
    auto_approval_rate: float
    human_workload_reduction: float
    quality_maintenance: float
    time_efficiency: float
    overall_effectiveness: float


@dataclass
class SamplingEffectiveness:
    average_coverage: float
    sampling_efficiency: float
    representativeness_score: float
    recommendations: List[str]


def throughput_per_minute(total_memories: int, processing_time_ms: float) -> float:
    return total_memories / max(processing_time_ms, 1.0) * 60_000


def confidence_distribution(results: Sequence[AutoConfirmationResult]) -> QualityDistribution:
    distribution = QualityDistribution()
    for result in results:
        if result.confidence >= 0.8:
            distribution.high += 1
        elif result.confidence >= 0.5:
            distribution.medium += 1
        else:
            distribution.low += 1
    return distribution


class ValidationAnalytics:
    """Aggregates batch results and feedback into health and tuning reports"""

    def __init__(self, accuracy_tracker: Optional[AccuracyTracker] = None):
        settings = get_settings().validation
        self.accuracy_tracker = accuracy_tracker or AccuracyTracker()
        self.target_throughput = settings.target_throughput_per_minute
        self.batch_history: deque = deque(maxlen=settings.batch_history_size)
        self._total_processed = 0
        self._total_time_ms = 0.0
        self._started_at = time.time()
        logger.info(f"📊 Validation Analytics initialized")
        logger.info(f"   Target throughput: {self.target_throughput}/min")

    def record_batch_validation(self, result: BatchValidationResult) -> BatchAnalytics:
        self._total_processed += result.total_memories
        self._total_time_ms += result.processing_time_ms

        batch = BatchAnalytics(
            timestamp=utc_now(),
            total_memories=result.total_memories,
            decisions=result.decisions,
            batch_confidence=result.batch_confidence,
            processing_time_ms=result.processing_time_ms,
            throughput=throughput_per_minute(result.total_memories, result.processing_time_ms),
            quality_distribution=confidence_distribution(result.results),
            failed_memories=len(result.failed_memory_ids),
        )
        self.batch_history.append(batch)

        logger.info(f"📦 Batch recorded: {result.total_memories} memories",
                    auto_approve_rate=round(batch.auto_approval_rate, 4),
                    batch_confidence=round(result.batch_confidence, 4),
                    throughput=round(batch.throughput, 1))
        return batch

    def record_validation_feedback(self, feedback: List[ValidationFeedback]) -> None:
        self.accuracy_tracker.add_feedback_batch(feedback)
        logger.info(f"📝 Validation feedback recorded: {len(feedback)} entries",
                    accuracy=round(self.accuracy_tracker.get_accuracy_metrics().overall_accuracy, 4))

    def propose_threshold_update(self, threshold_manager) -> ThresholdUpdate:
        """Build a threshold proposal from recorded feedback without committing it."""
        return threshold_manager.calculate_threshold_update(self.accuracy_tracker.get_feedback())

    def get_analytics_report(self) -> ValidationAnalyticsReport:
        accuracy = self.accuracy_tracker.get_accuracy_metrics()
        performance = self.get_performance_metrics()
        return ValidationAnalyticsReport(
            timestamp=utc_now(),
            accuracy=accuracy,
            performance=performance,
            batch_trends=self.get_batch_trends(),
            system_health=self.get_system_health(accuracy),
            recommendations=self.generate_recommendations(accuracy, performance),
        )

    def get_accuracy_trend(self, window_size: int = 50) -> List[AccuracyTrend]:
        return self.accuracy_tracker.get_accuracy_trend(window_size)

    def get_performance_metrics(self) -> PerformanceMetrics:
        uptime = time.time() - self._started_at
        hours = uptime / 3600
        return PerformanceMetrics(
            total_memories_processed=self._total_processed,
            total_validation_time_ms=self._total_time_ms,
            average_processing_time_ms=(
                self._total_time_ms / self._total_processed if self._total_processed else 0.0
            ),
            throughput_per_hour=self._total_processed / hours if hours > 0 else 0.0,
            system_uptime_seconds=uptime,
        )

    def get_batch_trends(self) -> List[BatchTrend]:
        return [
            BatchTrend(
                timestamp=batch.timestamp,
                throughput=batch.throughput,
                average_confidence=batch.batch_confidence,
                auto_approval_rate=batch.auto_approval_rate,
                processing_time_ms=batch.processing_time_ms,
            )
            for batch in list(self.batch_history)[-TREND_WINDOW:]
        ]

    def get_system_health(self, accuracy: Optional[AccuracyMetrics] = None) -> SystemHealth:
        if accuracy is None:
            accuracy = self.accuracy_tracker.get_accuracy_metrics()
        recent = list(self.batch_history)[-HEALTH_WINDOW:]
        throughput = sum(b.throughput for b in recent) / len(recent) if recent else 0.0

        score = (
            accuracy.overall_accuracy * 0.5
            + (1 - (accuracy.false_positive_rate + accuracy.false_negative_rate) / 2) * 0.3
            + min(1.0, throughput / self.target_throughput) * 0.2
        )
        if score > 0.8:
            overall = "healthy"
        elif score > 0.6:
            overall = "warning"
        else:
            overall = "critical"

        update_health_metric(score)
        return SystemHealth(
            overall=overall,
            score=score,
            issues=self._identify_issues(accuracy, throughput, recent),
            uptime_seconds=time.time() - self._started_at,
        )

    def _identify_issues(self, accuracy: AccuracyMetrics, throughput: float,
                         recent: List[BatchAnalytics]) -> List[str]:
        issues = []
        if accuracy.overall_accuracy < MIN_ACCURACY:
            issues.append(f"Low accuracy: {accuracy.overall_accuracy * 100:.1f}%")
        if accuracy.false_positive_rate > MAX_ERROR_RATE:
            issues.append(f"High false positive rate: {accuracy.false_positive_rate * 100:.1f}%")
        if accuracy.false_negative_rate > MAX_ERROR_RATE:
            issues.append(f"High false negative rate: {accuracy.false_negative_rate * 100:.1f}%")
        if throughput < MIN_THROUGHPUT_PER_MINUTE:
            issues.append(f"Low throughput: {throughput:.1f} memories/minute")
        if recent:
            confidence = sum(b.batch_confidence for b in recent) / len(recent)
            if confidence < MIN_BATCH_CONFIDENCE:
                issues.append(f"Low batch confidence: {confidence * 100:.1f}%")
        return issues

    def generate_recommendations(self, accuracy: AccuracyMetrics,
                                 performance: PerformanceMetrics) -> List[str]:
        recommendations = []
        if accuracy.overall_accuracy < TARGET_ACCURACY:
            recommendations.append("Consider adjusting confidence thresholds to improve accuracy")
        if accuracy.false_positive_rate > MAX_ERROR_RATE:
            recommendations.append("Increase auto-approval threshold to reduce false positives")
        if accuracy.false_negative_rate > MAX_ERROR_RATE:
            recommendations.append("Decrease auto-rejection threshold to reduce false negatives")
        if performance.average_processing_time_ms > MAX_AVERAGE_PROCESSING_MS:
            recommendations.append("Optimize processing pipeline to improve throughput")

        miscalibrated = any(
            bucket.count >= CALIBRATION_MIN_SAMPLES
            and abs(bucket.accuracy - bucket.average_confidence) > CALIBRATION_MAX_GAP
            for bucket in self.accuracy_tracker.get_performance_by_confidence()
        )
        if miscalibrated:
            recommendations.append(
                "Recalibrate confidence scoring - prediction accuracy mismatch detected"
            )
        return recommendations

    def get_effectiveness_metrics(self) -> EffectivenessMetrics:
        accuracy = self.accuracy_tracker.get_accuracy_metrics()
        recent = list(self.batch_history)[-EFFECTIVENESS_WINDOW:]

        total = sum(b.total_memories for b in recent)
        approval_rate = sum(b.decisions.auto_approved for b in recent) / total if total else 0.0
        quality = accuracy.overall_accuracy * (
            1 - (accuracy.false_positive_rate + accuracy.false_negative_rate) / 2
        )
        if recent:
            time_efficiency = min(1.0, sum(b.throughput for b in recent) / len(recent)
                                  / self.target_throughput)
        else:
            time_efficiency = 0.0

        values = {
            "auto_approval_rate": approval_rate,
            # Without automation every memory would need a human
            "human_workload_reduction": approval_rate,
            "quality_maintenance": quality,
            "time_efficiency": time_efficiency,
        }
        overall = sum(values[name] * weight for name, weight in EFFECTIVENESS_WEIGHTS.items())
        return EffectivenessMetrics(overall_effectiveness=overall, **values)

    def analyze_sampling_effectiveness(self, samples: Sequence[SampledMemories]) -> SamplingEffectiveness:
        if not samples:
            return SamplingEffectiveness(0.0, 0.0, 0.0, ["No sampling data available"])

        count = len(samples)
        average_coverage = sum(s.coverage.overall_score for s in samples) / count
        efficiency = sum(
            min(1.0, s.coverage.overall_score / max(0.1, s.metadata.sampling_rate))
            for s in samples
        ) / count
        representativeness = sum(
            s.coverage.emotional_coverage.coverage_percentage / 100 * 0.4
            + (0.8 if s.coverage.temporal_coverage.distribution == "even" else 0.4) * 0.3
            + s.coverage.participant_coverage.coverage_percentage / 100 * 0.3
            for s in samples
        ) / count

        recommendations = []
        low_emotional = [s for s in samples if s.coverage.emotional_coverage.coverage_percentage < 60]
        if len(low_emotional) > count * 0.5:
            recommendations.append("Increase emotional diversity in sampling strategy")
        gappy = [s for s in samples if len(s.coverage.temporal_coverage.gaps) > 2]
        if len(gappy) > count * 0.3:
            recommendations.append("Improve temporal distribution in samples")
        if any(s.metadata.sampling_rate > 0.5 for s in samples):
            recommendations.append("Optimize sampling rate - current strategy may be over-sampling")

        return SamplingEffectiveness(
            average_coverage=average_coverage,
            sampling_efficiency=efficiency,
            representativeness_score=representativeness,
            recommendations=recommendations,
        )

    def clear_analytics(self) -> None:
        self.accuracy_tracker.clear_history()
        self.batch_history.clear()
        self._total_processed = 0
        self._total_time_ms = 0.0
        self._started_at = time.time()
        logger.info(f"🧹 Analytics data cleared")

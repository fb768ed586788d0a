"""
Validation Metrics Module for MemoryFlow
Provides Prometheus metrics for decision, significance and sampling tracking.
"""

from prometheus_client import Counter, Histogram, Gauge

from ...shared.monitoring import get_logger

logger = get_logger(__name__)

SCORE_BUCKETS = (0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.75, 0.8, 0.9, 1.0)

# Decision counters
validation_decisions = Counter(
    'memoryflow_validation_decisions_total',
    'Auto-confirmation decisions made',
    ['decision']
)

evaluation_failures = Counter(
    'memoryflow_evaluation_failures_total',
    'Per-record evaluation failures converted to safe defaults',
    ['component', 'error_type']
)

threshold_updates = Counter(
    'memoryflow_threshold_updates_total',
    'Threshold update proposals by outcome',
    ['outcome']
)

# Score histograms
confidence_score = Histogram(
    'memoryflow_confidence_score',
    'Overall confidence scores',
    buckets=SCORE_BUCKETS
)

significance_score = Histogram(
    'memoryflow_significance_score',
    'Overall emotional significance scores',
    buckets=SCORE_BUCKETS
)

batch_duration = Histogram(
    'memoryflow_batch_duration_seconds',
    'Batch processing time',
    ['operation']
)

# Gauges
current_threshold = Gauge(
    'memoryflow_current_threshold',
    'Active decision thresholds',
    ['threshold']
)

review_queue_size = Gauge(
    'memoryflow_review_queue_size',
    'Records selected for human review',
    ['strategy']
)

validation_accuracy = Gauge(
    'memoryflow_validation_accuracy',
    'Accuracy of auto-confirmation decisions against human feedback'
)

confidence_calibration = Gauge(
    'memoryflow_confidence_calibration',
    'Agreement between predicted confidence and observed accuracy'
)

system_health = Gauge(
    'memoryflow_system_health_score',
    'Composite validation system health score'
)

sampling_coverage = Gauge(
    'memoryflow_sampling_coverage',
    'Overall coverage score of the latest validation sample',
    ['strategy']
)


def record_decision(decision: str, confidence: float):
    """Record a single auto-confirmation decision"""
    try:
        validation_decisions.labels(decision=decision).inc()
        confidence_score.observe(confidence)
    except Exception as e:
        logger.warning(f"❌ Failed to record decision metrics: {e}")


def record_evaluation_failure(component: str, error_type: str):
    """Record a per-record evaluation failure"""
    try:
        evaluation_failures.labels(component=component, error_type=error_type).inc()
    except Exception as e:
        logger.warning(f"❌ Failed to record failure metrics: {e}")


def record_significance(overall: float):
    try:
        significance_score.observe(overall)
    except Exception as e:
        logger.warning(f"❌ Failed to record significance metrics: {e}")


def observe_batch_duration(operation: str, seconds: float):
    try:
        batch_duration.labels(operation=operation).observe(seconds)
    except Exception as e:
        logger.warning(f"❌ Failed to record batch duration: {e}")


def record_threshold_update(applied: bool):
    try:
        threshold_updates.labels(outcome="applied" if applied else "skipped").inc()
    except Exception as e:
        logger.warning(f"❌ Failed to record threshold update: {e}")


def update_threshold_metrics(approve: float, reject: float):
    """Publish the active thresholds"""
    try:
        current_threshold.labels(threshold="auto_approve").set(approve)
        current_threshold.labels(threshold="auto_reject").set(reject)
    except Exception as e:
        logger.warning(f"❌ Failed to update threshold metrics: {e}")


def update_queue_metrics(queue_size: int, strategy: str):
    """Update review queue metrics"""
    try:
        review_queue_size.labels(strategy=strategy).set(queue_size)
    except Exception as e:
        logger.warning(f"❌ Failed to update queue metrics: {e}")


def update_accuracy_metrics(accuracy: float, calibration: float):
    try:
        validation_accuracy.set(accuracy)
        confidence_calibration.set(calibration)
    except Exception as e:
        logger.warning(f"❌ Failed to update accuracy metrics: {e}")


def update_health_metric(score: float):
    try:
        system_health.set(score)
    except Exception as e:
        logger.warning(f"❌ Failed to update health metric: {e}")


def update_sampling_metrics(strategy: str, coverage: float):
    try:
        sampling_coverage.labels(strategy=strategy).set(coverage)
    except Exception as e:
        logger.warning(f"❌ Failed to update sampling metrics: {e}")

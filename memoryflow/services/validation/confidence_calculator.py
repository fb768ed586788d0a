"""
Multi-factor confidence scoring for extracted memories.

Each factor is a transparent heuristic over the record's fields; the overall
score is the weighted average of the factors using the active threshold
configuration's weights.
"""

import math
import re
from typing import Dict, Optional

from ...shared.models import Memory
from ...shared.monitoring import get_logger
from ...shared.timestamp_utils import parse_timestamp, utc_now, years_before
from .defaults import DEFAULT_THRESHOLD_CONFIG
from .models import ConfidenceFactors, ConfidenceScore, ThresholdConfig

logger = get_logger(__name__)

MEANINGFUL_WORD = re.compile(r"\b[^\W\d_]{3,}\b")

MIN_CONTENT_LENGTH = 20
MAX_CONTENT_LENGTH = 5000
MIN_MEANINGFUL_WORDS = 5
MAX_TAGS = 10
MAX_MEMORY_AGE_YEARS = 10


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    if math.isnan(value):
        return low
    return max(low, min(high, value))


def weighted_average(values: Dict[str, float], weights: Dict[str, float]) -> float:
    """Weighted mean renormalized by total weight (0 when no weight is set)."""
    weighted_sum = 0.0
    total_weight = 0.0
    for name, value in values.items():
        weight = weights.get(name, 0.0)
        weighted_sum += value * weight
        total_weight += weight
    if total_weight <= 0:
        return 0.0
    return clamp(weighted_sum / total_weight)


class ConfidenceCalculator:
    """Calculates the five-factor confidence score for a memory"""

    def __init__(self, threshold_manager=None):
        self.threshold_manager = threshold_manager

    def _active_config(self) -> ThresholdConfig:
        if self.threshold_manager is not None:
            return self.threshold_manager.get_config()
        return DEFAULT_THRESHOLD_CONFIG

    def calculate_confidence(self, memory: Memory,
                             config: Optional[ThresholdConfig] = None) -> ConfidenceScore:
        """
        Score a memory.

        Args:
            memory: The record to score
            config: Threshold snapshot to weight factors with; batch callers
                pass the snapshot they captured so every record in the batch
                is judged against the same configuration

        Returns:
            ConfidenceScore with overall value and individual factors
        """
        if config is None:
            config = self._active_config()

        factors = ConfidenceFactors(
            claude_confidence=self.extract_claude_confidence(memory),
            emotional_coherence=self.calculate_emotional_coherence(memory),
            relationship_accuracy=self.assess_relationship_accuracy(memory),
            temporal_consistency=self.check_temporal_consistency(memory),
            content_quality=self.evaluate_content_quality(memory),
        )

        overall = weighted_average(factors.as_dict(), config.weights.as_dict())
        return ConfidenceScore(overall=overall, factors=factors)

    def extract_claude_confidence(self, memory: Memory) -> float:
        confidence = memory.metadata.confidence
        if confidence is None:
            return 0.5
        return clamp(confidence)

    def calculate_emotional_coherence(self, memory: Memory) -> float:
        context = memory.emotional_context
        if context is None:
            return 0.3

        score = 0.5
        if context.primary_emotion and context.secondary_emotions:
            score += 0.2
        if context.intensity is not None and 0.0 <= context.intensity <= 1.0:
            score += 0.15
        if context.themes:
            score += 0.15
        return clamp(score)

    def assess_relationship_accuracy(self, memory: Memory) -> float:
        dynamics = memory.relationship_dynamics
        if dynamics is None:
            return 0.4

        score = 0.5
        if dynamics.communication_patterns:
            score += 0.2
        if dynamics.interaction_quality:
            score += 0.15
        if len(memory.participants) > 1:
            score += 0.15
        return clamp(score)

    def check_temporal_consistency(self, memory: Memory) -> float:
        timestamp = parse_timestamp(memory.timestamp)
        if timestamp is None:
            return 0.3

        score = 0.7
        processed_at = parse_timestamp(memory.metadata.processed_at)
        if processed_at is not None and timestamp <= processed_at:
            score += 0.15

        now = utc_now()
        if years_before(now, MAX_MEMORY_AGE_YEARS) <= timestamp <= now:
            score += 0.15
        return clamp(score)

    def evaluate_content_quality(self, memory: Memory) -> float:
        score = 0.5
        content = memory.content or ""

        if MIN_CONTENT_LENGTH <= len(content) <= MAX_CONTENT_LENGTH:
            score += 0.2
        if len(MEANINGFUL_WORD.findall(content)) >= MIN_MEANINGFUL_WORDS:
            score += 0.15
        if 1 <= len(memory.tags) <= MAX_TAGS:
            score += 0.15
        return clamp(score)

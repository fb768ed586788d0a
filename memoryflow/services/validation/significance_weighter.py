"""
Emotional Significance Weighting
Scores how emotionally important a memory is, independently of whether it
was extracted correctly, and uses the score to order human review.
"""

from datetime import date
from typing import Iterable, List, Optional, Tuple

from ...shared.models import Memory, MemoryMetadata
from ...shared.monitoring import PerformanceTracker, get_logger
from ...shared.timestamp_utils import parse_timestamp, utc_now
from .auto_confirmation import MemoryInput, coerce_memory, describe_error, memory_id_of
from .confidence_calculator import clamp, weighted_average
from .metrics import observe_batch_duration, record_evaluation_failure, record_significance
from .models import (
    SIGNIFICANCE_FACTORS,
    EvaluationOutcome,
    OptimizedQueue,
    PrioritizedMemoryList,
    SignificanceFactors,
    SignificanceScore,
    ValidationQueue,
)
from .priority_manager import PriorityManager

logger = get_logger(__name__)

SIGNIFICANCE_WEIGHTS = {
    "emotional_intensity": 0.30,
    "relationship_impact": 0.25,
    "life_event_significance": 0.20,
    "participant_vulnerability": 0.15,
    "temporal_importance": 0.10,
}

SIGNIFICANT_THEMES = ("loss", "love", "achievement", "trauma", "joy")
TRANSFORMATIVE_QUALITIES = ("transformative", "defining")
MEANINGFUL_QUALITIES = ("significant", "meaningful")
SIGNIFICANT_PATTERNS = ("conflict", "breakthrough", "reconciliation", "confession")

LIFE_EVENT_TAGS = (
    "wedding", "birth", "death", "graduation", "promotion",
    "breakup", "divorce", "accident", "diagnosis", "achievement",
    "milestone", "anniversary", "reunion", "farewell",
)
LIFE_EVENT_KEYWORDS = (
    "first time", "last time", "never forget", "changed my life",
    "turning point", "milestone", "announced", "diagnosed",
    "passed away", "born", "married", "proposed",
)

VULNERABLE_ROLES = ("child", "patient", "elderly", "dependent")
VULNERABLE_RELATIONSHIPS = ("child", "parent", "grandparent", "caregiver")
VULNERABLE_THEMES = ("grief", "trauma", "illness", "loss", "abuse")

# (month, day): Christmas, New Year, Valentine's, New Year's Eve
SPECIAL_DATES = ((12, 25), (1, 1), (2, 14), (12, 31))

NARRATIVE_DESCRIPTIONS = {
    "emotional_intensity": "strong emotional content",
    "relationship_impact": "important relationship dynamics",
    "life_event_significance": "major life event",
    "participant_vulnerability": "vulnerable participants",
    "temporal_importance": "temporal significance",
}

FALLBACK_NARRATIVE = "Unable to calculate significance - requires manual review"


def contains_any(values: Iterable[str], vocabulary: Iterable[str]) -> bool:
    """True if any value contains any vocabulary term (case-insensitive)."""
    vocabulary = tuple(vocabulary)
    return any(term in value.lower() for value in values for term in vocabulary)


def fallback_significance() -> SignificanceScore:
    """Fixed low-significance score for records that could not be scored."""
    return SignificanceScore(
        overall=0.3,
        factors=SignificanceFactors(**{name: 0.3 for name in SIGNIFICANCE_FACTORS}),
        narrative=FALLBACK_NARRATIVE,
    )


def placeholder_memory(memory_id: str) -> Memory:
    """Stand-in for a record too malformed to parse, so it can still be queued."""
    return Memory.model_construct(
        id=memory_id,
        content="",
        timestamp="",
        tags=[],
        participants=[],
        emotional_context=None,
        relationship_dynamics=None,
        metadata=MemoryMetadata(),
    )


class EmotionalSignificanceWeighter:
    """Calculates emotional significance and prioritizes review queues"""

    def __init__(self, priority_manager: Optional[PriorityManager] = None):
        self.priority_manager = priority_manager or PriorityManager()
        self.weights = dict(SIGNIFICANCE_WEIGHTS)
        logger.info(f"💗 Emotional Significance Weighter initialized")

    def calculate_significance(self, memory: MemoryInput) -> SignificanceScore:
        memory = coerce_memory(memory)

        factors = SignificanceFactors(
            emotional_intensity=self.calculate_emotional_intensity(memory),
            relationship_impact=self.assess_relationship_impact(memory),
            life_event_significance=self.evaluate_life_event_significance(memory),
            participant_vulnerability=self.assess_participant_vulnerability(memory),
            temporal_importance=self.calculate_temporal_importance(memory),
        )
        overall = weighted_average(factors.as_dict(), self.weights)
        narrative = self.generate_narrative(memory, factors, overall)

        record_significance(overall)
        logger.debug(f"💗 Significance for {memory.id}: {overall:.3f}")
        return SignificanceScore(overall=overall, factors=factors, narrative=narrative)

    def _score_isolated(self, item: MemoryInput) -> EvaluationOutcome:
        """Score one record; the outcome's result is a (memory, score) pair."""
        memory_id = memory_id_of(item)
        memory = None
        try:
            memory = coerce_memory(item)
            return EvaluationOutcome(memory_id=memory_id,
                                     result=(memory, self.calculate_significance(memory)))
        except Exception as e:
            logger.error(f"❌ Error calculating significance for {memory_id}: {describe_error(e)}",
                         memory_id=memory_id, error_type=e.__class__.__name__)
            record_evaluation_failure("significance", e.__class__.__name__)
            return EvaluationOutcome(memory_id=memory_id,
                                     result=(memory or placeholder_memory(memory_id),
                                             fallback_significance()),
                                     error=describe_error(e))

    def prioritize_memories(self, memories: Iterable[MemoryInput]) -> PrioritizedMemoryList:
        """
        Score and rank memories by significance.

        Records that fail to score receive the fallback score and are still
        ranked, so reviewers see them.
        """
        items = list(memories)
        logger.info(f"📊 Prioritizing {len(items)} memories")

        scored: List[Tuple[Memory, SignificanceScore]] = []

        with PerformanceTracker("significance.prioritize_memories") as tracker:
            for item in items:
                # keyed by position so records sharing an id keep their own score
                scored.append(self._score_isolated(item).result)

            prioritized = self.priority_manager.rank_scored(scored)

        observe_batch_duration("prioritize_memories", tracker.elapsed_ms / 1000)
        distribution = prioritized.significance_distribution
        logger.info(f"✅ Prioritization complete",
                    total=prioritized.total_count,
                    high=distribution.high,
                    medium=distribution.medium,
                    low=distribution.low)
        return prioritized

    def optimize_review_queue(self, queue: ValidationQueue) -> OptimizedQueue:
        logger.info(f"🗂️ Optimizing review queue {queue.id} "
                    f"({len(queue.pending_memories)} pending)")

        prioritized = self.prioritize_memories(queue.pending_memories)
        optimized = self.priority_manager.optimize_queue(queue, prioritized)

        logger.info(f"✅ Queue {queue.id} optimized: {len(optimized.optimized_order)} selected "
                    f"using {optimized.strategy.name.value}")
        return optimized

    # ------------------------------------------------------------------
    # Factors
    # ------------------------------------------------------------------

    def calculate_emotional_intensity(self, memory: Memory) -> float:
        context = memory.emotional_context
        if context is None:
            return 0.3

        score = 0.3
        if context.intensity is not None:
            score = context.intensity * 0.5 + 0.3
        if len(context.secondary_emotions) > 2:
            score += 0.2
        if contains_any(context.themes, SIGNIFICANT_THEMES):
            score += 0.2
        return clamp(score)

    def assess_relationship_impact(self, memory: Memory) -> float:
        dynamics = memory.relationship_dynamics
        if dynamics is None:
            return 0.3

        score = 0.3
        if dynamics.interaction_quality:
            quality = dynamics.interaction_quality.lower()
            if quality in TRANSFORMATIVE_QUALITIES:
                score += 0.3
            elif quality in MEANINGFUL_QUALITIES:
                score += 0.2
        if contains_any(dynamics.communication_patterns, SIGNIFICANT_PATTERNS):
            score += 0.2
        if len(memory.participants) > 2:
            score += 0.1
        return clamp(score)

    def evaluate_life_event_significance(self, memory: Memory) -> float:
        score = 0.4
        if contains_any(memory.tags, LIFE_EVENT_TAGS):
            score += 0.3

        content = (memory.content or "").lower()
        matches = sum(1 for keyword in LIFE_EVENT_KEYWORDS if keyword in content)
        score += min(0.3, matches * 0.1)
        return clamp(score)

    def assess_participant_vulnerability(self, memory: Memory) -> float:
        score = 0.3
        if not memory.participants:
            return score

        for participant in memory.participants:
            if participant.role and contains_any([participant.role], VULNERABLE_ROLES):
                score += 0.3
                break
            if participant.relationship and contains_any([participant.relationship],
                                                         VULNERABLE_RELATIONSHIPS):
                score += 0.2

        context = memory.emotional_context
        if context is not None and contains_any(context.themes, VULNERABLE_THEMES):
            score += 0.2
        return clamp(score)

    def calculate_temporal_importance(self, memory: Memory) -> float:
        score = 0.5
        moment = parse_timestamp(memory.timestamp)
        if moment is None:
            return score

        days_since = (utc_now() - moment).total_seconds() / 86400
        if 0 <= days_since <= 30:
            score += 0.2
        elif 0 <= days_since <= 90:
            score += 0.1

        day: date = moment.date()
        if (day.month, day.day) in SPECIAL_DATES:
            score += 0.2
        if day.weekday() >= 5:
            score += 0.1
        return clamp(score)

    # ------------------------------------------------------------------
    # Narrative
    # ------------------------------------------------------------------

    def generate_narrative(self, memory: Memory, factors: SignificanceFactors,
                           overall: float) -> str:
        if overall >= 0.8:
            parts = ["This is a highly significant emotional memory"]
        elif overall >= 0.6:
            parts = ["This memory has moderate emotional significance"]
        else:
            parts = ["This memory has lower emotional significance"]

        top = sorted(factors.as_dict().items(), key=lambda item: item[1], reverse=True)[:2]
        descriptions = [NARRATIVE_DESCRIPTIONS[name] for name, value in top if value > 0.6]
        if descriptions:
            parts.append(f"due to {' and '.join(descriptions)}")

        if len(memory.participants) > 2:
            parts.append(f"involving {len(memory.participants)} participants")

        return " ".join(parts) + "."


def create_significance_weighter() -> EmotionalSignificanceWeighter:
    """Factory function to create a significance weighter"""
    return EmotionalSignificanceWeighter()

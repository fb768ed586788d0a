"""
Priority Management for Human Review
Orders memories by emotional significance and fits a review queue to the
reviewer time that is available.
"""

import math
from typing import Dict, List, Sequence, Tuple

from ...shared.models import Memory
from ...shared.monitoring import get_logger
from ...shared.timestamp_utils import parse_timestamp
from .metrics import update_queue_metrics
from .models import (
    ExpectedOutcomes,
    OptimizedQueue,
    PrioritizedMemory,
    PrioritizedMemoryList,
    QueueCoverage,
    QueueOptimizationStrategy,
    QueueStrategy,
    ReviewContext,
    SignificanceDistribution,
    SignificanceScore,
    ValidationQueue,
    ValidatorExpertise,
)

logger = get_logger(__name__)

HIGH_SIGNIFICANCE = 0.7
MEDIUM_SIGNIFICANCE = 0.4
HIGH_SHARE_FOR_FOCUS = 0.3
LIMITED_TIME_MINUTES = 60
CRITICAL_SIGNIFICANCE = 0.9

# Minutes per memory
REVIEW_MINUTES = {
    ValidatorExpertise.EXPERT: 3,
    ValidatorExpertise.INTERMEDIATE: 5,
    ValidatorExpertise.BEGINNER: 8,
}

BALANCED_RATIOS = {"high_ratio": 0.4, "medium_ratio": 0.4, "low_ratio": 0.2}

REASON_DESCRIPTIONS = {
    "emotional_intensity": "high emotional intensity",
    "relationship_impact": "significant relationship implications",
    "life_event_significance": "major life event",
    "participant_vulnerability": "vulnerable participant involvement",
    "temporal_importance": "temporal significance",
}

# factor, threshold, focus area, validation hint
FOCUS_RULES = (
    ("emotional_intensity", 0.8,
     "High emotional intensity - verify emotional accuracy",
     "Pay special attention to emotional nuances and intensity levels"),
    ("relationship_impact", 0.8,
     "Significant relationship impact - check relationship dynamics",
     "Verify participant relationships and interaction patterns"),
    ("life_event_significance", 0.8,
     "Major life event - ensure context completeness",
     "Confirm all relevant context is captured"),
    ("participant_vulnerability", 0.7,
     "Vulnerable participants - handle with sensitivity",
     "Apply extra care and privacy considerations"),
)

EMOTION_RANGE_TARGET = 10
TEMPORAL_SPAN_TARGET_DAYS = 365
PARTICIPANT_DIVERSITY_TARGET = 20


def significance_band(overall: float) -> str:
    if overall >= HIGH_SIGNIFICANCE:
        return "high"
    if overall >= MEDIUM_SIGNIFICANCE:
        return "medium"
    return "low"


class PriorityManager:
    """Creates prioritized review lists and resource-bounded queues"""

    def create_prioritized_list(self, memories: Sequence[Memory],
                                significance_scores: Dict[str, SignificanceScore]) -> PrioritizedMemoryList:
        """
        Rank memories by descending significance.

        Raises:
            ValueError: if a memory has no entry in ``significance_scores``
        """
        unranked = []
        for memory in memories:
            score = significance_scores.get(memory.id)
            if score is None:
                raise ValueError(f"Missing significance score for memory {memory.id}")
            unranked.append((memory, score))

        return self.rank_scored(unranked)

    def rank_scored(self, unranked: Sequence[Tuple[Memory, SignificanceScore]]) -> PrioritizedMemoryList:
        """Rank already scored memories, one entry per pair, in descending significance."""
        # sorted() is stable, so equal scores keep their input order
        ordered = sorted(unranked, key=lambda pair: pair[1].overall, reverse=True)

        prioritized = [
            PrioritizedMemory(
                memory=memory,
                significance_score=score,
                priority_rank=rank,
                review_context=self.generate_review_context(score),
            )
            for rank, (memory, score) in enumerate(ordered, start=1)
        ]

        distribution = SignificanceDistribution()
        for item in prioritized:
            band = significance_band(item.significance_score.overall)
            setattr(distribution, band, getattr(distribution, band) + 1)

        return PrioritizedMemoryList(
            memories=prioritized,
            total_count=len(prioritized),
            significance_distribution=distribution,
        )

    def generate_review_context(self, score: SignificanceScore) -> ReviewContext:
        factors = score.factors.as_dict()
        focus_areas: List[str] = []
        validation_hints: List[str] = []

        for factor, threshold, focus, hint in FOCUS_RULES:
            if factors[factor] > threshold:
                focus_areas.append(focus)
                validation_hints.append(hint)

        return ReviewContext(
            review_reason=self.generate_review_reason(score),
            focus_areas=focus_areas,
            related_memory_ids=[],
            validation_hints=validation_hints,
        )

    def generate_review_reason(self, score: SignificanceScore) -> str:
        if score.overall > CRITICAL_SIGNIFICANCE:
            return "Critical emotional memory requiring careful validation"

        dominant = max(score.factors.as_dict().items(), key=lambda item: item[1])[0]
        description = REASON_DESCRIPTIONS.get(dominant, "elevated significance")
        return f"Requires review due to {description}"

    def estimate_validation_time(self, expertise: ValidatorExpertise) -> int:
        return REVIEW_MINUTES[ValidatorExpertise(expertise)]

    def optimize_queue(self, queue: ValidationQueue,
                       prioritized_list: PrioritizedMemoryList) -> OptimizedQueue:
        """Select and order the memories a reviewer can get through in the available time."""
        allocation = queue.resource_allocation
        minutes_per_memory = self.estimate_validation_time(allocation.validator_expertise)
        max_memories = math.floor(allocation.available_time / minutes_per_memory)

        strategy_name, parameters = self.select_strategy(queue, prioritized_list)
        selected = self.apply_strategy(prioritized_list.memories, max_memories,
                                       strategy_name, parameters)
        outcomes = self.calculate_expected_outcomes(selected, minutes_per_memory)

        update_queue_metrics(len(selected), strategy_name.value)
        logger.debug(f"🧮 Queue {queue.id}: {len(selected)}/{prioritized_list.total_count} "
                     f"selected with {strategy_name.value}",
                     max_memories=max_memories)

        return OptimizedQueue(
            original_queue=queue,
            optimized_order=selected,
            strategy=QueueOptimizationStrategy(
                name=strategy_name,
                parameters=dict(parameters),
                expected_outcomes=outcomes,
            ),
        )

    def select_strategy(self, queue: ValidationQueue, prioritized_list: PrioritizedMemoryList):
        total = prioritized_list.total_count
        high = prioritized_list.significance_distribution.high

        if total > 0 and high / total > HIGH_SHARE_FOR_FOCUS:
            return QueueStrategy.HIGH_SIGNIFICANCE_FOCUS, {
                "min_significance": HIGH_SIGNIFICANCE,
                "diversity_weight": 0.3,
            }

        if queue.resource_allocation.available_time < LIMITED_TIME_MINUTES:
            return QueueStrategy.BALANCED_SAMPLING, dict(BALANCED_RATIOS)

        return QueueStrategy.SIGNIFICANCE_WEIGHTED, {
            "significance_weight": 0.7,
            "diversity_weight": 0.3,
        }

    def apply_strategy(self, memories: List[PrioritizedMemory], max_count: int,
                       strategy: QueueStrategy, parameters: Dict[str, float]) -> List[PrioritizedMemory]:
        if max_count <= 0:
            return []

        if strategy == QueueStrategy.HIGH_SIGNIFICANCE_FOCUS:
            minimum = parameters["min_significance"]
            return [m for m in memories if m.significance_score.overall >= minimum][:max_count]

        if strategy == QueueStrategy.BALANCED_SAMPLING:
            return self._balanced_selection(memories, max_count, parameters)

        return memories[:max_count]

    def _balanced_selection(self, memories: List[PrioritizedMemory], max_count: int,
                            parameters: Dict[str, float]) -> List[PrioritizedMemory]:
        quotas = {
            "high": math.floor(max_count * parameters["high_ratio"]),
            "medium": math.floor(max_count * parameters["medium_ratio"]),
            "low": math.floor(max_count * parameters["low_ratio"]),
        }

        selected = []
        for item in memories:
            band = significance_band(item.significance_score.overall)
            if quotas[band] > 0:
                selected.append(item)
                quotas[band] -= 1

        # Flooring and thin bands leave slots open; fill them in rank order
        chosen = {id(item) for item in selected}
        for item in memories:
            if len(selected) >= max_count:
                break
            if id(item) not in chosen:
                selected.append(item)
                chosen.add(id(item))

        return sorted(selected, key=lambda item: item.priority_rank)

    def calculate_expected_outcomes(self, memories: List[PrioritizedMemory],
                                    minutes_per_memory: float) -> ExpectedOutcomes:
        if memories:
            average = sum(m.significance_score.overall for m in memories) / len(memories)
        else:
            average = 0.0

        return ExpectedOutcomes(
            estimated_time=len(memories) * minutes_per_memory,
            expected_quality=average,
            coverage=QueueCoverage(
                emotional_range=self._emotional_range(memories),
                temporal_span=self._temporal_span(memories),
                participant_diversity=self._participant_diversity(memories),
            ),
        )

    def _emotional_range(self, memories: List[PrioritizedMemory]) -> float:
        emotions = {
            m.memory.emotional_context.primary_emotion
            for m in memories
            if m.memory.emotional_context is not None and m.memory.emotional_context.primary_emotion
        }
        return min(1.0, len(emotions) / EMOTION_RANGE_TARGET)

    def _temporal_span(self, memories: List[PrioritizedMemory]) -> float:
        moments = [parse_timestamp(m.memory.timestamp) for m in memories]
        moments = [moment for moment in moments if moment is not None]
        if not moments:
            return 0.0
        span_days = (max(moments) - min(moments)).total_seconds() / 86400
        return min(1.0, span_days / TEMPORAL_SPAN_TARGET_DAYS)

    def _participant_diversity(self, memories: List[PrioritizedMemory]) -> float:
        participants = {p.id for m in memories for p in m.memory.participants if p.id}
        return min(1.0, len(participants) / PARTICIPANT_DIVERSITY_TARGET)

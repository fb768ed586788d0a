"""
Intelligent Sampling for Memory Validation
Draws stratified, coverage-aware samples from large memory sets so human
reviewers validate a representative subset instead of everything.
"""

import math
import random
from collections import OrderedDict
from typing import Callable, Dict, Iterable, List, Optional

from ...shared.config import get_settings
from ...shared.models import Memory
from ...shared.monitoring import PerformanceTracker, get_logger
from ...shared.timestamp_utils import parse_timestamp
from .coverage_analyzer import CoverageAnalyzer, quality_band
from .defaults import DEFAULT_COVERAGE_REQUIREMENTS, DEFAULT_SAMPLING_STRATEGY
from .metrics import observe_batch_duration, update_sampling_metrics
from .models import (
    CoverageAnalysis,
    CoverageRequirements,
    ExpectedCharacteristics,
    ExpectedQuality,
    MemoryDataset,
    RandomParameters,
    SampledMemories,
    SamplingMetadata,
    SamplingParameters,
    SamplingStrategy,
    Stratification,
)

logger = get_logger(__name__)

LCG_MULTIPLIER = 9301
LCG_INCREMENT = 49297
LCG_MODULUS = 233280

SMALL_DATASET = 100
EMOTION_DIVERSITY_TARGET = 12
TEMPORAL_SPREAD_DAYS = 365


def create_seeded_random(seed: Optional[int] = None) -> Callable[[], float]:
    """
    Return a [0, 1) generator.

    With a seed, a small linear-congruential generator makes runs
    reproducible; without one, ``random.random`` is used.
    """
    if seed is None:
        return random.random

    state = seed

    def next_value() -> float:
        nonlocal state
        state = (state * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        return state / LCG_MODULUS

    return next_value


def unique_by_id(memories: Iterable[Memory]) -> List[Memory]:
    seen = set()
    unique = []
    for memory in memories:
        if memory.id in seen:
            continue
        seen.add(memory.id)
        unique.append(memory)
    return unique


def stratum_key(memory: Memory, stratification: Stratification) -> str:
    parts = []

    if stratification.by_emotion:
        context = memory.emotional_context
        emotion = context.primary_emotion if context is not None and context.primary_emotion else "unknown"
        parts.append(f"emotion:{emotion}")

    if stratification.by_time_period:
        moment = parse_timestamp(memory.timestamp)
        period = f"{moment.year:04d}-{moment.month:02d}" if moment is not None else "unknown"
        parts.append(f"time:{period}")

    if stratification.by_participant:
        count = len(memory.participants)
        bucket = "small" if count <= 2 else "medium" if count <= 5 else "large"
        parts.append(f"participants:{bucket}")

    if stratification.by_quality:
        parts.append(f"quality:{quality_band(memory)}")

    return "|".join(parts) or "default"


class IntelligentSampler:
    """Stratified sampling with coverage reporting"""

    def __init__(self, coverage_analyzer: Optional[CoverageAnalyzer] = None,
                 coverage_threshold: Optional[float] = None):
        self.coverage_analyzer = coverage_analyzer or CoverageAnalyzer()
        self.coverage_threshold = (
            coverage_threshold
            if coverage_threshold is not None
            else get_settings().validation.coverage_threshold
        )
        logger.info(f"🎲 Intelligent Sampler initialized")
        logger.info(f"   Coverage threshold: {self.coverage_threshold}")

    def sample_for_validation(self, memories: Iterable[Memory],
                              coverage_requirements: Optional[CoverageRequirements] = None,
                              strategy: Optional[SamplingStrategy] = None) -> SampledMemories:
        """
        Draw a validation sample.

        Args:
            memories: Population to sample from; duplicate ids keep their
                first occurrence
            coverage_requirements: Targets the sample is checked against
            strategy: Sampling recipe, defaults to balanced stratified sampling

        Returns:
            SampledMemories with coverage analysis and any unmet requirements
        """
        population = unique_by_id(memories)
        requirements = coverage_requirements or DEFAULT_COVERAGE_REQUIREMENTS
        strategy = strategy or DEFAULT_SAMPLING_STRATEGY
        seed = strategy.parameters.random.seed if strategy.parameters.random else None

        logger.info(f"🎯 Sampling {len(population)} memories with {strategy.name}",
                    target_size=strategy.parameters.target_size, seed=seed)

        with PerformanceTracker("sampling.sample_for_validation") as tracker:
            samples = self.perform_stratified_sampling(population, strategy.parameters)
            coverage = self.coverage_analyzer.analyze_coverage(samples)
        observe_batch_duration("sample_for_validation", tracker.elapsed_ms / 1000)

        unmet = self.check_requirements(coverage, requirements)
        update_sampling_metrics(strategy.name, coverage.overall_score)

        logger.info(f"✅ Sampling complete: {len(samples)}/{len(population)}",
                    overall_coverage=round(coverage.overall_score, 4),
                    unmet_requirements=unmet)

        return SampledMemories(
            samples=samples,
            coverage=coverage,
            metadata=SamplingMetadata(
                population_size=len(population),
                sample_size=len(samples),
                sampling_rate=len(samples) / len(population) if population else 0.0,
                strategy=strategy.name,
                seed=seed,
            ),
            unmet_requirements=unmet,
        )

    def perform_stratified_sampling(self, memories: List[Memory],
                                    parameters: SamplingParameters) -> List[Memory]:
        target = min(parameters.target_size, len(memories))
        random_params = parameters.random or RandomParameters()
        rng = create_seeded_random(random_params.seed) if random_params.enabled else None

        stratification = parameters.stratification
        if stratification is None or not stratification.any_enabled():
            return self._random_sample(memories, target, rng)

        strata: Dict[str, List[Memory]] = OrderedDict()
        for memory in memories:
            strata.setdefault(stratum_key(memory, stratification), []).append(memory)

        samples: List[Memory] = []
        for key, size in self.calculate_stratum_sizes(strata, target).items():
            if size > 0:
                samples.extend(self._random_sample(strata[key], size, rng))

        if len(samples) < target:
            used = {memory.id for memory in samples}
            remaining = [memory for memory in memories if memory.id not in used]
            samples.extend(self._random_sample(remaining, target - len(samples), rng))

        return samples[:target]

    def calculate_stratum_sizes(self, strata: Dict[str, List[Memory]], total_size: int) -> Dict[str, int]:
        """Proportional allocation, rounding half up."""
        population = sum(len(members) for members in strata.values())
        if population == 0:
            return {key: 0 for key in strata}
        return {
            key: math.floor(len(members) / population * total_size + 0.5)
            for key, members in strata.items()
        }

    def _random_sample(self, memories: List[Memory], size: int,
                       rng: Optional[Callable[[], float]]) -> List[Memory]:
        if size >= len(memories):
            return list(memories)
        if rng is None:
            return list(memories[:size])

        keys = [rng() for _ in memories]
        order = sorted(range(len(memories)), key=lambda index: keys[index])
        return [memories[index] for index in order[:size]]

    def check_requirements(self, coverage: CoverageAnalysis,
                           requirements: CoverageRequirements) -> List[str]:
        unmet = []

        emotional = coverage.emotional_coverage.coverage_percentage / 100
        if emotional < requirements.emotional_diversity:
            unmet.append(
                f"Emotional diversity {emotional:.2f} below required "
                f"{requirements.emotional_diversity:.2f}"
            )

        time_range = coverage.temporal_coverage.time_range
        start, end = parse_timestamp(time_range.start), parse_timestamp(time_range.end)
        span_days = (end - start).total_seconds() / 86400 if start and end else 0.0
        if span_days < requirements.temporal_span:
            unmet.append(
                f"Temporal span {span_days:.1f} days below required "
                f"{requirements.temporal_span:g} days"
            )

        participants = coverage.participant_coverage.coverage_percentage / 100
        if participants < requirements.participant_coverage:
            unmet.append(
                f"Participant coverage {participants:.2f} below required "
                f"{requirements.participant_coverage:.2f}"
            )

        return unmet

    def ensure_representative_coverage(self, sample: SampledMemories) -> CoverageAnalysis:
        """Re-analyze a sample's coverage and warn when it falls below the threshold."""
        analysis = self.coverage_analyzer.analyze_coverage(sample.samples)

        if analysis.overall_score < self.coverage_threshold:
            logger.warning(f"⚠️ Coverage below threshold: {analysis.overall_score:.3f}",
                           threshold=self.coverage_threshold,
                           emotional_gaps=analysis.emotional_coverage.gaps,
                           temporal_gaps=len(analysis.temporal_coverage.gaps),
                           missing_participants=analysis.participant_coverage.missing_participants)

        return analysis

    def optimize_validation_efficiency(self, dataset: MemoryDataset) -> SamplingStrategy:
        """Pick a sampling strategy from the dataset's size and diversity."""
        memories = dataset.memories
        size = len(memories)
        emotional_diversity = self._emotional_diversity(memories)
        temporal_spread = self._temporal_spread(memories)

        logger.info(f"🔧 Optimizing sampling strategy for {size} memories",
                    emotional_diversity=round(emotional_diversity, 3),
                    temporal_spread=round(temporal_spread, 3))

        if size < SMALL_DATASET:
            strategy = SamplingStrategy(
                name="simple-random",
                parameters=SamplingParameters(
                    target_size=min(50, size),
                    stratification=None,
                    random=RandomParameters(enabled=True),
                ),
                expected_characteristics=ExpectedCharacteristics(
                    expected_coverage=0.7,
                    expected_quality=ExpectedQuality(high=0.3, medium=0.4, low=0.3),
                ),
            )
        elif emotional_diversity > 0.7 and temporal_spread > 0.7:
            strategy = SamplingStrategy(
                name="balanced-stratified",
                parameters=SamplingParameters(
                    target_size=min(200, math.floor(size * 0.1)),
                    stratification=Stratification(
                        by_emotion=True,
                        by_time_period=True,
                        by_quality=True,
                    ),
                    random=RandomParameters(enabled=True),
                ),
                expected_characteristics=ExpectedCharacteristics(
                    expected_coverage=0.85,
                    expected_quality=ExpectedQuality(high=0.25, medium=0.5, low=0.25),
                ),
            )
        else:
            strategy = DEFAULT_SAMPLING_STRATEGY.model_copy(update={
                "parameters": DEFAULT_SAMPLING_STRATEGY.parameters.model_copy(
                    update={"target_size": min(150, math.floor(size * 0.1))}
                ),
            })

        logger.info(f"✅ Selected strategy: {strategy.name}",
                    expected_coverage=strategy.expected_characteristics.expected_coverage)
        return strategy

    def _emotional_diversity(self, memories: List[Memory]) -> float:
        emotions = {
            m.emotional_context.primary_emotion
            for m in memories
            if m.emotional_context is not None and m.emotional_context.primary_emotion
        }
        return min(1.0, len(emotions) / EMOTION_DIVERSITY_TARGET)

    def _temporal_spread(self, memories: List[Memory]) -> float:
        moments = [parse_timestamp(m.timestamp) for m in memories]
        moments = [moment for moment in moments if moment is not None]
        if len(moments) <= 1:
            return 0.0
        spread_days = (max(moments) - min(moments)).total_seconds() / 86400
        return min(1.0, spread_days / TEMPORAL_SPREAD_DAYS)


def create_intelligent_sampler() -> IntelligentSampler:
    """Factory function to create an intelligent sampler"""
    return IntelligentSampler()

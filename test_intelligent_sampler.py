# Tests for stratified sampling and coverage analysis
from datetime import datetime, timedelta, timezone

import pytest

from memoryflow.services.validation.coverage_analyzer import CoverageAnalyzer, quality_band
from memoryflow.services.validation.defaults import DEFAULT_SAMPLING_STRATEGY
from memoryflow.services.validation.intelligent_sampler import (
    IntelligentSampler,
    create_intelligent_sampler,
    create_seeded_random,
    stratum_key,
    unique_by_id,
)
from memoryflow.services.validation.models import (
    CoverageRequirements,
    DatasetMetadata,
    MemoryDataset,
    RandomParameters,
    SamplingParameters,
    SamplingStrategy,
    ExpectedCharacteristics,
    Stratification,
)
from memoryflow.shared.timestamp_utils import to_iso

EMOTIONS = ["joy", "sadness", "anger", "fear", "love", "hope"]
START = datetime(2023, 1, 2, 12, 0, tzinfo=timezone.utc)


def population(memory_factory, size, spacing_days=3):
    memories = []
    for i in range(size):
        memories.append(memory_factory(
            f"m{i}",
            timestamp=to_iso(START + timedelta(days=i * spacing_days)),
            emotionalContext={
                "primaryEmotion": EMOTIONS[i % len(EMOTIONS)],
                "secondaryEmotions": [],
                "intensity": 0.5,
                "themes": [],
            },
            participants=[{"id": f"p{i % 7}"}],
            metadata={"confidence": [0.9, 0.6, 0.3][i % 3]},
        ))
    return memories


def strategy(target_size, seed=None, enabled=True, stratification=None):
    return SamplingStrategy(
        name="test-strategy",
        parameters=SamplingParameters(
            target_size=target_size,
            stratification=stratification,
            random=RandomParameters(enabled=enabled, seed=seed),
        ),
        expected_characteristics=ExpectedCharacteristics(expected_coverage=0.8),
    )


def ids(memories):
    return [memory.id for memory in memories]


# The same seed reproduces the same sample
def test_seeded_sampling_is_deterministic(memory_factory):
    memories = population(memory_factory, 60)
    sampler = IntelligentSampler()
    seeded = DEFAULT_SAMPLING_STRATEGY.model_copy(update={
        "parameters": DEFAULT_SAMPLING_STRATEGY.parameters.model_copy(update={
            "target_size": 20,
            "random": RandomParameters(enabled=True, seed=42),
        }),
    })

    first = sampler.sample_for_validation(memories, strategy=seeded)
    second = sampler.sample_for_validation(memories, strategy=seeded)

    assert ids(first.samples) == ids(second.samples)
    assert len(first.samples) == 20
    assert first.metadata.seed == 42


def test_seeded_random_sequence():
    first = create_seeded_random(7)
    second = create_seeded_random(7)

    values = [first() for _ in range(5)]
    assert values == [second() for _ in range(5)]
    assert all(0.0 <= value < 1.0 for value in values)


# Samples never repeat a record and never exceed the target
def test_sample_unique_and_bounded(memory_factory):
    memories = population(memory_factory, 40)

    result = IntelligentSampler().sample_for_validation(memories + memories[:10], strategy=strategy(25, seed=3))

    assert len(result.samples) == 25
    assert len(set(ids(result.samples))) == 25
    assert result.metadata.population_size == 40
    assert result.metadata.sampling_rate == pytest.approx(25 / 40)


# A target larger than the population returns every record once
def test_target_exceeds_population(memory_factory):
    memories = population(memory_factory, 8)

    result = IntelligentSampler().sample_for_validation(memories, strategy=strategy(50, seed=1))

    assert sorted(ids(result.samples)) == sorted(ids(memories))


# With randomness disabled and no strata, the first records are taken in order
def test_random_disabled_takes_first(memory_factory):
    memories = population(memory_factory, 10)

    result = IntelligentSampler().sample_for_validation(memories, strategy=strategy(4, enabled=False))

    assert ids(result.samples) == ["m0", "m1", "m2", "m3"]


def test_empty_population():
    result = IntelligentSampler().sample_for_validation([])

    assert result.samples == []
    assert result.metadata.sampling_rate == 0.0


# Stratum sizes are proportional, rounded half up
def test_calculate_stratum_sizes(memory_factory):
    memories = population(memory_factory, 4)
    strata = {"a": memories[:3], "b": memories[3:]}

    assert IntelligentSampler().calculate_stratum_sizes(strata, 2) == {"a": 2, "b": 1}
    assert IntelligentSampler().calculate_stratum_sizes({}, 5) == {}


def test_stratum_key(memory_factory):
    memory = population(memory_factory, 1)[0]
    everything = Stratification(by_emotion=True, by_time_period=True, by_participant=True, by_quality=True)

    assert stratum_key(memory, everything) == "emotion:joy|time:2023-01|participants:small|quality:high"
    assert stratum_key(memory, Stratification()) == "default"


def test_unique_by_id_keeps_first(memory_factory):
    first = memory_factory("dup", content="first version of this record")
    second = memory_factory("dup", content="second version of this record")

    assert unique_by_id([first, second]) == [first]


# A narrow sample reports the requirements it misses
def test_unmet_requirements(memory_factory):
    memories = [
        memory_factory(f"same{i}", timestamp="2023-05-01T00:00:00Z") for i in range(5)
    ]

    result = IntelligentSampler().sample_for_validation(
        memories,
        coverage_requirements=CoverageRequirements(emotional_diversity=0.8, temporal_span=30),
        strategy=strategy(5, seed=1),
    )

    assert len(result.unmet_requirements) == 3
    assert result.unmet_requirements[0].startswith("Emotional diversity")
    assert result.unmet_requirements[1] == "Temporal span 0.0 days below required 30 days"
    # two distinct participants out of the twenty-person reference pool
    assert result.unmet_requirements[2] == "Participant coverage 0.10 below required 0.90"


def test_requirements_met(memory_factory):
    memories = population(memory_factory, 30)

    result = IntelligentSampler().sample_for_validation(
        memories,
        coverage_requirements=CoverageRequirements(emotional_diversity=0.4, temporal_span=30,
                                                   participant_coverage=0.3),
        strategy=strategy(30, seed=1),
    )

    assert result.unmet_requirements == []


def test_ensure_representative_coverage_warns(memory_factory):
    sampler = IntelligentSampler(coverage_threshold=0.99)
    sample = sampler.sample_for_validation(population(memory_factory, 5), strategy=strategy(5, seed=1))

    analysis = sampler.ensure_representative_coverage(sample)

    assert analysis.overall_score == pytest.approx(sample.coverage.overall_score)


# Small datasets get simple random sampling
def test_optimize_small_dataset(memory_factory):
    memories = population(memory_factory, 30)
    dataset = MemoryDataset(memories=memories, metadata=DatasetMetadata(total_count=30))

    chosen = create_intelligent_sampler().optimize_validation_efficiency(dataset)

    assert chosen.name == "simple-random"
    assert chosen.parameters.target_size == 30


# Diverse, long-spanning datasets get balanced stratification
def test_optimize_diverse_dataset(memory_factory):
    emotions = ["joy", "sadness", "anger", "fear", "surprise", "disgust",
                "love", "excitement", "anxiety", "contentment"]
    memories = [
        memory_factory(
            f"d{i}",
            timestamp=to_iso(START + timedelta(days=i)),
            emotionalContext={"primaryEmotion": emotions[i % len(emotions)]},
        )
        for i in range(500)
    ]
    dataset = MemoryDataset(memories=memories, metadata=DatasetMetadata(total_count=500))

    chosen = IntelligentSampler().optimize_validation_efficiency(dataset)

    assert chosen.name == "balanced-stratified"
    assert chosen.parameters.target_size == 50
    assert chosen.parameters.stratification.by_participant is False


def test_optimize_default_dataset(memory_factory):
    memories = population(memory_factory, 200, spacing_days=0)
    dataset = MemoryDataset(memories=memories, metadata=DatasetMetadata(total_count=200))

    chosen = IntelligentSampler().optimize_validation_efficiency(dataset)

    assert chosen.name == DEFAULT_SAMPLING_STRATEGY.name
    assert chosen.parameters.target_size == 20
    assert DEFAULT_SAMPLING_STRATEGY.parameters.target_size == 100


# Coverage analysis

def test_quality_band(memory_factory):
    assert quality_band(memory_factory(metadata={"confidence": 0.8})) == "high"
    assert quality_band(memory_factory(metadata={"confidence": 0.5})) == "medium"
    assert quality_band(memory_factory(metadata={})) == "medium"
    assert quality_band(memory_factory(metadata={"confidence": 0.2})) == "low"


def test_emotional_coverage(memory_factory):
    memories = population(memory_factory, 6)

    coverage = CoverageAnalyzer().analyze_emotional_coverage(memories)

    assert coverage.emotions_represented == EMOTIONS
    assert coverage.coverage_percentage == pytest.approx(50.0)
    assert "surprise" in coverage.gaps
    assert "joy" not in coverage.gaps


# Gaps longer than a week are reported
def test_temporal_gaps(memory_factory):
    memories = [
        memory_factory("a", timestamp="2023-01-01T00:00:00Z"),
        memory_factory("b", timestamp="2023-01-03T00:00:00Z"),
        memory_factory("c", timestamp="2023-02-01T00:00:00Z"),
    ]

    temporal = CoverageAnalyzer().analyze_temporal_coverage(memories)

    assert temporal.time_range.start == "2023-01-01T00:00:00Z"
    assert temporal.time_range.end == "2023-02-01T00:00:00Z"
    assert len(temporal.gaps) == 1
    assert temporal.gaps[0].start == "2023-01-03T00:00:00Z"


def test_temporal_distribution(memory_factory):
    analyzer = CoverageAnalyzer()
    even = population(memory_factory, 10, spacing_days=2)

    assert analyzer.analyze_temporal_coverage(even).distribution == "even"
    assert analyzer.analyze_temporal_coverage(even[:2]).distribution == "sparse"
    assert analyzer.analyze_temporal_coverage([]).distribution == "sparse"


def test_participant_coverage_small_population(memory_factory):
    memories = population(memory_factory, 7)

    coverage = CoverageAnalyzer().analyze_participant_coverage(memories)

    assert len(coverage.participants_represented) == 7
    assert coverage.coverage_percentage == pytest.approx(35.0)


def test_quality_distribution(memory_factory):
    distribution = CoverageAnalyzer().analyze_quality_distribution(population(memory_factory, 6))

    assert (distribution.high, distribution.medium, distribution.low) == (2, 2, 2)


def test_overall_score_bounded(memory_factory):
    for size in (0, 1, 12, 40):
        analysis = CoverageAnalyzer().analyze_coverage(population(memory_factory, size))
        assert 0.0 <= analysis.overall_score <= 1.0

"""
Data contracts for the validation engine.

Inputs that callers configure (thresholds, queues, coverage requirements,
sampling strategies) are pydantic models; per-record results produced by the
engine are plain dataclasses.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ...shared.models import Memory
from ...shared.timestamp_utils import utc_now


CONFIDENCE_FACTORS = (
    "claude_confidence",
    "emotional_coherence",
    "relationship_accuracy",
    "temporal_consistency",
    "content_quality",
)

SIGNIFICANCE_FACTORS = (
    "emotional_intensity",
    "relationship_impact",
    "life_event_significance",
    "participant_vulnerability",
    "temporal_importance",
)


class DecisionType(str, Enum):
    """Auto-confirmation decision labels"""
    AUTO_APPROVE = "auto-approve"
    NEEDS_REVIEW = "needs-review"
    AUTO_REJECT = "auto-reject"


class HumanDecision(str, Enum):
    """Outcome recorded by a human reviewer"""
    VALIDATED = "validated"
    REJECTED = "rejected"


class ValidatorExpertise(str, Enum):
    """Reviewer skill level, drives per-record review time"""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    EXPERT = "expert"


class QueueStrategy(str, Enum):
    """Review queue optimization strategies"""
    HIGH_SIGNIFICANCE_FOCUS = "high-significance-focus"
    BALANCED_SAMPLING = "balanced-sampling"
    SIGNIFICANCE_WEIGHTED = "significance-weighted"


# ---------------------------------------------------------------------------
# Threshold configuration
# ---------------------------------------------------------------------------

class ConfidenceWeights(BaseModel):
    """Weights for the five confidence factors"""

    model_config = ConfigDict(frozen=True)

    claude_confidence: float = Field(default=0.30, ge=0.0)
    emotional_coherence: float = Field(default=0.25, ge=0.0)
    relationship_accuracy: float = Field(default=0.20, ge=0.0)
    temporal_consistency: float = Field(default=0.15, ge=0.0)
    content_quality: float = Field(default=0.10, ge=0.0)

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in CONFIDENCE_FACTORS}

    def total(self) -> float:
        return sum(self.as_dict().values())


class ThresholdConfig(BaseModel):
    """
    Decision thresholds and factor weights.

    Instances are immutable; a new configuration is installed by replacing
    the whole object, never by mutating fields.
    """

    model_config = ConfigDict(frozen=True)

    auto_approve_threshold: float = Field(default=0.75, ge=0.0, le=1.0)
    auto_reject_threshold: float = Field(default=0.50, ge=0.0, le=1.0)
    weights: ConfidenceWeights = Field(default_factory=ConfidenceWeights)

    @model_validator(mode="after")
    def check_threshold_order(self) -> "ThresholdConfig":
        if self.auto_reject_threshold > self.auto_approve_threshold:
            raise ValueError(
                f"auto_reject_threshold ({self.auto_reject_threshold}) must not exceed "
                f"auto_approve_threshold ({self.auto_approve_threshold})"
            )
        return self


# ---------------------------------------------------------------------------
# Confidence and decisions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ConfidenceFactors:
    """Per-factor confidence values, each in [0, 1]"""
    claude_confidence: float = 0.0
    emotional_coherence: float = 0.0
    relationship_accuracy: float = 0.0
    temporal_consistency: float = 0.0
    content_quality: float = 0.0

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in CONFIDENCE_FACTORS}


@dataclass(frozen=True)
class ConfidenceScore:
    """Weighted confidence for one memory"""
    overall: float
    factors: ConfidenceFactors


@dataclass
class AutoConfirmationResult:
    """Decision for a single memory"""
    memory_id: str
    decision: DecisionType
    confidence: float
    confidence_factors: ConfidenceFactors
    reasons: List[str] = field(default_factory=list)
    suggested_actions: List[str] = field(default_factory=list)


@dataclass
class EvaluationOutcome:
    """Per-record result of a batch step: either a value or an error message"""
    memory_id: str
    result: Optional[object] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class DecisionCounts:
    auto_approved: int = 0
    needs_review: int = 0
    auto_rejected: int = 0

    def record(self, decision: DecisionType) -> None:
        if decision == DecisionType.AUTO_APPROVE:
            self.auto_approved += 1
        elif decision == DecisionType.AUTO_REJECT:
            self.auto_rejected += 1
        else:
            self.needs_review += 1


@dataclass
class BatchValidationResult:
    """Aggregated outcome of processing a batch of memories"""
    total_memories: int
    decisions: DecisionCounts
    batch_confidence: float
    results: List[AutoConfirmationResult]
    processing_time_ms: float
    failed_memory_ids: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Feedback loop
# ---------------------------------------------------------------------------

@dataclass
class ValidationFeedback:
    """A human reviewer's verdict on an earlier auto-confirmation result"""
    memory_id: str
    original_result: AutoConfirmationResult
    human_decision: HumanDecision
    timestamp: datetime = field(default_factory=utc_now)
    feedback: Optional[str] = None


@dataclass
class ThresholdUpdate:
    """Proposed threshold change derived from feedback"""
    previous_thresholds: ThresholdConfig
    recommended_thresholds: ThresholdConfig
    update_reasons: List[str]
    expected_accuracy_improvement: float
    applied: bool = False


# ---------------------------------------------------------------------------
# Significance and prioritization
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SignificanceFactors:
    """Per-factor significance values, each in [0, 1]"""
    emotional_intensity: float = 0.0
    relationship_impact: float = 0.0
    life_event_significance: float = 0.0
    participant_vulnerability: float = 0.0
    temporal_importance: float = 0.0

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in SIGNIFICANCE_FACTORS}


@dataclass(frozen=True)
class SignificanceScore:
    """Emotional significance of one memory"""
    overall: float
    factors: SignificanceFactors
    narrative: str


@dataclass
class ReviewContext:
    """Guidance handed to a reviewer alongside a memory"""
    review_reason: str
    focus_areas: List[str] = field(default_factory=list)
    related_memory_ids: List[str] = field(default_factory=list)
    validation_hints: List[str] = field(default_factory=list)


@dataclass
class PrioritizedMemory:
    memory: Memory
    significance_score: SignificanceScore
    priority_rank: int
    review_context: ReviewContext


@dataclass
class SignificanceDistribution:
    high: int = 0
    medium: int = 0
    low: int = 0


@dataclass
class PrioritizedMemoryList:
    """Memories ordered by descending significance"""
    memories: List[PrioritizedMemory]
    total_count: int
    significance_distribution: SignificanceDistribution


class ResourceAllocation(BaseModel):
    """Reviewer capacity available for a queue"""

    available_time: float = Field(..., ge=0.0, description="Available reviewer time in minutes")
    validator_expertise: ValidatorExpertise = Field(default=ValidatorExpertise.INTERMEDIATE)
    target_date: Optional[str] = Field(default=None, description="Target completion date")


class ValidationQueue(BaseModel):
    """Caller-owned queue of memories awaiting human validation"""

    id: str
    pending_memories: List[Memory] = Field(default_factory=list)
    resource_allocation: ResourceAllocation


@dataclass
class QueueCoverage:
    emotional_range: float = 0.0
    temporal_span: float = 0.0
    participant_diversity: float = 0.0


@dataclass
class ExpectedOutcomes:
    estimated_time: float
    expected_quality: float
    coverage: QueueCoverage


@dataclass
class QueueOptimizationStrategy:
    name: QueueStrategy
    parameters: Dict[str, object]
    expected_outcomes: ExpectedOutcomes


@dataclass
class OptimizedQueue:
    """Review order selected for a queue under its resource constraints"""
    original_queue: ValidationQueue
    optimized_order: List[PrioritizedMemory]
    strategy: QueueOptimizationStrategy


# ---------------------------------------------------------------------------
# Coverage and sampling
# ---------------------------------------------------------------------------

class CoverageRequirements(BaseModel):
    """Minimum representativeness a validation sample should reach"""

    emotional_diversity: float = Field(default=0.80, ge=0.0, le=1.0)
    temporal_span: float = Field(default=30, ge=0.0, description="Minimum span in days")
    participant_coverage: float = Field(default=0.90, ge=0.0, le=1.0)


class Stratification(BaseModel):
    by_emotion: bool = False
    by_time_period: bool = False
    by_participant: bool = False
    by_quality: bool = False

    def any_enabled(self) -> bool:
        return self.by_emotion or self.by_time_period or self.by_participant or self.by_quality


class RandomParameters(BaseModel):
    enabled: bool = True
    seed: Optional[int] = None


class ImportanceWeights(BaseModel):
    emotional_significance: float = 0.40
    relationship_impact: float = 0.35
    temporal_importance: float = 0.25


class SamplingParameters(BaseModel):
    target_size: int = Field(..., ge=0)
    stratification: Optional[Stratification] = None
    random: Optional[RandomParameters] = None
    importance_weights: Optional[ImportanceWeights] = None


class ExpectedQuality(BaseModel):
    high: float = 0.20
    medium: float = 0.50
    low: float = 0.30


class ExpectedCharacteristics(BaseModel):
    expected_coverage: float = Field(..., ge=0.0, le=1.0)
    expected_quality: ExpectedQuality = Field(default_factory=ExpectedQuality)


class SamplingStrategy(BaseModel):
    """Named sampling recipe: target size, stratification and seed"""

    name: str
    parameters: SamplingParameters
    expected_characteristics: ExpectedCharacteristics


@dataclass
class EmotionalCoverage:
    emotions_represented: List[str]
    coverage_percentage: float
    gaps: List[str]


@dataclass
class TimeRange:
    start: str
    end: str


@dataclass
class TemporalCoverage:
    time_range: TimeRange
    distribution: str
    gaps: List[TimeRange]


@dataclass
class ParticipantCoverage:
    participants_represented: List[str]
    coverage_percentage: float
    missing_participants: List[str]


@dataclass
class QualityDistribution:
    high: int = 0
    medium: int = 0
    low: int = 0


@dataclass
class CoverageAnalysis:
    """How well a set of memories represents emotions, time, people and quality"""
    emotional_coverage: EmotionalCoverage
    temporal_coverage: TemporalCoverage
    participant_coverage: ParticipantCoverage
    quality_distribution: QualityDistribution
    overall_score: float


@dataclass
class SamplingMetadata:
    population_size: int
    sample_size: int
    sampling_rate: float
    strategy: str
    seed: Optional[int] = None


@dataclass
class SampledMemories:
    samples: List[Memory]
    coverage: CoverageAnalysis
    metadata: SamplingMetadata
    unmet_requirements: List[str] = field(default_factory=list)


@dataclass
class DateRange:
    start: str
    end: str


@dataclass
class DatasetMetadata:
    total_count: int
    date_range: Optional[DateRange] = None
    unique_participants: int = 0


@dataclass
class MemoryDataset:
    memories: List[Memory]
    metadata: DatasetMetadata

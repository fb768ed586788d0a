"""
Validation services for extracted memories.

This package provides:
- Multi-factor confidence scoring with auto-approve / review / reject decisions
- Feedback-driven threshold recalibration
- Emotional significance weighting and review queue optimization
- Stratified sampling with coverage analysis
- Accuracy tracking and validation analytics
"""

# Data contracts
from .models import (
    AutoConfirmationResult,
    BatchValidationResult,
    ConfidenceFactors,
    ConfidenceScore,
    ConfidenceWeights,
    CoverageAnalysis,
    CoverageRequirements,
    DecisionType,
    EvaluationOutcome,
    HumanDecision,
    MemoryDataset,
    OptimizedQueue,
    PrioritizedMemory,
    PrioritizedMemoryList,
    QueueStrategy,
    ResourceAllocation,
    SampledMemories,
    SamplingStrategy,
    SignificanceFactors,
    SignificanceScore,
    ThresholdConfig,
    ThresholdUpdate,
    ValidationFeedback,
    ValidationQueue,
    ValidatorExpertise,
)

# Defaults
from .defaults import (
    DEFAULT_COVERAGE_REQUIREMENTS,
    DEFAULT_SAMPLING_STRATEGY,
    DEFAULT_THRESHOLD_CONFIG,
    load_threshold_config,
)

# Auto-confirmation
from .confidence_calculator import ConfidenceCalculator
from .threshold_manager import ThresholdManager
from .auto_confirmation import (
    AutoConfirmationEngine,
    classify_confidence,
    create_auto_confirmation_engine,
)

# Significance
from .significance_weighter import (
    EmotionalSignificanceWeighter,
    create_significance_weighter,
)
from .priority_manager import PriorityManager

# Sampling
from .coverage_analyzer import CoverageAnalyzer
from .intelligent_sampler import IntelligentSampler, create_intelligent_sampler

# Analytics
from .accuracy_tracker import AccuracyMetrics, AccuracyTracker
from .validation_analytics import ValidationAnalytics, ValidationAnalyticsReport

__all__ = [
    # Data contracts
    "AutoConfirmationResult",
    "BatchValidationResult",
    "ConfidenceFactors",
    "ConfidenceScore",
    "ConfidenceWeights",
    "CoverageAnalysis",
    "CoverageRequirements",
    "DecisionType",
    "EvaluationOutcome",
    "HumanDecision",
    "MemoryDataset",
    "OptimizedQueue",
    "PrioritizedMemory",
    "PrioritizedMemoryList",
    "QueueStrategy",
    "ResourceAllocation",
    "SampledMemories",
    "SamplingStrategy",
    "SignificanceFactors",
    "SignificanceScore",
    "ThresholdConfig",
    "ThresholdUpdate",
    "ValidationFeedback",
    "ValidationQueue",
    "ValidatorExpertise",

    # Defaults
    "DEFAULT_COVERAGE_REQUIREMENTS",
    "DEFAULT_SAMPLING_STRATEGY",
    "DEFAULT_THRESHOLD_CONFIG",
    "load_threshold_config",

    # Auto-confirmation
    "ConfidenceCalculator",
    "ThresholdManager",
    "AutoConfirmationEngine",
    "classify_confidence",
    "create_auto_confirmation_engine",

    # Significance
    "EmotionalSignificanceWeighter",
    "create_significance_weighter",
    "PriorityManager",

    # Sampling
    "CoverageAnalyzer",
    "IntelligentSampler",
    "create_intelligent_sampler",

    # Analytics
    "AccuracyMetrics",
    "AccuracyTracker",
    "ValidationAnalytics",
    "ValidationAnalyticsReport",
]

"""
Coverage analysis for validation samples.

Measures how well a set of memories represents the emotions, time periods,
people and extraction-quality levels of the population it was drawn from.
"""

from datetime import timedelta
from typing import List, Sequence

import numpy as np

from ...shared.models import Memory
from ...shared.timestamp_utils import parse_timestamp, to_iso
from .models import (
    CoverageAnalysis,
    EmotionalCoverage,
    ParticipantCoverage,
    QualityDistribution,
    TemporalCoverage,
    TimeRange,
)

TARGET_EMOTIONS = (
    "joy", "sadness", "anger", "fear", "surprise", "disgust",
    "love", "excitement", "anxiety", "contentment", "frustration", "hope",
)

COVERAGE_WEIGHTS = {
    "emotional": 0.3,
    "temporal": 0.25,
    "participant": 0.25,
    "quality": 0.2,
}

# high / medium / low share of a well-balanced sample
IDEAL_QUALITY = (0.2, 0.6, 0.2)

GAP_THRESHOLD = timedelta(days=7)
MIN_PARTICIPANT_POPULATION = 20


def quality_band(memory: Memory) -> str:
    """Extraction-quality bucket; a missing confidence counts as 0.5."""
    confidence = memory.metadata.confidence
    if confidence is None:
        confidence = 0.5
    if confidence >= 0.8:
        return "high"
    if confidence >= 0.5:
        return "medium"
    return "low"


class CoverageAnalyzer:
    """Computes CoverageAnalysis for a list of memories"""

    def analyze_coverage(self, memories: Sequence[Memory]) -> CoverageAnalysis:
        emotional = self.analyze_emotional_coverage(memories)
        temporal = self.analyze_temporal_coverage(memories)
        participants = self.analyze_participant_coverage(memories)
        quality = self.analyze_quality_distribution(memories)

        overall = (
            COVERAGE_WEIGHTS["emotional"] * emotional.coverage_percentage / 100
            + COVERAGE_WEIGHTS["temporal"] * self.temporal_score(temporal)
            + COVERAGE_WEIGHTS["participant"] * participants.coverage_percentage / 100
            + COVERAGE_WEIGHTS["quality"] * self.quality_score(quality)
        )

        return CoverageAnalysis(
            emotional_coverage=emotional,
            temporal_coverage=temporal,
            participant_coverage=participants,
            quality_distribution=quality,
            overall_score=max(0.0, min(1.0, overall)),
        )

    def analyze_emotional_coverage(self, memories: Sequence[Memory]) -> EmotionalCoverage:
        found = []
        for memory in memories:
            context = memory.emotional_context
            if context is None:
                continue
            emotions = [context.primary_emotion] if context.primary_emotion else []
            emotions.extend(context.secondary_emotions)
            for emotion in emotions:
                emotion = emotion.lower()
                if emotion not in found:
                    found.append(emotion)

        gaps = [emotion for emotion in TARGET_EMOTIONS if emotion not in found]
        return EmotionalCoverage(
            emotions_represented=found,
            coverage_percentage=min(100.0, len(found) / len(TARGET_EMOTIONS) * 100),
            gaps=gaps,
        )

    def analyze_temporal_coverage(self, memories: Sequence[Memory]) -> TemporalCoverage:
        moments = sorted(
            moment for moment in (parse_timestamp(m.timestamp) for m in memories)
            if moment is not None
        )
        if not moments:
            return TemporalCoverage(time_range=TimeRange(start="", end=""),
                                    distribution="sparse", gaps=[])

        gaps = [
            TimeRange(start=to_iso(earlier), end=to_iso(later))
            for earlier, later in zip(moments, moments[1:])
            if later - earlier > GAP_THRESHOLD
        ]

        return TemporalCoverage(
            time_range=TimeRange(start=to_iso(moments[0]), end=to_iso(moments[-1])),
            distribution=self.classify_distribution(moments),
            gaps=gaps,
        )

    def classify_distribution(self, moments: List) -> str:
        """even / clustered / sparse by the coefficient of variation of the gaps."""
        if len(moments) <= 2:
            return "sparse"

        intervals = np.diff([moment.timestamp() for moment in moments])
        mean_interval = float(np.mean(intervals))
        if mean_interval <= 0:
            return "sparse"

        variation = float(np.std(intervals)) / mean_interval
        if variation < 0.5:
            return "even"
        if variation > 2.0:
            return "clustered"
        return "sparse"

    def analyze_participant_coverage(self, memories: Sequence[Memory]) -> ParticipantCoverage:
        found = []
        for memory in memories:
            for participant in memory.participants:
                if participant.id and participant.id not in found:
                    found.append(participant.id)

        population = max(len(found), MIN_PARTICIPANT_POPULATION)
        return ParticipantCoverage(
            participants_represented=found,
            coverage_percentage=len(found) / population * 100,
            missing_participants=[],
        )

    def analyze_quality_distribution(self, memories: Sequence[Memory]) -> QualityDistribution:
        distribution = QualityDistribution()
        for memory in memories:
            band = quality_band(memory)
            setattr(distribution, band, getattr(distribution, band) + 1)
        return distribution

    def temporal_score(self, temporal: TemporalCoverage) -> float:
        score = 0.5
        if temporal.distribution == "even":
            score += 0.3
        elif temporal.distribution == "sparse":
            score += 0.1
        score -= min(0.3, len(temporal.gaps) * 0.1)
        return max(0.0, min(1.0, score))

    def quality_score(self, quality: QualityDistribution) -> float:
        total = quality.high + quality.medium + quality.low
        if total == 0:
            return 0.0

        shares = (quality.high / total, quality.medium / total, quality.low / total)
        distance = sum(abs(share - ideal) for share, ideal in zip(shares, IDEAL_QUALITY))
        return max(0.0, 1.0 - distance)

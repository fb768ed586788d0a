# Shared fixtures for the memoryflow test suite
from datetime import timedelta

import pytest

from memoryflow.shared.config import get_settings
from memoryflow.shared.models import Memory
from memoryflow.shared.timestamp_utils import to_iso, utc_now


def build_memory(memory_id="mem-1", **overrides):
    """Well-formed record that lands in the auto-approve range with default thresholds."""
    now = utc_now()
    record = {
        "id": memory_id,
        "content": "We walked along the beach together and talked about the future plans we share.",
        "timestamp": to_iso(now - timedelta(days=200)),
        "tags": ["beach", "family"],
        "participants": [
            {"id": "p-self", "name": "Alex", "role": "self"},
            {"id": "p-sam", "name": "Sam", "role": "partner", "relationship": "spouse"},
        ],
        "emotionalContext": {
            "primaryEmotion": "contentment",
            "secondaryEmotions": ["love"],
            "intensity": 0.6,
            "themes": ["togetherness"],
        },
        "relationshipDynamics": {
            "interactionQuality": "warm",
            "communicationPatterns": ["open"],
        },
        "metadata": {
            "confidence": 0.9,
            "processedAt": to_iso(now - timedelta(days=1)),
        },
    }
    record.update(overrides)
    return Memory.model_validate(record)


def build_sparse_memory(memory_id="sparse-1"):
    """Bare record that lands in the auto-reject range with default thresholds."""
    return Memory.model_validate({
        "id": memory_id,
        "content": "ok",
        "timestamp": "not a date",
        "metadata": {"confidence": 0.1},
    })


@pytest.fixture
def memory_factory():
    return build_memory


@pytest.fixture
def sparse_memory_factory():
    return build_sparse_memory


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()

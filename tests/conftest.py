import json

import pytest

from models import UsageSnapshot
from store import StateStore


def blocks_json(*blocks) -> str:
    return json.dumps({"blocks": list(blocks)})


def block(id="b", active=False, gap=False, inp=0, out=0, total=0, cache_create=0, cache_read=0) -> dict:
    return {
        "id": id,
        "startTime": "2026-10-17T10:00:00.000Z",
        "endTime": "2026-10-17T15:00:00.000Z",
        "isActive": active,
        "isGap": gap,
        "tokenCounts": {
            "inputTokens": inp,
            "outputTokens": out,
            "cacheCreationInputTokens": cache_create,
            "cacheReadInputTokens": cache_read,
        },
        "totalTokens": total,
        "costUSD": 1.25,
        "models": ["claude-sonnet-4-5"],
    }


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / "ClaudeTokenWidget" / "config.json"


@pytest.fixture
def store(state_path):
    return StateStore(state_path)


@pytest.fixture
def tokens():
    return UsageSnapshot(input_tokens_used=1000, output_tokens_used=200, block_total_tokens=1500)

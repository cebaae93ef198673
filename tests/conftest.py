"""
Shared test fixtures
"""

import json
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Dict, Optional
from unittest.mock import AsyncMock

import pytest

from app.schemas.cache import CacheEntry, CacheStats
from app.schemas.contract import ContractFacts


T0 = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable replacement for utc_now"""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class InMemoryRecordStore:
    """RecordStore keeping entries in a dict"""

    def __init__(self):
        self.entries: Dict[str, CacheEntry] = {}
        self.upserts = 0

    async def get_contract_hash_entry(self, contract_hash: str) -> Optional[CacheEntry]:
        return self.entries.get(contract_hash)

    async def upsert_contract_hash_entry(self, entry: CacheEntry) -> None:
        self.upserts += 1
        self.entries[entry.contract_hash] = entry

    async def delete_expired_entries(self, before: datetime) -> int:
        expired = [h for h, e in self.entries.items() if e.expires_at < before]
        for contract_hash in expired:
            del self.entries[contract_hash]
        return len(expired)

    async def get_stats(self) -> CacheStats:
        if not self.entries:
            return CacheStats()
        created = sorted(e.created_at for e in self.entries.values())
        return CacheStats(
            total_cached=len(self.entries),
            total_tokens_saved=sum(e.tokens_used for e in self.entries.values()),
            oldest_entry_timestamp=created[0],
            newest_entry_timestamp=created[-1],
        )


class BrokenRecordStore:
    """RecordStore whose every call fails"""

    async def get_contract_hash_entry(self, contract_hash):
        raise ConnectionError("database unreachable")

    async def upsert_contract_hash_entry(self, entry):
        raise ConnectionError("database unreachable")

    async def delete_expired_entries(self, before):
        raise ConnectionError("database unreachable")

    async def get_stats(self):
        raise ConnectionError("database unreachable")


def llm_payload(risk_score: int = 70, red_flags=None, **extra) -> dict:
    """A well-formed model answer"""
    payload = {
        "risk_score": risk_score,
        "red_flags": red_flags if red_flags is not None else [
            {
                "type": "repeated_winner",
                "severity": "medium",
                "confidence": 0.7,
                "explanation": "Același câștigător apare des la această autoritate.",
            }
        ],
        "summary": "Contract cu risc ridicat.",
        "recommendations": ["Verificați istoricul câștigătorului."],
    }
    payload.update(extra)
    return payload


def make_completion(content: Optional[str], total_tokens: int = 420, choices: bool = True):
    """Shape of an openai ChatCompletion, as far as the analyzer reads it"""
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))] if choices else [],
        usage=SimpleNamespace(total_tokens=total_tokens),
    )


def make_client(completion=None, side_effect=None):
    """AsyncOpenAI stand-in with a mocked chat.completions.create"""
    create = AsyncMock(return_value=completion, side_effect=side_effect)
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


@pytest.fixture
def make_facts():
    """Factory for valid contract records with overridable fields"""
    def _make(**overrides) -> ContractFacts:
        data = {
            "contract_id": "CN-2024-0001",
            "title": "Reabilitare drum județean DJ 101",
            "buyer_name": "Consiliul Județean Ilfov",
            "winner_name": "Drumuri Construct SRL",
            "contract_value": 200000.0,
            "estimated_value": 190000.0,
            "num_bidders": 3,
            "procedure_type": "open",
            "award_date": "2024-03-01",
        }
        data.update(overrides)
        return ContractFacts(**data)
    return _make


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def broken_store():
    return BrokenRecordStore()


@pytest.fixture
def llm_response_text():
    return json.dumps(llm_payload())


@pytest.fixture
def fake_llm():
    """Helpers for building mocked LLM transports"""
    return SimpleNamespace(
        payload=llm_payload,
        completion=make_completion,
        client=make_client,
    )

"""Tests for memory data models and response parsing."""

from dataclasses import FrozenInstanceError
from datetime import datetime, timezone

import pytest

from mnemo.memory import RefreshResult, UserMemoryProfile
from mnemo.memory.parsing import parse_fact_list


class TestUserMemoryProfile:
    def test_defaults(self):
        profile = UserMemoryProfile(id="p1", user_id="u1")
        assert profile.facts == []
        assert profile.message_count == 0
        assert profile.last_processed_at is None

    def test_frozen(self):
        profile = UserMemoryProfile(id="p1", user_id="u1")
        with pytest.raises(FrozenInstanceError):
            profile.message_count = 3  # type: ignore[misc]

    def test_to_dict(self):
        ts = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        profile = UserMemoryProfile(
            id="p1",
            user_id="u1",
            facts=["Enjoys hiking"],
            message_count=2,
            last_processed_at=ts,
            created_at=ts,
            updated_at=None,
        )

        assert profile.to_dict() == {
            "id": "p1",
            "userId": "u1",
            "facts": ["Enjoys hiking"],
            "messageCount": 2,
            "lastProcessedAt": "2024-01-02T03:04:05+00:00",
            "createdAt": "2024-01-02T03:04:05+00:00",
            "updatedAt": None,
        }


class TestRefreshResult:
    def test_to_dict(self):
        profile = UserMemoryProfile(id="p1", user_id="u1", facts=["A"])
        data = RefreshResult(profile=profile, facts_added=1).to_dict()

        assert data["factsAdded"] == 1
        assert data["profile"]["facts"] == ["A"]


class TestParseFactList:
    def test_array_of_strings(self):
        assert parse_fact_list('["A", "B"]') == ["A", "B"]

    def test_whitespace_trimmed(self):
        assert parse_fact_list('  [" A "]  ') == ["A"]

    def test_not_json(self):
        assert parse_fact_list("nope") is None

    def test_not_array(self):
        assert parse_fact_list('"just a string"') is None

    def test_code_fence(self):
        assert parse_fact_list('```\n["A"]\n```') == ["A"]

    def test_empty_array(self):
        assert parse_fact_list("[]") == []

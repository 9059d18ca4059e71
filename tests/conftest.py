"""Shared test fixtures for the roastmenow test suite.

WHY: Several test modules need the same reference roast, GitHub payloads
and mock transports. Centralizing fixtures here avoids duplication and
keeps every test on the same worked example.

HOW: Pytest fixtures provide the reference roast text, canned GitHub JSON,
a seeded random.Random, and a FakeClock for driving playback sources
without sleeping. Clients get httpx.MockTransport handlers, never the
network.

RULES:
- The reference roast is the two-marker example used across the suite
- No test touches the network
- Randomness in tests is always seeded
"""

from __future__ import annotations

import random
from typing import Any, Dict, List

import httpx
import pytest

from roastmenow.api.models import GitHubProfile, GitHubRepo, GitHubUser

# ---------------------------------------------------------------------------
# Reference roast
# ---------------------------------------------------------------------------

REFERENCE_ROAST = "Nice try. [AIRHORN] That repo has three commits and two are typos. [FATALITY]"
REFERENCE_CLEAN = "Nice try. That repo has three commits and two are typos."

USER_PAYLOAD: Dict[str, Any] = {
    "login": "octocat",
    "name": "The Octocat",
    "bio": None,
    "company": "@github",
    "location": "San Francisco",
    "blog": "",
    "public_repos": 8,
    "followers": 9000,
    "following": 9,
    "created_at": "2011-01-25T18:44:36Z",
}

REPOS_PAYLOAD: List[Dict[str, Any]] = [
    {
        "name": "hello-world",
        "language": None,
        "description": "My first repository on GitHub!",
        "stargazers_count": 2500,
        "forks_count": 2200,
        "updated_at": "2024-03-01T10:00:00Z",
        "fork": False,
    },
    {
        "name": "Spoon-Knife",
        "language": "HTML",
        "description": None,
        "stargazers_count": 12000,
        "forks_count": 140000,
        "updated_at": "2024-02-01T10:00:00Z",
        "fork": False,
    },
]

EVENTS_PAYLOAD: List[Dict[str, Any]] = [
    {"type": "PushEvent", "repo": {"name": "octocat/hello-world"}, "created_at": "2024-03-01T10:00:00Z"},
    {"type": "PushEvent", "repo": {"name": "octocat/hello-world"}, "created_at": "2024-03-01T09:00:00Z"},
    {"type": "WatchEvent", "repo": {"name": "octocat/Spoon-Knife"}, "created_at": "2024-02-28T10:00:00Z"},
]


class FakeClock:
    """Manually advanced monotonic clock for playback sources."""

    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def reference_roast():
    """Two-marker roast: AIRHORN after the first sentence, FATALITY at the end."""
    return REFERENCE_ROAST


@pytest.fixture
def reference_clean():
    return REFERENCE_CLEAN


@pytest.fixture
def rng():
    """A seeded random.Random for reproducible cue and ambient choices."""
    return random.Random(1234)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def sample_profile():
    """GitHubProfile built from the canned payloads."""
    return GitHubProfile(
        user=GitHubUser.from_dict(USER_PAYLOAD),
        repos=[GitHubRepo.from_dict(r) for r in REPOS_PAYLOAD],
        events=[],
        readme=None,
    )


@pytest.fixture(autouse=True)
def _api_keys(monkeypatch):
    """Configure fake credentials so clients can be constructed."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-openai-key")
    monkeypatch.setenv("ELEVENLABS_API_KEY", "test-elevenlabs-key")
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)


@pytest.fixture
def github_routes():
    """GitHub API path → canned httpx.Response for the octocat profile."""
    return {
        "/users/octocat": httpx.Response(200, json=USER_PAYLOAD),
        "/users/octocat/repos": httpx.Response(200, json=REPOS_PAYLOAD),
        "/users/octocat/events/public": httpx.Response(200, json=EVENTS_PAYLOAD),
        "/repos/octocat/octocat/readme": httpx.Response(200, text="# Hi there\nI like cats.\n"),
    }

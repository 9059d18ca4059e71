"""GitHub response and speech result dataclasses.

WHY: The GitHub REST API returns loosely-populated JSON — bio, location,
company and README are all optional — and the speech pipeline returns one
of two very different outcomes. Typed dataclasses make those shapes
explicit and keep ``dict.get`` calls out of prompt building.

HOW: Each GitHub dataclass maps to one REST object and has a from_dict()
factory that tolerates missing or null optional fields. SpeechAudio and
SpeechFallback are the two outcomes of acquire_speech().

RULES:
- Only ``login`` is required on a user; everything else has a default
- Counts default to 0, strings to None
- SpeechAudio.kind == "audio", SpeechFallback.kind == "fallback"
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class GitHubUser:
    """GET /users/{username}."""

    login: str
    name: Optional[str] = None
    bio: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    blog: Optional[str] = None
    public_repos: int = 0
    followers: int = 0
    following: int = 0
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> GitHubUser:
        return cls(
            login=data["login"],
            name=data.get("name"),
            bio=data.get("bio"),
            company=data.get("company"),
            location=data.get("location"),
            blog=data.get("blog") or None,
            public_repos=data.get("public_repos") or 0,
            followers=data.get("followers") or 0,
            following=data.get("following") or 0,
            created_at=data.get("created_at"),
        )


@dataclass
class GitHubRepo:
    """One entry of GET /users/{username}/repos."""

    name: str
    language: Optional[str] = None
    description: Optional[str] = None
    stargazers_count: int = 0
    forks_count: int = 0
    updated_at: Optional[str] = None
    fork: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> GitHubRepo:
        return cls(
            name=data.get("name", ""),
            language=data.get("language"),
            description=data.get("description"),
            stargazers_count=data.get("stargazers_count") or 0,
            forks_count=data.get("forks_count") or 0,
            updated_at=data.get("updated_at"),
            fork=bool(data.get("fork", False)),
        )


@dataclass
class GitHubEvent:
    """One entry of GET /users/{username}/events/public."""

    type: str
    repo: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> GitHubEvent:
        repo = data.get("repo") or {}
        return cls(
            type=data.get("type") or "UnknownEvent",
            repo=repo.get("name"),
            created_at=data.get("created_at"),
        )


@dataclass
class GitHubProfile:
    """Everything the prompt builder knows about one user.

    RULES:
    - repos and events may be empty (best-effort fetches)
    - readme is None when the user has no profile README
    """

    user: GitHubUser
    repos: List[GitHubRepo] = field(default_factory=list)
    events: List[GitHubEvent] = field(default_factory=list)
    readme: Optional[str] = None

    def event_counts(self) -> Counter:
        return Counter(event.type for event in self.events)


@dataclass
class SpeechAudio:
    """Remote synthesis succeeded: MP3 bytes and their duration.

    text is the optimized text that was synthesized.
    """

    audio: bytes
    content_type: str
    duration_s: float
    text: str = ""
    kind: str = "audio"


@dataclass
class SpeechFallback:
    """Remote synthesis unavailable: speak *text* on the device instead.

    RULES:
    - reason is the RoastError kind that triggered the fallback
    - duration_s is the intensity-based estimate for *text*
    """

    text: str
    reason: str
    duration_s: float
    kind: str = "fallback"

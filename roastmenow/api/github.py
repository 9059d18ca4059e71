"""Async HTTP client for the GitHub REST API.

WHY: A roast is only as good as the profile data behind it. The roast
endpoint and the CLI need the user record plus recent repositories,
public events and the profile README, and they need GitHub's failure modes
(unknown user, rate limiting) translated into the roast error taxonomy.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. GitHubClient is an
async context manager — enter it to get a configured client, exit to
close the connection pool. fetch_user() is strict; the other fetches are
best-effort and degrade to empty results. fetch_profile() combines them.

RULES:
- Always use the async context manager (async with GitHubClient() as gh:)
- 404 on the user → UpstreamNotFound; 403 with X-RateLimit-Remaining: 0
  or 429 on any request → UpstreamRateLimited
- Repos/events/README failures other than rate limiting never fail a roast
- The user payload is validated with jsonschema; only ``login`` is required
- GITHUB_TOKEN is optional; requests are unauthenticated without it
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

import httpx
import jsonschema

from roastmenow.api.models import GitHubEvent, GitHubProfile, GitHubRepo, GitHubUser
from roastmenow.config import GITHUB_API_URL, GITHUB_USER_AGENT, load_github_token
from roastmenow.errors import (
    InvalidUsername,
    RoastError,
    UpstreamNotFound,
    UpstreamRateLimited,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_USERNAME_RE = re.compile(r"^[a-zA-Z0-9](?:[a-zA-Z0-9]|-(?=[a-zA-Z0-9])){0,38}$")

_REPO_LIMIT = 10
_EVENT_LIMIT = 30

_NULLABLE_STRING = {"type": ["string", "null"]}
_NULLABLE_INT = {"type": ["integer", "null"]}

USER_SCHEMA = {
    "type": "object",
    "required": ["login"],
    "properties": {
        "login": {"type": "string", "minLength": 1},
        "name": _NULLABLE_STRING,
        "bio": _NULLABLE_STRING,
        "company": _NULLABLE_STRING,
        "location": _NULLABLE_STRING,
        "blog": _NULLABLE_STRING,
        "created_at": _NULLABLE_STRING,
        "public_repos": _NULLABLE_INT,
        "followers": _NULLABLE_INT,
        "following": _NULLABLE_INT,
    },
}


def validate_username(raw: str) -> str:
    """Normalize and validate a GitHub username.

    RULES:
    - Surrounding whitespace and one leading "@" are removed
    - 1-39 characters of letters, digits and single inner hyphens
    - Raises InvalidUsername otherwise
    """
    username = (raw or "").strip()
    if username.startswith("@"):
        username = username[1:]
    if not username:
        raise InvalidUsername("Please enter a GitHub username")
    if not _USERNAME_RE.match(username):
        raise InvalidUsername(
            "GitHub usernames must be 1-39 characters and can only contain "
            "letters, numbers, and hyphens (not at the start/end)"
        )
    return username


def _is_rate_limited(resp: httpx.Response) -> bool:
    if resp.status_code == 429:
        return True
    return resp.status_code == 403 and resp.headers.get("X-RateLimit-Remaining") == "0"


def _json_or_none(resp: httpx.Response):
    """Decoded JSON body of a best-effort response, or None if it is not JSON."""
    try:
        return resp.json()
    except ValueError:
        logger.warning("Ignoring non-JSON response from %s", resp.request.url.path)
        return None


class GitHubClient:
    """Async client for the handful of GitHub endpoints a roast needs.

    RULES:
    - Use as: async with GitHubClient() as gh: ...
    - token defaults to load_github_token() (may be None)
    - transport can be injected (httpx.MockTransport in tests)
    """

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = token if token is not None else load_github_token()
        self._base_url = (base_url or GITHUB_API_URL).rstrip("/")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> GitHubClient:
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": GITHUB_USER_AGENT,
        }
        if self._token:
            headers["Authorization"] = "Bearer {}".format(self._token)
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=httpx.Timeout(20.0, connect=10.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "GitHubClient must be used as an async context manager: "
                "async with GitHubClient() as gh: ..."
            )
        return self._client

    async def _get(self, path: str, **kwargs) -> httpx.Response:
        client = self._ensure_client()
        try:
            resp = await client.get(path, **kwargs)
        except httpx.HTTPError as exc:
            raise RoastError("Could not reach GitHub: {}".format(exc)) from exc
        if _is_rate_limited(resp):
            logger.warning("GitHub rate limit hit on %s", path)
            raise UpstreamRateLimited(
                "GitHub API rate limit exceeded. Please try again later."
            )
        return resp

    async def _get_optional(self, path: str, **kwargs) -> Optional[httpx.Response]:
        """Like _get(), but transport errors and non-200 statuses return None.

        Rate limiting still raises: a limited token fails every later call too.
        """
        try:
            resp = await self._get(path, **kwargs)
        except UpstreamRateLimited:
            raise
        except RoastError as exc:
            logger.warning("GitHub request %s failed: %s", path, exc.detail)
            return None
        if resp.status_code != 200:
            logger.warning("GitHub request %s failed: %s", path, resp.status_code)
            return None
        return resp

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def fetch_user(self, username: str) -> GitHubUser:
        """Fetch the user record; the only fetch that can fail a roast.

        RULES:
        - 404 → UpstreamNotFound
        - Other non-2xx → RoastError (kind "upstream_error")
        - A payload that fails USER_SCHEMA → RoastError
        """
        logger.info("Fetching GitHub user data for: %s", username)
        resp = await self._get("/users/{}".format(username))

        if resp.status_code == 404:
            raise UpstreamNotFound("GitHub user '{}' not found".format(username))
        if resp.status_code != 200:
            raise RoastError("GitHub API error: {}".format(resp.status_code))

        try:
            data = resp.json()
            jsonschema.validate(data, USER_SCHEMA)
        except ValueError as exc:
            raise RoastError("GitHub returned a non-JSON user payload") from exc
        except jsonschema.ValidationError as exc:
            raise RoastError(
                "GitHub returned an unexpected user payload: {}".format(exc.message)
            ) from exc
        return GitHubUser.from_dict(data)

    async def fetch_repos(self, username: str) -> List[GitHubRepo]:
        """Fetch the most recently updated repositories (best-effort)."""
        resp = await self._get_optional(
            "/users/{}/repos".format(username),
            params={"sort": "updated", "per_page": _REPO_LIMIT},
        )
        if resp is None:
            return []
        data = _json_or_none(resp)
        if not isinstance(data, list):
            return []
        logger.info("Fetched %d repositories for: %s", len(data), username)
        return [GitHubRepo.from_dict(item) for item in data if isinstance(item, dict)]

    async def fetch_events(self, username: str) -> List[GitHubEvent]:
        """Fetch recent public events (best-effort)."""
        resp = await self._get_optional(
            "/users/{}/events/public".format(username),
            params={"per_page": _EVENT_LIMIT},
        )
        if resp is None:
            return []
        data = _json_or_none(resp)
        if not isinstance(data, list):
            return []
        return [GitHubEvent.from_dict(item) for item in data if isinstance(item, dict)]

    async def fetch_readme(self, username: str) -> Optional[str]:
        """Fetch the raw profile README (``username/username``), or None."""
        resp = await self._get_optional(
            "/repos/{0}/{0}/readme".format(username),
            headers={"Accept": "application/vnd.github.raw"},
        )
        if resp is None:
            return None
        text = resp.text.strip()
        return text or None

    async def fetch_profile(self, username: str) -> GitHubProfile:
        """Fetch the user and everything else the prompt can use.

        The user request goes first so an unknown username fails fast
        without spending three more requests of rate limit.
        """
        user = await self.fetch_user(username)
        repos = await self.fetch_repos(username)
        events = await self.fetch_events(username)
        readme = await self.fetch_readme(username)
        return GitHubProfile(user=user, repos=repos, events=events, readme=readme)

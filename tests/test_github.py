"""Tests for the GitHub client and username validation.

HOW: Every request is answered by an httpx.MockTransport handler keyed on
the request path. Async client calls run under asyncio.run().
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from roastmenow.api.github import GitHubClient, validate_username
from roastmenow.errors import InvalidUsername, RoastError, UpstreamNotFound, UpstreamRateLimited


def _transport(routes, seen=None):
    """MockTransport answering GET paths from *routes* (path → Response)."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        response = routes.get(request.url.path)
        if response is None:
            return httpx.Response(404, json={"message": "Not Found"})
        return response

    return httpx.MockTransport(handler)


def _fetch_profile(transport, username="octocat", token=None):
    async def _run():
        async with GitHubClient(token=token, transport=transport) as gh:
            return await gh.fetch_profile(username)

    return asyncio.run(_run())


class TestValidateUsername:
    @pytest.mark.parametrize("raw,expected", [
        ("octocat", "octocat"),
        ("  octocat ", "octocat"),
        ("@octocat", "octocat"),
        ("a", "a"),
        ("my-name-1", "my-name-1"),
        ("x" * 39, "x" * 39),
    ])
    def test_valid(self, raw, expected):
        assert validate_username(raw) == expected

    @pytest.mark.parametrize("raw", [
        "", "   ", "@", "-leading", "trailing-", "double--hyphen",
        "has space", "under_score", "x" * 40, "emoji😀",
    ])
    def test_invalid(self, raw):
        with pytest.raises(InvalidUsername) as excinfo:
            validate_username(raw)
        assert excinfo.value.kind == "validation"


class TestFetchProfile:
    def test_full_profile(self, github_routes):
        seen = []
        profile = _fetch_profile(_transport(github_routes, seen))
        assert profile.user.login == "octocat"
        assert profile.user.bio is None
        assert profile.user.blog is None
        assert profile.user.followers == 9000
        assert [r.name for r in profile.repos] == ["hello-world", "Spoon-Knife"]
        assert profile.event_counts()["PushEvent"] == 2
        assert profile.events[0].repo == "octocat/hello-world"
        assert profile.readme.startswith("# Hi there")

        repos_request = next(r for r in seen if r.url.path.endswith("/repos"))
        assert repos_request.url.params["sort"] == "updated"
        assert repos_request.url.params["per_page"] == "10"
        assert seen[0].headers["User-Agent"] == "RoastMeNow-App"
        assert "Authorization" not in seen[0].headers

    def test_token_is_sent(self, github_routes):
        seen = []
        _fetch_profile(_transport(github_routes, seen), token="ghp_test")
        assert all(r.headers["Authorization"] == "Bearer ghp_test" for r in seen)

    def test_readme_uses_raw_accept_header(self, github_routes):
        seen = []
        _fetch_profile(_transport(github_routes, seen))
        readme_request = next(r for r in seen if r.url.path.endswith("/readme"))
        assert readme_request.headers["Accept"] == "application/vnd.github.raw"

    def test_unknown_user(self):
        with pytest.raises(UpstreamNotFound) as excinfo:
            _fetch_profile(_transport({}))
        assert excinfo.value.kind == "not_found"
        assert "octocat" in excinfo.value.detail

    def test_unknown_user_fails_fast(self):
        seen = []
        with pytest.raises(UpstreamNotFound):
            _fetch_profile(_transport({}, seen))
        assert len(seen) == 1

    def test_rate_limited_403(self):
        routes = {"/users/octocat": httpx.Response(
            403, json={"message": "API rate limit exceeded"},
            headers={"X-RateLimit-Remaining": "0"},
        )}
        with pytest.raises(UpstreamRateLimited):
            _fetch_profile(_transport(routes))

    def test_rate_limited_429(self):
        routes = {"/users/octocat": httpx.Response(429)}
        with pytest.raises(UpstreamRateLimited):
            _fetch_profile(_transport(routes))

    def test_plain_403_is_upstream_error(self):
        routes = {"/users/octocat": httpx.Response(403, json={"message": "Forbidden"})}
        with pytest.raises(RoastError) as excinfo:
            _fetch_profile(_transport(routes))
        assert excinfo.value.kind == "upstream_error"

    def test_missing_optional_data_degrades(self):
        routes = {"/users/octocat": httpx.Response(200, json={"login": "octocat"})}
        profile = _fetch_profile(_transport(routes))
        assert profile.user.name is None
        assert profile.user.public_repos == 0
        assert profile.repos == []
        assert profile.events == []
        assert profile.readme is None

    def test_non_json_repos_and_events_degrade(self, github_routes):
        routes = dict(github_routes)
        routes["/users/octocat/repos"] = httpx.Response(200, text="<html>")
        routes["/users/octocat/events/public"] = httpx.Response(200, text="<html>")
        profile = _fetch_profile(_transport(routes))
        assert profile.user.login == "octocat"
        assert profile.repos == []
        assert profile.events == []
        assert profile.readme.startswith("# Hi there")

    def test_repo_rate_limit_still_raises(self, github_routes):
        routes = dict(github_routes)
        routes["/users/octocat/repos"] = httpx.Response(429)
        with pytest.raises(UpstreamRateLimited):
            _fetch_profile(_transport(routes))

    def test_invalid_user_payload(self):
        routes = {"/users/octocat": httpx.Response(200, json={"name": "no login"})}
        with pytest.raises(RoastError) as excinfo:
            _fetch_profile(_transport(routes))
        assert "unexpected user payload" in excinfo.value.detail

    def test_non_json_user_payload(self):
        routes = {"/users/octocat": httpx.Response(200, text="<html>")}
        with pytest.raises(RoastError):
            _fetch_profile(_transport(routes))

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("boom", request=request)

        with pytest.raises(RoastError) as excinfo:
            _fetch_profile(httpx.MockTransport(handler))
        assert "Could not reach GitHub" in excinfo.value.detail


class TestClientLifecycle:
    def test_requires_context_manager(self):
        client = GitHubClient(token="x")
        with pytest.raises(RuntimeError):
            asyncio.run(client.fetch_user("octocat"))

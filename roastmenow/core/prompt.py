"""Prompt assembly for the roast LLM request.

WHY: The LLM only sees text. Turning the GitHub profile into a compact,
consistent summary — and telling the model exactly which cue markers it
may use — is what makes the roast specific and the cues parseable.

HOW: summarize_profile() renders a GitHubProfile as labelled lines.
build_messages() pairs the intensity's system prompt (base prompt,
intensity directive, marker instructions) with the summary as the user
message, in chat-completions message format.

RULES:
- Missing optional fields render as "Not provided", never as "None"
- Dates are shortened to YYYY-MM-DD
- The README excerpt is capped at README_EXCERPT_CHARS characters
- The marker instructions always list the full CueTag vocabulary
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional

from roastmenow.config import resolve_intensity
from roastmenow.core.ir import CueTag

if TYPE_CHECKING:
    from roastmenow.api.models import GitHubProfile

README_EXCERPT_CHARS = 1000

BASE_SYSTEM_PROMPT = (
    "You are a comedy roast bot analyzing a GitHub profile. Create a funny, "
    "clever roast based on the GitHub data provided. Be witty and creative, "
    "focusing on their coding habits, repository choices, and activity "
    "patterns."
)


def _or_missing(value: Optional[object]) -> str:
    if value is None or value == "":
        return "Not provided"
    return str(value)


def _short_date(value: Optional[str]) -> str:
    if not value:
        return "unknown"
    return value[:10]


def marker_instructions() -> str:
    """The paragraph telling the model how to embed cue markers."""
    tags = ", ".join(tag.marker for tag in CueTag)
    return (
        "Drop sound-effect markers into the roast right after the punchlines "
        "they should punctuate, using only these exact markers: {}. Use between "
        "two and five markers, never explain them, and end the roast with one."
    ).format(tags)


def summarize_profile(profile: GitHubProfile) -> str:
    """Render *profile* as the text block sent to the LLM."""
    user = profile.user
    lines = [
        "GitHub Username: {}".format(user.login),
        "Name: {}".format(_or_missing(user.name)),
        "Bio: {}".format(_or_missing(user.bio)),
        "Company: {}".format(_or_missing(user.company)),
        "Location: {}".format(_or_missing(user.location)),
        "Public Repos: {}".format(user.public_repos),
        "Followers: {}".format(user.followers),
        "Following: {}".format(user.following),
        "Account created: {}".format(_short_date(user.created_at)),
        "",
        "Recent Repositories:",
    ]

    if not profile.repos:
        lines.append("- None")
    for repo in profile.repos:
        lines.append("- {} ({}): {}{}".format(
            repo.name,
            repo.language or "No language specified",
            repo.description or "No description",
            " [fork]" if repo.fork else "",
        ))
        lines.append("  Stars: {}, Forks: {}, Last updated: {}".format(
            repo.stargazers_count, repo.forks_count, _short_date(repo.updated_at),
        ))

    counts = profile.event_counts()
    if counts:
        lines.append("")
        lines.append("Recent Activity:")
        for event_type, count in counts.most_common():
            lines.append("- {}: {}".format(event_type, count))

    if profile.readme:
        excerpt = profile.readme[:README_EXCERPT_CHARS]
        lines.append("")
        lines.append("Profile README (excerpt):")
        lines.append(excerpt)

    return "\n".join(lines)


def build_messages(profile: GitHubProfile, intensity: str | None) -> List[Dict[str, str]]:
    """Chat-completions messages for roasting *profile* at *intensity*."""
    directive = resolve_intensity(intensity).prompt_directive
    system_prompt = "{} {}\n\n{}".format(BASE_SYSTEM_PROMPT, directive, marker_instructions())
    user_prompt = "Roast this GitHub user based on their profile information:\n\n{}".format(
        summarize_profile(profile)
    )
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]

"""Word segmentation of clean roast text into display tokens.

WHY: The highlighter lights up one word at a time and the timing model
assigns one start time per word. Both need the same ordered token list,
with paragraph breaks kept as their own slots so a new paragraph can get a
short pause without being glued to a neighbouring word.

HOW: The text is split into paragraphs on blank lines, each paragraph on
whitespace. A break token is emitted between non-empty paragraphs.

RULES:
- Empty pieces (consecutive delimiters) are discarded
- A break token never starts or ends the sequence, and never repeats
- Deterministic: the same text always yields an equal token list
- join_tokens() is the inverse up to whitespace normalization
"""

from __future__ import annotations

import re
from typing import List

from roastmenow.core.ir import Token

_PARAGRAPH_RE = re.compile(r"\n[ \t\r\f\v]*\n\s*")


def segment_words(clean_text: str) -> List[Token]:
    """Split *clean_text* into word tokens and paragraph-break sentinels.

    Args:
        clean_text: Marker-free text, usually from extract_markers().

    Returns:
        Tokens indexed 0..n-1 in reading order.
    """
    tokens: List[Token] = []
    for paragraph in _PARAGRAPH_RE.split(clean_text):
        words = paragraph.split()
        if not words:
            continue
        if tokens:
            tokens.append(Token(index=len(tokens), text="", is_break=True))
        for word in words:
            tokens.append(Token(index=len(tokens), text=word))
    return tokens


def join_tokens(tokens: List[Token]) -> str:
    """Rebuild display text from tokens: spaces between words, blank lines at breaks."""
    parts: List[str] = []
    for token in tokens:
        if token.is_break:
            parts.append("\n\n")
            continue
        if parts and parts[-1] != "\n\n":
            parts.append(" ")
        parts.append(token.text)
    return "".join(parts)

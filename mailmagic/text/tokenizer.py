"""Split HTML-ish text into text and tag tokens."""

import enum
import re
from dataclasses import dataclass

# A "<", any run of characters other than "<" and ">", then a ">"
TAG_SPLIT_RE = re.compile(r"(<[^<>]+>)")

VERBATIM_TAGS = ("code", "pre", "script", "style")

_VERBATIM_OPEN_RE = re.compile(r"^<(?:%s)[\s>]" % "|".join(VERBATIM_TAGS), re.IGNORECASE)
_VERBATIM_CLOSE = frozenset(f"</{tag}>" for tag in VERBATIM_TAGS)


class InvalidInputError(ValueError):
    """Raised when the text to tokenize is not a string."""


class TokenKind(enum.Enum):
    TEXT = "text"
    TAG = "tag"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    content: str


def tokenize(text: str) -> list[Token]:
    """Split text on tag boundaries.

    Tags and the text between them alternate, starting and ending with a text
    token; text tokens may be empty (e.g. between two adjacent tags) so that
    joining every token's content gives back the input unchanged.
    """
    if not isinstance(text, str):
        raise InvalidInputError(f"Cannot tokenize {type(text).__name__}, expected str")

    return [
        Token(TokenKind.TAG if i % 2 else TokenKind.TEXT, piece) for i, piece in enumerate(TAG_SPLIT_RE.split(text))
    ]


class VerbatimTracker:
    """Tracks how deep the token stream is nested inside code/pre/script/style."""

    def __init__(self) -> None:
        self.depth = 0

    @property
    def inside(self) -> bool:
        return self.depth > 0

    def feed(self, token: Token) -> bool:
        """Update the depth with a token; returns True if the token is verbatim."""
        if token.kind is TokenKind.TAG:
            if _VERBATIM_OPEN_RE.match(token.content):
                self.depth += 1
            elif self.depth and token.content.lower() in _VERBATIM_CLOSE:
                self.depth -= 1
        return self.inside

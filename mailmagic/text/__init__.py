from collections.abc import Iterable

from mailmagic.text.linkify import make_clickable
from mailmagic.text.paragraphs import flat_text_to_html
from mailmagic.text.sanitize import sanitize_url
from mailmagic.text.tokenizer import InvalidInputError, Token, TokenKind, tokenize


def htmlize(body: str, protocols: Iterable[str] | None = None) -> str:
    """Convert a plain text email body to a passable HTML representation."""
    return make_clickable(flat_text_to_html(body), protocols)


__all__ = [
    "InvalidInputError",
    "Token",
    "TokenKind",
    "flat_text_to_html",
    "htmlize",
    "make_clickable",
    "sanitize_url",
    "tokenize",
]

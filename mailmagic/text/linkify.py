"""Convert plain text URIs into HTML links.

Handles ``scheme://`` URLs, bare ``www.`` / ``ftp.`` host names and email
addresses. Existing tags are left alone, and so is anything inside
``<code>``, ``<pre>``, ``<script>`` or ``<style>``.
"""

import re
from collections.abc import Iterable

from mailmagic.text.sanitize import sanitize_url
from mailmagic.text.tokenizer import VerbatimTracker, tokenize

# Tokens longer than this are split at whitespace before matching
LONG_TOKEN_LENGTH = 10000
# Extra room for scheme and leading and trailing parentheses
CHUNK_GOAL = 2100

WHITESPACE = "\r\n\t\v\f "
_NULLSPACE = str.maketrans(WHITESPACE, "\0" * len(WHITESPACE))

_URL_TAG_RE = re.compile(r"^<\s*\w{1,20}+://")

URL_CLICKABLE_RE = re.compile(
    r"""
    ([\s(<.,;:!?])                                    # 1: Leading whitespace, or punctuation
    (                                                 # 2: URL
        \w{1,20}+://                                  # Scheme and hier-part prefix
        (?=\S{1,2000}\s)                              # Limit to URLs less than about 2000 characters long
        [\w\u0080-\U0010ffff#%~/@\[\]*(+=&$-]*+       # Non-punctuation URL character
        (?:                                           # Punctuation URL character only if followed by
            ['.,;:!?)]                                # a non-punctuation URL character
            [\w\u0080-\U0010ffff#%~/@\[\]*(+=&$-]++
        )*
    )
    (\)?)                                             # 3: Trailing closing parenthesis
    """,
    re.VERBOSE,
)

WEB_FTP_CLICKABLE_RE = re.compile(
    r"([\s>])((www|ftp)\.[\w\u0080-\U0010ffff#$%&~/.\-;:=,?@\[\]+]+)",
    re.IGNORECASE | re.DOTALL,
)

EMAIL_CLICKABLE_RE = re.compile(r"([\s>])([.0-9a-z_+-]+)@(([0-9a-z-]+\.)+[0-9a-z]{2,})", re.IGNORECASE)

# An anchor produced inside the text of another anchor
NESTED_LINK_RE = re.compile(r"(<a([ \r\n\t]+[^>]+?>|>))<a [^>]+?>([^>]+?)</a></a>", re.IGNORECASE)


def _anchor(href: str) -> str:
    return f'<a href="{href}">{href}</a>'


def split_by_whitespace(text: str, goal: int) -> list[str]:
    """Break a string into chunks at whitespace characters.

    Each chunk is as close to ``goal`` characters as possible and includes its
    trailing delimiter; a chunk longer than ``goal`` has no inner whitespace.
    Joining the chunks gives back the input.

    >>> split_by_whitespace("1234 67890 1234 67890a cd 1234   890 123456789 1234567890a    45678   1 3 5 7 90 ", 10)
    ['1234 67890 ', '1234 ', '67890a cd ', '1234   890 ', '123456789 ', '1234567890a ', '   45678   ', '1 3 5 7 90 ']
    """
    chunks = []
    nullspace = text.translate(_NULLSPACE)

    while goal < len(nullspace):
        pos = nullspace.rfind("\0", 0, goal + 1)
        if pos == -1:
            pos = nullspace.find("\0", goal + 1)
            if pos == -1:
                break

        chunks.append(text[: pos + 1])
        text = text[pos + 1 :]
        nullspace = nullspace[pos + 1 :]

    if text:
        chunks.append(text)
    return chunks


def _make_url_clickable(match: re.Match, protocols: Iterable[str] | None) -> str:
    url = match.group(2)
    suffix = match.group(3)

    # A trailing ")" belongs to the URL if it opened one; the balancer below sorts out the rest
    if suffix == ")" and "(" in url:
        url += suffix
        suffix = ""

    while url.count("(") < url.count(")"):
        cut = url.rfind(")")
        suffix = url[cut:] + suffix
        url = url[:cut]

    url = sanitize_url(url, protocols)
    if not url:
        return match.group(0)

    return match.group(1) + _anchor(url) + suffix


def _make_web_ftp_clickable(match: re.Match, protocols: Iterable[str] | None) -> str:
    dest = "http://" + match.group(2)
    trailing = ""

    if dest[-1] in ".,;:)":
        trailing = dest[-1]
        dest = dest[:-1]

    dest = sanitize_url(dest, protocols)
    if not dest:
        return match.group(0)

    return match.group(1) + _anchor(dest) + trailing


def _make_email_clickable(match: re.Match) -> str:
    email = f"{match.group(2)}@{match.group(3)}"
    return f'{match.group(1)}<a href="mailto:{email}">{email}</a>'


def _linkify_piece(piece: str, protocols: Iterable[str] | None) -> str:
    # Pad with whitespace so every pattern has a leading and trailing boundary
    ret = f" {piece} "
    ret = URL_CLICKABLE_RE.sub(lambda m: _make_url_clickable(m, protocols), ret)
    ret = WEB_FTP_CLICKABLE_RE.sub(lambda m: _make_web_ftp_clickable(m, protocols), ret)
    ret = EMAIL_CLICKABLE_RE.sub(_make_email_clickable, ret)
    return ret[1:-1]


def _is_passthrough(piece: str, verbatim: bool) -> bool:
    if verbatim or not piece:
        return True
    return piece[0] == "<" and not _URL_TAG_RE.match(piece)


def make_clickable(text: str, protocols: Iterable[str] | None = None) -> str:
    """Convert plain text URIs, www/ftp host names and email addresses to links.

    Args:
        text: Text or HTML to convert.
        protocols: Schemes allowed in generated links; see ``sanitize_url``.

    Returns:
        The text with links added. Anything that fails validation is left as is.
    """
    out = []
    tracker = VerbatimTracker()

    for token in tokenize(text):
        piece = token.content
        if _is_passthrough(piece, tracker.feed(token)):
            out.append(piece)
            continue

        # Long strings can hit expensive regex edge cases
        if len(piece) > LONG_TOKEN_LENGTH:
            for chunk in split_by_whitespace(piece, CHUNK_GOAL):
                if len(chunk) > CHUNK_GOAL + 1:
                    # Too big and no whitespace to split on
                    out.append(chunk)
                else:
                    out.append(make_clickable(chunk, protocols))
        else:
            out.append(_linkify_piece(piece, protocols))

    return NESTED_LINK_RE.sub(r"\1\3</a>", "".join(out))

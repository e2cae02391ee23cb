from mailmagic.text.tokenizer import InvalidInputError

BLOCK_TAG_PREFIXES = ("<p>", "<p ", "<div>", "<div ")


def _starts_with_block(text: str) -> bool:
    return text[:5].lower().startswith(BLOCK_TAG_PREFIXES)


def flat_text_to_html(text: str) -> str:
    """Turn partially HTML text into passable HTML.

    Text that already starts with a paragraph or div is returned as is.
    Otherwise every blank-line separated block not starting with one is
    wrapped in ``<p>``.
    """
    if not isinstance(text, str):
        raise InvalidInputError(f"Cannot wrap {type(text).__name__}, expected str")

    text = text.strip()
    if _starts_with_block(text):
        return text

    return "\n".join(block if _starts_with_block(block) else f"<p>{block}</p>" for block in text.split("\n\n"))

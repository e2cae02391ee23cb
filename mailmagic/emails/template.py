from pathlib import Path

from mailmagic.log import logger

DEFAULT_TEMPLATE_NAME = "default.html"

# Used when no template file can be read at all
FALLBACK_TEMPLATE = """<html>
<head>
	<title>[SUBJECT]</title>
</head>
<body>
[CONTENT_HTMLIZED]
</body>
</html>"""


def load_template(template_root: Path, name: str = DEFAULT_TEMPLATE_NAME) -> str:
    """Load an HTML email template.

    Falls back to the root's default template when ``name`` does not exist and
    to a minimal built-in template when nothing can be read.
    """
    path = template_root / name
    if not path.is_file():
        logger.debug(f"Template {path} not found, using {DEFAULT_TEMPLATE_NAME}")
        path = template_root / DEFAULT_TEMPLATE_NAME

    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Cannot read email template {path}: {e!s}")
        return FALLBACK_TEMPLATE


def render_template(template: str, replacements: dict[str, str]) -> str:
    """Replace ``[KEY]`` placeholders, one key at a time in the given order."""
    for key, value in replacements.items():
        template = template.replace(f"[{key.upper()}]", value)
    return template

"""Turn plain text outgoing email into HTML with clickable links and inlined site images."""

from mailmagic.images import inline_images
from mailmagic.text import htmlize

__all__ = ["htmlize", "inline_images"]

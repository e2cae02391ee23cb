"""Embed the site's own images into outgoing mail.

Image references in the HTML (``srcset=``, ``src=`` and CSS ``url()``) that
point at a file served by the site are replaced with ``cid:img<N>`` and the file
is handed to an :class:`EmbedSink` so the composer can attach it inline.
"""

import abc
import os
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from mailmagic.config import DEFAULT_IMAGE_EXTENSIONS, SiteSettings
from mailmagic.emails.models import EmbeddedImage
from mailmagic.log import logger

IMAGE_PATTERNS = (
    # srcset="URL", e.g. source tags
    re.compile(r'srcset="?([^"]*)"?', re.IGNORECASE),
    # src="URL", e.g. img tags
    re.compile(r'src="?([^"]*)"?', re.IGNORECASE),
    # url(URL) and url("URL") inside CSS
    re.compile(r'url\("?([^"()]*)"?\)', re.IGNORECASE),
)


class EmbedSink(abc.ABC):
    @abc.abstractmethod
    def add_embedded_image(self, path: Path, content_id: str, filename: str, url: str = "") -> None:
        """
        Register a local file to be attached inline under the given content id
        """


class EmbeddedImageCollector(EmbedSink):
    """Collects embed requests for the composer."""

    def __init__(self) -> None:
        self.images: list[EmbeddedImage] = []

    def add_embedded_image(self, path: Path, content_id: str, filename: str, url: str = "") -> None:
        self.images.append(EmbeddedImage(content_id=content_id, path=path, filename=filename, url=url))


class LocalFileResolver:
    """Maps site-relative paths onto the directory the site is served from.

    Containment in the root is checked on the normalized path, so symlinks
    inside the site (e.g. an images directory on shared storage) are followed.
    """

    def __init__(self, root: Path | str):
        self.root = Path(root).resolve()

    def resolve(self, relative: str) -> Path | None:
        path = Path(os.path.normpath(self.root / relative.lstrip("/")))
        if not path.is_relative_to(self.root):
            logger.debug(f"Image path escapes the site root: {relative}")
            return None
        return path

    def is_file(self, path: Path) -> bool:
        """Whether the path is a regular file this process can read."""
        try:
            if not path.is_file():
                return False
            with open(path, "rb"):
                return True
        except (OSError, ValueError) as e:
            logger.debug(f"Cannot read {path}: {e}")
            return False


@dataclass
class InlineContext:
    """Images embedded so far in one message."""

    sink: EmbedSink
    found: dict[Path, int] = field(default_factory=dict)
    index: int = 0

    def content_id(self, path: Path, url: str = "") -> str:
        if path not in self.found:
            self.index += 1
            self.sink.add_embedded_image(path, f"img{self.index}", path.name, url)
            self.found[path] = self.index
            logger.debug(f"Embedding {path} as img{self.index}")
        return f"img{self.found[path]}"


def is_inlineable_file_extension(file_or_uri: str, extensions: Iterable[str] = DEFAULT_IMAGE_EXTENSIONS) -> bool:
    _, dot, extension = file_or_uri.rpartition(".")
    if not dot:
        return False
    return extension.lower() in {ext.lower() for ext in extensions}


def normalize_url(file_or_uri: str, site_url: str) -> str:
    """Turn a relative or absolute image URL into an absolute https:// one."""
    if not file_or_uri:
        return file_or_uri

    file_or_uri = file_or_uri.strip("/")

    if file_or_uri.startswith("https://"):
        return file_or_uri
    if file_or_uri.startswith("http://"):
        return "https://" + file_or_uri[7:]
    # Partial schema
    if file_or_uri.startswith("://"):
        return "https://" + file_or_uri[3:]

    # Anything else is a file relative to the site's root
    return site_url.rstrip("/") + "/" + file_or_uri


def site_relative_path(url: str, site_url: str) -> str | None:
    """The part of the URL below the site's base URL; None for other origins."""
    base = site_url.rstrip("/")
    # https://example.com must not match https://example.com.evil.net
    if not url.startswith(base) or url[len(base) : len(base) + 1] not in ("", "/"):
        return None
    return url[len(base) + 1 :].lstrip("/")


def _inline_match(
    match: re.Match,
    site: SiteSettings,
    resolver: LocalFileResolver,
    context: InlineContext,
    extensions: Iterable[str],
) -> str:
    reference = match.group(1)

    if not is_inlineable_file_extension(reference, extensions):
        return match.group(0)

    url = normalize_url(reference, site.site_url)
    relative = site_relative_path(url, site.site_url)
    if relative is None:
        return match.group(0)

    local_path = resolver.resolve(relative)
    if local_path is None or not resolver.is_file(local_path):
        return match.group(0)

    return match.group(0).replace(reference, f"cid:{context.content_id(local_path, url)}")


def inline_images(
    html: str,
    site: SiteSettings,
    sink: EmbedSink,
    resolver: LocalFileResolver | None = None,
    extensions: Iterable[str] = DEFAULT_IMAGE_EXTENSIONS,
) -> str:
    """Rewrite references to the site's own images into inline attachments.

    Args:
        html: The HTML body of the message.
        site: Base URL and document root of the site.
        sink: Receives every newly embedded file, once per file.
        resolver: Maps site paths to local files; defaults to one rooted at ``site.site_root``.
        extensions: Image file extensions eligible for embedding.

    Returns:
        The HTML with embedded image references replaced by ``cid:img<N>``.
    """
    if not site.site_url:
        logger.debug("No site URL configured, not inlining images")
        return html

    resolver = resolver or LocalFileResolver(site.site_root)
    context = InlineContext(sink)
    extensions = tuple(extensions)

    for pattern in IMAGE_PATTERNS:
        html = pattern.sub(lambda m: _inline_match(m, site, resolver, context, extensions), html)

    if context.index:
        logger.info(f"Embedded {context.index} image(s)")
    return html

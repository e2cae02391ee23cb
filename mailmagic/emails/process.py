"""Turn outgoing plain text email into templated HTML email.

HTML email is passed through, gaining a plain text alternative when it has
none. Plain text email is rendered into the configured HTML template, with
links made clickable and the site's own images embedded.
"""

from collections.abc import Callable
from email.utils import parseaddr

from html2text import HTML2Text

from mailmagic.config import Settings
from mailmagic.emails.models import OutgoingEmail, ProcessedEmail, UserInfo
from mailmagic.emails.template import load_template, render_template
from mailmagic.images import EmbeddedImageCollector, LocalFileResolver, inline_images
from mailmagic.log import logger
from mailmagic.text import htmlize

UserLookup = Callable[[str], UserInfo | None]


def make_alternate_text(html: str) -> str:
    """Plain text rendering of an HTML body; empty if the conversion fails."""
    try:
        converter = HTML2Text()
        converter.body_width = 0
        return converter.handle(html).strip()
    except Exception as e:
        logger.warning(f"Could not convert HTML body to text: {e!s}")
        return ""


def _recipient_user(recipients: list[str], user_lookup: UserLookup) -> UserInfo:
    name, address = parseaddr(recipients[0]) if recipients else ("", "")
    user = user_lookup(address) if address else None
    if user:
        return user
    return UserInfo(name=name or address, email=address)


def build_replacements(email: OutgoingEmail, user: UserInfo, settings: Settings) -> dict[str, str]:
    return {
        "SUBJECT": email.subject,
        "FULLNAME": user.name,
        "USERNAME": user.username,
        "EMAIL": user.email,
        "CONTENT": email.body,
        "CONTENT_HTMLIZED": htmlize(email.body, settings.allowed_protocols),
        "SITENAME": settings.site.site_name,
        "SITEURL": settings.site.site_url,
    }


def process_email(
    email: OutgoingEmail,
    settings: Settings,
    user_lookup: UserLookup | None = None,
    resolver: LocalFileResolver | None = None,
) -> ProcessedEmail:
    """Process an email before it is sent.

    Args:
        email: The email as written by the sender.
        settings: Site, template and processing settings.
        user_lookup: Finds a site user by email address; defaults to the configured users.
        resolver: Maps site paths to local files for image embedding.

    Returns:
        The email to compose. Plain text email comes back as HTML with the
        original text as its alternative body.
    """
    processed = ProcessedEmail.from_email(email)

    if email.html:
        if settings.html2text and not email.alt_body.strip():
            processed.alt_body = make_alternate_text(email.body)
        return processed

    user = _recipient_user(email.recipients, user_lookup or settings.get_user)
    template = load_template(settings.template_root, settings.template)
    body = render_template(template, build_replacements(email, user, settings))

    collector = EmbeddedImageCollector()
    body = inline_images(body, settings.site, collector, resolver, settings.allowed_image_extensions)

    logger.info(f"Converted plain text email '{email.subject}' to HTML")
    return ProcessedEmail(
        subject=email.subject,
        body=body,
        alt_body=email.body,
        html=True,
        embedded_images=collector.images,
    )

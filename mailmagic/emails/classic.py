import mimetypes
import re
from email.header import Header
from email.mime.application import MIMEApplication
from email.mime.base import MIMEBase
from email.mime.image import MIMEImage
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import parseaddr

import aiosmtplib

from mailmagic.config import EmailServer, Settings
from mailmagic.emails import EmailHandler
from mailmagic.emails.models import EmbeddedImage, OutgoingEmail, ProcessedEmail, SendEmailResponse
from mailmagic.emails.process import UserLookup, process_email
from mailmagic.images import LocalFileResolver
from mailmagic.log import logger

TEST_EMAIL_SUBJECT = "Test email from {site_name}"
TEST_EMAIL_BODY = """Hello {name},

This is a test email sent by {site_name}. If it arrived as a nicely formatted HTML message, outgoing email is set up correctly.

Visit us at {site_url} or reply to {sender_address}."""


def _unembed_image(body: str, image: EmbeddedImage) -> str:
    """Point cid: references to the image back at its web address."""
    if not image.url:
        return body
    return re.sub(re.escape(f"cid:{image.content_id}") + r"(?![\w.-])", lambda _: image.url, body)


class EmailClient:
    def __init__(self, email_server: EmailServer, sender: str | None = None):
        self.email_server = email_server
        self.sender = sender or email_server.user_name

        self.smtp_use_tls = self.email_server.use_ssl
        self.smtp_start_tls = self.email_server.start_ssl

    def _create_image_part(self, image: EmbeddedImage) -> MIMEBase:
        """Create inline MIME part for an embedded image."""
        with open(image.path, "rb") as f:
            file_data = f.read()

        mime_type, _ = mimetypes.guess_type(str(image.path))
        if mime_type and mime_type.startswith("image/"):
            image_part = MIMEImage(file_data, _subtype=mime_type.split("/")[1])
        else:
            image_part = MIMEApplication(file_data)

        image_part.add_header("Content-ID", f"<{image.content_id}>")
        image_part.add_header("Content-Disposition", "inline", filename=image.filename)
        logger.info(f"Embedded image: {image.filename} as cid:{image.content_id} ({mime_type})")
        return image_part

    def _create_body(self, body: str, html: bool, alt_body: str) -> MIMEBase:
        """Create the text part, or a multipart/alternative when there is a plain text alternative."""
        content_type = "html" if html else "plain"
        text_part = MIMEText(body, content_type, "utf-8")
        if not (html and alt_body):
            return text_part

        alternative = MIMEMultipart("alternative")
        alternative.attach(MIMEText(alt_body, "plain", "utf-8"))
        alternative.attach(text_part)
        return alternative

    def _create_message(
        self, body: str, html: bool, alt_body: str, embedded_images: list[EmbeddedImage]
    ) -> MIMEBase:
        """Create the message, wrapping it in multipart/related when images are embedded.

        An image that cannot be read is left out and its references point back
        at the image's web address, so the email is still sent.
        """
        image_parts = []
        for image in embedded_images:
            try:
                image_parts.append(self._create_image_part(image))
            except OSError as e:
                logger.warning(f"Failed to embed image {image.path}, sending without it: {e}")
                body = _unembed_image(body, image)

        body_part = self._create_body(body, html, alt_body)
        if not image_parts:
            return body_part

        msg = MIMEMultipart("related")
        msg.attach(body_part)
        for image_part in image_parts:
            msg.attach(image_part)
        return msg

    async def send_email(
        self,
        recipients: list[str],
        subject: str,
        body: str,
        cc: list[str] | None = None,
        bcc: list[str] | None = None,
        html: bool = False,
        alt_body: str = "",
        embedded_images: list[EmbeddedImage] | None = None,
    ):
        msg = self._create_message(body, html, alt_body, embedded_images or [])

        # Handle subject with special characters
        if any(ord(c) > 127 for c in subject):
            msg["Subject"] = Header(subject, "utf-8")
        else:
            msg["Subject"] = subject

        # Handle sender name with special characters
        if any(ord(c) > 127 for c in self.sender):
            msg["From"] = Header(self.sender, "utf-8")
        else:
            msg["From"] = self.sender

        msg["To"] = ", ".join(recipients)

        # Add CC header if provided (visible to recipients)
        if cc:
            msg["Cc"] = ", ".join(cc)

        # Note: BCC recipients are not added to headers (they remain hidden)
        # but will be included in the actual recipients for SMTP delivery

        async with aiosmtplib.SMTP(
            hostname=self.email_server.host,
            port=self.email_server.port,
            start_tls=self.smtp_start_tls,
            use_tls=self.smtp_use_tls,
        ) as smtp:
            await smtp.login(self.email_server.user_name, self.email_server.password)

            # Create a combined list of all recipients for delivery
            all_recipients = recipients.copy()
            if cc:
                all_recipients.extend(cc)
            if bcc:
                all_recipients.extend(bcc)

            await smtp.send_message(msg, recipients=all_recipients)

        logger.info(f"Sent email '{subject}' to {len(all_recipients)} recipient(s)")
        return msg


class ClassicEmailHandler(EmailHandler):
    def __init__(
        self,
        settings: Settings,
        user_lookup: UserLookup | None = None,
        resolver: LocalFileResolver | None = None,
    ):
        if settings.outgoing is None:
            msg = "No outgoing email server configured"
            logger.error(msg)
            raise ValueError(msg)

        self.settings = settings
        self.user_lookup = user_lookup
        self.resolver = resolver
        self.outgoing_client = EmailClient(settings.outgoing, sender=settings.sender)

    def preview_email(
        self,
        recipients: list[str],
        subject: str,
        body: str,
        html: bool = False,
    ) -> ProcessedEmail:
        email = OutgoingEmail(subject=subject, body=body, recipients=recipients, html=html)
        try:
            return process_email(email, self.settings, self.user_lookup, self.resolver)
        except Exception as e:
            # The unprocessed email can still be sent
            logger.exception(f"Failed to process email '{subject}': {e}")
            return ProcessedEmail.from_email(email)

    async def send_email(
        self,
        recipients: list[str],
        subject: str,
        body: str,
        cc: list[str] | None = None,
        bcc: list[str] | None = None,
        html: bool = False,
    ) -> SendEmailResponse:
        processed = self.preview_email(recipients, subject, body, html)
        await self.outgoing_client.send_email(
            recipients,
            processed.subject,
            processed.body,
            cc,
            bcc,
            processed.html,
            processed.alt_body,
            processed.embedded_images,
        )
        return SendEmailResponse(
            recipients=recipients,
            html=processed.html,
            embedded_images=len(processed.embedded_images),
        )

    async def send_test_email(self, recipient: str) -> SendEmailResponse:
        name, address = parseaddr(recipient)
        site = self.settings.site
        subject = TEST_EMAIL_SUBJECT.format(site_name=site.site_name or "mailmagic")
        body = TEST_EMAIL_BODY.format(
            name=name or address,
            site_name=site.site_name or "mailmagic",
            site_url=site.site_url,
            sender_address=self.settings.sender_address or self.outgoing_client.sender,
        )
        return await self.send_email([recipient], subject, body, html=False)

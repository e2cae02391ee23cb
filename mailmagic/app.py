from typing import Annotated

from mcp.server.fastmcp import FastMCP
from pydantic import Field

from mailmagic.config import Settings, get_settings
from mailmagic.emails.dispatcher import dispatch_handler
from mailmagic.emails.models import ProcessedEmail, SendEmailResponse
from mailmagic.text import htmlize

mcp = FastMCP("mailmagic")


@mcp.resource("mailmagic://settings")
async def get_current_settings() -> Settings:
    return get_settings().masked()


@mcp.tool(
    description="Convert plain text to HTML: wrap paragraphs and turn URLs, www/ftp host names and email addresses into links."
)
async def htmlize_text(
    text: Annotated[str, Field(description="The plain text to convert.")],
) -> str:
    settings = get_settings()
    return htmlize(text, settings.allowed_protocols)


@mcp.tool(
    description="Show how an email would be sent: plain text is rendered into the HTML template with the site's images embedded."
)
async def preview_email(
    recipients: Annotated[list[str], Field(description="A list of recipient email addresses.")],
    subject: Annotated[str, Field(description="The subject of the email.")],
    body: Annotated[str, Field(description="The body of the email.")],
    html: Annotated[
        bool,
        Field(default=False, description="Whether the body is HTML (True) or plain text (False)."),
    ] = False,
) -> ProcessedEmail:
    handler = dispatch_handler()
    return handler.preview_email(recipients, subject, body, html)


@mcp.tool(
    description="Send an email. Plain text bodies are converted to HTML with clickable links and embedded site images.",
)
async def send_email(
    recipients: Annotated[list[str], Field(description="A list of recipient email addresses.")],
    subject: Annotated[str, Field(description="The subject of the email.")],
    body: Annotated[str, Field(description="The body of the email.")],
    cc: Annotated[
        list[str] | None,
        Field(default=None, description="A list of CC email addresses."),
    ] = None,
    bcc: Annotated[
        list[str] | None,
        Field(default=None, description="A list of BCC email addresses."),
    ] = None,
    html: Annotated[
        bool,
        Field(default=False, description="Whether the body is HTML (True) or plain text (False)."),
    ] = False,
) -> str:
    handler = dispatch_handler()
    response = await handler.send_email(recipients, subject, body, cc, bcc, html)
    recipient_str = ", ".join(response.recipients)
    image_info = f" with {response.embedded_images} embedded image(s)" if response.embedded_images else ""
    return f"Email sent successfully to {recipient_str}{image_info}"


@mcp.tool(description="Send a test email to check that outgoing email is converted and delivered.")
async def send_test_email(
    recipient: Annotated[str, Field(description="The address to send the test email to.")],
) -> SendEmailResponse:
    handler = dispatch_handler()
    return await handler.send_test_email(recipient)


def main():
    mcp.run()


if __name__ == "__main__":
    main()

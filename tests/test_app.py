"""Tests for the MCP tools."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from mailmagic.app import get_current_settings, htmlize_text, preview_email, send_email, send_test_email
from mailmagic.config import EmailServer, Settings
from mailmagic.emails.models import ProcessedEmail, SendEmailResponse


class TestHtmlizeText:
    @pytest.mark.asyncio
    async def test_htmlize_text(self):
        """Test that htmlize_text wraps paragraphs and links URLs."""
        with patch("mailmagic.app.get_settings", return_value=Settings()):
            result = await htmlize_text(text="Hi\n\nSee https://example.com")

        assert result == '<p>Hi</p>\n<p>See <a href="https://example.com">https://example.com</a></p>'

    @pytest.mark.asyncio
    async def test_htmlize_text_uses_allowed_protocols(self):
        with patch("mailmagic.app.get_settings", return_value=Settings(allowed_protocols=["https"])):
            result = await htmlize_text(text="http://example.com")

        assert result == "<p>http://example.com</p>"


class TestEmailTools:
    @pytest.mark.asyncio
    async def test_preview_email(self):
        """Test that preview_email returns the processed email without sending."""
        processed = ProcessedEmail(subject="S", body="<p>B</p>", alt_body="B", html=True)
        mock_handler = MagicMock()
        mock_handler.preview_email.return_value = processed

        with patch("mailmagic.app.dispatch_handler", return_value=mock_handler):
            result = await preview_email(recipients=["r@example.com"], subject="S", body="B")

        assert result == processed
        mock_handler.preview_email.assert_called_once_with(["r@example.com"], "S", "B", False)

    @pytest.mark.asyncio
    async def test_send_email(self):
        mock_handler = MagicMock()
        mock_handler.send_email = AsyncMock(
            return_value=SendEmailResponse(recipients=["a@example.com", "b@example.com"], html=True, embedded_images=2)
        )

        with patch("mailmagic.app.dispatch_handler", return_value=mock_handler):
            result = await send_email(
                recipients=["a@example.com", "b@example.com"],
                subject="S",
                body="B",
                bcc=["c@example.com"],
            )

        assert result == "Email sent successfully to a@example.com, b@example.com with 2 embedded image(s)"
        mock_handler.send_email.assert_called_once_with(
            ["a@example.com", "b@example.com"], "S", "B", None, ["c@example.com"], False
        )

    @pytest.mark.asyncio
    async def test_send_email_without_images(self):
        mock_handler = MagicMock()
        mock_handler.send_email = AsyncMock(
            return_value=SendEmailResponse(recipients=["a@example.com"], html=False, embedded_images=0)
        )

        with patch("mailmagic.app.dispatch_handler", return_value=mock_handler):
            result = await send_email(recipients=["a@example.com"], subject="S", body="B")

        assert result == "Email sent successfully to a@example.com"

    @pytest.mark.asyncio
    async def test_send_test_email(self):
        response = SendEmailResponse(recipients=["a@example.com"], html=True, embedded_images=1)
        mock_handler = MagicMock()
        mock_handler.send_test_email = AsyncMock(return_value=response)

        with patch("mailmagic.app.dispatch_handler", return_value=mock_handler):
            result = await send_test_email(recipient="a@example.com")

        assert result == response
        mock_handler.send_test_email.assert_called_once_with("a@example.com")

    @pytest.mark.asyncio
    async def test_send_without_server_configured(self):
        """Test that sending fails clearly when no SMTP server is configured."""
        with patch("mailmagic.emails.dispatcher.get_settings", return_value=Settings(outgoing=None)):
            with pytest.raises(ValueError) as exc_info:
                await send_test_email(recipient="a@example.com")

        assert "No outgoing email server configured" in str(exc_info.value)


class TestSettingsResource:
    @pytest.mark.asyncio
    async def test_password_masked(self):
        settings = Settings(
            outgoing=EmailServer(user_name="u", password="secret", host="smtp.example.com", port=465)
        )

        with patch("mailmagic.app.get_settings", return_value=settings):
            result = await get_current_settings()

        assert result.outgoing.password == "********"
        assert settings.outgoing.password == "secret"

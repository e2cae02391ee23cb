"""Test converting outgoing email before it is sent."""

from unittest.mock import MagicMock, patch

import pytest

from mailmagic.config import Settings, SiteSettings
from mailmagic.emails.models import OutgoingEmail, UserInfo
from mailmagic.emails.process import make_alternate_text, process_email
from mailmagic.emails.template import FALLBACK_TEMPLATE, load_template, render_template


@pytest.fixture
def site_root(tmp_path):
    root = tmp_path / "site"
    (root / "images").mkdir(parents=True)
    (root / "images" / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n")
    return root


@pytest.fixture
def template_root(tmp_path):
    root = tmp_path / "templates"
    root.mkdir()
    (root / "default.html").write_text("<title>[SUBJECT]</title>[CONTENT_HTMLIZED]", encoding="utf-8")
    (root / "vars.html").write_text(
        "[FULLNAME]|[USERNAME]|[EMAIL]|[SITENAME]|[SITEURL]|[CONTENT]",
        encoding="utf-8",
    )
    (root / "logo.html").write_text('<img src="/images/logo.png">[CONTENT_HTMLIZED]', encoding="utf-8")
    return root


@pytest.fixture
def settings(site_root, template_root):
    return Settings(
        site=SiteSettings(site_name="Example", site_url="https://example.com", site_root=site_root),
        template_root=template_root,
        users=[UserInfo(name="Jane Doe", username="jane", email="Jane@Example.com")],
    )


def _email(body="Hello", **kwargs):
    kwargs.setdefault("recipients", ["jane@example.com"])
    return OutgoingEmail(subject="Greetings", body=body, **kwargs)


class TestTemplates:
    def test_load_named_template(self, template_root):
        assert load_template(template_root, "logo.html").startswith("<img")

    def test_missing_template_falls_back_to_default(self, template_root):
        assert load_template(template_root, "missing.html") == "<title>[SUBJECT]</title>[CONTENT_HTMLIZED]"

    def test_no_templates_at_all(self, tmp_path):
        assert load_template(tmp_path / "nowhere", "missing.html") == FALLBACK_TEMPLATE

    def test_packaged_default_template(self):
        """Test that the shipped template has the content placeholder."""
        template = load_template(Settings().template_root)

        assert "[CONTENT_HTMLIZED]" in template
        assert "[SUBJECT]" in template

    def test_render_template(self):
        result = render_template("[SUBJECT] - [SITENAME] [UNKNOWN]", {"SUBJECT": "Hi", "sitename": "Example"})

        assert result == "Hi - Example [UNKNOWN]"


class TestPlainTextEmail:
    def test_converted_to_html(self, settings):
        """Test that plain text is rendered into the template with links."""
        email = _email("Visit http://example.com/page.\n\nBye")

        result = process_email(email, settings)

        assert result.html is True
        assert result.alt_body == email.body
        assert result.body == (
            "<title>Greetings</title>"
            '<p>Visit <a href="http://example.com/page">http://example.com/page</a>.</p>\n'
            "<p>Bye</p>"
        )
        assert result.embedded_images == []

    def test_known_user_variables(self, settings):
        """Test that a configured user is found regardless of case."""
        settings.template = "vars.html"

        result = process_email(_email("raw text"), settings)

        assert result.body == "Jane Doe|jane|Jane@Example.com|Example|https://example.com|raw text"

    def test_unknown_user_uses_recipient_name(self, settings):
        settings.template = "vars.html"

        result = process_email(_email(recipients=["Bob Smith <bob@example.org>", "x@example.org"]), settings)

        assert result.body.startswith("Bob Smith||bob@example.org|")

    def test_unknown_user_without_name(self, settings):
        settings.template = "vars.html"

        result = process_email(_email(recipients=["bob@example.org"]), settings)

        assert result.body.startswith("bob@example.org||bob@example.org|")

    def test_custom_user_lookup(self, settings):
        settings.template = "vars.html"
        lookup = MagicMock(return_value=UserInfo(name="Looked Up", username="lu", email="lu@example.com"))

        result = process_email(_email(), settings, user_lookup=lookup)

        lookup.assert_called_once_with("jane@example.com")
        assert result.body.startswith("Looked Up|lu|lu@example.com|")

    def test_no_recipients(self, settings):
        settings.template = "vars.html"

        result = process_email(_email(recipients=[]), settings)

        assert result.body.startswith("|||Example|")

    def test_site_images_embedded(self, settings, site_root):
        """Test that the site's images in the template are embedded."""
        settings.template = "logo.html"

        result = process_email(_email(), settings)

        assert result.body.startswith('<img src="cid:img1">')
        assert len(result.embedded_images) == 1
        assert result.embedded_images[0].path == (site_root / "images" / "logo.png").resolve()

    def test_allowed_protocols_used(self, settings):
        settings.allowed_protocols = ["https"]

        result = process_email(_email("Get ftp://example.com/file"), settings)

        assert "<a href" not in result.body


class TestHtmlEmail:
    def test_html_body_untouched(self, settings):
        """Test that HTML email keeps its body and gets a text alternative."""
        body = "<p>Hello <b>world</b>, see http://example.com</p>"

        result = process_email(_email(body, html=True), settings)

        assert result.html is True
        assert result.body == body
        assert "Hello" in result.alt_body
        assert "<p>" not in result.alt_body

    def test_existing_alt_body_kept(self, settings):
        result = process_email(_email("<p>Hello</p>", html=True, alt_body="Custom text"), settings)

        assert result.alt_body == "Custom text"

    def test_html2text_disabled(self, settings):
        settings.html2text = False

        result = process_email(_email("<p>Hello</p>", html=True), settings)

        assert result.alt_body == ""


class TestAlternateText:
    def test_convert(self):
        result = make_alternate_text("<h1>Title</h1><p>Some <a href='https://example.com'>link</a></p>")

        assert "Title" in result
        assert "https://example.com" in result

    def test_conversion_failure(self):
        """Test that a failing conversion gives an empty alternative instead of an error."""
        with patch("mailmagic.emails.process.HTML2Text") as converter:
            converter.return_value.handle.side_effect = AssertionError("bad markup")

            assert make_alternate_text("<p>x</p>") == ""

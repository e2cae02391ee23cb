from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from mailmagic.emails.models import UserInfo
from mailmagic.log import logger
from mailmagic.text.sanitize import DEFAULT_PROTOCOLS

DEFAULT_CONFIG_PATH = "~/.config/mailmagic/config.toml"
CONFIG_PATH = Path(os.getenv("MAILMAGIC_CONFIG_PATH", DEFAULT_CONFIG_PATH)).expanduser().resolve()

PACKAGE_TEMPLATE_ROOT = Path(__file__).parent / "templates"

DEFAULT_IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "gif", "bmp", "svg")


class EmailServer(BaseModel):
    """Outgoing SMTP server"""

    user_name: str
    password: str
    host: str
    port: int
    use_ssl: bool = True  # Usually port 465
    start_ssl: bool = False  # Usually port 587

    def masked(self) -> EmailServer:
        return self.model_copy(update={"password": "********"})  # noqa: S106


class SiteSettings(BaseModel):
    """The site whose images may be embedded into outgoing mail.

    ``site_url`` is the absolute base URL used for same-origin checks and to
    resolve root-relative image paths; ``site_root`` is the directory that URL
    is served from.
    """

    site_name: str = ""
    site_url: str = ""
    site_root: Path = Path(".")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MAILMAGIC_",
        env_nested_delimiter="__",
        toml_file=CONFIG_PATH,
        extra="ignore",
    )

    site: SiteSettings = Field(default_factory=SiteSettings)

    template: str = "default.html"
    template_root: Path = PACKAGE_TEMPLATE_ROOT
    html2text: bool = True

    allowed_image_extensions: list[str] = Field(default_factory=lambda: list(DEFAULT_IMAGE_EXTENSIONS))
    allowed_protocols: list[str] = Field(default_factory=lambda: list(DEFAULT_PROTOCOLS))

    outgoing: EmailServer | None = None
    sender_name: str = ""
    sender_address: str = ""

    users: list[UserInfo] = Field(default_factory=list)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, env_settings, TomlConfigSettingsSource(settings_cls))

    @property
    def sender(self) -> str:
        if self.sender_name and self.sender_address:
            return f"{self.sender_name} <{self.sender_address}>"
        return self.sender_address or (self.outgoing.user_name if self.outgoing else "")

    def get_user(self, email_address: str | None) -> UserInfo | None:
        """Find a configured user by email address, ignoring case."""
        email_address = (email_address or "").strip().lower()
        if not email_address:
            return None

        for user in self.users:
            if user.email.lower() == email_address:
                return user
        return None

    def masked(self) -> Settings:
        if not self.outgoing:
            return self.model_copy()
        return self.model_copy(update={"outgoing": self.outgoing.masked()})


_settings: Settings | None = None


def get_settings(reload: bool = False) -> Settings:
    global _settings
    if not _settings or reload:
        logger.info(f"Loading settings from {CONFIG_PATH}")
        _settings = Settings()
    return _settings

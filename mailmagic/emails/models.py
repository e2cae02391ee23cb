from pathlib import Path

from pydantic import BaseModel, Field


class UserInfo(BaseModel):
    """A known site user, used for template variables"""

    name: str
    username: str = ""
    email: str


class EmbeddedImage(BaseModel):
    """A local file attached inline and referenced as cid:<content_id>"""

    content_id: str  # e.g. "img1", referenced from the HTML as "cid:img1"
    path: Path
    filename: str
    url: str = ""  # Web address the reference pointed at before embedding


class OutgoingEmail(BaseModel):
    """An email as handed over by the sender, before processing"""

    subject: str
    body: str
    recipients: list[str]  # "Name <address>" or bare addresses
    html: bool = False
    alt_body: str = ""


class ProcessedEmail(BaseModel):
    """An email ready to be composed into a MIME message"""

    subject: str
    body: str
    alt_body: str = ""  # Plain text alternative, empty if none
    html: bool = False
    embedded_images: list[EmbeddedImage] = Field(default_factory=list)

    @classmethod
    def from_email(cls, email: OutgoingEmail):
        return cls(
            subject=email.subject,
            body=email.body,
            alt_body=email.alt_body,
            html=email.html,
        )


class SendEmailResponse(BaseModel):
    """Result of sending an email"""

    recipients: list[str]
    html: bool
    embedded_images: int

import abc
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mailmagic.emails.models import ProcessedEmail, SendEmailResponse


class EmailHandler(abc.ABC):
    @abc.abstractmethod
    def preview_email(
        self,
        recipients: list[str],
        subject: str,
        body: str,
        html: bool = False,
    ) -> "ProcessedEmail":
        """
        Process an email the way send_email would, without sending it
        """

    @abc.abstractmethod
    async def send_email(
        self,
        recipients: list[str],
        subject: str,
        body: str,
        cc: list[str] | None = None,
        bcc: list[str] | None = None,
        html: bool = False,
    ) -> "SendEmailResponse":
        """
        Process and send email
        """

    @abc.abstractmethod
    async def send_test_email(self, recipient: str) -> "SendEmailResponse":
        """
        Send a plain text test email through the whole processing pipeline.

        Args:
            recipient: Address (optionally "Name <address>") to send the test to.

        Returns:
            SendEmailResponse describing what was sent.
        """

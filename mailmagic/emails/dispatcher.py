from mailmagic.config import get_settings
from mailmagic.emails import EmailHandler
from mailmagic.emails.classic import ClassicEmailHandler


def dispatch_handler() -> EmailHandler:
    settings = get_settings()
    return ClassicEmailHandler(settings)

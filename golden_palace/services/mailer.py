"""Reservation emails.

Two messages go out for every stored reservation: a confirmation to the
customer and a notification to the restaurant. Delivery is best effort, one
attempt per message, and failures are only logged.
"""

import asyncio
import logging
from dataclasses import dataclass
from email.message import EmailMessage
from functools import lru_cache
from pathlib import Path
from typing import Any, Protocol

import aiosmtplib
from jinja2 import Environment, FileSystemLoader, select_autoescape

from golden_palace.core.config import Settings, get_settings


logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


class UnknownTemplateError(KeyError):
    pass


class MailDeliveryError(Exception):
    pass


@dataclass(frozen=True)
class MailConfig:
    host: str
    port: int
    secure: bool
    username: str
    password: str
    sender: str
    restaurant_email: str
    restaurant_name: str = "Golden Palace Restaurant"
    restaurant_address: str = ""
    restaurant_phone: str = ""
    timeout: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "MailConfig":
        if not settings.mail_enabled:
            raise ValueError("EMAIL_USER and EMAIL_PASS must both be set to send mail")
        return cls(
            host=settings.EMAIL_HOST,
            port=settings.EMAIL_PORT,
            secure=settings.EMAIL_SECURE,
            username=settings.EMAIL_USER,
            password=settings.EMAIL_PASS,
            sender=settings.EMAIL_USER,
            restaurant_email=settings.RESTAURANT_EMAIL or settings.EMAIL_USER,
            restaurant_name=settings.RESTAURANT_NAME,
            restaurant_address=settings.RESTAURANT_ADDRESS,
            restaurant_phone=settings.RESTAURANT_PHONE,
        )


@dataclass(frozen=True)
class MailMessage:
    subject: str
    html: str


@dataclass(frozen=True)
class ReservationDetails:
    """Detached copy of a stored reservation, safe to use after the request."""

    reservation_id: str
    first_name: str
    last_name: str
    email: str
    phone: str
    date: str
    time: str
    guests: int | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class MailTransport(Protocol):
    async def send(self, message: EmailMessage) -> Any: ...


class SmtpTransport:
    """Deliver messages through the configured SMTP relay."""

    def __init__(self, config: MailConfig) -> None:
        self.config = config

    async def send(self, message: EmailMessage) -> str:
        errors, response = await aiosmtplib.send(
            message,
            hostname=self.config.host,
            port=self.config.port,
            username=self.config.username,
            password=self.config.password,
            use_tls=self.config.secure,
            timeout=self.config.timeout,
        )
        if errors:
            raise MailDeliveryError(f"Recipients refused: {', '.join(errors)}")
        return response


# template name -> (subject prefix, template file)
TEMPLATES = {
    "confirmation": ("Reservation Confirmation", "reservation_confirmation.html"),
    "notification": ("New Reservation", "reservation_notification.html"),
}


class MailDispatcher:
    def __init__(self, config: MailConfig, transport: MailTransport | None = None) -> None:
        self.config = config
        self.transport = transport or SmtpTransport(config)
        self._env = Environment(
            loader=FileSystemLoader(TEMPLATE_DIR),
            autoescape=select_autoescape(["html"]),
        )

    def render(self, template: str, **params: Any) -> MailMessage:
        """Render one of the named templates into a subject and HTML body."""
        try:
            subject_prefix, filename = TEMPLATES[template]
        except KeyError:
            raise UnknownTemplateError(template) from None

        html = self._env.get_template(filename).render(
            restaurant_name=self.config.restaurant_name,
            restaurant_address=self.config.restaurant_address,
            restaurant_phone=self.config.restaurant_phone,
            **params,
        )
        return MailMessage(subject=f"{subject_prefix} - {self.config.restaurant_name}", html=html)

    def build(self, message: MailMessage, to: str) -> EmailMessage:
        email = EmailMessage()
        email["From"] = self.config.sender
        email["To"] = to
        email["Subject"] = message.subject
        email.set_content("This message requires an HTML capable mail client.")
        email.add_alternative(message.html, subtype="html")
        return email

    async def send_reservation_emails(self, details: ReservationDetails) -> bool:
        """Send the customer confirmation and restaurant notification.

        Both messages are sent concurrently. Returns True only when the
        transport accepted both; failures are logged and never raised.
        """
        confirmation = self.render(
            "confirmation",
            customer_name=details.full_name,
            date=details.date,
            time=details.time,
            guests=details.guests,
        )
        notification = self.render(
            "notification",
            first_name=details.first_name,
            last_name=details.last_name,
            email=details.email,
            phone=details.phone,
            date=details.date,
            time=details.time,
        )
        outgoing = [
            ("confirmation", details.email, self.build(confirmation, details.email)),
            ("notification", self.config.restaurant_email, self.build(notification, self.config.restaurant_email)),
        ]

        results = await asyncio.gather(
            *(self.transport.send(message) for _, _, message in outgoing),
            return_exceptions=True,
        )

        delivered = True
        for (name, recipient, _), result in zip(outgoing, results):
            if isinstance(result, BaseException):
                delivered = False
                logger.error(
                    "Reservation %s: %s email to %s failed: %s",
                    details.reservation_id, name, recipient, result,
                )
            else:
                logger.info("Reservation %s: %s email sent to %s", details.reservation_id, name, recipient)
        return delivered


async def dispatch_reservation_emails(dispatcher: MailDispatcher, details: ReservationDetails) -> None:
    """Background task body; the outcome is only logged."""
    try:
        delivered = await dispatcher.send_reservation_emails(details)
    except Exception:
        logger.exception("Email sending failed for reservation %s", details.reservation_id)
        return
    if not delivered:
        logger.warning("Reservation %s stored but not every email was delivered", details.reservation_id)


@lru_cache()
def _cached_dispatcher() -> MailDispatcher:
    return MailDispatcher(MailConfig.from_settings(get_settings()))


def get_mail_dispatcher() -> MailDispatcher | None:
    """Dispatcher for request handlers, or None when mail credentials are absent."""
    if not get_settings().mail_enabled:
        return None
    return _cached_dispatcher()

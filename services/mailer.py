"""Outbound email for one-time codes."""

from __future__ import annotations

import logging
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.mime.text import MIMEText

from .errors import DeliveryError

logger = logging.getLogger(__name__)

OTP_SUBJECTS = {
    "register": "Verify Your FamVault Account",
    "reset": "Reset Your FamVault Password",
}

OTP_TEMPLATE = """<div style="font-family:sans-serif; text-align:center;">
<h2>{heading}</h2>
<p>Enter the code below to continue:</p>
<h1 style="color:#2563eb; font-size:40px; letter-spacing:10px;">{code}</h1>
<p>This code expires in <b>{minutes} minutes</b>.</p>
</div>"""


@dataclass(frozen=True)
class OutgoingMessage:
    to: str
    subject: str
    html: str
    code: str | None = None


def build_otp_message(to: str, code: str, purpose: str, minutes: int) -> OutgoingMessage:
    heading = "OTP Verification" if purpose == "register" else "Password Reset"
    return OutgoingMessage(
        to=to,
        subject=OTP_SUBJECTS.get(purpose, OTP_SUBJECTS["register"]),
        html=OTP_TEMPLATE.format(heading=heading, code=code, minutes=minutes),
        code=code,
    )


class Mailer(ABC):
    """Interface for email transports."""

    @abstractmethod
    def send(self, message: OutgoingMessage) -> None:
        """Deliver the message or raise :class:`DeliveryError`."""


class SmtpMailer(Mailer):
    """Send HTML mail through an SMTP relay with a bounded timeout."""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, message: OutgoingMessage) -> None:
        mime = MIMEText(message.html, "html")
        mime["Subject"] = message.subject
        mime["From"] = self.sender
        mime["To"] = message.to

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(mime)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP delivery to %s failed: %s", message.to, exc)
            raise DeliveryError("We could not send the email. Please try again.") from exc


class ConsoleMailer(Mailer):
    """Development transport that writes the code to the log."""

    def send(self, message: OutgoingMessage) -> None:
        logger.warning("Mail to %s [%s] code=%s", message.to, message.subject, message.code)


class MemoryMailer(Mailer):
    """Keeps sent messages in ``outbox``; used by the test suite."""

    def __init__(self):
        self.outbox: list[OutgoingMessage] = []
        self.fail_next = False

    def send(self, message: OutgoingMessage) -> None:
        if self.fail_next:
            self.fail_next = False
            raise DeliveryError("We could not send the email. Please try again.")
        self.outbox.append(message)

    def last_code(self, to: str | None = None) -> str | None:
        for message in reversed(self.outbox):
            if to is None or message.to == to:
                return message.code
        return None


def mailer_from_config(config) -> Mailer:
    backend = (config.get("MAIL_BACKEND") or "console").lower()
    if backend == "smtp":
        return SmtpMailer(
            host=config.get("MAIL_SERVER", "localhost"),
            port=int(config.get("MAIL_PORT", 587)),
            sender=config.get("MAIL_DEFAULT_SENDER"),
            username=config.get("MAIL_USERNAME"),
            password=config.get("MAIL_PASSWORD"),
            use_tls=bool(config.get("MAIL_USE_TLS", True)),
            timeout=float(config.get("MAIL_TIMEOUT", 10)),
        )
    if backend == "memory":
        return MemoryMailer()
    if backend == "console":
        return ConsoleMailer()
    raise ValueError(f"Unknown MAIL_BACKEND: {backend}")

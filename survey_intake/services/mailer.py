"""
SMTP mail capability used for forwarding responses.

``smtplib`` is blocking, so every send runs in the thread pool and never
holds up other requests on the event loop. All socket operations are bounded
by ``SMTP_TIMEOUT_SECONDS``.
"""
import logging
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Optional

from fastapi.concurrency import run_in_threadpool

from survey_intake.core.config import Settings
from survey_intake.core.errors import DeliveryError

logger = logging.getLogger(__name__)


class SmtpMailer:
    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        from_email: str,
        secure: bool = False,
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.from_email = from_email
        self.secure = secure
        self.timeout = timeout

    def build_message(self, html: str, to: str, subject: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.from_email
        msg["To"] = to
        msg["Subject"] = subject
        domain = self.from_email.split("@", 1)[1] if "@" in self.from_email else None
        msg["Message-ID"] = make_msgid(domain=domain)
        msg.set_content("This message contains HTML content.")
        msg.add_alternative(html, subtype="html")
        return msg

    def _send_blocking(self, msg: EmailMessage) -> None:
        if self.secure:
            smtp = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        else:
            smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        with smtp:
            if not self.secure:
                smtp.ehlo()
                if smtp.has_extn("starttls"):
                    smtp.starttls()
                    smtp.ehlo()
            smtp.login(self.user, self.password)
            smtp.send_message(msg)

    async def send(self, html: str, to: str, subject: str) -> str:
        """Deliver one HTML message, returns its Message-ID."""
        try:
            msg = self.build_message(html, to, subject)
            await run_in_threadpool(self._send_blocking, msg)
        except (smtplib.SMTPException, OSError, ValueError) as e:
            logger.error("SMTP delivery to %s via %s:%s failed: %s", to, self.host, self.port, e)
            raise DeliveryError(str(e) or e.__class__.__name__) from e
        message_id = msg["Message-ID"]
        logger.info("Mail %s sent to %s", message_id, to)
        return message_id


def build_mailer(settings: Settings) -> Optional[SmtpMailer]:
    """SMTP mailer, or None unless host, port, user and password are all set."""
    if not settings.mail_configured:
        return None
    return SmtpMailer(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        user=settings.SMTP_USER,
        password=settings.SMTP_PASS,
        from_email=settings.from_email,
        secure=settings.SMTP_SECURE,
        timeout=settings.SMTP_TIMEOUT_SECONDS,
    )

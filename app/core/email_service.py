"""
Email service: sends mail via SMTP, or logs it when no credentials are configured.

The SMTP conversation is blocking, so it runs in a worker thread.
"""

import asyncio
import logging
import smtplib
from collections import deque
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    success: bool
    simulated: bool
    error: Optional[str] = None


class EmailService:
    def __init__(
        self,
        username: Optional[str],
        password: Optional[str],
        host: str = "smtp.gmail.com",
        port: int = 587,
        from_name: str = "Skultek Support",
    ) -> None:
        self.username = username
        self.password = password
        self.host = host
        self.port = port
        self.from_name = from_name
        self.outbox: deque = deque(maxlen=50)  # recent messages, newest last

    @property
    def simulated(self) -> bool:
        return not (self.username and self.password)

    async def send(self, to: str, subject: str, text: str, html: Optional[str] = None) -> SendResult:
        """Send one message. Never raises; a failed send comes back as success=False."""
        self.outbox.append({"to": to, "subject": subject, "text": text})
        if self.simulated:
            logger.info("EMAIL (simulated) [to=%s] subject=%s\n%s", to, subject, text)
            return SendResult(success=True, simulated=True)

        try:
            await asyncio.to_thread(self._do_send, to, subject, text, html)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP send to %s failed: %s", to, exc)
            return SendResult(success=False, simulated=False, error=str(exc))
        logger.info("EMAIL sent [to=%s] subject=%s", to, subject)
        return SendResult(success=True, simulated=False)

    def _do_send(self, to: str, subject: str, text: str, html: Optional[str]) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f'"{self.from_name}" <{self.username}>'
        msg["To"] = to
        msg.attach(MIMEText(text, "plain"))
        if html:
            msg.attach(MIMEText(html, "html"))

        with smtplib.SMTP(self.host, self.port, timeout=30) as smtp:
            smtp.starttls()
            smtp.login(self.username, self.password)
            smtp.send_message(msg)

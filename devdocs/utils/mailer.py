"""
Outgoing mail.
ConsoleMailer (development, nothing configured) logs and records messages;
SMTPMailer sends through the configured server.
"""
from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

logger = logging.getLogger(__name__)


class MailError(Exception):
    pass


class Mailer:
    """Base mail interface. send() raises MailError when delivery fails."""

    def __init__(self, sender: str):
        self.sender = sender

    def send(self, to: str, subject: str, text: str, html: Optional[str] = None) -> None:
        raise NotImplementedError


class ConsoleMailer(Mailer):
    def __init__(self, sender: str):
        super().__init__(sender)
        self.sent: list[dict] = []

    def send(self, to, subject, text, html=None):
        self.sent.append({"to": to, "subject": subject, "text": text, "html": html})
        logger.info("mail (console) to=%s subject=%r\n%s", to, subject, text)


class SMTPMailer(Mailer):
    def __init__(self, sender, host, port=587, username="", password="", use_tls=True, timeout=10.0):
        super().__init__(sender)
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, to, subject, text, html=None):
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        msg.attach(MIMEText(text, "plain"))
        if html:
            msg.attach(MIMEText(html, "html"))
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.sendmail(self.sender, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            raise MailError(f"could not send mail to {to}: {exc}") from exc
        logger.info("mail sent to=%s subject=%r", to, subject)


def mailer_from_config(config) -> Mailer:
    sender = f'"{config["APP_NAME"]}" <{config["MAIL_SENDER"]}>'
    if not config.get("MAIL_SERVER"):
        return ConsoleMailer(sender)
    return SMTPMailer(
        sender,
        config["MAIL_SERVER"],
        port=config["MAIL_PORT"],
        username=config["MAIL_USERNAME"],
        password=config["MAIL_PASSWORD"],
        use_tls=config["MAIL_USE_TLS"],
    )

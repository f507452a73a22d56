"""HTML mail delivery over SMTP."""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from friendlink.config import SmtpSettings

logger = logging.getLogger(__name__)

SENDER_NAME = "Friend Link API"


class SmtpMailer:
    """Sends one HTML mail per call. SSL when secure, else STARTTLS."""

    def __init__(self, settings: SmtpSettings, timeout: int = 20) -> None:
        self._settings = settings
        self._timeout = timeout

    def send(self, to: str, subject: str, html: str) -> bool:
        if not to:
            return False
        cfg = self._settings
        if not (cfg.host and cfg.user and cfg.password):
            logger.warning("SMTP is not fully configured; skip email send")
            return False

        msg = MIMEMultipart("alternative")
        msg["From"] = f"{SENDER_NAME} <{cfg.user}>"
        msg["To"] = to
        msg["Subject"] = subject or "Notification"
        msg.attach(MIMEText(html, "html", _charset="utf-8"))

        try:
            if cfg.secure:
                server = smtplib.SMTP_SSL(cfg.host, cfg.port, timeout=self._timeout)
            else:
                server = smtplib.SMTP(cfg.host, cfg.port, timeout=self._timeout)
                server.starttls()
            server.login(cfg.user, cfg.password)
            server.send_message(msg)
            server.quit()
            logger.info("Mail sent to %s: %s", to, subject)
            return True
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send mail to %s", to)
            return False

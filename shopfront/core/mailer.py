"""
Email adapter for the Shopfront backend.

The default implementation uses SMTP, reading credentials from Settings.
"""

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
import logging
import smtplib
import ssl

from .config import get_settings
from .errors import DeliveryError

logger = logging.getLogger(__name__)


def send_email(subject: str, to_email: str, html_body: str, text_body: str | None = None) -> bool:
    """
    Send an email using the SMTP credentials from the environment.
    Returns False without sending when SMTP is not configured; raises
    DeliveryError when the transport fails.
    """
    settings = get_settings()
    if not (
        settings.smtp_host
        and settings.smtp_user
        and settings.smtp_password
        and settings.smtp_from
        and settings.smtp_port
    ):
        logger.warning("SMTP configuration missing; skipping email to %s", to_email)
        return False
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.smtp_from
    msg["To"] = to_email
    plain = text_body or html_body
    msg.attach(MIMEText(plain, "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    port = settings.smtp_port or 465
    try:
        if port == 465:
            context = ssl.create_default_context()
            with smtplib.SMTP_SSL(settings.smtp_host, port, context=context) as server:
                server.login(settings.smtp_user, settings.smtp_password)
                server.sendmail(settings.smtp_from, [to_email], msg.as_string())
        else:
            with smtplib.SMTP(settings.smtp_host, port) as server:
                server.ehlo()
                server.starttls(context=ssl.create_default_context())
                server.login(settings.smtp_user, settings.smtp_password)
                server.sendmail(settings.smtp_from, [to_email], msg.as_string())
        return True
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Failed to send email to %s: %s", to_email, exc)
        raise DeliveryError("Could not deliver the email, try again later") from exc


def send_verification_code(to_email: str, code: str) -> bool:
    settings = get_settings()
    minutes = max(1, settings.otp_ttl_seconds // 60)
    html_body = f"""
    <p>Hello!</p>
    <p>We received a request to reset your password. Use the code below:</p>
    <p style="font-size:24px;font-weight:bold;letter-spacing:4px">{code}</p>
    <p>The code expires in {minutes} minutes. If this was not you, ignore this message.</p>
    """
    return send_email(
        "Your password reset code",
        to_email,
        html_body,
        f"Your password reset code is {code}. It expires in {minutes} minutes.",
    )

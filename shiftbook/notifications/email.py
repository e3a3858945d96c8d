"""Email transport for shift log notifications.

SMTP password may be stored encrypted using Fernet (AES-128-CBC) derived from SECRET_KEY.
"""

import base64
import hashlib
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate, make_msgid
from html import escape

from cryptography.fernet import Fernet

from ..config import settings
from .schemas import NotificationPlan

logger = logging.getLogger(__name__)


# ── Credential encryption ─────────────────────────────────────────────


def _derive_fernet_key(secret: str) -> bytes:
    """Derive a Fernet key from the app SECRET_KEY using SHA-256."""
    digest = hashlib.sha256(secret.encode()).digest()
    return base64.urlsafe_b64encode(digest)


def encrypt_value(plaintext: str) -> str:
    """Encrypt a string value using the app's SECRET_KEY."""
    f = Fernet(_derive_fernet_key(settings.secret_key))
    return f.encrypt(plaintext.encode()).decode()


def decrypt_value(ciphertext: str) -> str:
    """Decrypt a string value using the app's SECRET_KEY."""
    f = Fernet(_derive_fernet_key(settings.secret_key))
    return f.decrypt(ciphertext.encode()).decode()


def smtp_configured() -> bool:
    return bool(settings.smtp_user and settings.smtp_password)


# ── Email building ─────────────────────────────────────────────────────


def build_log_email(plan: NotificationPlan) -> MIMEMultipart:
    """Build the notification email for one shift log entry."""
    details = plan.details
    msg = MIMEMultipart("alternative")

    msg["From"] = formataddr((settings.mail_sender_name, settings.smtp_user))
    msg["To"] = ", ".join(plan.recipients.emails)
    msg["Reply-To"] = settings.smtp_user
    msg["Date"] = formatdate(localtime=True)
    msg["Message-ID"] = make_msgid(domain=settings.smtp_user.split("@")[-1] if "@" in settings.smtp_user else "local")
    msg["Subject"] = plan.subject

    timestamp = details.created_at.strftime("%Y-%m-%d %H:%M") if details.created_at else "n/a"
    step_split = f"{details.step_id}/{details.split}" if details.split else details.step_id or "n/a"
    rows = [
        ("Plant", details.plant),
        ("Shop order", details.shop_order or "n/a"),
        ("Step/Split", step_split),
        ("Work center", details.work_center or "n/a"),
        ("User", details.user_id or "n/a"),
        ("Timestamp", timestamp),
    ]

    text_body = (
        f"{plan.subject}\n"
        f"{'=' * min(len(plan.subject), 60)}\n\n"
        + "".join(f"  {label + ':':<13}{value}\n" for label, value in rows)
        + f"\n{plan.message}\n\n--\n{settings.mail_sender_name}\n"
    )

    html_rows = "".join(
        f'<tr><td style="padding:4px 0; color:#6b7280; font-size:13px; width:110px;">{escape(label)}</td>'
        f'<td style="padding:4px 0; color:#111827; font-size:14px;">{escape(str(value))}</td></tr>'
        for label, value in rows
    )
    html_body = f"""\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>{escape(plan.subject)}</title>
</head>
<body style="margin:0; padding:24px; background-color:#f4f4f5; font-family:Arial,Helvetica,sans-serif;">
  <table role="presentation" width="600" cellpadding="0" cellspacing="0" style="background-color:#ffffff;">
    <tr><td style="background-color:#1e40af; padding:16px 24px;">
      <h1 style="margin:0; color:#ffffff; font-size:18px;">{escape(plan.subject)}</h1>
    </td></tr>
    <tr><td style="padding:24px;">
      <table role="presentation" width="100%" cellpadding="0" cellspacing="0">{html_rows}</table>
      <p style="margin:16px 0 0; color:#374151; font-size:14px; line-height:1.6;">
        {escape(plan.message).replace(chr(10), "<br>")}
      </p>
    </td></tr>
  </table>
</body>
</html>"""

    msg.attach(MIMEText(text_body, "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    return msg


# ── Email sending ──────────────────────────────────────────────────────


def send_email(msg: MIMEMultipart) -> bool:
    """Send an email via SMTP with TLS. Returns True on success."""
    if not smtp_configured():
        logger.debug("SMTP not configured, skipping email send")
        return False

    try:
        # Fernet tokens start with 'gAAAAA'
        password = settings.smtp_password
        if password.startswith("gAAAAA"):
            password = decrypt_value(password)

        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout_seconds) as server:
            server.ehlo()
            server.starttls()
            server.ehlo()
            server.login(settings.smtp_user, password)
            server.send_message(msg)
        return True
    except Exception:
        logger.exception("Failed to send email notification to %s", msg["To"])
        return False

"""
E-mail service for route and driver hand-offs.

Sends plain-text summaries over SMTP (Google Workspace by default) so a
dispatcher can forward a route's or a driver's details to someone on the
recipient list.

Usage:
    from app.services.email_service import send_email

    send_email(
        to="dispatch@example.com",
        subject="Route Details: Acme - North Loop",
        body="Route Name: North Loop\n...",
    )
"""

import logging
import smtplib
import threading
from email.mime.text import MIMEText

from flask import current_app

logger = logging.getLogger(__name__)


def _send_smtp(app, msg):
    """Send an email via SMTP. Runs inside its own app context."""
    with app.app_context():
        host = app.config.get("MAIL_SMTP_HOST", "smtp.gmail.com")
        port = app.config.get("MAIL_SMTP_PORT", 587)
        username = app.config.get("MAIL_USERNAME")
        password = app.config.get("MAIL_PASSWORD")

        if not username or not password:
            logger.warning("Email not sent: MAIL_USERNAME or MAIL_PASSWORD not configured.")
            return False

        try:
            with smtplib.SMTP(host, port, timeout=30) as server:
                server.ehlo()
                server.starttls()
                server.ehlo()
                server.login(username, password)
                server.send_message(msg)
            logger.info(f"Email sent to {msg['To']}: {msg['Subject']}")
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {msg['To']}: {e}")
            return False


def build_message(app, to, subject, body, reply_to=None):
    from_name = app.config.get("MAIL_FROM_NAME", "Route Desk")
    from_email = app.config.get("MAIL_FROM_ADDRESS") or app.config.get("MAIL_USERNAME") or ""

    msg = MIMEText(body, "plain", "utf-8")
    msg["Subject"] = subject
    msg["From"] = f"{from_name} <{from_email}>"
    msg["To"] = to if isinstance(to, str) else ", ".join(to)
    if reply_to:
        msg["Reply-To"] = reply_to
    return msg


def send_email(to, subject, body, reply_to=None):
    """Send a plain-text email in a background thread."""
    app = current_app._get_current_object()
    msg = build_message(app, to, subject, body, reply_to)

    thread = threading.Thread(target=_send_smtp, args=(app, msg))
    thread.daemon = True
    thread.start()
    return msg

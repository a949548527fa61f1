import html
import logging

import requests
from app import config

logger = logging.getLogger(__name__)


def _send(to_email: str, subject: str, text: str, html: str) -> None:
    """Post one message to SendGrid. Never raises: email is fire-and-forget."""
    if not config.SENDGRID_API_KEY or not config.FROM_EMAIL:
        logger.warning("SENDGRID_API_KEY or FROM_EMAIL is not set, skipping email to %s", to_email)
        return

    try:
        resp = requests.post(
            config.SENDGRID_URL,
            headers={
                "Authorization": f"Bearer {config.SENDGRID_API_KEY}",
                "Content-Type": "application/json",
            },
            json={
                "personalizations": [{"to": [{"email": to_email}]}],
                "from": {"email": config.FROM_EMAIL},
                "subject": subject,
                "content": [
                    {"type": "text/plain", "value": text},
                    {"type": "text/html", "value": html},
                ],
            },
            timeout=15,
        )
    except requests.RequestException as e:
        logger.error("email to %s failed: %r", to_email, e)
        return

    if resp.status_code >= 300:
        logger.error("email to %s rejected: %s %s", to_email, resp.status_code, resp.text)
    else:
        logger.info("email to %s accepted (%s)", to_email, resp.status_code)


def send_welcome_email(email: str, name: str) -> None:
    safe = html.escape(name)
    _send(
        email,
        "Thanks for joining in!",
        f"Welcome to the app, {name}. Let us know how you get along with it.",
        f"Welcome to the app, <b>{safe}</b>. Let us know how you get along with it.",
    )


def send_cancel_email(email: str, name: str) -> None:
    safe = html.escape(name)
    _send(
        email,
        f"We're sad to see you go {name}.",
        f"Your account has been deleted {name} and you will stop getting notifications from us. "
        "Is there anything we could have done better?",
        f"<p>Your account has been deleted <b>{safe}</b> and you will stop getting notifications from us.</p>"
        "<p>Is there anything we could have done better?</p>"
        "<p>Please reply to let us know. <b>Thank You!</b></p>",
    )

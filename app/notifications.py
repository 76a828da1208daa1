"""
Booking confirmation emails through the Gmail API (OAuth2 refresh token).

Sending is off unless MAIL_ENABLED is set; failures are logged and never
affect the booking that triggered them.
"""
import base64
import logging
import os
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from jinja2 import Environment, FileSystemLoader

from . import models
from .config import str_to_bool

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"


def _build_gmail_service():
    creds = Credentials(
        token=None,
        refresh_token=os.getenv("GMAIL_REFRESH_TOKEN"),
        client_id=os.getenv("GMAIL_CLIENT_ID"),
        client_secret=os.getenv("GMAIL_CLIENT_SECRET"),
        token_uri="https://oauth2.googleapis.com/token",
    )
    return build("gmail", "v1", credentials=creds, cache_discovery=False)


def render_email_template(template_name: str, context: dict) -> str:
    env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)), autoescape=True)
    return env.get_template(template_name).render(**context)


def create_mime_message(sender: str, to: str, subject: str, html_body: str) -> dict:
    """Base64url-encoded MIME message in the shape the Gmail API expects."""
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = sender
    msg["To"] = to
    msg.attach(MIMEText(html_body, "html"))
    raw = base64.urlsafe_b64encode(msg.as_bytes()).decode()
    return {"raw": raw}


def booking_email_context(booking: models.Booking, user: models.User, room: models.Room) -> dict:
    return {
        "user_name": user.name,
        "room_name": room.name,
        "booking_date": booking.booking_date.isoformat(),
        "start_time": booking.start_time,
        "end_time": booking.end_time,
        "is_full_day_booking": booking.is_full_day_booking,
        "company_name": user.company_name,
        "notes": booking.notes,
    }


def send_booking_email(booking_data: dict, email_to: str) -> None:
    if not str_to_bool(os.getenv("MAIL_ENABLED"), default=False):
        logger.info("Mail disabled (MAIL_ENABLED=false); skipping confirmation to %s", email_to)
        return

    sender = os.getenv("MAIL_FROM", os.getenv("MAIL_USERNAME"))
    subject = f"Booking Confirmation: {booking_data['room_name']}"

    try:
        html_body = render_email_template("email_booking.html", booking_data)
        service = _build_gmail_service()
        message = create_mime_message(sender, email_to, subject, html_body)
        service.users().messages().send(userId="me", body=message).execute()
        logger.info("Confirmation sent via Gmail API to %s", email_to)
    except HttpError as e:
        logger.error("Gmail API HttpError sending to %s: %s", email_to, e)
    except Exception:
        logger.exception("Could not send confirmation to %s", email_to)

"""
Alert Sending module for Property Alerts.

Formats property alert emails for matched buyers and hands them to an email
transport. The default transport invokes the platform's `send-email` edge
function, which owns the branded templates; the SMTP and SendGrid transports
render a plain version locally for self-hosted setups.
"""

import smtplib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Any, Optional
import sendgrid
from sendgrid.helpers.mail import Mail, Email, To

from .config import AppConfig, EmailConfig, get_app_config, get_email_config
from .db import Database, get_db
from .errors import DispatchError
from .matching import AlertMatch
from .models import AlertType, EMAIL_TEMPLATES

logger = logging.getLogger(__name__)


# =============================================================================
# EMAIL TEMPLATES
# =============================================================================

ALERT_SUBJECTS = {
    AlertType.ON_MARKET: "🏠 New Property Alert: {title}",
    AlertType.OFF_MARKET: "🔐 Exclusive Off-Market Property: {title}",
}

ALERT_EMAIL_HTML = """
<!DOCTYPE html>
<html>
<head>
    <style>
        body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
        .header {{ background: #1a1a1a; color: #ffd700; padding: 20px; text-align: center; }}
        .content {{ padding: 20px; background: #f7fafc; }}
        .property-card {{ background: white; border-radius: 8px; padding: 20px; margin: 15px 0; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }}
        .price {{ font-size: 24px; font-weight: bold; color: #2b6cb0; }}
        .detail-label {{ font-weight: bold; width: 120px; display: inline-block; }}
        .cta-button {{ display: inline-block; background: #ffd700; color: #000; padding: 12px 24px; text-decoration: none; border-radius: 4px; font-weight: bold; margin: 15px 0; }}
        .footer {{ text-align: center; padding: 20px; color: #718096; font-size: 12px; }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>{heading}</h1>
        </div>
        <div class="content">
            <p>Hi {name},</p>
            <p>We found a property that matches your criteria:</p>
            <div class="property-card">
                {image_html}
                <h2>{propertyTitle}</h2>
                <p class="price">{price}</p>
                <div><span class="detail-label">Location:</span> {location}</div>
                <div><span class="detail-label">Type:</span> {propertyType}</div>
                <div><span class="detail-label">Bedrooms:</span> {bedrooms}</div>
                <div><span class="detail-label">Bathrooms:</span> {bathrooms}</div>
                {features_html}
                <a href="{propertyUrl}" class="cta-button">View Property →</a>
            </div>
        </div>
        <div class="footer">
            <p>You're receiving this because you turned on property alerts.</p>
        </div>
    </div>
</body>
</html>
"""

ALERT_EMAIL_TEXT = """
{heading}

Hi {name},

{propertyTitle}
Price: {price}
Location: {location}
Type: {propertyType}
Bedrooms: {bedrooms}
Bathrooms: {bathrooms}
{features_text}
View property: {propertyUrl}

---
You're receiving this because you turned on property alerts.
"""


@dataclass
class EmailMessage:
    """Transport-neutral alert email."""
    to: str
    template: str
    subject: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict:
        return {
            "to": self.to,
            "template": self.template,
            "subject": self.subject,
            "data": self.data,
        }


# =============================================================================
# TRANSPORTS
# =============================================================================

class EmailTransport(ABC):
    """Delivers an EmailMessage. Raises DispatchError on failure."""

    @abstractmethod
    def send(self, message: EmailMessage) -> None:
        ...


class SupabaseFunctionTransport(EmailTransport):
    """Sends through the `send-email` edge function."""

    def __init__(self, db: Optional[Database] = None, function_name: str = "send-email"):
        self.db = db or get_db()
        self.function_name = function_name

    def send(self, message: EmailMessage) -> None:
        try:
            self.db.client.functions.invoke(
                self.function_name,
                invoke_options={"body": message.to_payload()},
            )
        except Exception as e:
            raise DispatchError(f"{self.function_name} failed: {e}", recipient=message.to) from e


class SmtpTransport(EmailTransport):
    """Renders the alert locally and sends it over SMTP."""

    def __init__(self, email_config: Optional[EmailConfig] = None):
        self.email_config = email_config or get_email_config()

    def send(self, message: EmailMessage) -> None:
        msg = self.build_message(message)
        try:
            with smtplib.SMTP(self.email_config.smtp_host, self.email_config.smtp_port) as server:
                server.starttls()
                if self.email_config.smtp_user and self.email_config.smtp_password:
                    server.login(self.email_config.smtp_user, self.email_config.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise DispatchError(f"SMTP send failed: {e}", recipient=message.to) from e

    def build_message(self, message: EmailMessage) -> MIMEMultipart:
        """Build the multipart text/HTML email."""
        data = message.data
        features = data.get("matchingFeatures") or []
        image = data.get("image")

        template_vars = {
            **data,
            "heading": (
                "Exclusive Off-Market Property"
                if data.get("isOffMarket")
                else "New Property Match"
            ),
            "price": _format_price(data.get("price")),
            "image_html": f'<img src="{image}" alt="" style="max-width: 100%;">' if image else "",
            "features_html": (
                "<p><strong>Features:</strong> " + ", ".join(features) + "</p>" if features else ""
            ),
            "features_text": ("Features: " + ", ".join(features) + "\n") if features else "",
        }

        msg = MIMEMultipart("alternative")
        msg["Subject"] = message.subject
        msg["From"] = f"{self.email_config.from_name} <{self.email_config.from_email}>"
        msg["To"] = message.to

        msg.attach(MIMEText(ALERT_EMAIL_TEXT.format(**template_vars), "plain"))
        msg.attach(MIMEText(ALERT_EMAIL_HTML.format(**template_vars), "html"))
        return msg


class SendGridTransport(SmtpTransport):
    """Renders the alert like SmtpTransport and sends it through the SendGrid API."""

    def __init__(self, email_config: Optional[EmailConfig] = None, client: Any = None):
        super().__init__(email_config)
        self.client = client or sendgrid.SendGridAPIClient(api_key=self.email_config.sendgrid_api_key)

    def send(self, message: EmailMessage) -> None:
        msg = self.build_message(message)

        html_content = None
        text_content = None
        for part in msg.walk():
            if part.get_content_type() == "text/html":
                html_content = part.get_payload(decode=True).decode()
            elif part.get_content_type() == "text/plain":
                text_content = part.get_payload(decode=True).decode()

        mail = Mail(
            from_email=Email(self.email_config.from_email, self.email_config.from_name),
            to_emails=To(message.to),
            subject=message.subject,
            plain_text_content=text_content,
            html_content=html_content,
        )

        try:
            response = self.client.send(mail)
        except Exception as e:
            raise DispatchError(f"SendGrid send failed: {e}", recipient=message.to) from e

        if response.status_code not in (200, 201, 202):
            raise DispatchError(f"SendGrid error: {response.status_code}", recipient=message.to)


def _format_price(price: Any) -> str:
    if isinstance(price, (int, float)) and not isinstance(price, bool) and price > 0:
        return f"${price:,.0f}"
    if isinstance(price, str) and price.strip():
        return price.strip()
    return "Contact Agent"


def create_transport(
    email_config: Optional[EmailConfig] = None,
    db: Optional[Database] = None,
) -> EmailTransport:
    """Build the transport selected by EMAIL_PROVIDER."""
    email_config = email_config or get_email_config()
    if email_config.provider == "smtp":
        return SmtpTransport(email_config)
    if email_config.provider == "sendgrid":
        return SendGridTransport(email_config)
    if email_config.provider != "supabase":
        raise ValueError(f"Unknown email provider: {email_config.provider}")
    return SupabaseFunctionTransport(db, function_name=email_config.function_name)


# =============================================================================
# DISPATCHER
# =============================================================================

class NotificationDispatcher:
    """
    Formats and sends property alerts for confirmed matches.

    Usage:
        dispatcher = NotificationDispatcher()
        dispatcher.send(match, AlertType.ON_MARKET)
    """

    def __init__(
        self,
        db: Optional[Database] = None,
        transport: Optional[EmailTransport] = None,
        config: Optional[AppConfig] = None,
    ):
        self.db = db or get_db()
        self.transport = transport or create_transport(db=self.db)
        self.config = config or get_app_config()

    def send(self, match: AlertMatch, alert_type: AlertType) -> None:
        """
        Send one alert email.

        Raises:
            DispatchError: if the transport fails
        """
        message = self.build_message(match, alert_type)
        self.transport.send(message)
        logger.info(f"Sent {message.template} to buyer {match.buyer_id} for {match.listing.id}")

    def build_message(self, match: AlertMatch, alert_type: AlertType) -> EmailMessage:
        """Build the email for a match without sending it."""
        listing = match.listing
        media = self._load_media(listing.id)
        features = [_humanize(f) for f in media.get("features", []) if isinstance(f, str) and f.strip()]
        images = media.get("images") or []

        data = {
            "name": match.buyer_name,
            "propertyTitle": listing.title,
            "price": _payload_price(listing.price, listing.price_display),
            "location": listing.location,
            "propertyType": listing.property_type,
            "bedrooms": listing.bedrooms or 0,
            "bathrooms": listing.bathrooms or 0,
            "image": images[0] if images else None,
            "matchingFeatures": features or None,
            "propertyUrl": f"{self.config.property_base_url}/{listing.id}",
            "isOffMarket": alert_type == AlertType.OFF_MARKET,
        }

        return EmailMessage(
            to=match.buyer_email,
            template=EMAIL_TEMPLATES[alert_type],
            subject=ALERT_SUBJECTS[alert_type].format(title=listing.title),
            data=data,
        )

    def _load_media(self, property_id: str) -> dict:
        # Enrichment only, an alert without images is still sent
        try:
            return self.db.get_listing_media(property_id)
        except Exception as e:
            logger.debug(f"No media for property {property_id}: {e}")
            return {}


def _payload_price(price: Any, price_display: Optional[str]) -> Any:
    if isinstance(price, (int, float)) and not isinstance(price, bool):
        return float(price)
    if price_display:
        return price_display
    if isinstance(price, str):
        try:
            return float(price.replace(",", "").replace("$", ""))
        except ValueError:
            return price
    return None


def _humanize(feature: str) -> str:
    text = feature.strip()
    if text.startswith("feature_"):
        text = text[len("feature_"):]
    text = text.replace("_", " ")
    return text[:1].upper() + text[1:]

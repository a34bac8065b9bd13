"""
Configuration module for Property Alerts.

Loads environment variables and provides configuration constants.
All sensitive values should be in .env file (never commit to git).
"""

import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class SupabaseConfig:
    """Supabase connection configuration."""
    url: str
    key: str  # Service role key, alert processing bypasses row level security

    @classmethod
    def from_env(cls) -> "SupabaseConfig":
        return cls(
            url=os.getenv("SUPABASE_URL", ""),
            key=os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_KEY", ""),
        )


@dataclass
class EmailConfig:
    """Email sending configuration (Supabase edge function, SMTP or SendGrid)."""
    provider: str  # "supabase", "smtp" or "sendgrid"
    function_name: str
    # SMTP settings
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    # SendGrid settings
    sendgrid_api_key: str
    # Common
    from_email: str
    from_name: str

    @classmethod
    def from_env(cls) -> "EmailConfig":
        return cls(
            provider=os.getenv("EMAIL_PROVIDER", "supabase"),
            function_name=os.getenv("EMAIL_FUNCTION_NAME", "send-email"),
            smtp_host=os.getenv("SMTP_HOST", "smtp.gmail.com"),
            smtp_port=int(os.getenv("SMTP_PORT", "587")),
            smtp_user=os.getenv("SMTP_USER", ""),
            smtp_password=os.getenv("SMTP_PASSWORD", ""),
            sendgrid_api_key=os.getenv("SENDGRID_API_KEY", ""),
            from_email=os.getenv("FROM_EMAIL", "alerts@pickfirst.com.au"),
            from_name=os.getenv("FROM_NAME", "PickFirst Property Alerts"),
        )


@dataclass
class AppConfig:
    """Main application configuration."""
    # Jobs pulled per invocation, bounds the duration of one run
    batch_size: int = 10

    # Fraction of applicable criteria a listing must satisfy
    match_threshold: float = 0.4

    # Budget used when a buyer's budget_range is absent or malformed
    default_min_budget: float = 0.0
    default_max_budget: float = 10_000_000.0

    # Link included in alert emails: {property_base_url}/{property_id}
    property_base_url: str = "https://pickfirst.com.au/property"

    # Feature row that can switch off premium off-market alerts
    premium_feature_key: str = "property_alerts_unlimited"

    # Skip buyers already sent an alert for the same property and alert type
    skip_duplicate_alerts: bool = False

    # Scheduler polling interval
    poll_minutes: int = 5

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            batch_size=int(os.getenv("ALERT_BATCH_SIZE", "10")),
            match_threshold=float(os.getenv("MATCH_THRESHOLD", "0.4")),
            property_base_url=os.getenv(
                "PROPERTY_BASE_URL", "https://pickfirst.com.au/property"
            ).rstrip("/"),
            premium_feature_key=os.getenv("PREMIUM_ALERTS_FEATURE_KEY", "property_alerts_unlimited"),
            skip_duplicate_alerts=_env_bool("SKIP_DUPLICATE_ALERTS", False),
            poll_minutes=int(os.getenv("ALERT_POLL_MINUTES", "5")),
        )


# Global configuration instances (lazy loaded)
_supabase_config: Optional[SupabaseConfig] = None
_email_config: Optional[EmailConfig] = None
_app_config: Optional[AppConfig] = None


def get_supabase_config() -> SupabaseConfig:
    """Get Supabase configuration (cached)."""
    global _supabase_config
    if _supabase_config is None:
        _supabase_config = SupabaseConfig.from_env()
    return _supabase_config


def get_email_config() -> EmailConfig:
    """Get email configuration (cached)."""
    global _email_config
    if _email_config is None:
        _email_config = EmailConfig.from_env()
    return _email_config


def get_app_config() -> AppConfig:
    """Get app configuration (cached)."""
    global _app_config
    if _app_config is None:
        _app_config = AppConfig.from_env()
    return _app_config


def reset_config_cache() -> None:
    """Drop cached configuration so the next getter re-reads the environment."""
    global _supabase_config, _email_config, _app_config
    _supabase_config = None
    _email_config = None
    _app_config = None

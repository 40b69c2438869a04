"""ZeptoMail implementation of NotificationGateway.

Sends the sign-up OTP and password-reset mails through the ZeptoMail HTTP
API. Bodies are rendered from Jinja2 templates in templates/emails/; a plain
text alternative is always attached.
"""

import os

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import EmailSettings
from shared.logging import get_logger

log = get_logger(__name__)

_ZEPTO_API_URL = "https://api.zeptomail.in/v1.1/email"
_DEFAULT_TEMPLATE_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(__file__))),
    "templates",
    "emails",
)


class ZeptoMailGateway:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: httpx.AsyncClient,
        otp_ttl_minutes: int = 10,
        template_dir: str = _DEFAULT_TEMPLATE_DIR,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._otp_ttl_minutes = otp_ttl_minutes
        self._jinja = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html", "xml"]),
        )

    async def _send(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> bool:
        if not self._settings.zepto_api_token:
            log.error("email_send_failed", to_email=to_email, reason="token_not_configured")
            return False

        payload: dict = {
            "from": {
                "address": self._settings.zepto_from_email,
                "name": self._settings.zepto_from_name,
            },
            "to": [{"email_address": {"address": to_email, "name": to_email}}],
            "subject": subject,
            "htmlbody": html_body,
            "textbody": text_body,
        }

        token = self._settings.zepto_api_token
        if not token.startswith("Zoho-enczapikey "):
            token = f"Zoho-enczapikey {token}"

        headers = {"Authorization": token, "Content-Type": "application/json"}

        try:
            response = await self._http.post(
                _ZEPTO_API_URL,
                json=payload,
                headers=headers,
                timeout=self._settings.email_timeout_seconds,
            )
        except httpx.HTTPError as e:
            log.error(
                "email_send_error",
                to_email=to_email,
                subject=subject,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if response.status_code in (200, 201, 202):
            log.info("email_sent", to_email=to_email, subject=subject)
            return True
        log.error(
            "email_send_failed",
            to_email=to_email,
            subject=subject,
            status_code=response.status_code,
            response=response.text[:200],
        )
        return False

    async def send_otp_mail(self, email: str, otp: str) -> bool:
        subject = "salexim Email Verification"
        html_body = self._jinja.get_template("otp.html").render(
            otp_code=otp, ttl_minutes=self._otp_ttl_minutes
        )
        text_body = (
            "Thank you for signing up. Please verify your email address "
            "using the OTP below:\n\n"
            f"{otp}\n\n"
            f"This code expires in {self._otp_ttl_minutes} minutes. Enter it in "
            "the verification form to complete your registration.\n"
            "If you did not request this, please ignore this email."
        )
        return await self._send(email, subject, html_body, text_body)

    async def send_reset_password_mail(self, email: str, reset_url: str) -> bool:
        subject = "Reset Password"
        html_body = self._jinja.get_template("reset_password.html").render(
            reset_url=reset_url
        )
        text_body = (
            "You are receiving this because you (or someone else) have requested "
            "the reset of the password for your account.\n"
            "Please click on the following link, or paste it into your browser "
            "to complete the process:\n\n"
            f"{reset_url}\n\n"
            "If you did not request this, please ignore this email and your "
            "password will remain unchanged.\n"
        )
        return await self._send(email, subject, html_body, text_body)

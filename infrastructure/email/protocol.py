"""NotificationGateway protocol — services depend on this, not the concrete implementation."""

from typing import Protocol


class NotificationGateway(Protocol):
    """Outbound account mail.

    Implementations never raise for delivery problems: they log and return
    False so callers can report "saved, but the mail did not go out".
    """

    async def send_otp_mail(self, email: str, otp: str) -> bool: ...

    async def send_reset_password_mail(self, email: str, reset_url: str) -> bool: ...

"""
Notification Transports
=======================

External delivery channels for notifications:
- SMTP email (blocking smtplib run in a worker thread)
- SMS webhook (httpx, guarded by a circuit breaker)

Both raise NotificationDeliveryException on failure; the dispatcher decides
what a failed channel means.
"""

import asyncio
import smtplib
import time
from email.message import EmailMessage
from typing import Optional

import httpx

from pawflow.config import Settings, NotificationChannel
from pawflow.core import NotificationDeliveryException
from pawflow.notifications.application import IEmailTransport, ISmsTransport
from pawflow.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CircuitState:
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """
    Circuit breaker for preventing cascade failures.

    States:
    - CLOSED: Normal operation, requests pass through
    - OPEN: After N failures, reject all requests for M seconds
    - HALF_OPEN: After timeout, allow one test request
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> str:
        if self._state == CircuitState.OPEN and self._last_failure_time is not None:
            if time.monotonic() - self._last_failure_time >= self.recovery_timeout:
                self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        return self.state in (CircuitState.CLOSED, CircuitState.HALF_OPEN)

    def record_success(self) -> None:
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()

        if self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            logger.warning(
                "Circuit breaker opened",
                extra={
                    "failure_count": self._failure_count,
                    "recovery_timeout": self.recovery_timeout
                }
            )


class SmtpEmailTransport(IEmailTransport):
    """
    Email over SMTP.

    ``secure`` connects with implicit TLS; otherwise the connection is
    upgraded with STARTTLS when the server offers it.
    """

    def __init__(
        self,
        host: str,
        from_address: str,
        port: int = 587,
        secure: bool = False,
        user: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 10.0
    ):
        self._host = host
        self._port = port
        self._secure = secure
        self._user = user
        self._password = password
        self._from_address = from_address
        self._timeout = timeout

    def _build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self._from_address
        msg["To"] = to
        msg.set_content(body)
        return msg

    def _send_sync(self, msg: EmailMessage) -> None:
        if self._secure:
            server = smtplib.SMTP_SSL(self._host, self._port, timeout=self._timeout)
        else:
            server = smtplib.SMTP(self._host, self._port, timeout=self._timeout)

        with server:
            if not self._secure:
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls()
                    server.ehlo()
            if self._user:
                server.login(self._user, self._password or "")
            server.send_message(msg)

    async def send(self, to: str, subject: str, body: str) -> None:
        msg = self._build_message(to, subject, body)
        try:
            await asyncio.to_thread(self._send_sync, msg)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationDeliveryException(NotificationChannel.EMAIL, str(e) or type(e).__name__)

        logger.debug("Email sent", extra={"smtp_host": self._host})


class SmsWebhookClient(ISmsTransport):
    """
    SMS delivery through an HTTP webhook.

    Posts ``{"to": phone, "body": text}`` as JSON. Any 2xx response counts
    as delivered.
    """

    def __init__(
        self,
        webhook_url: str,
        timeout_seconds: float = 10.0,
        max_retries: int = 2,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self._webhook_url = webhook_url
        self._timeout = timeout_seconds
        self._max_retries = max(1, max_retries)
        self._circuit_breaker = CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=60
        )
        self._http_client = http_client

    @property
    def circuit_state(self) -> str:
        return self._circuit_breaker.state

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def send(self, to: str, body: str) -> None:
        if not self._circuit_breaker.allow_request():
            raise NotificationDeliveryException(NotificationChannel.SMS, "circuit breaker open")

        last_error = "no attempt made"
        for attempt in range(self._max_retries):
            try:
                client = await self._get_client()
                response = await client.post(self._webhook_url, json={"to": to, "body": body})
                if response.is_success:
                    self._circuit_breaker.record_success()
                    return
                last_error = f"webhook returned {response.status_code}"
                logger.warning(
                    "SMS webhook returned non-2xx",
                    extra={"status_code": response.status_code, "attempt": attempt + 1}
                )
            except httpx.HTTPError as e:
                last_error = str(e) or type(e).__name__
                logger.warning(
                    "SMS webhook request failed",
                    extra={"error": last_error, "attempt": attempt + 1}
                )

            if attempt < self._max_retries - 1:
                await asyncio.sleep(2 ** attempt)

        self._circuit_breaker.record_failure()
        raise NotificationDeliveryException(NotificationChannel.SMS, last_error)

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


def build_email_transport(config: Settings) -> Optional[SmtpEmailTransport]:
    """SMTP transport, or None when no SMTP host is configured."""
    if not config.smtp_host:
        return None
    return SmtpEmailTransport(
        host=config.smtp_host,
        port=config.smtp_port,
        secure=config.smtp_secure,
        user=config.smtp_user,
        password=config.smtp_password,
        from_address=config.smtp_from,
    )


def build_sms_client(config: Settings) -> Optional[SmsWebhookClient]:
    """SMS client, or None when no webhook is configured."""
    if not config.sms_webhook_url:
        return None
    return SmsWebhookClient(config.sms_webhook_url, timeout_seconds=config.sms_timeout_seconds)

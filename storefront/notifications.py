"""Transactional email for order events.

A Mailer owns an ordered chain of providers. At startup the first provider
that verifies becomes the active transport; when none verify, email is
reported as not configured and every send is skipped. Sends retry with
exponential backoff before raising NotificationError.
"""

import asyncio
import html
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Awaitable, Callable, Dict, List, Optional
from uuid import uuid4

import httpx
import structlog

from .config import MailSettings
from .core import OrderOut
from .errors import NotificationError

logger = structlog.get_logger(__name__)

# smtplib.SMTPException derives from OSError
TRANSIENT_ERRORS = (OSError, httpx.RequestError, NotificationError)


def is_transient(exc: BaseException) -> bool:
    """Worth retrying: connection trouble, 429 and 5xx replies, sink failures."""
    if isinstance(exc, httpx.HTTPStatusError):
        code = exc.response.status_code
        return code == 429 or code >= 500
    return isinstance(exc, TRANSIENT_ERRORS)


@dataclass(frozen=True)
class Mail:
    sender: str
    to: str
    subject: str
    text: str
    html: Optional[str] = None


class EmailProvider(ABC):
    name = "provider"

    @abstractmethod
    async def verify(self) -> bool:
        """Return True when the provider can be used to send mail."""

    @abstractmethod
    async def send(self, mail: Mail) -> str:
        """Deliver mail and return the provider's message id."""

    async def close(self) -> None:
        return None


class SmtpProvider(EmailProvider):
    name = "smtp"

    def __init__(self, host: str, port: int = 587, user: Optional[str] = None,
                 password: Optional[str] = None, starttls: bool = True, timeout: float = 10.0):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.starttls = starttls
        self.timeout = timeout

    def _connect(self) -> smtplib.SMTP:
        conn = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        try:
            if self.starttls:
                conn.starttls()
            if self.user and self.password:
                conn.login(self.user, self.password)
        except Exception:
            conn.close()
            raise
        return conn

    def _verify(self) -> bool:
        with self._connect() as conn:
            code, _ = conn.noop()
        return code == 250

    def _send(self, mail: Mail) -> str:
        msg = EmailMessage()
        msg["From"] = mail.sender
        msg["To"] = mail.to
        msg["Subject"] = mail.subject
        msg_id = make_msgid()
        msg["Message-ID"] = msg_id
        msg.set_content(mail.text)
        if mail.html:
            msg.add_alternative(mail.html, subtype="html")
        with self._connect() as conn:
            conn.send_message(msg)
        return msg_id

    async def verify(self) -> bool:
        return await asyncio.to_thread(self._verify)

    async def send(self, mail: Mail) -> str:
        return await asyncio.to_thread(self._send, mail)


class ApiProvider(EmailProvider):
    """Transactional email HTTP API (Mailtrap-style JSON send endpoint)."""
    name = "api"

    def __init__(self, url: str, token: str, verify_url: Optional[str] = None,
                 timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.verify_url = verify_url
        self.client = httpx.AsyncClient(
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    async def verify(self) -> bool:
        if not self.verify_url:
            return True
        r = await self.client.get(self.verify_url)
        return r.is_success

    async def send(self, mail: Mail) -> str:
        payload = {
            "from": {"email": mail.sender},
            "to": [{"email": mail.to}],
            "subject": mail.subject,
            "text": mail.text,
        }
        if mail.html:
            payload["html"] = mail.html
        r = await self.client.post(self.url, json=payload)
        r.raise_for_status()
        try:
            data = r.json() if r.content else {}
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            # accepted, but the reply carries no message id
            return ""
        ids = data.get("message_ids") or []
        return ids[0] if ids else data.get("id") or data.get("messageId") or ""

    async def close(self) -> None:
        await self.client.aclose()


class MemoryProvider(EmailProvider):
    """Local sink: records mail in memory. Set fail=True to simulate outages."""
    name = "memory"

    def __init__(self, fail: bool = False, healthy: bool = True):
        self.sent: List[Mail] = []
        self.fail = fail
        self.healthy = healthy
        self.attempts = 0

    async def verify(self) -> bool:
        return self.healthy

    async def send(self, mail: Mail) -> str:
        self.attempts += 1
        if self.fail:
            raise NotificationError("memory sink configured to fail")
        self.sent.append(mail)
        logger.info("Mail captured by local sink", to=mail.to, subject=mail.subject)
        return f"mem-{uuid4().hex[:12]}"


def build_provider_chain(settings: MailSettings) -> List[EmailProvider]:
    """Providers in priority order: SMTP account, HTTP API, local sink."""
    chain: List[EmailProvider] = []
    if settings.smtp_host and settings.smtp_user and settings.smtp_password:
        chain.append(SmtpProvider(
            settings.smtp_host, settings.smtp_port,
            settings.smtp_user, settings.smtp_password, settings.smtp_starttls,
        ))
    if settings.api_url and settings.api_token:
        chain.append(ApiProvider(settings.api_url, settings.api_token, settings.api_verify_url))
    if settings.sink_enabled:
        chain.append(MemoryProvider())
    return chain


class Mailer:
    def __init__(self, settings: MailSettings, providers: Optional[List[EmailProvider]] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.settings = settings
        self.providers = build_provider_chain(settings) if providers is None else list(providers)
        self.active: Optional[EmailProvider] = None
        self._sleep = sleep

    @property
    def configured(self) -> bool:
        return self.active is not None

    @property
    def provider_name(self) -> Optional[str]:
        return self.active.name if self.active else None

    async def start(self) -> None:
        self.active = None
        for provider in self.providers:
            try:
                ok = await provider.verify()
            except Exception as e:
                logger.warning("Mail provider failed verification", provider=provider.name,
                               error=f"{type(e).__name__}: {e}")
                continue
            if ok:
                self.active = provider
                logger.info("Email service configured", provider=provider.name)
                return
            logger.warning("Mail provider rejected verification", provider=provider.name)
        logger.warning("No mail provider verified; email notifications are disabled")

    async def close(self) -> None:
        for provider in self.providers:
            try:
                await provider.close()
            except Exception:
                logger.exception("Failed to close mail provider", provider=provider.name)
        self.active = None

    async def send(self, to: str, subject: str, text: str, html_body: Optional[str] = None) -> Optional[str]:
        """Send through the active provider; None when email is not configured."""
        if self.active is None:
            logger.warning("Email not configured; skipping send", to=to, subject=subject)
            return None

        mail = Mail(self.settings.mail_from, to, subject, text, html_body)
        attempts = max(1, self.settings.max_attempts)
        last_error: Optional[BaseException] = None
        for attempt in range(1, attempts + 1):
            try:
                message_id = await self.active.send(mail)
                logger.info("Email sent", to=to, provider=self.active.name,
                            message_id=message_id, attempt=attempt)
                return message_id
            except Exception as e:
                if not is_transient(e):
                    logger.error("Email rejected by provider", to=to, provider=self.active.name,
                                 attempt=attempt, error=f"{type(e).__name__}: {e}")
                    raise NotificationError(f"Failed to send email to {to}: {e}") from e
                last_error = e
                logger.warning("Email send attempt failed", to=to, provider=self.active.name,
                               attempt=attempt, error=str(e))
                if attempt < attempts:
                    await self._sleep(self.settings.backoff_initial * self.settings.backoff_factor ** (attempt - 1))
        raise NotificationError(f"Failed to send email to {to} after {attempts} attempts: {last_error}")

    # ---------------------------
    # Order emails
    # ---------------------------
    def _amount(self, value: float) -> str:
        return f"{self.settings.currency_symbol}{value:.2f}"

    def render_admin(self, order: OrderOut) -> Dict[str, str]:
        lines = [
            f"New order received - #{order.id}",
            f"Name: {order.customer_name}",
            f"Phone: {order.customer_phone or 'N/A'}",
            f"Email: {order.customer_email or 'N/A'}",
            f"Address: {order.address}",
            f"Total: {self._amount(order.total)}",
            "",
            "Items:",
        ]
        lines += [f"{i.quantity}x {i.name} - {self._amount(i.line_total)}" for i in order.items]
        return {"subject": f"New order #{order.id}", "text": "\n".join(lines)}

    def render_customer(self, order: OrderOut) -> Dict[str, str]:
        store = self.settings.store_name
        item_lines = [f"{i.quantity}x {i.name} - {self._amount(i.line_total)}" for i in order.items]
        text = "\n".join([
            f"Dear {order.customer_name},",
            "",
            f"Thank you for your order with {store}!",
            "",
            "Order Details:",
            f"Order ID: #{order.id}",
            "",
            "Items:",
            *item_lines,
            "",
            f"Total: {self._amount(order.total)}",
            "",
            "Shipping Address:",
            order.address,
            "",
            "Payment Method: Cash on Delivery",
            "",
            "We'll process your order soon and deliver it to your address.",
            "",
            f"Thank you for shopping with {store}!",
            "",
            "Best regards,",
            f"{store} Team",
        ])
        rows = "".join(
            f"<tr><td>{i.quantity}x {html.escape(i.name)}</td><td>{html.escape(self._amount(i.line_total))}</td></tr>"
            for i in order.items
        )
        body = (
            f"<p>Dear {html.escape(order.customer_name)},</p>"
            f"<p>Thank you for your order with {html.escape(store)}!</p>"
            f"<h3>Order #{order.id}</h3>"
            f"<table>{rows}</table>"
            f"<p><strong>Total: {html.escape(self._amount(order.total))}</strong></p>"
            f"<p>Shipping Address:<br>{html.escape(order.address)}</p>"
            "<p>Payment Method: Cash on Delivery</p>"
            f"<p>Best regards,<br>{html.escape(store)} Team</p>"
        )
        return {"subject": f"Order Confirmation - {store} #{order.id}", "text": text, "html": body}

    async def notify_order_placed(self, order: OrderOut) -> None:
        """Admin notification plus customer confirmation. Never raises."""
        if not self.configured:
            logger.warning("Email not configured; skipping order notifications", order_id=order.id)
            return

        admin = self.render_admin(order)
        try:
            await self.send(self.settings.notify_email, admin["subject"], admin["text"])
        except Exception:
            logger.exception("Failed to send admin notification", order_id=order.id)

        if not order.customer_email:
            logger.info("No customer email; skipping confirmation", order_id=order.id)
            return
        customer = self.render_customer(order)
        try:
            await self.send(order.customer_email, customer["subject"], customer["text"], customer["html"])
        except Exception:
            logger.exception("Failed to send customer confirmation", order_id=order.id)

    async def send_test_email(self) -> Optional[str]:
        store = self.settings.store_name
        return await self.send(
            self.settings.notify_email,
            f"Test Email from {store}",
            f"This is a test email from {store} backend. If you receive this, "
            "email configuration is working correctly.",
        )

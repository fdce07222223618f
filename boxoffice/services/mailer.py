"""
Background mail dispatcher.

Messages go into a bounded ``asyncio.Queue``; a single task drains it
and hands each message to a blocking transport on a worker thread.  A
message that fails is retried once, at the start of the next loop
iteration, and then dropped.  A message counts as done for ``join`` once
it is delivered or dropped.  Nothing survives a restart.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
from collections.abc import Callable
from email.message import EmailMessage

from boxoffice.core.config import settings
from boxoffice.core.exceptions import ServerError
from boxoffice.models.user import User

logger = logging.getLogger(__name__)

Transport = Callable[[EmailMessage], None]


class SmtpTransport:
    """Blocking SMTP delivery (run off the event loop by the dispatcher)."""

    def __init__(
        self,
        host: str,
        port: int,
        user: str = "",
        password: str = "",
        starttls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.starttls = starttls
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> SmtpTransport:
        return cls(
            settings.SMTP_HOST,
            settings.SMTP_PORT,
            settings.SMTP_USER,
            settings.SMTP_PASSWORD,
            settings.SMTP_STARTTLS,
        )

    def __call__(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.starttls:
                smtp.starttls()
            if self.user:
                smtp.login(self.user, self.password)
            smtp.send_message(message)


class MailDispatchQueue:
    def __init__(self, transport: Transport, maxsize: int = 1024) -> None:
        self._transport = transport
        self._maxsize = maxsize
        self._queue: asyncio.Queue[EmailMessage] | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self._maxsize)
        self._task = asyncio.create_task(self._loop(self._queue), name="mail-dispatch")
        logger.info("Mailing task started")

    async def stop(self) -> None:
        if self._task is None:
            return
        logger.info("Stopping mailing task...")
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        self._queue = None
        logger.info("Mailing task stopped")

    async def queue_mail(self, message: EmailMessage) -> None:
        if self._queue is None or not self.running:
            raise ServerError("Mailing service isn't started")
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull as exc:
            raise ServerError("Mail queue is full") from exc

    async def join(self) -> None:
        """Wait until every queued message has been delivered or dropped."""
        if self._queue is not None:
            await self._queue.join()

    async def _loop(self, queue: asyncio.Queue[EmailMessage]) -> None:
        failed: list[EmailMessage] = []
        while True:
            for message in failed:
                if not await self._send(message):
                    logger.error("Dropping email to %s after retry", message["To"])
                queue.task_done()
            failed.clear()

            message = await queue.get()
            if await self._send(message):
                queue.task_done()
            else:
                logger.error("Pushing email to %s onto the retry list", message["To"])
                failed.append(message)

    async def _send(self, message: EmailMessage) -> bool:
        try:
            await asyncio.to_thread(self._transport, message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Error when emailing %s: %s", message["To"], exc)
            return False
        except Exception:
            logger.exception("Unexpected error when emailing %s", message["To"])
            return False
        logger.info("Sent email to %s", message["To"])
        return True


def build_verification_message(user: User, token: str) -> EmailMessage:
    link = f"{settings.PUBLIC_BASE_URL}{settings.API_V1_PREFIX}/auth/verify?email_key={token}"
    message = EmailMessage()
    message["From"] = settings.MAIL_SENDER
    message["To"] = f"{user.first_name} {user.last_name} <{user.email}>"
    message["Subject"] = f"{settings.PROJECT_NAME}: verify your email address"
    message.set_content(
        f"Hi {user.first_name},\n\n"
        f"Please confirm your email address by opening the link below:\n\n"
        f"{link}\n\n"
        f"The link is valid for {settings.EMAIL_TOKEN_EXPIRE_DAYS} day(s).\n"
    )
    return message


def logging_transport(message: EmailMessage) -> None:
    """Stand-in transport used when ``MAIL_ENABLED`` is off."""
    logger.info("Mail delivery disabled; discarding %r to %s", message["Subject"], message["To"])

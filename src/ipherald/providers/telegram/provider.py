"""Telegram notification channel using aiogram."""

from __future__ import annotations

import asyncio
import logging

from aiogram import Bot, Dispatcher, F
from aiogram.exceptions import AiogramError
from aiogram.types import Message as TelegramMessage

from ipherald.errors import ChannelError, Severity
from ipherald.providers.base import NotificationChannel

logger = logging.getLogger("telegram")

PREVIEW_LEN = 180
GROUP_CHAT_TYPES = ("group", "supergroup")
# AiogramError covers Telegram API replies and client-side decode failures
TRANSPORT_ERRORS = (AiogramError, OSError, asyncio.TimeoutError)


def _preview(text: str, limit: int = PREVIEW_LEN) -> str:
    """One-line preview of a message for the log."""
    head = text.partition("\n")[0]
    if len(head) > limit or head != text:
        return head[:limit] + "..."
    return head


def _chat_id(destination: str) -> int | str:
    """Numeric chat ids are sent as ints, '@channel' names as-is."""
    if destination.lstrip("-").isdigit():
        return int(destination)
    return destination


class TelegramChannel(NotificationChannel):
    """Telegram channel using aiogram 3.x long polling.

    Anyone allowed who mentions the bot in a group, replies to it, or writes
    to it privately wakes the scheduler with that chat as the destination.
    Empty allow-lists admit everyone.
    """

    def __init__(
        self,
        bot_token: str,
        allowed_users: list[str] | None = None,
        allowed_groups: list[str] | None = None,
    ):
        self._users = frozenset(allowed_users or ())
        self._groups = frozenset(allowed_groups or ())

        self._bot = Bot(token=bot_token)
        self._dp = Dispatcher()
        self._wake: asyncio.Queue[str] = asyncio.Queue()
        self._poller: asyncio.Task[None] | None = None
        self._me_id: int | None = None
        self._me_name: str | None = None
        self._dp.message.register(self._on_message, F.text | F.caption)

    @property
    def name(self) -> str:
        return "telegram"

    @property
    def bot(self) -> Bot:
        return self._bot

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dp

    @property
    def bot_username(self) -> str | None:
        return self._me_name

    @property
    def is_polling(self) -> bool:
        return self._poller is not None and not self._poller.done()

    def wake_events(self) -> asyncio.Queue[str]:
        return self._wake

    def _is_user_allowed(self, user_id: int, username: str | None) -> bool:
        if not self._users:
            return True
        names = {str(user_id)}
        if username:
            names.add(f"@{username}")
        return not self._users.isdisjoint(names)

    def _is_group_allowed(self, chat_id: int) -> bool:
        return not self._groups or str(chat_id) in self._groups

    def _addresses_bot(self, message: TelegramMessage) -> bool:
        """True for an @mention of the bot or a reply to one of its messages."""
        if self._me_name:
            body = (message.text or message.caption or "").lower()
            if f"@{self._me_name.lower()}" in body:
                return True
        original = message.reply_to_message
        if original is None or original.from_user is None:
            return False
        return self._me_id is not None and original.from_user.id == self._me_id

    def _should_answer(self, message: TelegramMessage) -> bool:
        user = message.from_user
        if user is None or user.id == self._me_id:
            return False
        if not self._is_user_allowed(user.id, user.username):
            logger.debug(
                "telegram_user_not_allowed",
                extra={"user.id": str(user.id), "user.username": user.username},
            )
            return False

        chat = message.chat
        if chat.type == "private":
            return True
        if chat.type in GROUP_CHAT_TYPES and self._is_group_allowed(chat.id):
            return self._addresses_bot(message)
        return False

    async def _on_message(self, message: TelegramMessage) -> None:
        if not self._should_answer(message):
            return
        chat_id = str(message.chat.id)
        username = message.from_user.username if message.from_user else None
        logger.info(
            "address_requested",
            extra={"messaging.chat_id": chat_id, "user.username": username},
        )
        await self._wake.put(chat_id)

    async def open(self) -> None:
        """Resolve the bot identity and start polling, unless already polling."""
        if self.is_polling:
            return

        dead, self._poller = self._poller, None
        reason: BaseException | None = None
        if dead is not None and not dead.cancelled():
            reason = dead.exception()

        try:
            me = await self._bot.get_me()
            await self._bot.delete_webhook(drop_pending_updates=False)
        except TRANSPORT_ERRORS as e:
            raise ChannelError(f"failed to open Telegram session: {e}") from e

        self._me_id, self._me_name = me.id, me.username
        self._poller = asyncio.create_task(self._poll())
        logger.info(
            "telegram_polling_started",
            extra={"telegram.bot_username": self._me_name},
        )

        if dead is not None:
            raise ChannelError(
                f"Telegram polling had stopped ({reason or 'no error'}), restarted",
                severity=Severity.WARNING,
            )

    async def _poll(self) -> None:
        # Signals belong to the serve command; the session is closed in close()
        await self._dp.start_polling(
            self._bot,
            handle_signals=False,
            close_bot_session=False,
        )

    async def send(self, destination: str, text: str) -> None:
        try:
            await self._bot.send_message(chat_id=_chat_id(destination), text=text)
        except TRANSPORT_ERRORS as e:
            raise ChannelError(f"failed to send Telegram message: {e}") from e
        logger.debug(
            "message_sent",
            extra={"messaging.chat_id": destination, "message.preview": _preview(text)},
        )

    async def close(self) -> None:
        """Stop polling and close the bot session."""
        poller, self._poller = self._poller, None
        if poller is not None:
            poller.cancel()
            try:
                await poller
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.debug("telegram_polling_error", extra={"error.message": str(e)})

        try:
            await self._bot.session.close()
        except Exception as e:
            raise ChannelError(f"failed to close Telegram session: {e}") from e
        logger.info("telegram_channel_closed")

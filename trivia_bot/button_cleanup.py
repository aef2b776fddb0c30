"""
Removal of buttons from quiz, question and leaderboard messages.
"""
import asyncio
import logging
from enum import Enum
from typing import Dict, Optional, Tuple

import discord


class MessageKind(Enum):
    LEADERBOARD = "leaderboard"
    QUIZ = "quiz"
    QUESTION = "question"


class ButtonCleanupService:
    """
    Schedules forced removal of message buttons.

    Scheduled removals run as background tasks keyed by (message id,
    channel id); scheduling the same message again replaces the pending task.
    """

    DEFAULT_DELAYS = {
        MessageKind.LEADERBOARD: 30,
        MessageKind.QUIZ: 300,
        MessageKind.QUESTION: 60,
    }

    def __init__(self, client: Optional[discord.Client] = None):
        self.logger = logging.getLogger(__name__)
        self.client = client
        self._pending: Dict[Tuple[int, int], Tuple[asyncio.Task, MessageKind]] = {}

    def schedule_quiz_cleanup(self, message_id: int, channel_id: int, delay_seconds: float = None) -> None:
        self._schedule(message_id, channel_id, MessageKind.QUIZ, delay_seconds)

    def schedule_question_cleanup(self, message_id: int, channel_id: int, delay_seconds: float = None) -> None:
        self._schedule(message_id, channel_id, MessageKind.QUESTION, delay_seconds)

    def schedule_leaderboard_cleanup(self, message_id: int, channel_id: int, delay_seconds: float = None) -> None:
        self._schedule(message_id, channel_id, MessageKind.LEADERBOARD, delay_seconds)

    def _schedule(self, message_id: int, channel_id: int, kind: MessageKind,
                  delay_seconds: Optional[float]) -> None:
        if delay_seconds is None:
            delay_seconds = self.DEFAULT_DELAYS[kind]
        key = (message_id, channel_id)
        self.cancel_cleanup(message_id, channel_id)

        task = asyncio.create_task(self._remove_later(key, kind, delay_seconds))
        self._pending[key] = (task, kind)
        self.logger.debug(
            f"Scheduled {kind.value} button cleanup for message {message_id} in {delay_seconds}s"
        )

    async def _remove_later(self, key: Tuple[int, int], kind: MessageKind, delay_seconds: float) -> None:
        await asyncio.sleep(delay_seconds)
        # the entry belongs to this task; drop it before doing I/O
        self._pending.pop(key, None)
        await self.remove_buttons(key[0], key[1], kind)

    async def remove_buttons(self, message_id: int, channel_id: int,
                             kind: MessageKind = MessageKind.QUIZ, channel=None) -> bool:
        """
        Immediately remove every button from a message.

        Any scheduled removal for the message is cancelled first.

        Args:
            channel: Channel holding the message; looked up through the client if omitted

        Returns:
            True if the message was edited, False if it could not be reached
        """
        self.cancel_cleanup(message_id, channel_id)
        if channel is None:
            channel = await self._get_channel(channel_id)
        if channel is None:
            self.logger.warning(f"Channel {channel_id} not found for button cleanup")
            return False

        try:
            message = await channel.fetch_message(message_id)
            await message.edit(view=None)
        except discord.NotFound:
            self.logger.debug(f"Message {message_id} not found for button cleanup")
            return False
        except discord.HTTPException as e:
            self.logger.error(f"Error removing buttons from message {message_id}: {e}")
            return False

        self.logger.info(f"Removed buttons from {kind.value} message {message_id}")
        return True

    async def _get_channel(self, channel_id: int):
        if self.client is None:
            self.logger.error("Discord client not set in ButtonCleanupService")
            return None

        channel = self.client.get_channel(channel_id)
        if channel is not None:
            return channel
        try:
            return await self.client.fetch_channel(channel_id)
        except discord.HTTPException as e:
            self.logger.error(f"Error fetching channel {channel_id}: {e}")
            return None

    def cancel_cleanup(self, message_id: int, channel_id: int) -> bool:
        entry = self._pending.pop((message_id, channel_id), None)
        if entry is None:
            return False
        task, _ = entry
        task.cancel()
        self.logger.debug(f"Cancelled button cleanup for message {message_id}")
        return True

    def cleanup_all(self) -> int:
        """Cancel every scheduled removal (for shutdown)."""
        count = len(self._pending)
        for task, _ in self._pending.values():
            task.cancel()
        self._pending.clear()
        return count

    def get_status(self) -> Dict[str, object]:
        by_kind: Dict[str, int] = {}
        for _, kind in self._pending.values():
            by_kind[kind.value] = by_kind.get(kind.value, 0) + 1
        return {'total': len(self._pending), 'by_type': by_kind}

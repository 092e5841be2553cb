"""
Press system for managing diplomatic messages between players.
"""

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional
import logging

logger = logging.getLogger(__name__)

PUBLIC = "public"


@dataclass(frozen=True)
class PressMessage:
    """A message; sender and recipient are player names, or PUBLIC as recipient."""
    sender: str
    recipient: str
    text: str
    phase: str

    def format_line(self) -> str:
        if self.recipient == PUBLIC:
            return f"{self.sender}/{PUBLIC}: {self.text}"
        return f"{self.sender}: {self.text}"


class PressSystem:
    """
    Routes press between players.

    Senders and recipients are looked up by name in the player registry
    supplied by `player_names`; messages never hold references to players.
    """

    def __init__(self, player_names: Callable[[], Iterable[str]]):
        self._player_names = player_names
        self.messages: List[PressMessage] = []

    def _is_player(self, name: str) -> bool:
        return name in set(self._player_names())

    def send_message(self, sender: str, recipient: str, text: str, phase: str) -> Optional[PressMessage]:
        """
        Send a message from one player to another player or to everyone.

        Returns:
            The stored message, or None if it was refused
        """
        if not self._is_player(sender):
            logger.warning(f"Invalid press sender: {sender}")
            return None
        if recipient != PUBLIC and not self._is_player(recipient):
            logger.warning(f"Invalid press recipient: {recipient}")
            return None
        if sender == recipient:
            logger.warning(f"Cannot send message to self: {sender}")
            return None

        message = PressMessage(sender, recipient, text, phase)
        self.messages.append(message)
        logger.info(f"Message sent: {sender} -> {recipient} ({len(text)} chars)")
        return message

    def messages_for(self, viewer: str) -> List[PressMessage]:
        """
        Messages visible to a viewer.
        A player sees public press and messages addressed to it; PUBLIC sees public press only.
        """
        if viewer == PUBLIC:
            return [m for m in self.messages if m.recipient == PUBLIC]
        return [m for m in self.messages if m.recipient in (PUBLIC, viewer)]

    def format_messages(self, viewer: str) -> List[str]:
        return [m.format_line() for m in self.messages_for(viewer)]

    def clear(self) -> None:
        self.messages.clear()

"""
Seam between chat text and the game's command parser.
"""

from abc import ABC, abstractmethod

from .events import Viewer


class ChatCommandHandler(ABC):
    """
    Implemented by the game simulation.

    Stance commands are never rate limited. Spawn commands are only offered
    to the handler while the viewer is not cooling down.
    """

    @abstractmethod
    def try_stance_command(self, text: str, viewer: Viewer) -> bool:
        """Return True if ``text`` was consumed as a stance change."""
        pass

    @abstractmethod
    def try_spawn_command(self, text: str, viewer: Viewer) -> bool:
        """Return True if ``text`` spawned something; starts the viewer's cooldown."""
        pass


class NullCommandHandler(ChatCommandHandler):
    """Recognizes no commands."""

    def try_stance_command(self, text: str, viewer: Viewer) -> bool:
        return False

    def try_spawn_command(self, text: str, viewer: Viewer) -> bool:
        return False

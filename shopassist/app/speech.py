"""Speech capabilities injected into the assistant.

Capture and playback live outside the core (browser, telephony, a CLI...).
The assistant only sees opaque text channels through these interfaces.
"""
from abc import ABC, abstractmethod
from typing import List, Optional


class SpeechInput(ABC):
    @abstractmethod
    async def listen(self) -> str:
        """Capture one utterance and return its transcript ("" for silence)."""
        ...

    def cancel(self) -> None:
        """Abort an in-progress capture."""


class SpeechOutput(ABC):
    @abstractmethod
    async def speak(self, text: str) -> None:
        """Play ``text`` back; returns once playback has finished."""
        ...

    def cancel(self) -> None:
        """Stop playback immediately."""


class NullSpeechOutput(SpeechOutput):
    """Text-only sessions: playback completes at once."""

    async def speak(self, text: str) -> None:
        return None


class ScriptedSpeechInput(SpeechInput):
    """Feeds queued transcripts, e.g. text typed into a chat box."""

    def __init__(self, utterances: Optional[List[str]] = None):
        self.utterances = list(utterances or [])
        self.cancelled = False

    def push(self, text: str) -> None:
        self.utterances.append(text)

    async def listen(self) -> str:
        self.cancelled = False
        return self.utterances.pop(0) if self.utterances else ""

    def cancel(self) -> None:
        self.cancelled = True

"""Abstract interface for transcription service operations."""

from abc import ABC, abstractmethod

from howhappy.domain.models import TranscriptionResult


class TranscriptionService(ABC):
    """Abstract base class for audio transcription backends."""

    @abstractmethod
    def transcribe(self, audio_location: str) -> TranscriptionResult:
        """
        Transcribes the audio found at ``audio_location``.

        Args:
            audio_location: A URL the service can fetch the audio from.

        Returns:
            TranscriptionResult with text, confidence, language, duration
            and time-aligned segments.

        Raises:
            TranscriptionError: If transcription fails.
        """
        pass

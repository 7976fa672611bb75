"""AssemblyAI implementation of the TranscriptionService interface."""

import logging

import assemblyai as aai

from howhappy.domain.models import TranscriptionResult, TranscriptSegment
from howhappy.exceptions import TranscriptionError
from howhappy.infrastructure.interfaces import TranscriptionService

logger = logging.getLogger(__name__)


class AssemblyAITranscriber(TranscriptionService):
    """Handles audio transcription using AssemblyAI."""

    def __init__(self, transcriber: aai.Transcriber):
        self._transcriber = transcriber

    def transcribe(self, audio_location: str) -> TranscriptionResult:
        """
        Transcribes audio that AssemblyAI fetches from ``audio_location``.

        Sentence boundaries become the time-aligned segments; AssemblyAI
        reports them in milliseconds.
        """
        try:
            transcript = self._transcriber.transcribe(audio_location)

            if transcript.status == aai.TranscriptStatus.error:
                raise TranscriptionError(audio_location, Exception(transcript.error))

            if transcript.text is None:
                raise TranscriptionError(
                    audio_location,
                    Exception("Transcription returned no text"),
                )

            segments = [
                TranscriptSegment(
                    id=index,
                    start=sentence.start / 1000,
                    end=sentence.end / 1000,
                    text=sentence.text,
                )
                for index, sentence in enumerate(transcript.get_sentences())
            ]
            language = (transcript.json_response or {}).get("language_code")

            result = TranscriptionResult(
                text=transcript.text,
                confidence=transcript.confidence,
                language=language,
                duration=transcript.audio_duration,
                segments=segments,
            )
            logger.info(
                "Audio transcription successful",
                extra={"segment_count": len(segments), "language": language},
            )
            return result

        except TranscriptionError:
            raise
        except Exception as e:
            logger.exception("AssemblyAI transcription failed")
            raise TranscriptionError(audio_location, e) from e

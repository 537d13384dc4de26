"""Transcript Loader - reads the normalized speech-to-text envelope.

The envelope is written by the transcription stage:
    {episode_id, asr_provider, words, utterances, paragraphs,
     deepgram_speakers?, metadata?}
Canonical speaker fields are null at this point. The optional
``deepgram_speakers`` sidecar keeps the provider's own speaker turns
("dg-0", "dg-1", ...) and serves as fallback diarization.
"""

import logging
from typing import Any, Optional

from pydantic import ValidationError

from podcast_speakers.models import (
    DiarizationResult,
    DiarizationSource,
    TimeSegment,
    TranscriptSegment,
)
from podcast_speakers.services.audit_builder import InvalidInputError
from podcast_speakers.services.storage import BlobStorage, StorageKeys

logger = logging.getLogger(__name__)


class TranscriptLoader:
    """Loads transcript envelopes from storage."""

    GRANULARITIES = ("utterances", "words")

    def __init__(self, storage: BlobStorage):
        self.storage = storage

    def load_envelope(self, episode_id: str, key: Optional[str] = None) -> dict[str, Any]:
        """Load the raw envelope for an episode.

        Args:
            episode_id: Episode whose transcript to load
            key: Explicit storage key (defaults to the episode's transcript key)

        Raises:
            InvalidInputError: If the stored object is not an envelope
        """
        key = key or StorageKeys.transcript(episode_id)
        envelope = self.storage.load_json(key)
        if not isinstance(envelope, dict):
            raise InvalidInputError(f"Transcript {key} is not a JSON object")

        logger.info(
            "Loaded transcript %s: %d words, %d utterances",
            key, len(envelope.get("words") or []), len(envelope.get("utterances") or []),
        )
        return envelope

    def segments(
        self,
        envelope: dict[str, Any],
        granularity: str = "utterances",
    ) -> list[TranscriptSegment]:
        """Convert envelope utterances (or words) to transcript segments.

        Raises:
            InvalidInputError: On an unknown granularity or a malformed entry
        """
        if granularity not in self.GRANULARITIES:
            raise InvalidInputError(
                f"Unknown granularity: {granularity}. Must be one of {self.GRANULARITIES}"
            )

        segments = []
        for index, item in enumerate(envelope.get(granularity) or []):
            if not isinstance(item, dict):
                raise InvalidInputError(f"Malformed {granularity}[{index}]: not a JSON object")
            text = item.get("text") if granularity == "utterances" else item.get("word")
            try:
                segments.append(
                    TranscriptSegment(start=item["start"], end=item["end"], text=text or "")
                )
            except (KeyError, TypeError, ValidationError) as e:
                raise InvalidInputError(f"Malformed {granularity}[{index}]: {e}") from e
        return segments

    def fallback_diarization(self, envelope: dict[str, Any]) -> DiarizationResult:
        """Build fallback diarization from the provider's own speaker turns.

        Returns an empty fallback result when the sidecar is absent.

        Raises:
            InvalidInputError: If a sidecar entry is malformed
        """
        raw_turns = envelope.get("deepgram_speakers") or []
        if not raw_turns:
            logger.warning(
                "No provider speaker data for %s; fallback diarization is empty",
                envelope.get("episode_id", "<unknown>"),
            )

        try:
            segments = [TimeSegment.model_validate(turn) for turn in raw_turns]
        except ValidationError as e:
            raise InvalidInputError(f"Malformed deepgram_speakers entry: {e}") from e

        result = DiarizationResult(segments=segments, source=DiarizationSource.FALLBACK)
        logger.info(
            "Fallback diarization: %d segments, speakers: %s",
            len(segments), ", ".join(result.speaker_labels) or "none",
        )
        return result

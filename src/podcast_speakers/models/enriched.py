"""Enriched transcript segment - the terminal artifact of a run."""

from typing import Optional

from pydantic import ConfigDict, Field

from podcast_speakers.models.base import SpeakerModel
from podcast_speakers.models.segment import DiarizationSource


UNKNOWN_SPEAKER = "Unknown"


class EnrichedSegment(SpeakerModel):
    """A transcript segment with speaker identity attached.

    Field aliases match the persisted format read by downstream consumers:
    {start, end, text, speaker, diar_speaker, speaker_confidence, source}.
    """

    model_config = ConfigDict(frozen=True)

    start: float
    end: float
    text: str
    resolved_speaker_name: str = Field(..., alias="speaker")
    diarization_label: str = Field(..., alias="diar_speaker")
    speaker_confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    provenance: DiarizationSource = Field(..., alias="source")

    @property
    def is_identified(self) -> bool:
        """Whether a registered voice was matched for this segment."""
        return self.speaker_confidence is not None

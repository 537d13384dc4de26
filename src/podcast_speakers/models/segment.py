"""Time segments - diarization turns and transcript utterances."""

from enum import Enum
from typing import Optional

from pydantic import ConfigDict, Field, model_validator

from podcast_speakers.models.base import SpeakerModel


class DiarizationSource(str, Enum):
    """Where a set of speaker segments came from."""
    PRIMARY = "primary"
    FALLBACK = "fallback"


class TimeSegment(SpeakerModel):
    """A diarization turn: one anonymous speaker talking over a time range.

    Produced by the remote diarization call or converted from the
    speech-to-text provider's own speaker tags.
    """

    model_config = ConfigDict(frozen=True)

    start: float = Field(..., ge=0, description="Start time in seconds")
    end: float = Field(..., description="End time in seconds")
    speaker_label: str = Field(
        ..., alias="speaker", min_length=1, description="Diarization label, e.g. SPEAKER_0"
    )

    @model_validator(mode="after")
    def validate_time_range(self) -> "TimeSegment":
        """Ensure end > start."""
        if self.end <= self.start:
            raise ValueError(f"end ({self.end}) must be greater than start ({self.start})")
        return self

    @property
    def duration(self) -> float:
        """Duration of this segment in seconds."""
        return self.end - self.start


class TranscriptSegment(SpeakerModel):
    """An utterance from the speech-to-text transcript.

    The canonical speaker is always unset at this stage; identity is
    attached later by enrichment.
    """

    model_config = ConfigDict(frozen=True)

    start: float = Field(..., ge=0, description="Start time in seconds")
    end: float = Field(..., description="End time in seconds")
    text: str
    speaker: Optional[str] = None

    @model_validator(mode="after")
    def validate_time_range(self) -> "TranscriptSegment":
        """Ensure end > start."""
        if self.end <= self.start:
            raise ValueError(f"end ({self.end}) must be greater than start ({self.start})")
        return self

    @property
    def duration(self) -> float:
        """Duration of this segment in seconds."""
        return self.end - self.start


class DiarizationResult(SpeakerModel):
    """Ordered diarization segments for one episode, tagged with their origin."""

    segments: list[TimeSegment] = Field(default_factory=list)
    source: DiarizationSource = Field(default=DiarizationSource.PRIMARY)

    @property
    def speaker_labels(self) -> list[str]:
        """Distinct labels in order of first appearance."""
        return list(dict.fromkeys(s.speaker_label for s in self.segments))

"""Identification outcomes for speaker clusters."""

from pydantic import ConfigDict, Field

from podcast_speakers.models.base import SpeakerModel


class IdentificationResult(SpeakerModel):
    """One identification call: a clip scored against a single voice reference."""

    model_config = ConfigDict(frozen=True)

    reference_id: str = Field(..., alias="referenceId")
    confidence: float = Field(..., ge=0.0, le=1.0)
    matches: bool = False


class IdentityMatch(SpeakerModel):
    """A cluster resolved to a registered voice with sufficient confidence."""

    model_config = ConfigDict(frozen=True)

    display_name: str = Field(..., alias="displayName")
    confidence: float = Field(..., ge=0.0, le=1.0)
    external_reference_id: str = Field(..., alias="referenceId")


class NearMiss(SpeakerModel):
    """A best match that fell short of its threshold.

    Kept for threshold tuning only; never used to label a speaker.
    """

    model_config = ConfigDict(frozen=True)

    cluster_key: str = Field(..., alias="clusterKey")
    confidence: float = Field(..., ge=0.0, le=1.0)
    threshold: float = Field(..., ge=0.0, le=1.0)
    external_reference_id: str = Field(..., alias="referenceId")

    @property
    def gap(self) -> float:
        """How far below the threshold the match landed."""
        return self.threshold - self.confidence


class ResolutionResult(SpeakerModel):
    """Output of cluster identification for one run."""

    identities: dict[str, IdentityMatch] = Field(default_factory=dict)
    near_misses: list[NearMiss] = Field(default_factory=list, alias="nearMisses")

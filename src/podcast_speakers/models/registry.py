"""Voice registry - known speakers enrolled for a podcast."""

from datetime import datetime
from typing import Any, Optional

from pydantic import ConfigDict, Field

from podcast_speakers.models.base import SpeakerModel


class VoiceReference(SpeakerModel):
    """A known voice that diarization clusters can be identified against.

    Wire format (inside a registry): {displayName, referenceId, threshold},
    keyed by the speaker key.
    """

    model_config = ConfigDict(frozen=True)

    reference_key: str = Field(..., alias="speakerKey", min_length=1)
    display_name: str = Field(..., alias="displayName", min_length=1)
    confidence_threshold: float = Field(..., alias="threshold", ge=0.0, le=1.0)
    external_reference_id: str = Field(..., alias="referenceId", min_length=1)


class SpeakerRegistry(SpeakerModel):
    """The voice references registered for one podcast.

    Iteration order of ``references`` is the registry order used to break
    confidence ties during identification.
    """

    podcast_id: str
    references: dict[str, VoiceReference] = Field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.references)

    @property
    def reference_list(self) -> list[VoiceReference]:
        """References in registry order."""
        return list(self.references.values())

    def get(self, speaker_key: str) -> VoiceReference | None:
        """Get a reference by its speaker key."""
        return self.references.get(speaker_key)

    def with_reference(self, reference: VoiceReference) -> "SpeakerRegistry":
        """Return a copy with ``reference`` added or replaced."""
        references = dict(self.references)
        references[reference.reference_key] = reference
        return SpeakerRegistry(podcast_id=self.podcast_id, references=references)

    @classmethod
    def from_wire(cls, podcast_id: str, entries: dict[str, Any]) -> "SpeakerRegistry":
        """Build a registry from the stored ``{speakerKey: {...}}`` mapping."""
        references = {
            key: VoiceReference.model_validate({**value, "speakerKey": key})
            for key, value in entries.items()
        }
        return cls(podcast_id=podcast_id, references=references)

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the stored ``{podcastId: {speakerKey: {...}}}`` shape."""
        return {
            self.podcast_id: {
                key: ref.model_dump(mode="json", by_alias=True, exclude={"reference_key"})
                for key, ref in self.references.items()
            }
        }


class VoiceprintProfile(SpeakerModel):
    """A stored voiceprint, referenced from the registry by ``referenceId``.

    Written at enrollment under voiceprints/profiles/{referenceId}.json and
    read back by every identification call.
    """

    reference_id: Optional[str] = Field(None, alias="referenceId")
    speaker_name: str = Field(..., alias="speakerName", min_length=1)
    voiceprint: str = Field(..., min_length=1)
    model: Optional[str] = None
    samples: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = Field(None, alias="createdAt")

"""Voice Enrollment - registers a podcast speaker from voice samples.

Responsible for:
- Turning sample locations into URLs the provider can fetch
- Creating the voiceprint remotely
- Storing the voiceprint profile under its reference ID
- Adding the speaker to the podcast's registry
"""

import logging
import re
import time
from datetime import datetime, timezone
from typing import Optional, Protocol

from podcast_speakers.models import VoiceprintProfile, VoiceReference
from podcast_speakers.services.speaker_registry import SpeakerRegistryStore
from podcast_speakers.services.storage import BlobStorage, StorageKeys

logger = logging.getLogger(__name__)


class VoiceprintCreator(Protocol):
    """Remote voiceprint enrollment capability."""

    def create_voiceprint_from_samples(self, sample_urls: list[str], model: str = ...) -> str:
        ...


def generate_reference_id(display_name: str, timestamp_ms: Optional[int] = None) -> str:
    """Reference ID like ``ref_alex_rivera_1718000000000``."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    clean = re.sub(r"[^a-z0-9]", "_", display_name.lower())
    return f"ref_{clean}_{timestamp_ms}"


class VoiceEnrollmentService:
    """Creates voiceprints and registers them for a podcast."""

    def __init__(
        self,
        creator: VoiceprintCreator,
        storage: BlobStorage,
        registry_store: Optional[SpeakerRegistryStore] = None,
        url_expiry: int = 7200,
    ):
        """Initialize the service.

        Args:
            creator: Remote voiceprint enrollment (usually a PyannoteClient)
            storage: Where profiles are written and s3:// samples are signed
            registry_store: Registry persistence (built on ``storage`` if omitted)
            url_expiry: Lifetime in seconds of signed sample URLs
        """
        self.creator = creator
        self.storage = storage
        self.registry_store = registry_store or SpeakerRegistryStore(storage)
        self.url_expiry = url_expiry

    def enroll(
        self,
        podcast_id: str,
        speaker_key: str,
        display_name: str,
        sample_urls: list[str],
        threshold: float = 0.8,
        model: str = "precision-2",
    ) -> VoiceReference:
        """Enroll a speaker and add them to the podcast's registry.

        Samples are ``s3://bucket/key`` locations (signed through storage)
        or URLs the provider can already fetch.

        Returns:
            The registered VoiceReference

        Raises:
            pydantic.ValidationError: If the name, key or threshold is invalid
            ValueError: If no samples are given
            PyannoteError: If voiceprint creation fails
        """
        reference_id = generate_reference_id(display_name)
        reference = VoiceReference(
            reference_key=speaker_key,
            display_name=display_name,
            confidence_threshold=threshold,
            external_reference_id=reference_id,
        )
        if not sample_urls:
            raise ValueError("At least one voice sample is required")

        fetchable = [self._fetchable_url(url) for url in sample_urls]
        voiceprint = self.creator.create_voiceprint_from_samples(fetchable, model)

        profile = VoiceprintProfile(
            reference_id=reference_id,
            speaker_name=display_name,
            voiceprint=voiceprint,
            model=model,
            samples=list(sample_urls),
            created_at=datetime.now(timezone.utc),
        )
        profile_key = StorageKeys.voiceprint(reference_id)
        self.storage.save_json(profile_key, profile.to_dict())
        logger.info("Stored voiceprint profile %s for %s", profile_key, display_name)

        self.registry_store.add_reference(podcast_id, reference)
        return reference

    def _fetchable_url(self, location: str) -> str:
        if location.startswith("s3://"):
            key = re.sub(r"^s3://[^/]+/", "", location)
            return self.storage.get_url(key, self.url_expiry)
        return location

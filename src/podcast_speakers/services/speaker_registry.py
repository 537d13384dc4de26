"""Speaker Registry Store - per-podcast voice references in blob storage.

Stored as JSON under speaker-registry/{podcast_id}.json with the shape
{podcast_id: {speaker_key: {displayName, referenceId, threshold}}}.
"""

import logging

from pydantic import ValidationError

from podcast_speakers.models import SpeakerRegistry, VoiceReference
from podcast_speakers.services.audit_builder import InvalidInputError
from podcast_speakers.services.storage import BlobStorage, StorageKeys

logger = logging.getLogger(__name__)


class SpeakerRegistryStore:
    """Loads and saves speaker registries."""

    def __init__(self, storage: BlobStorage):
        self.storage = storage

    def load(self, podcast_id: str) -> SpeakerRegistry:
        """Load the registry for a podcast.

        A podcast with no stored registry gets an empty one; every cluster
        in its episodes will then fall back to raw diarization labels.

        Raises:
            InvalidInputError: If the stored registry is malformed
        """
        key = StorageKeys.registry(podcast_id)
        if not self.storage.exists(key):
            logger.info("No speaker registry for podcast %s; using empty registry", podcast_id)
            return SpeakerRegistry(podcast_id=podcast_id)

        data = self.storage.load_json(key)
        if not isinstance(data, dict):
            raise InvalidInputError(f"Registry {key} is not a JSON object")

        entries = data.get(podcast_id, {})
        if not isinstance(entries, dict):
            raise InvalidInputError(f"Registry {key}: entry for {podcast_id} is not a JSON object")
        for speaker_key, entry in entries.items():
            if not isinstance(entry, dict):
                raise InvalidInputError(f"Registry {key}: speaker {speaker_key} is not a JSON object")

        try:
            registry = SpeakerRegistry.from_wire(podcast_id, entries)
        except ValidationError as e:
            raise InvalidInputError(f"Registry {key} is malformed: {e}") from e

        logger.info(
            "Loaded registry for %s: %d speakers (%s)",
            podcast_id, len(registry), ", ".join(registry.references),
        )
        return registry

    def save(self, registry: SpeakerRegistry) -> str:
        """Save a registry and return its key."""
        key = StorageKeys.registry(registry.podcast_id)
        self.storage.save_json(key, registry.to_wire())
        logger.info("Saved registry for %s (%d speakers)", registry.podcast_id, len(registry))
        return key

    def add_reference(self, podcast_id: str, reference: VoiceReference) -> SpeakerRegistry:
        """Add or replace one reference in a podcast's registry."""
        registry = self.load(podcast_id)
        existing = registry.get(reference.reference_key)
        if existing is not None:
            logger.info(
                "Replacing %s in %s (was %s)",
                reference.reference_key, podcast_id, existing.external_reference_id,
            )
        registry = registry.with_reference(reference)
        self.save(registry)
        return registry

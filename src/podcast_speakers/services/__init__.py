"""Services for podcast speaker enrichment.

Components:
- ClusterBuilder: Group diarization turns by speaker, pick representatives
- IdentityResolver: Identify clusters against a voice registry
- TranscriptEnricher: Attach identities to transcript segments
- AuditBuilder: Summarize a run for threshold tuning
- PyannoteClient: Remote diarization and identification
- AudioClipExtractor: Cut and upload representative clips
- SpeakerRegistryStore: Per-podcast voice registries
- TranscriptLoader: Read normalized transcript envelopes
- EnrichmentPipeline: Coordinate a full enrichment run
- VoiceEnrollmentService: Enroll speakers from voice samples
"""

from podcast_speakers.services.interval_matcher import best_overlap, overlap
from podcast_speakers.services.cluster_builder import ClusterBuilder, EmptyClusterError
from podcast_speakers.services.identity_resolver import IdentificationCallError, IdentityResolver
from podcast_speakers.services.transcript_enricher import TranscriptEnricher
from podcast_speakers.services.audit_builder import AuditBuilder, InvalidInputError
from podcast_speakers.services.storage import (
    LocalStorage,
    ObjectNotFoundError,
    S3Storage,
    StorageError,
    StorageKeys,
)
from podcast_speakers.services.pyannote_client import PyannoteClient, PyannoteError
from podcast_speakers.services.audio_clips import AudioClipExtractor, ClipExtractionError
from podcast_speakers.services.speaker_registry import SpeakerRegistryStore
from podcast_speakers.services.transcript_loader import TranscriptLoader
from podcast_speakers.services.pipeline import EnrichmentPipeline, build_pyannote_client
from podcast_speakers.services.voice_enrollment import VoiceEnrollmentService, generate_reference_id

__all__ = [
    "overlap",
    "best_overlap",
    "ClusterBuilder",
    "EmptyClusterError",
    "IdentityResolver",
    "IdentificationCallError",
    "TranscriptEnricher",
    "AuditBuilder",
    "InvalidInputError",
    "LocalStorage",
    "S3Storage",
    "StorageKeys",
    "StorageError",
    "ObjectNotFoundError",
    "PyannoteClient",
    "PyannoteError",
    "AudioClipExtractor",
    "ClipExtractionError",
    "SpeakerRegistryStore",
    "TranscriptLoader",
    "EnrichmentPipeline",
    "build_pyannote_client",
    "VoiceEnrollmentService",
    "generate_reference_id",
]

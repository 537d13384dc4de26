"""Data models for podcast speaker enrichment.

All entities use Pydantic for validation and serialization. Attributes are
snake_case; serialized output uses the wire names consumed downstream.
"""

from podcast_speakers.models.base import SpeakerModel
from podcast_speakers.models.segment import (
    DiarizationResult,
    DiarizationSource,
    TimeSegment,
    TranscriptSegment,
)
from podcast_speakers.models.registry import SpeakerRegistry, VoiceprintProfile, VoiceReference
from podcast_speakers.models.identity import (
    IdentificationResult,
    IdentityMatch,
    NearMiss,
    ResolutionResult,
)
from podcast_speakers.models.enriched import EnrichedSegment, UNKNOWN_SPEAKER
from podcast_speakers.models.audit import AuditReport, ClusterSummary

__all__ = [
    # Base
    "SpeakerModel",
    # Segments
    "DiarizationResult",
    "DiarizationSource",
    "TimeSegment",
    "TranscriptSegment",
    # Registry
    "SpeakerRegistry",
    "VoiceReference",
    "VoiceprintProfile",
    # Identification
    "IdentificationResult",
    "IdentityMatch",
    "NearMiss",
    "ResolutionResult",
    # Enrichment
    "EnrichedSegment",
    "UNKNOWN_SPEAKER",
    # Audit
    "AuditReport",
    "ClusterSummary",
]

"""Audit artifacts for offline threshold tuning."""

from typing import Optional

from pydantic import Field

from podcast_speakers.models.base import SpeakerModel
from podcast_speakers.models.identity import NearMiss
from podcast_speakers.models.segment import DiarizationSource


class ClusterSummary(SpeakerModel):
    """Per-cluster statistics and the identity it was mapped to."""

    speaker_key: str = Field(..., alias="speakerKey")
    total_duration: float = Field(..., ge=0, alias="duration")
    segment_count: int = Field(..., ge=1, alias="segmentsCount")
    mapped_display_name: Optional[str] = Field(None, alias="mappedTo")
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)

    @property
    def is_mapped(self) -> bool:
        """Whether this cluster resolved to a registered voice."""
        return self.mapped_display_name is not None


class AuditReport(SpeakerModel):
    """Debuggable summary of one enrichment run."""

    clusters: list[ClusterSummary] = Field(default_factory=list)
    total_diarization_segment_count: int = Field(..., ge=0, alias="totalSegments")
    source: DiarizationSource = Field(default=DiarizationSource.PRIMARY)
    near_misses: list[NearMiss] = Field(default_factory=list, alias="nearMisses")

    @property
    def mapped_clusters(self) -> list[ClusterSummary]:
        """Clusters that resolved to a registered voice."""
        return [c for c in self.clusters if c.is_mapped]

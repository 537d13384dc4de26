"""Audit Builder - per-run summary for threshold tuning and debugging."""

import logging
from typing import Union

from podcast_speakers.models import (
    AuditReport,
    ClusterSummary,
    DiarizationSource,
    IdentityMatch,
    NearMiss,
    TimeSegment,
)
from podcast_speakers.services.cluster_builder import total_duration

logger = logging.getLogger(__name__)


class InvalidInputError(ValueError):
    """Inputs reference each other inconsistently or fail validation."""

    pass


class AuditBuilder:
    """Aggregates clusters, identities and near-misses into an AuditReport."""

    def build(
        self,
        clusters: dict[str, list[TimeSegment]],
        identities: dict[str, IdentityMatch],
        near_misses: list[NearMiss],
        total_segment_count: int,
        source: Union[DiarizationSource, str] = DiarizationSource.PRIMARY,
    ) -> AuditReport:
        """Build the audit report for one run.

        Args:
            clusters: Speaker label -> diarization segments
            identities: Speaker label -> resolved identity
            near_misses: Near-misses recorded during identification
            total_segment_count: Number of diarization segments in the run
            source: Origin of the diarization

        Returns:
            AuditReport with one summary per cluster, in cluster order

        Raises:
            InvalidInputError: If an identity names a cluster that does not exist
        """
        orphans = [key for key in identities if key not in clusters]
        if orphans:
            raise InvalidInputError(
                f"Identities reference unknown clusters: {', '.join(sorted(orphans))}"
            )

        summaries = []
        for key, segments in clusters.items():
            if not segments:
                raise InvalidInputError(f"Cluster {key} has no segments")
            identity = identities.get(key)
            summaries.append(
                ClusterSummary(
                    speaker_key=key,
                    total_duration=total_duration(segments),
                    segment_count=len(segments),
                    mapped_display_name=identity.display_name if identity else None,
                    confidence=identity.confidence if identity else None,
                )
            )

        report = AuditReport(
            clusters=summaries,
            total_diarization_segment_count=total_segment_count,
            source=DiarizationSource(source),
            near_misses=list(near_misses),
        )
        logger.info(
            "Audit: %d clusters (%d mapped), %d near-misses, %d segments",
            len(summaries), len(report.mapped_clusters), len(near_misses), total_segment_count,
        )
        return report

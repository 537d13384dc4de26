"""Cluster Builder - groups diarization turns into per-speaker clusters.

Responsible for:
- Partitioning diarization segments by their anonymous speaker label
- Choosing one representative segment per cluster to send for identification
"""

import logging

from podcast_speakers.models import TimeSegment

logger = logging.getLogger(__name__)


class EmptyClusterError(ValueError):
    """Representative selection was asked for a cluster with no segments."""

    pass


class ClusterBuilder:
    """Builds speaker clusters from a flat diarization segment list."""

    def group(self, segments: list[TimeSegment]) -> dict[str, list[TimeSegment]]:
        """Partition segments by speaker label.

        Relative order is preserved within each cluster and clusters are
        keyed in order of first appearance. Never produces an empty cluster.

        Args:
            segments: Diarization segments in timeline order

        Returns:
            Mapping of speaker label to that label's segments
        """
        clusters: dict[str, list[TimeSegment]] = {}
        for segment in segments:
            clusters.setdefault(segment.speaker_label, []).append(segment)

        logger.info(
            "Grouped %d segments into %d clusters: %s",
            len(segments),
            len(clusters),
            ", ".join(
                f"{label}={len(segs)} ({total_duration(segs):.1f}s)"
                for label, segs in clusters.items()
            ),
        )
        return clusters

    def select_representative(self, cluster: list[TimeSegment]) -> TimeSegment:
        """Pick the segment to identify on behalf of the whole cluster.

        Segments are sorted by duration, longest first, and the one at the
        middle index (len // 2) is taken. Equal durations keep their
        original relative order.

        Raises:
            EmptyClusterError: If the cluster has no segments
        """
        if not cluster:
            raise EmptyClusterError("Cannot select representative from empty segment list")

        by_duration = sorted(cluster, key=lambda s: s.duration, reverse=True)
        representative = by_duration[len(by_duration) // 2]

        logger.debug(
            "Representative for %s: %.2f-%.2f (%.2fs of %d segments)",
            representative.speaker_label,
            representative.start,
            representative.end,
            representative.duration,
            len(cluster),
        )
        return representative


def total_duration(segments: list[TimeSegment]) -> float:
    """Sum of segment durations in seconds."""
    return sum(s.duration for s in segments)

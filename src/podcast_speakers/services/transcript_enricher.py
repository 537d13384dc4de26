"""Transcript Enricher - attaches resolved speakers to transcript segments.

Each transcript segment is aligned to the diarization turn it overlaps
most (intersection-over-union), then labelled with the identity resolved
for that turn's cluster, or with the raw diarization label when the
cluster was not identified.
"""

import logging
from typing import Union

from podcast_speakers.models import (
    DiarizationSource,
    EnrichedSegment,
    IdentityMatch,
    TimeSegment,
    TranscriptSegment,
    UNKNOWN_SPEAKER,
)
from podcast_speakers.services.interval_matcher import best_overlap

logger = logging.getLogger(__name__)


class TranscriptEnricher:
    """Merges cluster-level identities back onto every transcript segment."""

    def enrich(
        self,
        transcript: list[TranscriptSegment],
        diarization: list[TimeSegment],
        identities: dict[str, IdentityMatch],
        diarization_source: Union[DiarizationSource, str] = DiarizationSource.PRIMARY,
    ) -> list[EnrichedSegment]:
        """Produce one enriched segment per transcript segment, in order.

        A naive scan over all diarization turns per segment; both lists are
        bounded by episode length.

        Args:
            transcript: Transcript segments to label
            diarization: Diarization turns, in the order they were produced
            identities: Cluster label -> resolved identity
            diarization_source: Origin of ``diarization``; applied to matched segments

        Returns:
            Enriched segments, same length and order as ``transcript``
        """
        source = DiarizationSource(diarization_source)
        enriched = [
            self._enrich_segment(segment, diarization, identities, source)
            for segment in transcript
        ]

        identified = sum(1 for s in enriched if s.is_identified)
        unmatched = sum(1 for s in enriched if s.diarization_label == UNKNOWN_SPEAKER)
        logger.info(
            "Enriched %d segments against %d diarization turns: %d identified, %d unmatched",
            len(enriched), len(diarization), identified, unmatched,
        )
        return enriched

    def _enrich_segment(
        self,
        segment: TranscriptSegment,
        diarization: list[TimeSegment],
        identities: dict[str, IdentityMatch],
        source: DiarizationSource,
    ) -> EnrichedSegment:
        """Label a single transcript segment."""
        matched, _ = best_overlap(segment, diarization)

        if matched is None:
            return EnrichedSegment(
                start=segment.start,
                end=segment.end,
                text=segment.text,
                resolved_speaker_name=UNKNOWN_SPEAKER,
                diarization_label=UNKNOWN_SPEAKER,
                speaker_confidence=None,
                provenance=DiarizationSource.FALLBACK,
            )

        label = matched.speaker_label
        identity = identities.get(label)

        return EnrichedSegment(
            start=segment.start,
            end=segment.end,
            text=segment.text,
            resolved_speaker_name=identity.display_name if identity else label,
            diarization_label=label,
            speaker_confidence=identity.confidence if identity else None,
            provenance=source,
        )

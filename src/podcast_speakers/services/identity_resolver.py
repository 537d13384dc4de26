"""Identity Resolver - maps anonymous speaker clusters to registered voices.

Responsible for:
- Deriving one audio clip per cluster from its representative segment
- Scoring that clip against every voice reference in the podcast's registry
- Keeping the best-scoring reference and gating it on its own threshold
- Recording near-misses for offline threshold tuning

Identification calls are independent, so they are fanned out over a
bounded thread pool. Each cluster is decided only once all of its own
calls have finished.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional, Sequence, Union

from podcast_speakers.models import (
    IdentificationResult,
    IdentityMatch,
    NearMiss,
    ResolutionResult,
    SpeakerRegistry,
    TimeSegment,
    VoiceReference,
)
from podcast_speakers.services.cluster_builder import ClusterBuilder

logger = logging.getLogger(__name__)


# (clip reference, voice reference) -> identification result
IdentifyFn = Callable[[str, VoiceReference], IdentificationResult]
# representative segment -> clip reference the identify call can fetch
ClipProvider = Callable[[TimeSegment], str]


class IdentificationCallError(Exception):
    """A single identification call failed for one cluster/reference pair."""

    def __init__(self, cluster_key: str, reference: VoiceReference, cause: BaseException):
        self.cluster_key = cluster_key
        self.reference = reference
        self.cause = cause
        super().__init__(
            f"Identification failed for cluster {cluster_key} "
            f"against {reference.external_reference_id}: {cause}"
        )


class IdentityResolver:
    """Resolves speaker clusters to voice references with threshold gating."""

    def __init__(
        self,
        identify: IdentifyFn,
        clip_provider: ClipProvider,
        cluster_builder: Optional[ClusterBuilder] = None,
        max_workers: int = 4,
    ):
        """Initialize the resolver.

        Args:
            identify: Scores a clip against one voice reference
            clip_provider: Turns a representative segment into a clip reference
            cluster_builder: Used for representative selection
            max_workers: Upper bound on concurrent identification calls
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.identify = identify
        self.clip_provider = clip_provider
        self.cluster_builder = cluster_builder or ClusterBuilder()
        self.max_workers = max_workers

    def resolve(
        self,
        clusters: dict[str, list[TimeSegment]],
        registry: Union[SpeakerRegistry, Sequence[VoiceReference]],
    ) -> ResolutionResult:
        """Identify every cluster against the registry.

        Decision per cluster:
        - best confidence >= the best reference's threshold: IdentityMatch
        - a best reference exists but falls short: NearMiss
        - every call failed (or none scored above zero): neither

        Args:
            clusters: Speaker label -> diarization segments
            registry: Voice references, in tie-break order

        Returns:
            ResolutionResult with identities and near-misses
        """
        references = (
            registry.reference_list if isinstance(registry, SpeakerRegistry) else list(registry)
        )
        result = ResolutionResult()

        if not clusters:
            return result
        if not references:
            logger.info("Registry is empty; %d clusters left unidentified", len(clusters))
            return result

        workers = min(self.max_workers, len(clusters) * len(references))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            pending: dict[str, list[Future]] = {}
            for cluster_key, segments in clusters.items():
                representative = self.cluster_builder.select_representative(segments)
                try:
                    clip = self.clip_provider(representative)
                except Exception as e:
                    logger.warning(
                        "Could not derive clip for cluster %s (%.2f-%.2f): %s",
                        cluster_key, representative.start, representative.end, e,
                    )
                    continue

                pending[cluster_key] = [
                    executor.submit(self._identify_one, cluster_key, clip, reference)
                    for reference in references
                ]

            for cluster_key, futures in pending.items():
                self._decide(cluster_key, references, futures, result)

        logger.info(
            "Identification complete: %d identified, %d near-misses, %d clusters",
            len(result.identities),
            len(result.near_misses),
            len(clusters),
        )
        return result

    def _identify_one(
        self,
        cluster_key: str,
        clip: str,
        reference: VoiceReference,
    ) -> IdentificationResult:
        """Run one identification call, normalizing any failure."""
        try:
            return self.identify(clip, reference)
        except Exception as e:
            raise IdentificationCallError(cluster_key, reference, e) from e

    def _decide(
        self,
        cluster_key: str,
        references: list[VoiceReference],
        futures: list[Future],
        result: ResolutionResult,
    ) -> None:
        """Wait for one cluster's calls and record its outcome.

        Futures are read in registry order, and a reference only replaces the
        current best with a strictly higher confidence, so the earlier
        reference wins ties.
        """
        best: Optional[VoiceReference] = None
        best_confidence = 0.0

        for reference, future in zip(references, futures):
            try:
                outcome: IdentificationResult = future.result()
            except IdentificationCallError as e:
                logger.warning("%s; skipping reference", e)
                continue

            logger.debug(
                "Cluster %s vs %s: confidence=%.3f matches=%s",
                cluster_key, reference.external_reference_id,
                outcome.confidence, outcome.matches,
            )
            if outcome.confidence > best_confidence:
                best_confidence = outcome.confidence
                best = reference

        if best is None:
            logger.info("Cluster %s: no usable identification result", cluster_key)
            return

        if best_confidence >= best.confidence_threshold:
            result.identities[cluster_key] = IdentityMatch(
                display_name=best.display_name,
                confidence=best_confidence,
                external_reference_id=best.external_reference_id,
            )
            logger.info(
                "Cluster %s identified as %s (confidence %.3f, threshold %.3f)",
                cluster_key, best.display_name, best_confidence, best.confidence_threshold,
            )
        else:
            result.near_misses.append(
                NearMiss(
                    cluster_key=cluster_key,
                    confidence=best_confidence,
                    threshold=best.confidence_threshold,
                    external_reference_id=best.external_reference_id,
                )
            )
            logger.info(
                "Cluster %s near-miss: %s confidence %.3f below threshold %.3f",
                cluster_key, best.external_reference_id, best_confidence, best.confidence_threshold,
            )

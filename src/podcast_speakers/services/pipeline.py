"""Enrichment Pipeline - sequences one episode's speaker enrichment run.

Responsible for:
- Loading the podcast's speaker registry and the episode transcript
- Diarizing remotely, falling back to the transcript's own speaker turns
- Clustering, identifying, enriching and auditing
- Persisting the diarization, enriched transcript and audit artifacts
- Progress callbacks for CLI display

Retries and scheduling belong to whatever runs the pipeline; a run either
saves all of its artifacts or reports the stage that failed.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

import httpx

from podcast_speakers.config import Settings, StorageBackend, get_settings
from podcast_speakers.models import DiarizationResult, DiarizationSource
from podcast_speakers.services.audio_clips import AudioClipExtractor
from podcast_speakers.services.audit_builder import AuditBuilder
from podcast_speakers.services.cluster_builder import ClusterBuilder
from podcast_speakers.services.identity_resolver import (
    ClipProvider,
    IdentifyFn,
    IdentityResolver,
)
from podcast_speakers.services.pyannote_client import PyannoteClient, PyannoteError
from podcast_speakers.services.speaker_registry import SpeakerRegistryStore
from podcast_speakers.services.storage import (
    BlobStorage,
    LocalStorage,
    S3Storage,
    StorageKeys,
)
from podcast_speakers.services.transcript_enricher import TranscriptEnricher
from podcast_speakers.services.transcript_loader import TranscriptLoader

logger = logging.getLogger(__name__)


class Diarizer(Protocol):
    """Remote diarization capability."""

    def diarize(
        self,
        audio_url: str,
        max_speakers: int = 3,
        min_duration: Optional[float] = None,
        allow_overlap: Optional[bool] = None,
    ) -> DiarizationResult:
        ...


@dataclass
class EnrichmentOptions:
    """Options for one enrichment run."""

    transcript_key: Optional[str] = None
    granularity: str = "utterances"
    max_speakers: int = 3
    min_duration: Optional[float] = None
    allow_overlap: Optional[bool] = None
    skip_diarization: bool = False
    reuse_diarization: bool = False
    max_identify_workers: int = 4


@dataclass
class EnrichmentResult:
    """Result of enriching one episode."""

    success: bool
    episode_id: str
    duration_seconds: float
    stages_completed: list[str]
    errors: list[str]
    diarization_source: Optional[str] = None
    enriched_key: Optional[str] = None
    audit_key: Optional[str] = None
    metrics: dict = field(default_factory=dict)


class ProgressCallbacks(Protocol):
    """Protocol for progress callbacks."""

    def on_stage_start(self, stage_name: str) -> None:
        """Called when a stage begins."""
        ...

    def on_stage_complete(self, stage_name: str, duration: float) -> None:
        """Called when a stage completes successfully."""
        ...

    def on_error(self, stage_name: str, error: Exception) -> None:
        """Called when a stage encounters an error."""
        ...


@dataclass
class DefaultProgressCallbacks:
    """Default no-op progress callbacks."""

    def on_stage_start(self, stage_name: str) -> None:
        pass

    def on_stage_complete(self, stage_name: str, duration: float) -> None:
        pass

    def on_error(self, stage_name: str, error: Exception) -> None:
        pass


class EnrichmentPipeline:
    """Runs diarization, identification and enrichment for one episode.

    Stages:
    - load_registry: per-podcast voice references
    - load_transcript: normalized speech-to-text envelope
    - diarize: remote diarization, or fallback to transcript speaker turns
    - cluster: group diarization turns by speaker label
    - identify: resolve clusters against the registry
    - enrich: attach identities to transcript segments
    - audit: cluster summary and near-misses
    - save: persist enriched transcript and audit report
    """

    STAGES = [
        "load_registry",
        "load_transcript",
        "diarize",
        "cluster",
        "identify",
        "enrich",
        "audit",
        "save",
    ]

    def __init__(
        self,
        storage: BlobStorage,
        diarizer: Optional[Diarizer] = None,
        identify: Optional[IdentifyFn] = None,
        clip_provider_factory: Optional[Callable[[str], ClipProvider]] = None,
        cluster_builder: Optional[ClusterBuilder] = None,
        enricher: Optional[TranscriptEnricher] = None,
        audit_builder: Optional[AuditBuilder] = None,
    ):
        """Initialize the pipeline with its collaborators.

        Args:
            storage: Blob storage for inputs and artifacts
            diarizer: Remote diarization; without one, runs use fallback diarization
            identify: Identification call; defaults to ``diarizer.identify`` when present
            clip_provider_factory: Builds a clip provider for an episode's audio URL
            cluster_builder: Cluster grouping and representative selection
            enricher: Transcript enrichment
            audit_builder: Audit report construction
        """
        self.storage = storage
        self.diarizer = diarizer
        if identify is None and diarizer is not None:
            identify = getattr(diarizer, "identify", None)
        self.identify = identify
        self.clip_provider_factory = clip_provider_factory or (
            lambda audio_url: AudioClipExtractor(storage, audio_url)
        )
        self.cluster_builder = cluster_builder or ClusterBuilder()
        self.enricher = enricher or TranscriptEnricher()
        self.audit_builder = audit_builder or AuditBuilder()
        self.registry_store = SpeakerRegistryStore(storage)
        self.transcript_loader = TranscriptLoader(storage)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "EnrichmentPipeline":
        """Build a pipeline wired from runtime settings."""
        settings = settings or get_settings()
        storage = build_storage(settings)

        diarizer = None
        if settings.pyannote_api_key:
            diarizer = build_pyannote_client(settings, storage)
        else:
            logger.warning("PYANNOTE_API_KEY not set; runs will use fallback diarization only")

        return cls(storage, diarizer=diarizer)

    def close(self) -> None:
        """Release the diarizer's connections, if it holds any."""
        close = getattr(self.diarizer, "close", None)
        if close is not None:
            close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
        return False

    def process(
        self,
        episode_id: str,
        podcast_id: str,
        audio_url: str,
        options: Optional[EnrichmentOptions] = None,
        callbacks: Optional[ProgressCallbacks] = None,
    ) -> EnrichmentResult:
        """Enrich one episode's transcript with speaker identities.

        Args:
            episode_id: Episode to process
            podcast_id: Podcast whose registry to identify against
            audio_url: Fetchable URL of the episode audio
            options: Run options
            callbacks: Progress callbacks for CLI display

        Returns:
            EnrichmentResult with artifact keys and metrics
        """
        options = options or EnrichmentOptions()
        callbacks = callbacks or DefaultProgressCallbacks()
        run_start = time.time()
        completed: list[str] = []
        errors: list[str] = []

        if not episode_id or not podcast_id or not audio_url:
            return EnrichmentResult(
                success=False,
                episode_id=episode_id,
                duration_seconds=0,
                stages_completed=[],
                errors=["episode_id, podcast_id and audio_url are required"],
            )

        logger.info("Enriching episode %s (podcast %s)", episode_id, podcast_id)
        stage = self.STAGES[0]

        try:
            stage = "load_registry"
            stage_start = self._begin(stage, callbacks)
            registry = self.registry_store.load(podcast_id)
            self._end(stage, stage_start, callbacks, completed)

            stage = "load_transcript"
            stage_start = self._begin(stage, callbacks)
            envelope = self.transcript_loader.load_envelope(episode_id, options.transcript_key)
            transcript = self.transcript_loader.segments(envelope, options.granularity)
            self._end(stage, stage_start, callbacks, completed)

            stage = "diarize"
            stage_start = self._begin(stage, callbacks)
            diarization = self._diarize(episode_id, audio_url, envelope, options)
            self._end(stage, stage_start, callbacks, completed)

            stage = "cluster"
            stage_start = self._begin(stage, callbacks)
            clusters = self.cluster_builder.group(diarization.segments)
            self._end(stage, stage_start, callbacks, completed)

            stage = "identify"
            stage_start = self._begin(stage, callbacks)
            if self.identify is not None and len(registry) > 0:
                resolver = IdentityResolver(
                    identify=self.identify,
                    clip_provider=self.clip_provider_factory(audio_url),
                    cluster_builder=self.cluster_builder,
                    max_workers=options.max_identify_workers,
                )
                resolution = resolver.resolve(clusters, registry)
                identities, near_misses = resolution.identities, resolution.near_misses
            else:
                logger.info("Skipping identification (no identify capability or empty registry)")
                identities, near_misses = {}, []
            self._end(stage, stage_start, callbacks, completed)

            stage = "enrich"
            stage_start = self._begin(stage, callbacks)
            enriched = self.enricher.enrich(
                transcript, diarization.segments, identities, diarization.source
            )
            self._end(stage, stage_start, callbacks, completed)

            stage = "audit"
            stage_start = self._begin(stage, callbacks)
            audit = self.audit_builder.build(
                clusters, identities, near_misses, len(diarization.segments), diarization.source
            )
            self._end(stage, stage_start, callbacks, completed)

            stage = "save"
            stage_start = self._begin(stage, callbacks)
            enriched_key = StorageKeys.enriched_transcript(episode_id)
            audit_key = StorageKeys.audit(episode_id)
            self.storage.save_json(enriched_key, [s.to_dict() for s in enriched])
            self.storage.save_json(audit_key, audit.to_dict())
            self._end(stage, stage_start, callbacks, completed)

        except Exception as e:
            logger.error("Enrichment of %s failed during %s: %s", episode_id, stage, e)
            callbacks.on_error(stage, e)
            errors.append(f"{stage}: {e}")
            return EnrichmentResult(
                success=False,
                episode_id=episode_id,
                duration_seconds=time.time() - run_start,
                stages_completed=completed,
                errors=errors,
            )

        result = EnrichmentResult(
            success=True,
            episode_id=episode_id,
            duration_seconds=time.time() - run_start,
            stages_completed=completed,
            errors=errors,
            diarization_source=DiarizationSource(diarization.source).value,
            enriched_key=enriched_key,
            audit_key=audit_key,
            metrics={
                "registry_speakers": len(registry),
                "transcript_segments": len(transcript),
                "diarization_segments": len(diarization.segments),
                "clusters": len(clusters),
                "identified_speakers": len(identities),
                "near_misses": len(near_misses),
                "enriched_segments": len(enriched),
                "identified_segments": sum(1 for s in enriched if s.is_identified),
            },
        )
        logger.info(
            "Enriched %s in %.1fs: source=%s, %d/%d speakers identified, %d near-misses",
            episode_id, result.duration_seconds, result.diarization_source,
            len(identities), len(clusters), len(near_misses),
        )
        return result

    def _diarize(
        self,
        episode_id: str,
        audio_url: str,
        envelope: dict[str, Any],
        options: EnrichmentOptions,
    ) -> DiarizationResult:
        """Get diarization for the episode and persist it.

        Order of preference: a previously saved result (when reuse is asked
        for), the remote provider, then the transcript's own speaker turns.
        """
        key = StorageKeys.diarization(episode_id)

        if options.reuse_diarization and self.storage.exists(key):
            saved = DiarizationResult.from_dict(self.storage.load_json(key))
            logger.info("Reusing saved diarization %s (%d segments)", key, len(saved.segments))
            return saved

        diarization: Optional[DiarizationResult] = None
        if self.diarizer is not None and not options.skip_diarization:
            try:
                diarization = self.diarizer.diarize(
                    audio_url,
                    max_speakers=options.max_speakers,
                    min_duration=options.min_duration,
                    allow_overlap=options.allow_overlap,
                )
            except (PyannoteError, httpx.HTTPError) as e:
                logger.warning("Diarization failed for %s, falling back: %s", episode_id, e)

        if diarization is None:
            diarization = self.transcript_loader.fallback_diarization(envelope)

        self.storage.save_json(key, diarization.to_dict())
        return diarization

    def _begin(self, stage: str, callbacks: ProgressCallbacks) -> float:
        callbacks.on_stage_start(stage)
        return time.time()

    def _end(
        self,
        stage: str,
        stage_start: float,
        callbacks: ProgressCallbacks,
        completed: list[str],
    ) -> None:
        callbacks.on_stage_complete(stage, time.time() - stage_start)
        completed.append(stage)


def build_storage(settings: Settings) -> BlobStorage:
    """Create the configured storage backend."""
    if settings.storage_backend == StorageBackend.S3:
        if not settings.s3_bucket:
            raise ValueError("S3_BUCKET_NAME is required for S3 storage")
        return S3Storage(settings.s3_bucket, settings.s3_region)
    return LocalStorage(settings.data_dir)


def build_pyannote_client(settings: Settings, storage: BlobStorage) -> PyannoteClient:
    """Create a provider client from settings.

    Raises:
        ValueError: If PYANNOTE_API_KEY is not set
    """
    if not settings.pyannote_api_key:
        raise ValueError("PYANNOTE_API_KEY is required")
    return PyannoteClient(
        api_key=settings.pyannote_api_key,
        storage=storage,
        base_url=settings.pyannote_api_base,
        match_cutoff=settings.pyannote_match_cutoff,
        poll_interval=settings.pyannote_poll_interval,
        identify_timeout=settings.pyannote_identify_timeout,
        voiceprint_timeout=settings.pyannote_voiceprint_timeout,
    )

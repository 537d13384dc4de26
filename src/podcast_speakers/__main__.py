"""CLI Runner for podcast speaker enrichment.

Usage:
    podcast-speakers enrich <episode_id> --podcast <id> --audio-url <url>
    podcast-speakers registry list <podcast_id>
    podcast-speakers registry add <podcast_id> <speaker_key> --name "Alex" --reference-id ref_1
    podcast-speakers registry enroll <podcast_id> <speaker_key> --name "Alex" --sample-url s3://bucket/alex.wav
    podcast-speakers audit show <episode_id>
"""

import logging
import sys
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from podcast_speakers import __version__

console = Console()


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """Podcast speaker enrichment.

    Attach speaker identities to diarized podcast transcripts.
    """
    from podcast_speakers.config import get_settings

    level = logging.DEBUG if verbose else getattr(logging, get_settings().log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ============================================================================
# Enrichment
# ============================================================================


@cli.command("enrich")
@click.argument("episode_id")
@click.option("--podcast", "-p", "podcast_id", required=True, help="Podcast ID (selects the registry)")
@click.option("--audio-url", "-a", required=True, help="Fetchable URL of the episode audio")
@click.option("--transcript-key", default=None, help="Storage key of the transcript envelope")
@click.option("--granularity", default="utterances", type=click.Choice(["utterances", "words"]))
@click.option("--max-speakers", default=None, type=int, help="Upper bound on distinct speakers")
@click.option("--fallback-only", is_flag=True, help="Skip remote diarization")
@click.option("--reuse-diarization", is_flag=True, help="Reuse a previously saved diarization")
def enrich_episode(episode_id: str, podcast_id: str, audio_url: str, transcript_key: Optional[str],
                   granularity: str, max_speakers: Optional[int], fallback_only: bool,
                   reuse_diarization: bool):
    """Diarize, identify and enrich one episode's transcript."""
    from podcast_speakers.config import get_settings
    from podcast_speakers.services.pipeline import EnrichmentOptions, EnrichmentPipeline

    settings = get_settings()
    try:
        pipeline = EnrichmentPipeline.from_settings(settings)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    options = EnrichmentOptions(
        transcript_key=transcript_key,
        granularity=granularity,
        max_speakers=max_speakers or settings.pyannote_max_speakers,
        skip_diarization=fallback_only,
        reuse_diarization=reuse_diarization,
        max_identify_workers=settings.identify_workers,
    )

    with pipeline, Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Enriching episode...", total=None)

        class Callbacks:
            def on_stage_start(self, stage_name: str) -> None:
                progress.update(task, description=f"{stage_name}...")

            def on_stage_complete(self, stage_name: str, duration: float) -> None:
                progress.console.print(f"  [green]done[/green] {stage_name} ({duration:.1f}s)")

            def on_error(self, stage_name: str, error: Exception) -> None:
                progress.console.print(f"  [red]failed[/red] {stage_name}: {escape(str(error))}")

        result = pipeline.process(episode_id, podcast_id, audio_url, options, Callbacks())

    if not result.success:
        console.print("\n[red]Enrichment failed![/red]")
        for error in result.errors:
            console.print(f"  - {escape(error)}")
        sys.exit(1)

    metrics = result.metrics
    console.print("\n[green]Enrichment complete![/green]")
    console.print(f"  Duration: {result.duration_seconds:.1f}s")
    console.print(f"  Diarization source: {result.diarization_source}")
    console.print(f"  Speakers identified: {metrics['identified_speakers']}/{metrics['clusters']}")
    console.print(f"  Near-misses: {metrics['near_misses']}")
    console.print(
        f"  Segments identified: {metrics['identified_segments']}/{metrics['enriched_segments']}"
    )
    console.print(f"  Enriched transcript: {result.enriched_key}")
    console.print(f"  Audit report: {result.audit_key}")


# ============================================================================
# Registry Commands
# ============================================================================


@cli.group()
def registry():
    """Speaker registry commands."""
    pass


@registry.command("list")
@click.argument("podcast_id")
def list_registry(podcast_id: str):
    """List the voice references registered for a podcast."""
    from podcast_speakers.config import get_settings
    from podcast_speakers.services.pipeline import build_storage
    from podcast_speakers.utils import format_score
    from podcast_speakers.services.speaker_registry import SpeakerRegistryStore

    store = SpeakerRegistryStore(build_storage(get_settings()))
    speakers = store.load(podcast_id)

    if len(speakers) == 0:
        console.print(f"No speakers registered for {podcast_id}.")
        return

    table = Table(title=f"Speaker Registry: {podcast_id}")
    table.add_column("Key", style="cyan")
    table.add_column("Name")
    table.add_column("Reference ID")
    table.add_column("Threshold", justify="right")

    for ref in speakers.reference_list:
        table.add_row(
            ref.reference_key,
            ref.display_name,
            ref.external_reference_id,
            format_score(ref.confidence_threshold),
        )

    console.print(table)


@registry.command("add")
@click.argument("podcast_id")
@click.argument("speaker_key")
@click.option("--name", "-n", required=True, help="Display name")
@click.option("--reference-id", "-r", required=True, help="Voiceprint reference ID")
@click.option("--threshold", "-t", default=0.8, type=float, help="Minimum confidence to accept a match")
def add_reference(podcast_id: str, speaker_key: str, name: str, reference_id: str, threshold: float):
    """Register a voice reference for a podcast."""
    from pydantic import ValidationError

    from podcast_speakers.config import get_settings
    from podcast_speakers.models import VoiceReference
    from podcast_speakers.services.pipeline import build_storage
    from podcast_speakers.services.speaker_registry import SpeakerRegistryStore

    try:
        reference = VoiceReference(
            reference_key=speaker_key,
            display_name=name,
            confidence_threshold=threshold,
            external_reference_id=reference_id,
        )
    except ValidationError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    store = SpeakerRegistryStore(build_storage(get_settings()))
    speakers = store.add_reference(podcast_id, reference)

    console.print(f"[green]Registered:[/green] {speaker_key} -> {name}")
    console.print(f"  Reference ID: {reference_id}")
    console.print(f"  Threshold: {threshold:.2f}")
    console.print(f"  Registry size: {len(speakers)}")


@registry.command("enroll")
@click.argument("podcast_id")
@click.argument("speaker_key")
@click.option("--name", "-n", required=True, help="Display name")
@click.option("--sample-url", "-s", "sample_urls", multiple=True, required=True,
              help="Voice sample (s3://bucket/key or fetchable URL); repeatable")
@click.option("--threshold", "-t", default=0.8, type=float, help="Minimum confidence to accept a match")
@click.option("--model", default=None, help="Voiceprint model (defaults to PYANNOTE_VOICEPRINT_MODEL)")
def enroll_speaker(podcast_id: str, speaker_key: str, name: str, sample_urls: tuple[str, ...],
                   threshold: float, model: Optional[str]):
    """Create a voiceprint from samples and register it for a podcast."""
    from pydantic import ValidationError

    from podcast_speakers.config import get_settings
    from podcast_speakers.services.pipeline import build_pyannote_client, build_storage
    from podcast_speakers.services.pyannote_client import PyannoteError
    from podcast_speakers.services.storage import StorageKeys
    from podcast_speakers.services.voice_enrollment import VoiceEnrollmentService

    settings = get_settings()
    storage = build_storage(settings)
    try:
        client = build_pyannote_client(settings, storage)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    with client:
        service = VoiceEnrollmentService(client, storage)
        with console.status(f"Enrolling {name}..."):
            try:
                reference = service.enroll(
                    podcast_id,
                    speaker_key,
                    name,
                    list(sample_urls),
                    threshold=threshold,
                    model=model or settings.pyannote_voiceprint_model,
                )
            except (ValidationError, ValueError, PyannoteError) as e:
                console.print(f"[red]Enrollment failed:[/red] {escape(str(e))}")
                sys.exit(1)

    console.print(f"[green]Enrolled:[/green] {speaker_key} -> {name}")
    console.print(f"  Reference ID: {reference.external_reference_id}")
    console.print(f"  Profile: {StorageKeys.voiceprint(reference.external_reference_id)}")
    console.print(f"  Samples: {len(sample_urls)}")


# ============================================================================
# Audit Commands
# ============================================================================


@cli.group()
def audit():
    """Audit artifact commands."""
    pass


@audit.command("show")
@click.argument("episode_id")
def show_audit(episode_id: str):
    """Show cluster mapping and near-misses for an enriched episode."""
    from podcast_speakers.config import get_settings
    from podcast_speakers.models import AuditReport
    from podcast_speakers.services.pipeline import build_storage
    from podcast_speakers.services.storage import ObjectNotFoundError, StorageKeys
    from podcast_speakers.utils import format_clock, format_score

    storage = build_storage(get_settings())
    try:
        report = AuditReport.from_dict(storage.load_json(StorageKeys.audit(episode_id)))
    except ObjectNotFoundError:
        console.print(f"[red]No audit report for episode:[/red] {episode_id}")
        sys.exit(1)

    console.print(f"[bold]{episode_id}[/bold]")
    console.print(f"  Source: {report.source}")
    console.print(f"  Diarization segments: {report.total_diarization_segment_count}")

    table = Table(title="Clusters")
    table.add_column("Speaker", style="cyan")
    table.add_column("Duration", justify="right")
    table.add_column("Segments", justify="right")
    table.add_column("Mapped To")
    table.add_column("Confidence", justify="right")

    for cluster in report.clusters:
        table.add_row(
            cluster.speaker_key,
            format_clock(cluster.total_duration),
            str(cluster.segment_count),
            cluster.mapped_display_name or "-",
            format_score(cluster.confidence),
        )
    console.print(table)

    if report.near_misses:
        misses = Table(title="Near-misses")
        misses.add_column("Cluster", style="yellow")
        misses.add_column("Reference ID")
        misses.add_column("Confidence", justify="right")
        misses.add_column("Threshold", justify="right")
        misses.add_column("Gap", justify="right")
        for miss in report.near_misses:
            misses.add_row(
                miss.cluster_key,
                miss.external_reference_id,
                format_score(miss.confidence),
                format_score(miss.threshold),
                format_score(miss.gap),
            )
        console.print(misses)
    else:
        console.print("No near-misses.")


if __name__ == "__main__":
    cli()

"""Shared fixtures for podcast speaker enrichment tests."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from podcast_speakers.models import (
    IdentityMatch,
    SpeakerRegistry,
    TimeSegment,
    TranscriptSegment,
    VoiceReference,
)
from podcast_speakers.services.storage import LocalStorage


def seg(start: float, end: float, speaker: str = "SPEAKER_0") -> TimeSegment:
    """Build a diarization turn."""
    return TimeSegment(start=start, end=end, speaker_label=speaker)


def utt(start: float, end: float, text: str = "") -> TranscriptSegment:
    """Build a transcript utterance."""
    return TranscriptSegment(start=start, end=end, text=text)


def ref(key: str, name: str, threshold: float = 0.8, reference_id: str | None = None) -> VoiceReference:
    """Build a voice reference."""
    return VoiceReference(
        reference_key=key,
        display_name=name,
        confidence_threshold=threshold,
        external_reference_id=reference_id or f"ref_{key}",
    )


@pytest.fixture
def storage(tmp_path):
    """Local blob storage rooted in a temp directory."""
    return LocalStorage(tmp_path / "blobs")


@pytest.fixture
def registry():
    """Two-host registry for a test podcast."""
    return SpeakerRegistry(
        podcast_id="pod_1",
        references={
            "alex": ref("alex", "Alex", 0.8, "ref_alex"),
            "sam": ref("sam", "Sam", 0.85, "ref_sam"),
        },
    )


@pytest.fixture
def identities():
    """Resolved identities for two clusters."""
    return {
        "SPEAKER_0": IdentityMatch(display_name="Alex", confidence=0.92, external_reference_id="ref_alex"),
        "SPEAKER_1": IdentityMatch(display_name="Guest", confidence=0.87, external_reference_id="ref_guest"),
    }

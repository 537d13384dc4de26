"""Tests for the CLI interface.

Tests command parsing, output formatting, and basic functionality
using Click's CliRunner against a local storage directory.
"""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from podcast_speakers.__main__ import cli
from podcast_speakers.config import reload_settings
from podcast_speakers.models import AuditReport, ClusterSummary, NearMiss
from podcast_speakers.services.pyannote_client import PyannoteError
from podcast_speakers.services.speaker_registry import SpeakerRegistryStore
from podcast_speakers.services.storage import LocalStorage, StorageKeys


@pytest.fixture
def runner():
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Point the CLI at a temporary local data directory."""
    monkeypatch.setenv("PODCAST_SPEAKERS_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("PODCAST_SPEAKERS_STORAGE", "local")
    monkeypatch.delenv("PYANNOTE_API_KEY", raising=False)
    reload_settings()
    yield tmp_path
    monkeypatch.undo()
    reload_settings()


@pytest.fixture
def local_storage(data_dir):
    return LocalStorage(data_dir)


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_cli_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Podcast speaker enrichment" in result.output

    def test_cli_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_verbose_flag(self, runner):
        result = runner.invoke(cli, ["--verbose", "--help"])
        assert result.exit_code == 0

    def test_enrich_help(self, runner):
        result = runner.invoke(cli, ["enrich", "--help"])
        assert result.exit_code == 0
        assert "--podcast" in result.output
        assert "--audio-url" in result.output

    def test_enrich_requires_podcast(self, runner):
        result = runner.invoke(cli, ["enrich", "ep1", "--audio-url", "https://cdn/ep1.mp3"])
        assert result.exit_code != 0


class TestRegistryCommands:
    """Test speaker registry commands."""

    def test_list_empty(self, runner, data_dir):
        result = runner.invoke(cli, ["registry", "list", "pod_1"])
        assert result.exit_code == 0
        assert "No speakers registered" in result.output

    def test_add_then_list(self, runner, data_dir, local_storage):
        result = runner.invoke(cli, [
            "registry", "add", "pod_1", "alex",
            "--name", "Alex", "--reference-id", "ref_alex", "--threshold", "0.75",
        ])
        assert result.exit_code == 0, result.output
        assert "Registered" in result.output

        stored = SpeakerRegistryStore(local_storage).load("pod_1")
        assert stored.get("alex").confidence_threshold == 0.75

        result = runner.invoke(cli, ["registry", "list", "pod_1"])
        assert result.exit_code == 0
        assert "Alex" in result.output
        assert "ref_alex" in result.output

    def test_add_rejects_bad_threshold(self, runner, data_dir):
        result = runner.invoke(cli, [
            "registry", "add", "pod_1", "alex",
            "--name", "Alex", "--reference-id", "ref_alex", "--threshold", "1.5",
        ])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_enroll_requires_api_key(self, runner, data_dir):
        result = runner.invoke(cli, [
            "registry", "enroll", "pod_1", "alex",
            "--name", "Alex", "--sample-url", "https://samples/alex.wav",
        ])
        assert result.exit_code == 1
        assert "PYANNOTE_API_KEY" in result.output

    def test_enroll_requires_sample(self, runner, data_dir):
        result = runner.invoke(cli, ["registry", "enroll", "pod_1", "alex", "--name", "Alex"])
        assert result.exit_code != 0

    @patch("podcast_speakers.services.pyannote_client.PyannoteClient.create_voiceprint_from_samples")
    def test_enroll_registers_speaker(self, mock_create, runner, data_dir, local_storage, monkeypatch):
        monkeypatch.setenv("PYANNOTE_API_KEY", "test-key")
        reload_settings()
        mock_create.return_value = "vp-alex"

        result = runner.invoke(cli, [
            "registry", "enroll", "pod_1", "alex", "--name", "Alex",
            "--sample-url", "https://samples/a.wav", "--sample-url", "https://samples/b.wav",
        ])

        assert result.exit_code == 0, result.output
        assert "Enrolled" in result.output
        mock_create.assert_called_once_with(
            ["https://samples/a.wav", "https://samples/b.wav"], "precision-2"
        )
        reference = SpeakerRegistryStore(local_storage).load("pod_1").get("alex")
        profile = local_storage.load_json(StorageKeys.voiceprint(reference.external_reference_id))
        assert profile["voiceprint"] == "vp-alex"

    @patch("podcast_speakers.services.pyannote_client.PyannoteClient.create_voiceprint_from_samples")
    def test_enroll_reports_provider_failure(self, mock_create, runner, data_dir, monkeypatch):
        monkeypatch.setenv("PYANNOTE_API_KEY", "test-key")
        reload_settings()
        mock_create.side_effect = PyannoteError("Job vp-job returned failed")

        result = runner.invoke(cli, [
            "registry", "enroll", "pod_1", "alex", "--name", "Alex",
            "--sample-url", "https://samples/a.wav",
        ])

        assert result.exit_code == 1
        assert "Enrollment failed" in result.output


class TestEnrichCommand:

    def test_enrich_with_fallback(self, runner, local_storage):
        local_storage.save_json(StorageKeys.transcript("ep1"), {
            "episode_id": "ep1",
            "utterances": [{"text": "Hello", "start": 0.0, "end": 2.0, "speaker": None}],
            "deepgram_speakers": [{"start": 0.0, "end": 2.0, "speaker": "dg-0"}],
        })

        result = runner.invoke(cli, [
            "enrich", "ep1", "--podcast", "pod_1", "--audio-url", "https://cdn/ep1.mp3",
        ])

        assert result.exit_code == 0, result.output
        assert "Enrichment complete" in result.output
        assert "fallback" in result.output
        enriched = local_storage.load_json(StorageKeys.enriched_transcript("ep1"))
        assert enriched[0]["speaker"] == "dg-0"

    def test_enrich_missing_transcript(self, runner, data_dir):
        result = runner.invoke(cli, [
            "enrich", "ep_missing", "--podcast", "pod_1", "--audio-url", "https://cdn/x.mp3",
        ])
        assert result.exit_code == 1
        assert "Enrichment failed" in result.output


class TestAuditCommands:

    def test_show_missing(self, runner, data_dir):
        result = runner.invoke(cli, ["audit", "show", "ep_missing"])
        assert result.exit_code == 1
        assert "No audit report" in result.output

    def test_show_report(self, runner, local_storage):
        report = AuditReport(
            clusters=[
                ClusterSummary(speaker_key="SPEAKER_0", total_duration=95.0, segment_count=4,
                               mapped_display_name="Alex", confidence=0.92),
                ClusterSummary(speaker_key="SPEAKER_1", total_duration=30.0, segment_count=2),
            ],
            total_diarization_segment_count=6,
            near_misses=[NearMiss(cluster_key="SPEAKER_1", confidence=0.82, threshold=0.85,
                                  external_reference_id="ref_sam")],
        )
        local_storage.save_json(StorageKeys.audit("ep1"), report.to_dict())

        result = runner.invoke(cli, ["audit", "show", "ep1"])

        assert result.exit_code == 0, result.output
        assert "SPEAKER_0" in result.output
        assert "Alex" in result.output
        assert "1:35" in result.output
        assert "ref_sam" in result.output
        assert "Gap" in result.output
        assert "0.03" in result.output

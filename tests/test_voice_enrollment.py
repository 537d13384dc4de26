"""Tests for VoiceEnrollmentService."""

from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from podcast_speakers.services.pyannote_client import PyannoteError
from podcast_speakers.services.speaker_registry import SpeakerRegistryStore
from podcast_speakers.services.storage import StorageKeys
from podcast_speakers.services.voice_enrollment import (
    VoiceEnrollmentService,
    generate_reference_id,
)


@pytest.fixture
def creator():
    creator = MagicMock()
    creator.create_voiceprint_from_samples.return_value = "vp-alex"
    return creator


@pytest.fixture
def service(creator, storage):
    return VoiceEnrollmentService(creator, storage)


def test_generate_reference_id():
    assert generate_reference_id("Alex Rivera", 1718000000000) == "ref_alex_rivera_1718000000000"
    assert generate_reference_id("Dr. Sam O'Neil", 5) == "ref_dr__sam_o_neil_5"


class TestEnroll:

    def test_stores_profile_and_registers(self, service, creator, storage):
        reference = service.enroll(
            "pod_1", "alex", "Alex", ["https://samples/alex.wav"], threshold=0.75,
        )

        assert reference.reference_key == "alex"
        assert reference.confidence_threshold == 0.75
        assert reference.external_reference_id.startswith("ref_alex_")
        creator.create_voiceprint_from_samples.assert_called_once_with(
            ["https://samples/alex.wav"], "precision-2"
        )

        profile = storage.load_json(StorageKeys.voiceprint(reference.external_reference_id))
        assert profile["speakerName"] == "Alex"
        assert profile["voiceprint"] == "vp-alex"
        assert profile["model"] == "precision-2"
        assert profile["referenceId"] == reference.external_reference_id
        assert profile["samples"] == ["https://samples/alex.wav"]

        stored = SpeakerRegistryStore(storage).load("pod_1")
        assert stored.get("alex") == reference

    def test_signs_s3_samples(self, service, creator, storage):
        storage.get_url = MagicMock(return_value="https://signed/alex.wav")

        service.enroll("pod_1", "alex", "Alex", ["s3://bucket/samples/alex.wav"], model="precision-1")

        storage.get_url.assert_called_once_with("samples/alex.wav", 7200)
        creator.create_voiceprint_from_samples.assert_called_once_with(
            ["https://signed/alex.wav"], "precision-1"
        )

    def test_invalid_threshold_rejected_before_enrollment(self, service, creator):
        with pytest.raises(ValidationError):
            service.enroll("pod_1", "alex", "Alex", ["https://samples/a.wav"], threshold=1.5)
        creator.create_voiceprint_from_samples.assert_not_called()

    def test_requires_samples(self, service, creator):
        with pytest.raises(ValueError, match="sample"):
            service.enroll("pod_1", "alex", "Alex", [])
        creator.create_voiceprint_from_samples.assert_not_called()

    def test_provider_failure_leaves_registry_untouched(self, service, creator, storage):
        creator.create_voiceprint_from_samples.side_effect = PyannoteError("Job vp-job returned failed")

        with pytest.raises(PyannoteError):
            service.enroll("pod_1", "alex", "Alex", ["https://samples/a.wav"])

        assert len(SpeakerRegistryStore(storage).load("pod_1")) == 0

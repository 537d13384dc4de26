"""Tests for TranscriptEnricher."""

import pytest

from podcast_speakers.models import DiarizationSource, UNKNOWN_SPEAKER
from podcast_speakers.services.transcript_enricher import TranscriptEnricher

from conftest import seg, utt


@pytest.fixture
def enricher():
    return TranscriptEnricher()


@pytest.fixture
def transcript():
    return [utt(0, 2, "Hello"), utt(2, 4, "World")]


@pytest.fixture
def diarization():
    return [seg(0, 2.5, "SPEAKER_0"), seg(2.5, 5, "SPEAKER_1")]


class TestEnrich:
    """Tests for labelling transcript segments."""

    def test_identified_speakers(self, enricher, transcript, diarization, identities):
        enriched = enricher.enrich(transcript, diarization, identities)

        assert [s.to_dict() for s in enriched] == [
            {
                "start": 0, "end": 2, "text": "Hello", "speaker": "Alex",
                "diar_speaker": "SPEAKER_0", "speaker_confidence": 0.92, "source": "primary",
            },
            {
                "start": 2, "end": 4, "text": "World", "speaker": "Guest",
                "diar_speaker": "SPEAKER_1", "speaker_confidence": 0.87, "source": "primary",
            },
        ]

    def test_empty_diarization_marks_unknown(self, enricher, transcript, identities):
        enriched = enricher.enrich(transcript, [], identities)

        for segment in enriched:
            assert segment.resolved_speaker_name == UNKNOWN_SPEAKER
            assert segment.diarization_label == UNKNOWN_SPEAKER
            assert segment.speaker_confidence is None
            assert segment.provenance == "fallback"

    def test_unidentified_cluster_keeps_raw_label(self, enricher, transcript, diarization):
        enriched = enricher.enrich(transcript, diarization, {})

        assert enriched[0].resolved_speaker_name == "SPEAKER_0"
        assert enriched[0].diarization_label == "SPEAKER_0"
        assert enriched[0].speaker_confidence is None
        assert enriched[0].provenance == "primary"
        assert not enriched[0].is_identified

    def test_non_overlapping_segment_is_unknown(self, enricher, diarization, identities):
        enriched = enricher.enrich([utt(10, 12, "late")], diarization, identities)
        assert enriched[0].diarization_label == UNKNOWN_SPEAKER
        assert enriched[0].provenance == DiarizationSource.FALLBACK

    def test_fallback_diarization_source(self, enricher, transcript, diarization):
        enriched = enricher.enrich(transcript, diarization, {}, DiarizationSource.FALLBACK)
        assert all(s.provenance == "fallback" for s in enriched)

    def test_accepts_source_as_string(self, enricher, transcript, diarization):
        enriched = enricher.enrich(transcript, diarization, {}, "fallback")
        assert enriched[0].provenance == "fallback"

    def test_tie_goes_to_first_diarization_turn(self, enricher, identities):
        # [1, 3] overlaps both turns with IoU 0.5
        diarization = [seg(0, 2, "SPEAKER_1"), seg(2, 4, "SPEAKER_0")]
        enriched = enricher.enrich([utt(1, 3, "x")], diarization, identities)
        assert enriched[0].diarization_label == "SPEAKER_1"

    def test_preserves_length_order_and_text(self, enricher, diarization, identities):
        transcript = [utt(i * 0.5, i * 0.5 + 0.5, f"w{i}") for i in range(10)]
        enriched = enricher.enrich(transcript, diarization, identities)

        assert len(enriched) == len(transcript)
        for original, labelled in zip(transcript, enriched):
            assert (labelled.start, labelled.end, labelled.text) == (
                original.start, original.end, original.text,
            )

    def test_empty_transcript(self, enricher, diarization, identities):
        assert enricher.enrich([], diarization, identities) == []

    def test_invalid_source_rejected(self, enricher, transcript, diarization):
        with pytest.raises(ValueError):
            enricher.enrich(transcript, diarization, {}, "secondary")

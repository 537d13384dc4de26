"""Tests for TranscriptLoader."""

import pytest

from podcast_speakers.services.audit_builder import InvalidInputError
from podcast_speakers.services.storage import ObjectNotFoundError, StorageKeys
from podcast_speakers.services.transcript_loader import TranscriptLoader


@pytest.fixture
def envelope():
    return {
        "episode_id": "ep1",
        "asr_provider": "deepgram",
        "words": [
            {"word": "hello", "start": 0.0, "end": 0.5, "speaker": None},
            {"word": "world", "start": 0.5, "end": 1.0, "speaker": None},
        ],
        "utterances": [
            {"text": "Hello", "start": 0.0, "end": 2.0, "speaker": None},
            {"text": "World", "start": 2.0, "end": 4.0, "speaker": None},
        ],
        "paragraphs": [],
        "deepgram_speakers": [
            {"start": 0.0, "end": 2.2, "speaker": "dg-0"},
            {"start": 2.2, "end": 4.0, "speaker": "dg-1"},
        ],
    }


@pytest.fixture
def loader(storage):
    return TranscriptLoader(storage)


class TestLoadEnvelope:

    def test_default_key(self, loader, storage, envelope):
        storage.save_json(StorageKeys.transcript("ep1"), envelope)
        assert loader.load_envelope("ep1")["episode_id"] == "ep1"

    def test_explicit_key(self, loader, storage, envelope):
        storage.save_json("custom/t.json", envelope)
        assert loader.load_envelope("ep1", "custom/t.json") == envelope

    def test_missing_transcript(self, loader):
        with pytest.raises(ObjectNotFoundError):
            loader.load_envelope("missing")

    def test_not_an_object(self, loader, storage):
        storage.save_json(StorageKeys.transcript("ep1"), [1, 2])
        with pytest.raises(InvalidInputError):
            loader.load_envelope("ep1")


class TestSegments:

    def test_utterances(self, loader, envelope):
        segments = loader.segments(envelope)
        assert [(s.start, s.end, s.text) for s in segments] == [(0.0, 2.0, "Hello"), (2.0, 4.0, "World")]
        assert all(s.speaker is None for s in segments)

    def test_words(self, loader, envelope):
        segments = loader.segments(envelope, "words")
        assert [s.text for s in segments] == ["hello", "world"]

    def test_unknown_granularity(self, loader, envelope):
        with pytest.raises(InvalidInputError):
            loader.segments(envelope, "paragraphs")

    def test_missing_section(self, loader):
        assert loader.segments({"episode_id": "ep1"}) == []

    def test_malformed_entry(self, loader):
        with pytest.raises(InvalidInputError, match=r"utterances\[0\]"):
            loader.segments({"utterances": [{"text": "x", "start": 2.0}]})

    def test_entry_not_an_object(self, loader):
        with pytest.raises(InvalidInputError, match=r"utterances\[0\]"):
            loader.segments({"utterances": ["oops"]})

    def test_word_not_an_object(self, loader):
        with pytest.raises(InvalidInputError, match=r"words\[1\]"):
            loader.segments({"words": [{"word": "a", "start": 0.0, "end": 0.5}, 42]}, "words")


class TestFallbackDiarization:

    def test_converts_provider_turns(self, loader, envelope):
        result = loader.fallback_diarization(envelope)
        assert result.source == "fallback"
        assert result.speaker_labels == ["dg-0", "dg-1"]

    def test_absent_sidecar_is_empty(self, loader):
        result = loader.fallback_diarization({"episode_id": "ep1"})
        assert result.segments == []
        assert result.source == "fallback"

    def test_malformed_turn(self, loader):
        with pytest.raises(InvalidInputError):
            loader.fallback_diarization({"deepgram_speakers": [{"start": 1.0, "end": 0.5, "speaker": "dg-0"}]})

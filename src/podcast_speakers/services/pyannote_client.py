"""Pyannote Client - remote diarization and voiceprint identification.

Responsible for:
- Submitting audio URLs for diarization and parsing the speaker turns
- Scoring audio clips against stored voiceprints (submit + poll job)
- Enrolling voice samples as voiceprints
- Normalizing the several identify response shapes into one result
"""

import logging
import time
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from podcast_speakers.models import (
    DiarizationResult,
    DiarizationSource,
    IdentificationResult,
    TimeSegment,
    VoiceprintProfile,
    VoiceReference,
)
from podcast_speakers.services.storage import BlobStorage, StorageKeys

logger = logging.getLogger(__name__)


class PyannoteError(Exception):
    """Error from the diarization/identification provider."""

    pass


class PyannoteClient:
    """Thin client for the pyannote API."""

    DONE_STATUSES = ("done", "succeeded")
    FAILED_STATUSES = ("error", "failed", "cancelled", "canceled")

    def __init__(
        self,
        api_key: str,
        storage: BlobStorage,
        base_url: str = "https://api.pyannote.ai/v1",
        match_cutoff: float = 0.5,
        poll_interval: float = 2.0,
        identify_timeout: float = 120.0,
        voiceprint_timeout: float = 300.0,
        client: Optional[httpx.Client] = None,
    ):
        """Initialize the client.

        Args:
            api_key: Bearer token for the API
            storage: Where voiceprint profiles are stored
            base_url: API root
            match_cutoff: Confidence at or above which a result counts as a
                match when the response has no explicit ``matches`` flag
            poll_interval: Seconds between identify job polls
            identify_timeout: Seconds before an identify job is abandoned
            voiceprint_timeout: Seconds before a voiceprint job is abandoned
            client: HTTP client (one is created if omitted)
        """
        if not api_key:
            raise ValueError("A pyannote API key is required")
        if not 0.0 <= match_cutoff <= 1.0:
            raise ValueError("match_cutoff must be within [0, 1]")
        self.api_key = api_key
        self.storage = storage
        self.base_url = base_url.rstrip("/")
        self.match_cutoff = match_cutoff
        self.poll_interval = poll_interval
        self.identify_timeout = identify_timeout
        self.voiceprint_timeout = voiceprint_timeout
        self._client = client or httpx.Client(timeout=300.0)

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    def diarize(
        self,
        audio_url: str,
        max_speakers: int = 3,
        min_duration: Optional[float] = None,
        allow_overlap: Optional[bool] = None,
    ) -> DiarizationResult:
        """Diarize an episode.

        Args:
            audio_url: Publicly fetchable audio URL
            max_speakers: Upper bound on distinct speakers
            min_duration: Minimum turn duration in seconds
            allow_overlap: Whether overlapping speech may be reported

        Returns:
            DiarizationResult tagged as primary

        Raises:
            PyannoteError: On API errors or malformed segments
        """
        payload: dict[str, Any] = {"url": audio_url, "max_speakers": max_speakers}
        if min_duration is not None:
            payload["min_duration"] = min_duration
        if allow_overlap is not None:
            payload["do_overlap"] = allow_overlap

        logger.info("Diarizing %s (max_speakers=%d)", audio_url, max_speakers)
        response = self._post("/diarize", payload)
        result = self._parse_diarization(response.json())
        logger.info(
            "Diarization returned %d segments, speakers: %s",
            len(result.segments), ", ".join(result.speaker_labels),
        )
        return result

    def _parse_diarization(self, data: dict) -> DiarizationResult:
        """Parse the diarize response into validated segments."""
        segments = []
        for raw in data.get("segments") or []:
            try:
                segments.append(TimeSegment.model_validate(raw))
            except ValueError as e:
                raise PyannoteError(f"Malformed diarization segment {raw!r}: {e}") from e
        return DiarizationResult(segments=segments, source=DiarizationSource.PRIMARY)

    def identify(self, clip_url: str, reference: VoiceReference) -> IdentificationResult:
        """Score a clip against one stored voiceprint.

        Args:
            clip_url: URL of the audio clip to identify
            reference: The voice reference to compare against

        Returns:
            IdentificationResult for this reference

        Raises:
            PyannoteError: If the job cannot be submitted, fails, or times out
        """
        ref_id = reference.external_reference_id
        data = self.storage.load_json(StorageKeys.voiceprint(ref_id))
        try:
            profile = VoiceprintProfile.model_validate(data)
        except ValidationError as e:
            raise PyannoteError(f"Voiceprint profile for {ref_id} is incomplete: {e}") from e

        response = self._post(
            "/identify",
            {
                "url": clip_url,
                "voiceprints": [{"label": profile.speaker_name, "voiceprint": profile.voiceprint}],
                "model": profile.model,
                "confidence": True,
            },
        )
        job_id = response.json().get("jobId")
        if not job_id:
            raise PyannoteError(f"Identify response for {ref_id} carried no jobId")

        job = self._poll_job(job_id, self.identify_timeout)
        result = self._parse_identification(ref_id, job)
        logger.debug(
            "Identify %s: confidence=%.3f matches=%s", ref_id, result.confidence, result.matches
        )
        return result

    def _parse_identification(self, ref_id: str, job: dict) -> IdentificationResult:
        """Normalize a finished identify job.

        Confidence is the payload's ``confidence`` if present, otherwise the
        best entry in ``predictions`` or ``scores``, otherwise 0. The match
        flag is the payload's ``matches`` if present, otherwise decided by
        ``match_cutoff``.
        """
        payload = job.get("result") or job.get("output") or {}

        confidence = payload.get("confidence")
        if not isinstance(confidence, (int, float)) or isinstance(confidence, bool):
            confidence = self._best_confidence(payload)
        confidence = min(max(float(confidence), 0.0), 1.0)

        matches = payload.get("matches")
        if not isinstance(matches, bool):
            matches = confidence >= self.match_cutoff

        return IdentificationResult(reference_id=ref_id, confidence=confidence, matches=matches)

    @staticmethod
    def _best_confidence(payload: dict) -> float:
        for key in ("predictions", "scores"):
            candidates = payload.get(key)
            if not isinstance(candidates, list):
                continue
            best = max(
                (
                    c["confidence"]
                    for c in candidates
                    if isinstance(c, dict) and isinstance(c.get("confidence"), (int, float))
                ),
                default=0.0,
            )
            if best > 0:
                return float(best)
        return 0.0

    def create_voiceprint(self, audio_url: str, model: str = "precision-2") -> str:
        """Enroll one voice sample.

        Args:
            audio_url: Fetchable URL of a sample containing only the speaker
            model: Voiceprint model name

        Returns:
            The base64-encoded voiceprint

        Raises:
            PyannoteError: If the job cannot be submitted, fails, times out,
                or finishes without a voiceprint
        """
        logger.info("Creating voiceprint from %s (model=%s)", audio_url, model)
        response = self._post("/voiceprint", {"url": audio_url, "model": model})
        job_id = response.json().get("jobId")
        if not job_id:
            raise PyannoteError(f"Voiceprint response for {audio_url} carried no jobId")

        job = self._poll_job(job_id, self.voiceprint_timeout)
        voiceprint = self._extract_voiceprint(job)
        if not voiceprint:
            raise PyannoteError(f"Voiceprint job {job_id} finished without a voiceprint")

        logger.info("Voiceprint job %s complete (%d chars)", job_id, len(voiceprint))
        return voiceprint

    def create_voiceprint_from_samples(
        self,
        sample_urls: list[str],
        model: str = "precision-2",
    ) -> str:
        """Enroll every sample and return the first voiceprint.

        Any failing sample aborts enrollment. The first voiceprint is kept
        as the reference.

        Raises:
            ValueError: If no samples are given
            PyannoteError: If any sample fails
        """
        if not sample_urls:
            raise ValueError("At least one voice sample is required")

        voiceprints = [self.create_voiceprint(url, model) for url in sample_urls]
        logger.info("Enrolled %d samples; keeping the first voiceprint", len(voiceprints))
        return voiceprints[0]

    @staticmethod
    def _extract_voiceprint(job: dict) -> Optional[str]:
        """Voiceprint from a finished job, at the top level or under output/result/data."""
        if isinstance(job.get("voiceprint"), str):
            return job["voiceprint"]
        for key in ("output", "result", "data"):
            nested = job.get(key)
            if isinstance(nested, dict) and isinstance(nested.get("voiceprint"), str):
                return nested["voiceprint"]
        return None

    def _poll_job(self, job_id: str, timeout: float) -> dict:
        """Poll a job until it reaches a terminal status or ``timeout`` seconds pass."""
        deadline = time.monotonic() + timeout

        while time.monotonic() < deadline:
            response = self._client.get(f"{self.base_url}/jobs/{job_id}", headers=self._headers)
            if response.status_code != 200:
                raise PyannoteError(
                    f"Failed to fetch job {job_id}: {response.status_code} - {response.text}"
                )

            job = response.json()
            status = (job.get("status") or "").lower()
            if status in self.DONE_STATUSES:
                return job
            if status in self.FAILED_STATUSES:
                raise PyannoteError(job.get("error") or f"Job {job_id} returned {status}")

            time.sleep(self.poll_interval)

        raise PyannoteError(f"Timeout waiting for job {job_id}")

    def _post(self, path: str, payload: dict) -> httpx.Response:
        """POST to the API, waiting out rate limits."""
        response = self._client.post(f"{self.base_url}{path}", headers=self._headers, json=payload)

        if response.status_code == 429:
            retry_after = int(response.headers.get("Retry-After", 60))
            logger.warning("Rate limited on %s; retrying in %ds", path, retry_after)
            time.sleep(retry_after)
            return self._post(path, payload)

        if response.status_code not in (200, 201, 202):
            raise PyannoteError(
                f"Pyannote {path} error: {response.status_code} - {response.text}"
            )
        return response

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
        return False

"""Audio Clip Extractor - cuts representative segments out of episode audio.

The identification service scores a short clip rather than the whole
episode. Clips are cut with ffmpeg, uploaded under a content-addressed key
and handed out as URLs the service can fetch.
"""

import logging
import math
import subprocess
import tempfile
import uuid
from pathlib import Path

from podcast_speakers.models import TimeSegment
from podcast_speakers.services.storage import BlobStorage, StorageKeys

logger = logging.getLogger(__name__)


class ClipExtractionError(Exception):
    """Raised when a clip cannot be produced."""

    pass


class AudioClipExtractor:
    """Produces fetchable clip URLs for windows of one episode's audio."""

    def __init__(
        self,
        storage: BlobStorage,
        audio_url: str,
        url_expiry: int = 3600,
        ffmpeg_binary: str = "ffmpeg",
        timeout: float = 300.0,
    ):
        """Initialize the extractor.

        Args:
            storage: Where clips are uploaded
            audio_url: Source audio for the episode
            url_expiry: Lifetime of returned clip URLs in seconds
            ffmpeg_binary: ffmpeg executable name or path
            timeout: Seconds before an ffmpeg run is abandoned
        """
        self.storage = storage
        self.audio_url = audio_url
        self.url_expiry = url_expiry
        self.ffmpeg_binary = ffmpeg_binary
        self.timeout = timeout

    def __call__(self, segment: TimeSegment) -> str:
        """Clip provider for IdentityResolver."""
        return self.extract(segment.start, segment.end)

    def extract(self, start: float, end: float) -> str:
        """Cut [start, end] from the episode audio and return a URL for it.

        A clip already uploaded for the same window is reused.

        Raises:
            ClipExtractionError: On invalid bounds or an ffmpeg failure
        """
        if math.isnan(start) or math.isnan(end) or start < 0 or end <= start:
            raise ClipExtractionError(f"Invalid clip bounds: {start}-{end}")

        key = StorageKeys.audio_clip(self.audio_url, start, end)
        if self.storage.exists(key):
            logger.debug("Reusing clip %s for %.3f-%.3f", key, start, end)
            return self.storage.get_url(key, self.url_expiry)

        with tempfile.TemporaryDirectory(prefix="clip-") as tmp_dir:
            output_path = Path(tmp_dir) / f"{uuid.uuid4().hex}.mp3"
            self._run_ffmpeg(start, end, output_path)
            data = output_path.read_bytes()

        self.storage.save_bytes(key, data, "audio/mpeg")
        logger.info("Uploaded clip %s (%.3f-%.3f, %d bytes)", key, start, end, len(data))
        return self.storage.get_url(key, self.url_expiry)

    def _run_ffmpeg(self, start: float, end: float, output_path: Path) -> None:
        cmd = [
            self.ffmpeg_binary,
            "-y",
            "-ss", f"{start:.3f}",
            "-to", f"{end:.3f}",
            "-i", self.audio_url,
            "-c", "copy",
            str(output_path),
        ]
        logger.debug("Executing ffmpeg: %s", " ".join(cmd))

        try:
            result = subprocess.run(cmd, capture_output=True, timeout=self.timeout)
        except FileNotFoundError as e:
            raise ClipExtractionError(
                f"{self.ffmpeg_binary} is not installed or not in PATH"
            ) from e
        except subprocess.TimeoutExpired as e:
            raise ClipExtractionError(f"ffmpeg timed out after {self.timeout}s") from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise ClipExtractionError(f"ffmpeg exited with code {result.returncode}: {stderr}")

        if not output_path.exists() or output_path.stat().st_size == 0:
            raise ClipExtractionError(f"ffmpeg produced no output for {start:.3f}-{end:.3f}")

"""Blob storage for run inputs and artifacts.

Everything the pipeline reads or writes is a blob addressed by key:
transcripts, diarization results, registries, voiceprints, audio clips,
enriched transcripts and audit reports. Two backends share one interface:
S3 for production and a local directory for development and tests.
"""

import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Optional, Protocol

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Error reading or writing a blob."""

    pass


class ObjectNotFoundError(StorageError):
    """The requested key does not exist."""

    pass


class BlobStorage(Protocol):
    """Save/load blobs by key."""

    def save_json(self, key: str, data: Any) -> None:
        ...

    def load_json(self, key: str) -> Any:
        ...

    def exists(self, key: str) -> bool:
        ...

    def save_bytes(self, key: str, data: bytes, content_type: str) -> None:
        ...

    def get_url(self, key: str, expires_in: int = 3600) -> str:
        ...


class StorageKeys:
    """Deterministic storage keys for all pipeline data."""

    @staticmethod
    def transcript(episode_id: str) -> str:
        return f"transcripts/{episode_id}/deepgram.json"

    @staticmethod
    def diarization(episode_id: str) -> str:
        return f"transcripts/{episode_id}/diarization.json"

    @staticmethod
    def enriched_transcript(episode_id: str) -> str:
        return f"transcripts/{episode_id}/enriched.json"

    @staticmethod
    def audit(episode_id: str) -> str:
        return f"transcripts/{episode_id}/pyannote_audit.json"

    @staticmethod
    def registry(podcast_id: str) -> str:
        return f"speaker-registry/{podcast_id}.json"

    @staticmethod
    def voiceprint(reference_id: str) -> str:
        return f"voiceprints/profiles/{reference_id}.json"

    @staticmethod
    def audio_clip(audio_url: str, start: float, end: float) -> str:
        """Content-addressed key for a clip of ``audio_url``.

        The same window of the same audio always maps to the same key, so
        re-runs reuse previously uploaded clips.
        """
        fingerprint = hashlib.sha1(
            f"{audio_url}:{start:.3f}:{end:.3f}".encode("utf-8")
        ).hexdigest()
        return f"audio-clips/{fingerprint}.mp3"


class S3Storage:
    """Blob storage backed by an S3 bucket."""

    def __init__(self, bucket: str, region: str = "us-east-1", client: Any = None):
        """Initialize the storage.

        Args:
            bucket: S3 bucket name
            region: AWS region
            client: Preconfigured boto3 S3 client (created lazily if omitted)
        """
        if not bucket:
            raise ValueError("S3 bucket name is required")
        self.bucket = bucket
        self.region = region
        self._s3_client = client

    @property
    def s3_client(self):
        """Lazily initialize S3 client."""
        if self._s3_client is None:
            boto_config = BotoConfig(
                region_name=self.region,
                signature_version="s3v4",
            )
            self._s3_client = boto3.client("s3", config=boto_config)
        return self._s3_client

    def save_json(self, key: str, data: Any) -> None:
        """Save a JSON-serializable object."""
        body = json.dumps(data, indent=2)
        self._put(key, body.encode("utf-8"), "application/json")

    def load_json(self, key: str) -> Any:
        """Load a JSON object.

        Raises:
            ObjectNotFoundError: If the key does not exist
        """
        try:
            response = self.s3_client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                raise ObjectNotFoundError(f"s3://{self.bucket}/{key} not found") from e
            raise StorageError(f"Failed to load s3://{self.bucket}/{key}: {e}") from e

        body = response["Body"].read()
        logger.debug("Loaded s3://%s/%s (%d bytes)", self.bucket, key, len(body))
        return json.loads(body)

    def exists(self, key: str) -> bool:
        """Check whether a key exists."""
        try:
            self.s3_client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if _is_not_found(e):
                return False
            raise StorageError(f"Failed to check s3://{self.bucket}/{key}: {e}") from e

    def save_bytes(self, key: str, data: bytes, content_type: str) -> None:
        """Save raw bytes (audio clips)."""
        self._put(key, data, content_type)

    def get_url(self, key: str, expires_in: int = 3600) -> str:
        """Generate a presigned GET URL for a key.

        Args:
            key: The S3 object key
            expires_in: URL expiration time in seconds (default: 1 hour)
        """
        return self.s3_client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=expires_in,
        )

    def _put(self, key: str, body: bytes, content_type: str) -> None:
        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
            )
        except ClientError as e:
            raise StorageError(f"Failed to save s3://{self.bucket}/{key}: {e}") from e
        logger.debug("Saved s3://%s/%s (%d bytes)", self.bucket, key, len(body))


class LocalStorage:
    """Blob storage in a local directory; keys become relative paths."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise StorageError(f"Key escapes storage root: {key}")
        return path

    def save_json(self, key: str, data: Any) -> None:
        """Save a JSON-serializable object."""
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2))

    def load_json(self, key: str) -> Any:
        """Load a JSON object.

        Raises:
            ObjectNotFoundError: If the key does not exist
        """
        path = self._path(key)
        if not path.exists():
            raise ObjectNotFoundError(f"{path} not found")
        return json.loads(path.read_text())

    def exists(self, key: str) -> bool:
        """Check whether a key exists."""
        return self._path(key).exists()

    def save_bytes(self, key: str, data: bytes, content_type: str) -> None:
        """Save raw bytes; the content type is not recorded locally."""
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def get_url(self, key: str, expires_in: int = 3600) -> str:
        """file:// URL for a key; ``expires_in`` is ignored."""
        return self._path(key).as_uri()


def _is_not_found(error: ClientError) -> bool:
    code = error.response.get("Error", {}).get("Code", "")
    status: Optional[int] = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code in ("404", "NoSuchKey", "NotFound") or status == 404

"""Shared pydantic base for enrichment models.

Attributes are snake_case; artifacts are read and written under the
field aliases downstream consumers expect, so every serializer here
dumps by alias and every parser accepts either spelling.
"""

from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict


M = TypeVar("M", bound="SpeakerModel")


class SpeakerModel(BaseModel):
    """Base for all models, with alias-aware JSON helpers."""

    model_config = ConfigDict(
        use_enum_values=True,
        validate_assignment=True,
        populate_by_name=True,
        # enum defaults must pass through validation to become plain values
        validate_default=True,
    )

    def to_json(self, indent: int = 2) -> str:
        """Wire-format JSON text."""
        return self.model_dump_json(indent=indent, by_alias=True)

    def to_dict(self) -> dict[str, Any]:
        """Wire-format, JSON-compatible dict."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_json(cls: type[M], text: str) -> M:
        """Parse wire-format JSON text."""
        return cls.model_validate_json(text)

    @classmethod
    def from_dict(cls: type[M], data: dict[str, Any]) -> M:
        """Validate a dict keyed by field names or aliases."""
        return cls.model_validate(data)

    @classmethod
    def load_from_file(cls: type[M], path: str | Path) -> M:
        """Read a model previously written with ``save_to_file``."""
        return cls.from_json(Path(path).read_text())

    def save_to_file(self, path: str | Path, indent: int = 2) -> None:
        """Write wire-format JSON, creating parent directories as needed."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.to_json(indent=indent))

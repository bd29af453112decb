"""Submission record built up by the pipeline."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Submission:
    """Accumulated result of one pipeline run.

    ``enrichment`` is seeded with every field the configured services
    can produce (all ""), then filled in as remote steps succeed.
    """

    id: int
    text: str
    timestamp: str
    enrichment: dict[str, str] = field(
        default_factory=lambda: dict[str, str]()
    )

    def apply(self, fields: Mapping[str, str]) -> None:
        """Merge *fields*, ignoring keys no service declared."""
        for key, value in fields.items():
            if key in self.enrichment:
                self.enrichment[key] = value

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "timestamp": self.timestamp,
            **self.enrichment,
        }

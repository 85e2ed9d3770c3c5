"""Domain models for content-addressed assets."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class StoredAsset:
    fingerprint: str
    extension: str
    size_bytes: int
    created: bool

    @property
    def filename(self) -> str:
        return f"{self.fingerprint}.{self.extension}"

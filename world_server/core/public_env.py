"""Public environment snapshot served to clients as ``env.js``."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

PUBLIC_PREFIX = "PUBLIC_"


@dataclass(frozen=True)
class PublicEnvironment:
    values: Mapping[str, str]
    script: str = field(init=False, repr=False)

    def __post_init__(self) -> None:
        frozen = MappingProxyType(dict(self.values))
        object.__setattr__(self, "values", frozen)
        object.__setattr__(self, "script", _render_script(frozen))

    @classmethod
    def capture(cls, base_path: str, environ: Optional[Mapping[str, str]] = None) -> "PublicEnvironment":
        """Snapshot every ``PUBLIC_*`` variable plus ``BASE_PATH``."""
        source = os.environ if environ is None else environ
        values = {key: value for key, value in source.items() if key.startswith(PUBLIC_PREFIX)}
        values["BASE_PATH"] = base_path
        return cls(values)


def _render_script(values: Mapping[str, str]) -> str:
    return (
        "if (!globalThis.process) globalThis.process = {}\n"
        f"globalThis.process.env = {json.dumps(dict(values))}\n"
    )


__all__ = ["PublicEnvironment", "PUBLIC_PREFIX"]

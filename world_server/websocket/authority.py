"""Capability interface of the external session/world runtime."""

from __future__ import annotations

import importlib
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Sequence, runtime_checkable

from fastapi import WebSocket


@dataclass(slots=True, frozen=True)
class ConnectedUser:
    id: str
    name: Optional[str] = None
    position: Optional[Sequence[float]] = None

    def to_mapping(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "position": list(self.position) if self.position is not None else None,
        }


@runtime_checkable
class SessionAuthority(Protocol):
    """Owner of a live channel once the gateway has admitted it."""

    async def accept(self, channel: WebSocket, token: Optional[str]) -> None:
        ...

    def connected_users(self) -> list[ConnectedUser]:
        ...

    def world_time(self) -> float:
        ...


def load_authority(path: str, *args: Any) -> SessionAuthority:
    """Resolve ``package.module:factory`` and call the factory with ``args``."""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"session authority must look like 'module:factory', got {path!r}")
    module = importlib.import_module(module_name)
    factory: Callable[..., SessionAuthority] = getattr(module, attr)
    authority = factory(*args)
    if not isinstance(authority, SessionAuthority):
        raise TypeError(f"{path} did not produce a SessionAuthority")
    return authority


__all__ = ["ConnectedUser", "SessionAuthority", "load_authority"]

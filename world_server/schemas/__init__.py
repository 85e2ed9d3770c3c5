"""Pydantic schemas used across the project."""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class UploadResponse(BaseModel):
    filename: str


class UploadCheckResponse(BaseModel):
    exists: bool


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    uptime: Optional[float] = None


class ConnectedUserInfo(BaseModel):
    id: str
    name: Optional[str] = None
    position: Optional[list[float]] = None


class StatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uptime: int
    protected: bool
    connected_users: list[ConnectedUserInfo] = Field(default_factory=list, alias="connectedUsers")
    world: Optional[str] = None
    commit_hash: Optional[str] = Field(default=None, alias="commitHash")


class NotFoundResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    error: str = "Not Found"
    status_code: int = Field(default=404, alias="statusCode")

    @classmethod
    def for_route(cls, method: str, path: str) -> "NotFoundResponse":
        return cls(message=f"Route {method}:{path} not found")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

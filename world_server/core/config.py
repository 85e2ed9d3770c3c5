"""Application configuration using pydantic settings with structured sections."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_DIR = Path(__file__).resolve().parents[1]
PROJECT_ROOT = PACKAGE_DIR.parent


class UploadSettings(BaseModel):
    max_bytes: int = Field(default=100 * 1024 * 1024, gt=0)
    # multipart framing allowance on top of the file ceiling
    multipart_overhead: int = Field(default=64 * 1024, ge=0)
    read_timeout: float = Field(default=30.0, gt=0)
    chunk_size: int = Field(default=1024 * 1024, gt=0)


class WebSocketSettings(BaseModel):
    idle_timeout: int = 300
    check_interval: int = 30


class ShutdownSettings(BaseModel):
    graceful_timeout: float = Field(default=5.0, ge=0)


class Settings(BaseSettings):
    """Top-level server settings with nested sections.

    Flat fields keep the historical environment names (``PORT``,
    ``BASE_PATH``, ``STORAGE_PATH`` ...); nested sections use ``__``
    (``UPLOAD__MAX_BYTES``).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    host: str = "0.0.0.0"
    port: int = 3000
    base_path: str = "/"
    log_level: str = "info"

    storage_path: Path = PROJECT_ROOT
    storage_dirname: str = "world"

    world: Optional[str] = None
    commit_hash: Optional[str] = None
    admin_code: Optional[str] = None

    public_dir: Path = PACKAGE_DIR / "web" / "public"
    core_assets_dir: Optional[Path] = None
    session_authority: Optional[str] = None

    upload: UploadSettings = UploadSettings()
    websocket: WebSocketSettings = WebSocketSettings()
    shutdown: ShutdownSettings = ShutdownSettings()

    @field_validator("base_path")
    @classmethod
    def _normalize_base_path(cls, value: str) -> str:
        stripped = value.strip().strip("/")
        return f"/{stripped}" if stripped else "/"

    @property
    def route_prefix(self) -> str:
        """Base path usable as a router prefix ("" for the root)."""
        return "" if self.base_path == "/" else self.base_path

    @property
    def world_dir(self) -> Path:
        return _resolve_path(self.storage_path) / self.storage_dirname

    @property
    def assets_dir(self) -> Path:
        return self.world_dir / "assets"

    @property
    def incoming_dir(self) -> Path:
        return self.world_dir / ".incoming"

    @property
    def db_path(self) -> Path:
        return self.world_dir / "db.sqlite"

    @property
    def public_root(self) -> Path:
        return _resolve_path(self.public_dir)

    @property
    def core_assets_root(self) -> Optional[Path]:
        if self.core_assets_dir is None:
            return None
        return _resolve_path(self.core_assets_dir)

    @property
    def is_protected(self) -> bool:
        return self.admin_code is not None

    @property
    def upload_body_limit(self) -> int:
        return self.upload.max_bytes + self.upload.multipart_overhead


def _resolve_path(path: Path) -> Path:
    if path.is_absolute():
        return path
    return (PROJECT_ROOT / path).resolve()


@lru_cache()
def get_settings() -> Settings:
    return Settings()

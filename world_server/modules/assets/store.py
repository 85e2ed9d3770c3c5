"""Content-addressed, write-once asset storage.

Every stored file is named ``{sha256}.{extension}``. Content is spooled into
a private ``.incoming`` directory on the same filesystem and published with
a hard link (create-exclusive) so a visible asset is always complete. When
the filesystem has no hard links the publication falls back to an atomic
rename; both writers then hold byte-identical content.
"""

from __future__ import annotations

import errno
import hashlib
import logging
import os
import re
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from .exceptions import AssetStoreError, InvalidAssetName, PayloadTooLarge
from .models import StoredAsset

logger = logging.getLogger(__name__)

_EXTENSION_PATTERN = re.compile(r"^[a-z0-9]{1,16}$")
_LINK_UNSUPPORTED = {errno.EPERM, errno.EXDEV, errno.EMLINK, errno.ENOTSUP, errno.EOPNOTSUPP}


def fingerprint(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def normalize_extension(extension: str) -> str:
    value = (extension or "").strip().lower()
    if not _EXTENSION_PATTERN.match(value):
        raise InvalidAssetName(f"invalid asset extension: {extension!r}")
    return value


def extension_from_filename(filename: Optional[str]) -> str:
    """Return the lower-cased text after the last dot of a client filename."""
    if not filename:
        raise InvalidAssetName("filename is required")
    base = filename.replace("\\", "/").rsplit("/", 1)[-1]
    if "." not in base:
        raise InvalidAssetName(f"filename has no extension: {filename!r}")
    return normalize_extension(base.rsplit(".", 1)[1])


class AssetWriter:
    """Streams one asset into a temporary file while hashing it."""

    def __init__(self, store: "AssetStore", extension: str, max_bytes: Optional[int] = None) -> None:
        self._store = store
        self.extension = normalize_extension(extension)
        self._max_bytes = max_bytes
        self._hasher = hashlib.sha256()
        self._size = 0
        self._result: Optional[StoredAsset] = None
        self._temp_path = store.incoming_dir / f"{os.urandom(16).hex()}.upload"
        try:
            self._handle: BinaryIO = self._temp_path.open("xb")
        except OSError as exc:
            raise AssetStoreError(f"cannot open upload buffer: {exc}") from exc

    def write(self, chunk: bytes) -> None:
        if self._result is not None:
            raise RuntimeError("asset already committed")
        self._size += len(chunk)
        if self._max_bytes is not None and self._size > self._max_bytes:
            raise PayloadTooLarge(self._max_bytes)
        self._hasher.update(chunk)
        try:
            self._handle.write(chunk)
        except OSError as exc:
            raise AssetStoreError(f"cannot buffer upload: {exc}") from exc

    def commit(self) -> StoredAsset:
        if self._result is not None:
            return self._result
        digest = self._hasher.hexdigest()
        target = self._store.root / f"{digest}.{self.extension}"
        try:
            self._handle.flush()
            os.fsync(self._handle.fileno())
            self._handle.close()
            created = _publish(self._temp_path, target)
        except OSError as exc:
            raise AssetStoreError(f"cannot store {target.name}: {exc}") from exc
        finally:
            self.discard()

        if created:
            logger.info("Stored asset %s (%d bytes)", target.name, self._size)
        else:
            logger.debug("Asset %s already present", target.name)
        self._result = StoredAsset(
            fingerprint=digest,
            extension=self.extension,
            size_bytes=self._size,
            created=created,
        )
        return self._result

    def discard(self) -> None:
        if not self._handle.closed:
            self._handle.close()
        self._temp_path.unlink(missing_ok=True)


class AssetStore:
    """Durable content-addressed file storage rooted at ``root``."""

    def __init__(self, root: Path, incoming_dir: Optional[Path] = None) -> None:
        self._root = Path(root)
        self._incoming_dir = Path(incoming_dir) if incoming_dir else self._root.parent / ".incoming"

    @property
    def root(self) -> Path:
        return self._root

    @property
    def incoming_dir(self) -> Path:
        return self._incoming_dir

    def ensure_storage(self) -> None:
        """Create the asset and spool directories if they do not exist."""
        self._root.mkdir(parents=True, exist_ok=True)
        self._incoming_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, filename: str) -> Path:
        if (
            not filename
            or filename in {".", ".."}
            or any(sep in filename for sep in ("/", "\\", "\0"))
        ):
            raise InvalidAssetName(f"invalid asset filename: {filename!r}")
        return self._root / filename

    def exists(self, filename: str) -> bool:
        return self.path_for(filename).is_file()

    @contextmanager
    def writer(self, extension: str, max_bytes: Optional[int] = None) -> Iterator[AssetWriter]:
        writer = AssetWriter(self, extension, max_bytes=max_bytes)
        try:
            yield writer
        finally:
            writer.discard()

    def put(self, data: bytes, extension: str) -> StoredAsset:
        extension = normalize_extension(extension)
        digest = fingerprint(data)
        if self.exists(f"{digest}.{extension}"):
            return StoredAsset(fingerprint=digest, extension=extension, size_bytes=len(data), created=False)
        with self.writer(extension) as writer:
            writer.write(data)
            return writer.commit()

    def seed_from(self, source_dir: Path) -> int:
        """Copy bundled assets into the store, never replacing existing files."""
        source_dir = Path(source_dir)
        if not source_dir.is_dir():
            logger.warning("Core asset directory %s not found, skipping seed", source_dir)
            return 0

        copied = 0
        for source in sorted(source_dir.rglob("*")):
            if not source.is_file():
                continue
            target = self._root / source.relative_to(source_dir)
            if target.exists():
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            temp_path = self._incoming_dir / f"{os.urandom(16).hex()}.seed"
            try:
                shutil.copyfile(source, temp_path)
                _publish(temp_path, target)
            except OSError as exc:
                raise AssetStoreError(f"cannot seed {target.name}: {exc}") from exc
            finally:
                temp_path.unlink(missing_ok=True)
            copied += 1
        if copied:
            logger.info("Seeded %d core assets from %s", copied, source_dir)
        return copied


def _publish(source: Path, target: Path) -> bool:
    """Make ``source`` visible as ``target``; False when it already existed."""
    if target.exists():
        return False
    try:
        os.link(source, target)
    except FileExistsError:
        return False
    except OSError as exc:
        if exc.errno not in _LINK_UNSUPPORTED:
            raise
        os.replace(source, target)
    return True

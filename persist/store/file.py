"""
File storage backend.

One file per name: <base_dir>/<prefix><encoded name>.<extension>
Uses aiofiles so reads and writes never block the event loop.
The directory is created on first write.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from pathlib import Path
from typing import Any, Callable
from urllib.parse import quote, unquote

import aiofiles
import aiofiles.os

from persist.core.errors import ConfigError, StorageError
from persist.store.base import Storage, StorageFactory

logger = logging.getLogger(__name__)


# ━━━ File name handlers ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class FileNameHandler:
    """
    Maps record names to file names and back.

    Any object with encode() and decode() can be passed to
    FileStorageFactory instead of a built-in handler name.
    """

    def encode(self, name: str) -> str:
        raise NotImplementedError

    def decode(self, file_name: str) -> str:
        raise NotImplementedError


class UriFileNameHandler(FileNameHandler):
    """Percent-encodes everything outside [A-Za-z0-9_.~-]: "a/b" -> "a%2Fb"."""

    def encode(self, name: str) -> str:
        return quote(name, safe="")

    def decode(self, file_name: str) -> str:
        return unquote(file_name)


class Base64UrlFileNameHandler(FileNameHandler):
    """URL-safe base64 without padding: "special/name" -> "c3BlY2lhbC9uYW1l"."""

    def encode(self, name: str) -> str:
        return base64.urlsafe_b64encode(name.encode("utf-8")).decode("ascii").rstrip("=")

    def decode(self, file_name: str) -> str:
        padding = "=" * (-len(file_name) % 4)
        return base64.urlsafe_b64decode(file_name + padding).decode("utf-8")


FILE_NAME_HANDLERS: dict[str, type[FileNameHandler]] = {
    "uri": UriFileNameHandler,
    "base64url": Base64UrlFileNameHandler,
}


def resolve_file_name_handler(handler: str | Any) -> Any:
    """Turn a handler name into an instance; pass custom handlers through."""
    if isinstance(handler, str):
        handler_cls = FILE_NAME_HANDLERS.get(handler)
        if handler_cls is None:
            available = ", ".join(FILE_NAME_HANDLERS)
            raise ConfigError(
                f"Unknown file name handler '{handler}'. Available: {available}"
            )
        return handler_cls()
    if not (hasattr(handler, "encode") and hasattr(handler, "decode")):
        raise ConfigError("File name handler must provide encode() and decode()")
    return handler


# ━━━ Factory ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class FileStorageFactory(StorageFactory):
    """
    Stores every name in its own file under base_dir.

    Usage:
        factory = FileStorageFactory("data")
        storage = factory.create("settings")
        await storage.set({"theme": "dark"})   # writes data/settings.json

    Custom formats:
        factory = FileStorageFactory(
            "data",
            file_extension="yml",
            serializer=yaml.safe_dump,
            deserializer=yaml.safe_load,
        )

    The serializer may return str or bytes. The deserializer receives str,
    or bytes when binary=True.
    """

    def __init__(
        self,
        base_dir: str | Path,
        file_extension: str = "json",
        file_prefix: str = "",
        serializer: Callable[[Any], str | bytes] = json.dumps,
        deserializer: Callable[[Any], Any] = json.loads,
        encoding: str = "utf-8",
        binary: bool = False,
        file_name_handler: str | Any = "uri",
    ) -> None:
        self._base_dir = Path(base_dir).expanduser()
        self._file_extension = file_extension
        self._file_prefix = file_prefix
        self._serializer = serializer
        self._deserializer = deserializer
        self._encoding = encoding
        self._binary = binary
        self._file_name_handler = resolve_file_name_handler(file_name_handler)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def path_for(self, name: str) -> Path:
        """Path of the file holding a name."""
        encoded = self._file_name_handler.encode(name)
        return self._base_dir / f"{self._file_prefix}{encoded}.{self._file_extension}"

    def create(self, name: str) -> FileStorage:
        return FileStorage(
            self.path_for(name),
            serializer=self._serializer,
            deserializer=self._deserializer,
            encoding=self._encoding,
            binary=self._binary,
        )

    async def list_names(self) -> list[str]:
        try:
            entries = await aiofiles.os.listdir(self._base_dir)
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageError(f"Failed to list files in {self._base_dir}: {e}") from e

        suffix = f".{self._file_extension}"
        names = []
        for entry in entries:
            if not entry.startswith(self._file_prefix) or not entry.endswith(suffix):
                continue
            encoded = entry[len(self._file_prefix):-len(suffix)]
            if not encoded:
                continue
            try:
                names.append(self._file_name_handler.decode(encoded))
            except (ValueError, binascii.Error) as e:
                logger.warning(f"Skipping {entry}: cannot decode file name ({e})")
        return sorted(names)


# ━━━ Storage ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class FileStorage(Storage):
    """A single file. Missing file means no value."""

    def __init__(
        self,
        path: Path,
        serializer: Callable[[Any], str | bytes],
        deserializer: Callable[[Any], Any],
        encoding: str = "utf-8",
        binary: bool = False,
    ) -> None:
        self._path = path
        self._serializer = serializer
        self._deserializer = deserializer
        self._encoding = encoding
        self._binary = binary
        self._dir_created = False

    @property
    def path(self) -> Path:
        return self._path

    async def get(self) -> Any | None:
        try:
            async with aiofiles.open(self._path, mode="rb") as f:
                raw = await f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {self._path}: {e}", name=self._path.name) from e

        if self._binary:
            return self._deserializer(raw)
        return self._deserializer(raw.decode(self._encoding))

    async def set(self, value: Any | None) -> None:
        if value is None:
            await self._remove()
            return

        data = self._serializer(value)
        if isinstance(data, str):
            data = data.encode(self._encoding)

        await self._ensure_dir()
        try:
            async with aiofiles.open(self._path, mode="wb") as f:
                await f.write(data)
        except OSError as e:
            raise StorageError(f"Failed to write {self._path}: {e}", name=self._path.name) from e
        logger.debug(f"Wrote {len(data)} bytes to {self._path}")

    async def _ensure_dir(self) -> None:
        if self._dir_created:
            return
        try:
            await aiofiles.os.makedirs(self._path.parent, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"Failed to create directory {self._path.parent}: {e}", name=self._path.name
            ) from e
        self._dir_created = True

    async def _remove(self) -> None:
        try:
            await aiofiles.os.remove(self._path)
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageError(f"Failed to delete {self._path}: {e}", name=self._path.name) from e
        logger.debug(f"Deleted {self._path}")

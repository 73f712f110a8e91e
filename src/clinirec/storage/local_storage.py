"""Storage adapters for persisted session state."""

import json
import logging
import os
from pathlib import Path
import tempfile

from clinirec.ports.storage import StoragePort

logger = logging.getLogger(__name__)


class InMemoryStorage(StoragePort):
    """Process-local storage. State is lost when the process exits."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        """Return a copy of everything stored."""
        return dict(self._items)


class JsonFileStorage(StoragePort):
    """Storage backed by a small JSON object on disk.

    Writes go through a temporary file and ``os.replace`` so a crash never
    leaves a half-written file behind. A corrupt or unreadable file is
    treated as empty.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()

    def _read(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            logger.warning("Could not read session storage %s: %s", self.path, e)
            return {}

        try:
            data = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError:
            logger.warning("Session storage %s is corrupt, starting empty", self.path)
            return {}

        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get_item(self, key: str) -> str | None:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

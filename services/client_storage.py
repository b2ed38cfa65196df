"""
Local durable storage for a single storefront client.

Each client (browser) gets its own key/value namespace, persisted as a JSON
document named after the client id. This is where the cart and the one-shot
"just purchased" flags live between requests.
"""
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_CLIENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def is_valid_client_id(client_id: str) -> bool:
    return bool(client_id) and _CLIENT_ID_PATTERN.match(client_id) is not None


class ClientStorage:
    """In-memory storage; the base for the file-backed variant."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._items: Dict[str, Any] = dict(initial or {})

    def get_item(self, key: str, default: Any = None) -> Any:
        return self._items.get(key, default)

    def set_item(self, key: str, value: Any) -> None:
        self._items[key] = value
        self._flush()

    def remove_item(self, key: str) -> None:
        if key in self._items:
            del self._items[key]
            self._flush()

    def has_item(self, key: str) -> bool:
        return key in self._items

    def _flush(self) -> None:
        pass


class FileClientStorage(ClientStorage):
    def __init__(self, root: str, client_id: str):
        if not is_valid_client_id(client_id):
            raise ValueError(f"Invalid client id: {client_id!r}")
        self.path = Path(root) / f"{client_id}.json"
        super().__init__(self._load())

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Discarding unreadable client storage {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(self._items), encoding="utf-8")
        tmp_path.replace(self.path)

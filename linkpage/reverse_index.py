"""
Alphanumeric identifier index.

Maps the full public key of every published document to its emojicode so that
``/t/<prefix>`` can resolve a document by a prefix of its key. The in-process
mapping is the source of truth at runtime and is mirrored to a local JSON file:

- after every ``flush_every`` registrations, or
- by ``flush_if_stale`` once the index has been dirty for ``flush_interval``.

A cold copy is additionally pushed to the storage backend by ``backup_if_due``.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from linkpage.audit_logger import get_audit_logger
from linkpage.identity import generate_keypair

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()


def _valid_entry(value: Any) -> bool:
    return isinstance(value, dict) and isinstance(value.get("emojicode"), str) and bool(value["emojicode"])


class ReverseIndex:
    """Owning service for the public-key -> emojicode mapping."""

    def __init__(
        self,
        path: Optional[str],
        flush_every: int = 10,
        flush_interval: int = 600,
        backup_interval: int = 3600,
        clock: Callable[[], float] = time.time,
    ):
        self.path = path
        self.flush_every = flush_every
        self.flush_interval = flush_interval
        self.backup_interval = backup_interval
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._pending = 0
        self._dirty_since: Optional[float] = None
        self._last_backup = clock()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def dirty(self) -> bool:
        return self._dirty_since is not None

    def register(self, pub_key: str, emojicode: str, uuid: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
        """Insert the entry for a freshly published document."""
        entry = {
            "uuid": uuid,
            "emojicode": emojicode,
            "createdAt": datetime.now(timezone.utc).isoformat(),
            **extra,
        }
        with self._lock:
            self._entries[pub_key] = entry
            if self._dirty_since is None:
                self._dirty_since = self._clock()
            self._pending += 1
            if self._pending >= self.flush_every:
                self.flush()
        return dict(entry)

    def get(self, pub_key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._entries.get(pub_key)
            return dict(entry) if entry else None

    def lookup_prefix(self, prefix: str) -> Optional[Tuple[str, Dict[str, Any]]]:
        """Return the first ``(pub_key, entry)`` whose key starts with ``prefix``."""
        if not prefix:
            return None
        with self._lock:
            for pub_key, entry in self._entries.items():
                if pub_key.startswith(prefix):
                    return pub_key, dict(entry)
        return None

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return {key: dict(value) for key, value in self._entries.items()}

    # ----------------- persistence -----------------
    def load(self) -> int:
        """Load the mirror file. A missing file means a fresh install."""
        if not self.path:
            return 0
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                mappings = json.load(fh)
        except FileNotFoundError:
            logger.info("No existing mappings file, starting fresh")
            return 0
        except (OSError, ValueError) as e:
            logger.error(f"Error loading mappings from {self.path}: {e}")
            return 0

        if not isinstance(mappings, dict):
            logger.error(f"Ignoring mappings file {self.path}: expected a JSON object")
            return 0

        entries = {key: value for key, value in mappings.items() if _valid_entry(value)}
        if len(entries) < len(mappings):
            logger.warning(f"Skipped {len(mappings) - len(entries)} malformed mappings in {self.path}")
        with self._lock:
            self._entries.update(entries)
            count = len(self._entries)
        logger.info(f"Loaded {count} alphanumeric mappings from filesystem")
        return count

    def flush(self) -> bool:
        """Write the full mapping to the mirror file (atomic replace)."""
        if not self.path:
            return False
        with self._lock:
            mappings = self.snapshot()
            directory = os.path.dirname(os.path.abspath(self.path))
            try:
                os.makedirs(directory, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".mappings-", suffix=".json")
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(mappings, fh, indent=2, ensure_ascii=False)
                os.replace(tmp_path, self.path)
            except OSError as e:
                logger.error(f"Error saving mappings to filesystem: {e}")
                return False

            self._pending = 0
            self._dirty_since = None

        audit_logger.log_event("index.flushed", count=len(mappings))
        logger.info(f"Saved {len(mappings)} alphanumeric mappings to filesystem")
        return True

    def flush_if_stale(self, now: Optional[float] = None) -> bool:
        now = self._clock() if now is None else now
        with self._lock:
            if self._dirty_since is None or now - self._dirty_since < self.flush_interval:
                return False
        return self.flush()

    def backup(self, bdo_client) -> str:
        """Push the whole mapping to the storage backend under a fresh keypair."""
        mappings = self.snapshot()
        document = {
            "title": "Linkitylink Alphanumeric Mappings Backup",
            "type": "linkpage-backup",
            "mappings": mappings,
            "mappingCount": len(mappings),
            "backedUpAt": datetime.now(timezone.utc).isoformat(),
        }
        uuid = bdo_client.create(document, generate_keypair())
        self._last_backup = self._clock()
        audit_logger.log_event("index.backed_up", count=len(mappings), uuid=uuid)
        logger.info(f"Backed up {len(mappings)} mappings to BDO service")
        return uuid

    def backup_if_due(self, bdo_client, now: Optional[float] = None) -> Optional[str]:
        now = self._clock() if now is None else now
        if not self._entries or now - self._last_backup < self.backup_interval:
            return None
        return self.backup(bdo_client)

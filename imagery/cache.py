from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from PIL import Image


class ImageCache:
    """
    Process-lifetime image store keyed by photo id.

    Unbounded, never evicted. All access goes through one lock; `key_lock()`
    additionally serializes whole resolve sequences for a single key so two
    concurrent fetches of the same photo can't both download and write.
    """

    def __init__(self) -> None:
        self._images: Dict[str, Image.Image] = {}
        self._lock = threading.Lock()
        self._key_locks: Dict[str, threading.Lock] = {}

    # -------- public API --------

    def get(self, key: str) -> Optional[Image.Image]:
        with self._lock:
            return self._images.get(key)

    def set(self, key: str, image: Image.Image) -> None:
        with self._lock:
            self._images[key] = image

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._images

    def __len__(self) -> int:
        with self._lock:
            return len(self._images)

    @contextmanager
    def key_lock(self, key: str) -> Iterator[None]:
        with self._lock:
            lk = self._key_locks.setdefault(key, threading.Lock())
        with lk:
            yield

from __future__ import annotations

"""
Image fetch service with a write-through cache.

Resolution order for a Photo (first hit wins):
  1) in-memory ImageCache by photo_id
  2) persisted PNG blob on the record (decoded, then cached)
  3) download of photo.url_small -> cached, PNG blob committed on its own (best effort)

Usage:
    fetcher = ImageFetchService(cache, store, main_queue)
    fetcher.fetch(photo, callback=lambda res: show(res.value) if res.ok else None)
"""

import io
import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Optional

import requests
from PIL import Image, UnidentifiedImageError

from common.errors import DecodeError, PersistenceError, TransportError
from common.types import Callback, MainQueue, Result
from imagery.cache import ImageCache
from persistence.models import Photo
from persistence.store import PhotoStore


log = logging.getLogger(__name__)

_PNG_MODES = ("1", "L", "LA", "I", "P", "RGB", "RGBA")


def decode_image(data: bytes) -> Image.Image:
    """Decode bytes fully (not lazily); DecodeError if they aren't an image."""
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise DecodeError(f"not a decodable image ({len(data)} bytes): {e}") from e
    return img


def encode_png(img: Image.Image) -> bytes:
    if img.mode not in _PNG_MODES:
        img = img.convert("RGB")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class ImageFetchService:
    def __init__(
        self,
        cache: ImageCache,
        store: PhotoStore,
        main_queue: MainQueue,
        *,
        session: Optional[requests.Session] = None,
        executor: Optional[Executor] = None,
        timeout: float = 10.0,
    ):
        self.cache = cache
        self.store = store
        self.main_queue = main_queue
        self._owns_session = session is None
        self._owns_executor = executor is None
        self.session = session or requests.Session()
        self.executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="imagery")
        self.timeout = float(timeout)

    def close(self) -> None:
        """Shut down the pool and HTTP session if this service created them."""
        if self._owns_executor:
            self.executor.shutdown(wait=True)
        if self._owns_session:
            self.session.close()

    def fetch(self, photo: Photo, callback: Optional[Callback] = None) -> "Future[Result[Image.Image]]":
        """Resolve the image for `photo`; callback runs once on the main queue."""
        future: "Future[Result[Image.Image]]" = Future()
        key = photo.photo_id

        cached = self.cache.get(key)
        if cached is not None:
            log.debug("Image cache hit for %s", key)
            self.main_queue.deliver(future, callback, Result.success(cached))
            return future

        self.executor.submit(self._run, photo, future, callback)
        return future

    # ----------------------------
    # Background side
    # ----------------------------
    def _run(self, photo: Photo, future: Future, callback: Optional[Callback]) -> None:
        try:
            result = self._resolve(photo)
        except Exception as e:
            log.exception("Unexpected error fetching image: %s", e)
            result = Result.failure(e)
        self.main_queue.deliver(future, callback, result)

    def _resolve(self, photo: Photo) -> Result[Image.Image]:
        key, url, blob = self.store.perform(lambda: (photo.photo_id, photo.url_small, photo.image_data))
        with self.cache.key_lock(key):
            # another fetch may have finished while we waited
            cached = self.cache.get(key)
            if cached is not None:
                return Result.success(cached)

            if blob:
                try:
                    img = decode_image(blob)
                except DecodeError as e:
                    log.warning("Stored blob for %s undecodable, downloading again: %s", key, e)
                else:
                    log.debug("Image for %s restored from stored blob", key)
                    self.cache.set(key, img)
                    return Result.success(img)

            return self._download(photo, key, url)

    def _download(self, photo: Photo, key: str, url: str) -> Result[Image.Image]:
        try:
            r = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            log.warning("Image download failed for %s: %s", key, e)
            return Result.failure(TransportError(str(e)))
        if r.status_code >= 400:
            log.warning("Image download failed for %s: HTTP %s", key, r.status_code)
            return Result.failure(TransportError(f"HTTP {r.status_code}", status_code=r.status_code))
        if not r.content:
            # transport succeeded but there is nothing to decode
            return Result.failure(DecodeError("empty response body"))

        try:
            img = decode_image(r.content)
        except DecodeError as e:
            log.warning("Downloaded bytes for %s are not an image: %s", key, e)
            return Result.failure(e)

        png = encode_png(img)
        self.cache.set(key, img)
        try:
            # commits the blob alone; other pending changes stay pending
            self.store.save_blob(photo, png)
        except PersistenceError as e:
            # image is still good for this session
            log.warning("Could not persist image for %s: %s", key, e)
        return Result.success(img)

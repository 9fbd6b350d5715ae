from __future__ import annotations

"""
Location photo query: one Flickr photos.search call per request.

Usage:
    svc = LocationPhotoQueryService(store, main_queue)  # FLICKR_API_KEY in env or api_key=...
    svc.query_location(location, {"page": "2"}, callback=on_photos)
    # on_photos(Result[list[Photo]]) runs on main_queue exactly once
"""

import logging
import os
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Dict, List, Mapping, Optional

import requests

from common.config import DEFAULTS
from common.errors import ParseError, TransportError
from common.geo import search_bbox
from common.types import Callback, MainQueue, Result
from flickr import api
from persistence.models import Location, Photo
from persistence.store import PhotoStore


log = logging.getLogger(__name__)


class LocationPhotoQueryService:
    def __init__(
        self,
        store: PhotoStore,
        main_queue: MainQueue,
        *,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        executor: Optional[Executor] = None,
        config: Optional[Mapping] = None,
    ):
        """
        Params:
            store: persistence context new Photo records are attached to
            main_queue: UI dispatch context for callbacks
            api_key: Flickr API key (falls back to config, then env FLICKR_API_KEY)
            session: optional requests.Session for connection reuse
            executor: background pool for the HTTP call
            config: the `flickr` config section (defaults from common.config)
        """
        cfg = dict(DEFAULTS["flickr"])
        cfg.update(config or {})
        self.cfg = cfg
        self.api_key = api_key or cfg.get("api_key") or os.getenv("FLICKR_API_KEY")
        if not self.api_key:
            raise ValueError(
                "Flickr API key is required. "
                "Set FLICKR_API_KEY environment variable or pass api_key=..."
            )
        self.base_url = cfg["base_url"]
        self.timeout = float(cfg["timeout_s"])
        self._url_key = str(cfg["extras"]).split(",")[0].strip()
        self.store = store
        self.main_queue = main_queue
        self._owns_session = session is None
        self._owns_executor = executor is None
        self.session = session or requests.Session()
        self.executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="flickr")

    def close(self) -> None:
        """Release the pool and session unless they were injected."""
        if self._owns_executor:
            self.executor.shutdown(wait=True)
        if self._owns_session:
            self.session.close()

    # ----------------------------
    # Public API
    # ----------------------------
    def build_url(self, lat: float, lon: float, extra: Optional[Mapping[str, str]] = None) -> str:
        """Full photos.search URL for a pin (no request performed)."""
        bbox = search_bbox(
            lat,
            lon,
            half_width=float(self.cfg["bbox_half_width"]),
            half_height=float(self.cfg["bbox_half_height"]),
            lon_range=tuple(self.cfg["lon_range"]),
            lat_range=tuple(self.cfg["lat_range"]),
        )
        params = api.search_params(
            self.api_key,
            bbox,
            method=self.cfg["method"],
            extras=self.cfg["extras"],
            safe_search=self.cfg["safe_search"],
            per_page=self.cfg["per_page"],
            extra=extra,
        )
        return api.search_url(self.base_url, params)

    def query(
        self,
        latitude: float,
        longitude: float,
        extra_params: Optional[Mapping[str, str]] = None,
        callback: Optional[Callback] = None,
        *,
        location: Optional[Location] = None,
    ) -> "Future[Result[List[Photo]]]":
        """
        Search photos around (latitude, longitude). When `location` is given the
        parsed Photos are attached to it (uncommitted). Result is delivered via
        `callback` on the main queue and through the returned Future.
        """
        future: "Future[Result[List[Photo]]]" = Future()
        url = self.build_url(latitude, longitude, extra_params)
        log.info(
            "Querying photos near %.5f,%.5f",
            latitude,
            longitude,
            extra={"extra": {"params": dict(extra_params or {})}},
        )
        self.executor.submit(self._run, url, location, future, callback)
        return future

    def query_location(
        self,
        location: Location,
        extra_params: Optional[Mapping[str, str]] = None,
        callback: Optional[Callback] = None,
    ) -> "Future[Result[List[Photo]]]":
        return self.query(location.latitude, location.longitude, extra_params, callback, location=location)

    # ----------------------------
    # Background side
    # ----------------------------
    def _run(self, url: str, location: Optional[Location], future: Future, callback: Optional[Callback]) -> None:
        try:
            result = self._fetch_and_parse(url, location)
        except Exception as e:
            log.exception("Unexpected error in photo query: %s", e)
            result = Result.failure(e)
        self.main_queue.deliver(future, callback, result)

    def _fetch_and_parse(self, url: str, location: Optional[Location]) -> Result[List[Photo]]:
        try:
            r = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            log.warning("Photo search transport failure: %s", e)
            return Result.failure(TransportError(str(e)))
        if r.status_code >= 400:
            log.warning("Photo search failed: %s %s", r.status_code, (r.text or "")[:200])
            return Result.failure(TransportError(f"HTTP {r.status_code}", status_code=r.status_code))

        try:
            descriptors = api.parse_photo_descriptors(r.content, url_key=self._url_key)
        except ParseError as e:
            log.warning("Photo search response unparseable: %s", e)
            return Result.failure(e)

        return Result.success(self._make_photos(descriptors, location))

    def _make_photos(self, descriptors: List[Dict[str, str]], location: Optional[Location]) -> List[Photo]:
        photos = [Photo(photo_id=d["photo_id"], url_small=d["url_small"]) for d in descriptors]
        if location is not None:
            def _attach() -> None:
                for p in photos:
                    self.store.attach(p, location)
            self.store.perform(_attach)
        log.debug("Parsed %d photo descriptors", len(photos))
        return photos

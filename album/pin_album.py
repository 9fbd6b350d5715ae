from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Callable, Dict, List, Mapping, Optional

from PIL import Image

from common.types import Result
from flickr.api import PAGE
from flickr.query import LocationPhotoQueryService
from imagery.fetch import ImageFetchService
from persistence.models import Location, Photo
from persistence.store import PhotoStore


log = logging.getLogger(__name__)

NEW_COLLECTION_TITLE = "New Collection"
REMOVE_SELECTED_TITLE = "Remove Selected Pictures"


class PinAlbum:
    """
    Presentation state for one pin's photo collection.

    Every method runs on the main queue (callbacks from the services arrive
    there too), so no locking is done here. Items are addressed by photo_id,
    never by a captured index: completions look the key up again and drop
    their effect if the photo is gone.
    """

    def __init__(
        self,
        location: Location,
        *,
        store: PhotoStore,
        query_service: LocationPhotoQueryService,
        fetch_service: ImageFetchService,
    ):
        self.location = location
        self.store = store
        self.query_service = query_service
        self.fetch_service = fetch_service
        self.photos: List[Photo] = []
        self.images: Dict[str, Image.Image] = {}
        self.selected: List[str] = []
        self.show_empty_state = False
        self.busy = False

    # -------- list access --------

    def index_of(self, key: str) -> Optional[int]:
        for i, p in enumerate(self.photos):
            if p.photo_id == key:
                return i
        return None

    def is_loading(self, key: str) -> bool:
        return key not in self.images

    @property
    def action_title(self) -> str:
        return REMOVE_SELECTED_TITLE if self.selected else NEW_COLLECTION_TITLE

    # -------- collection --------

    def load(self, on_done: Optional[Callable[[], None]] = None) -> None:
        """Show stored photos if the pin has any, else ask the API."""
        stored = self.store.perform(lambda: list(self.location.photos))
        if stored:
            self.photos = stored
            self.show_empty_state = False
            if on_done:
                on_done()
            return
        self.request_photos(on_done=on_done)

    def request_photos(
        self,
        extra_params: Optional[Mapping[str, str]] = None,
        on_done: Optional[Callable[[], None]] = None,
    ) -> None:
        self.busy = True

        def _apply(result: Result[List[Photo]]) -> None:
            self.busy = False
            if result.ok:
                self.photos = list(result.value or [])
            else:
                log.warning("Photo query for pin %s failed: %s", self.location.id, result.error)
                self.photos = []
            self.show_empty_state = len(self.photos) == 0
            if on_done:
                on_done()

        self.query_service.query_location(self.location, extra_params, callback=_apply)

    def new_collection(self, on_done: Optional[Callable[[], None]] = None) -> None:
        """
        Replace the album with the next result page: bump the pin's page
        number, delete every current photo, save, then query that page.
        """
        if self.busy:
            return

        def _advance() -> int:
            self.location.page_number = (self.location.page_number or 0) + 1
            for p in list(self.location.photos):
                self.store.delete(p)
            return self.location.page_number

        next_page = self.store.perform(_advance)
        self.photos = []
        self.images.clear()
        self.selected = []
        self.store.save()
        self.request_photos({PAGE: str(next_page)}, on_done=on_done)

    # -------- selection --------

    def toggle_selection(self, key: str) -> bool:
        """Flip selection of `key`; returns the new state."""
        if key in self.selected:
            self.selected.remove(key)
            return False
        if self.index_of(key) is None:
            return False
        self.selected.append(key)
        return True

    def remove_selected(self) -> List[str]:
        removed: List[str] = []

        def _delete_batch() -> None:
            # one locked unit so no background write-through lands mid-batch
            for key in list(self.selected):
                i = self.index_of(key)
                if i is None:
                    continue
                photo = self.photos.pop(i)
                self.store.delete(photo)
                self.images.pop(key, None)
                removed.append(key)
            self.selected = []
            self.store.save()

        self.store.perform(_delete_batch)
        self.show_empty_state = len(self.photos) == 0
        return removed

    # -------- images --------

    def display(
        self, key: str, on_image: Optional[Callable[[int, Image.Image], None]] = None
    ) -> Optional["Future[Result[Image.Image]]"]:
        """Item `key` became visible: resolve its image, then show it where it is now."""
        i = self.index_of(key)
        if i is None:
            return None
        photo = self.photos[i]

        def _apply(result: Result[Image.Image]) -> None:
            if not result.ok:
                # item stays in its loading state
                return
            idx = self.index_of(key)
            if idx is None:
                return
            self.images[key] = result.value  # type: ignore[assignment]
            if on_image:
                on_image(idx, result.value)  # type: ignore[arg-type]

        return self.fetch_service.fetch(photo, callback=_apply)


from __future__ import annotations

"""
Album service: drop (or reuse) a pin, load its photo album and download every image.

The main thread plays the UI thread: it pumps the MainQueue while the
services work on background pools.

Examples:
  # First visit of a pin: query Flickr, download, write PNGs
  FLICKR_API_KEY=... python -m album.service --lat 40.0 --lon -70.0 --out-dir runtime/album

  # Replace the pin's photos with the next result page
  python -m album.service --lat 40.0 --lon -70.0 --new-collection

  # Remove the pin and its photos
  python -m album.service --lat 40.0 --lon -70.0 --remove-pin
"""

import argparse
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Optional

import requests

from common.config import load_config
from common.errors import PersistenceError
from common.logging_setup import get_logger, setup_logging
from common.types import MainQueue
from album.pin_album import PinAlbum
from flickr.query import LocationPhotoQueryService
from imagery.cache import ImageCache
from imagery.fetch import ImageFetchService, encode_png
from persistence.store import PhotoStore


log = get_logger(__name__)


def _pump_until(main_queue: MainQueue, done: Callable[[], bool], timeout: float) -> bool:
    t0 = time.monotonic()
    while not done():
        main_queue.process_pending()
        if time.monotonic() - t0 > timeout:
            return False
        time.sleep(0.02)
    main_queue.process_pending()
    return True


def main(argv: Optional[list] = None) -> int:
    ap = argparse.ArgumentParser(description="Virtual Tourist pin album")
    ap.add_argument("--lat", type=float, required=True, help="Pin latitude (deg)")
    ap.add_argument("--lon", type=float, required=True, help="Pin longitude (deg)")
    gact = ap.add_mutually_exclusive_group()
    gact.add_argument("--new-collection", action="store_true", help="Replace photos with the next result page")
    gact.add_argument("--remove-pin", action="store_true", help="Delete the pin and its photos")
    ap.add_argument("--out-dir", default=None, help="Directory to write resolved images (PNG)")
    ap.add_argument("--config", default=None, help="YAML params file (default config/params.yaml)")
    ap.add_argument("--db", default=None, help="Database URL (overrides config / DATABASE_URL)")
    ap.add_argument("--timeout", type=float, default=60.0, help="Give up waiting after N seconds")
    ap.add_argument("--log-level", default=None, help="DEBUG/INFO/WARNING/ERROR (default env LOG_LEVEL or INFO)")
    args = ap.parse_args(argv)

    setup_logging(args.log_level, force=args.log_level is not None)
    cfg = load_config(args.config)

    store = PhotoStore(args.db or cfg["storage"]["database_url"])
    location = store.find_pin(args.lat, args.lon)

    if args.remove_pin:
        if location is None:
            print("No pin at that location.")
            return 1
        store.remove_pin(location)
        store.save()
        print(f"Removed pin {args.lat},{args.lon}.")
        return 0

    if location is None:
        location = store.add_pin(args.lat, args.lon)
        store.save()
        log.info("Dropped new pin %s", location.id)

    main_queue = MainQueue()
    session = requests.Session()
    pool = ThreadPoolExecutor(max_workers=int(cfg["workers"]["max_workers"]), thread_name_prefix="vt")
    flickr_cfg = cfg["flickr"]
    album = PinAlbum(
        location,
        store=store,
        query_service=LocationPhotoQueryService(
            store, main_queue, session=session, executor=pool, config=flickr_cfg
        ),
        fetch_service=ImageFetchService(
            ImageCache(), store, main_queue, session=session, executor=pool, timeout=flickr_cfg["timeout_s"]
        ),
    )

    try:
        loaded = {"done": False}

        def _loaded() -> None:
            loaded["done"] = True

        if args.new_collection:
            album.new_collection(on_done=_loaded)
        else:
            album.load(on_done=_loaded)
        if not _pump_until(main_queue, lambda: loaded["done"], args.timeout):
            print("Timed out waiting for the photo query.")
            return 2

        if album.show_empty_state:
            print(f"No images for pin {args.lat},{args.lon} (page {location.page_number}).")
            return 0

        out_dir = Path(args.out_dir) if args.out_dir else None
        if out_dir is not None:
            out_dir.mkdir(parents=True, exist_ok=True)

        def _show(index: int, image) -> None:
            if out_dir is not None:
                key = album.photos[index].photo_id
                (out_dir / f"{index:03d}_{key}.png").write_bytes(encode_png(image))

        futures = [album.display(p.photo_id, _show) for p in list(album.photos)]
        futures = [f for f in futures if f is not None]
        _pump_until(main_queue, lambda: all(f.done() for f in futures), args.timeout)

        ok = sum(1 for f in futures if f.done() and f.result().ok)
        try:
            # new photos and their blobs are still pending
            store.save()
        except PersistenceError as e:
            log.error("Could not save album for pin %s: %s", location.id, e)
            print(f"Could not save album: {e}")
            return 3
        print(
            f"Pin {args.lat},{args.lon} page {location.page_number}: "
            f"{len(album.photos)} photos, {ok} images resolved, {len(album.photos) - ok} still loading."
        )
        return 0
    finally:
        pool.shutdown(wait=True)
        session.close()
        main_queue.process_pending()
        store.close()


if __name__ == "__main__":
    raise SystemExit(main())

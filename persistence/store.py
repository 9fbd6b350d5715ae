from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional, TypeVar

from sqlalchemy import create_engine, inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.attributes import set_committed_value
from sqlalchemy.pool import StaticPool

from common.errors import PersistenceError
from persistence.models import Base, Location, Photo


log = logging.getLogger(__name__)

T = TypeVar("T")


def make_engine(database_url: str):
    """
    Engine for `database_url`. SQLite files get their parent directory created;
    in-memory SQLite shares one connection so every thread sees the same data.
    """
    is_sqlite = database_url.startswith("sqlite")
    kwargs = {}
    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        else:
            db_path = Path(database_url.split("sqlite:///", 1)[-1])
            db_path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, **kwargs)


class PhotoStore:
    """
    Object context for Locations and Photos.

    One long-lived Session guarded by a re-entrant lock. Background
    completions touch records only inside `perform()`, so writes to the same
    record never interleave. Mutations stay pending until `save()`.
    """

    def __init__(self, database_url: str = "sqlite://", *, session: Optional[Session] = None):
        if session is None:
            engine = make_engine(database_url)
            Base.metadata.create_all(bind=engine)
            session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
        self.session = session
        # short-lived sessions for writes that must not touch `session`'s pending work
        self._side_sessions = sessionmaker(bind=session.get_bind(), autoflush=False)
        self._lock = threading.RLock()

    # -------- pins --------

    def add_pin(self, latitude: float, longitude: float) -> Location:
        loc = Location(latitude=latitude, longitude=longitude)
        with self._lock:
            self.session.add(loc)
        return loc

    def remove_pin(self, location: Location) -> None:
        self.delete(location)

    def locations(self) -> List[Location]:
        with self._lock:
            return self.session.query(Location).order_by(Location.id.asc()).all()

    def find_pin(self, latitude: float, longitude: float) -> Optional[Location]:
        with self._lock:
            return (
                self.session.query(Location)
                .filter(Location.latitude == float(latitude), Location.longitude == float(longitude))
                .order_by(Location.id.asc())
                .first()
            )

    # -------- photos --------

    def attach(self, photo: Photo, location: Location) -> Photo:
        """Create-and-attach: link `photo` to `location` and add it to the session."""
        with self._lock:
            photo.location = location
            self.session.add(photo)
        return photo

    def delete(self, record) -> None:
        with self._lock:
            if isinstance(record, Photo) and record.location is not None and record in record.location.photos:
                # keep the in-memory collection in step with the pending delete
                record.location.photos.remove(record)
            state = inspect(record)
            if state.pending:
                # never flushed: just forget it
                self.session.expunge(record)
            elif state.persistent:
                self.session.delete(record)

    def perform(self, fn: Callable[[], T]) -> T:
        """Run `fn` with exclusive access to the session."""
        with self._lock:
            return fn()

    def save_blob(self, photo: Photo, data: bytes) -> None:
        """
        Store `data` as the photo's image blob without committing anything
        else pending in the session.

        Persistent photos are written through a short-lived side session and
        the value is marked clean here. Unsaved photos just get the attribute;
        it lands with their next `save()`. On failure the value stays set (and
        dirty) so a later `save()` can still persist it.
        """
        with self._lock:
            state = inspect(photo)
            if not state.persistent:
                photo.image_data = data
                return
            side = self._side_sessions()
            try:
                side.query(Photo).filter(Photo.id == photo.id).update(
                    {Photo.image_data: data}, synchronize_session=False
                )
                side.commit()
            except SQLAlchemyError as e:
                side.rollback()
                photo.image_data = data
                log.warning("Saving image blob for %s failed: %s", photo.photo_id, e)
                raise PersistenceError(f"blob save failed: {e}") from e
            finally:
                side.close()
            set_committed_value(photo, "image_data", data)

    def save(self) -> None:
        """Commit pending changes; roll back and raise PersistenceError on failure."""
        with self._lock:
            try:
                self.session.commit()
            except SQLAlchemyError as e:
                self.session.rollback()
                log.warning("Saving photo store failed: %s", e)
                raise PersistenceError(f"save failed: {e}") from e

    def close(self) -> None:
        with self._lock:
            self.session.close()

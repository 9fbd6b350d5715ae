"""
Unit tests for the persistence layer
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from common.errors import PersistenceError
from persistence.models import Location, Photo
from persistence.store import PhotoStore


class TestModels:
    """Test cases for validated construction"""

    def test_photo_requires_id(self):
        with pytest.raises(ValueError, match="photo_id"):
            Photo(photo_id="", url_small="http://x/a.jpg")

    def test_photo_requires_url(self):
        with pytest.raises(ValueError, match="url_small"):
            Photo(photo_id="a", url_small=None)

    def test_photo_fields_cannot_be_cleared(self):
        p = Photo(photo_id="a", url_small="http://x/a.jpg")
        with pytest.raises(ValueError):
            p.url_small = "  "

    def test_location_range_checked(self):
        with pytest.raises(ValueError):
            Location(latitude=91.0, longitude=0.0)

    def test_location_defaults(self):
        loc = Location(latitude=1.5, longitude=2.5)
        assert loc.page_number == 0
        assert loc.photos == []


class TestPhotoStore:
    """Test cases for PhotoStore"""

    def test_pins_round_trip(self, store):
        a = store.add_pin(40.0, -70.0)
        b = store.add_pin(-33.9, 151.2)
        store.save()

        assert store.locations() == [a, b]
        assert store.find_pin(-33.9, 151.2) is b
        assert store.find_pin(0.0, 0.0) is None

    def test_remove_pin_deletes_photos(self, store, location):
        store.attach(Photo(photo_id="a", url_small="http://x/a.jpg"), location)
        store.attach(Photo(photo_id="b", url_small="http://x/b.jpg"), location)
        store.save()

        store.remove_pin(location)
        store.save()

        assert store.locations() == []
        assert store.session.query(Photo).count() == 0

    def test_delete_persisted_photo(self, store, location):
        p = store.attach(Photo(photo_id="a", url_small="http://x/a.jpg"), location)
        store.save()

        store.delete(p)
        store.save()

        assert location.photos == []
        assert store.session.query(Photo).count() == 0

    def test_delete_unsaved_photo(self, store, location):
        """Deleting a photo that was never saved just drops it"""
        p = store.attach(Photo(photo_id="a", url_small="http://x/a.jpg"), location)
        store.delete(p)
        store.save()

        assert location.photos == []
        assert store.session.query(Photo).count() == 0

    def test_blob_persisted(self, store, location):
        p = store.attach(Photo(photo_id="a", url_small="http://x/a.jpg"), location)
        p.image_data = b"\x89PNG..."
        store.save()

        store.session.expire_all()
        assert store.session.query(Photo).one().image_data == b"\x89PNG..."

    def test_save_failure_raises_persistence_error(self, store, location):
        store.attach(Photo(photo_id="a", url_small="http://x/a.jpg"), location)
        err = OperationalError("COMMIT", {}, Exception("disk I/O error"))
        with patch.object(store.session, "commit", side_effect=err):
            with pytest.raises(PersistenceError, match="save failed"):
                store.save()

    def test_save_blob_commits_only_the_blob(self, tmp_path):
        """The blob reaches the database; an unsaved sibling photo does not"""
        url = f"sqlite:///{tmp_path / 'vt.db'}"
        s = PhotoStore(url)
        try:
            loc = s.add_pin(1.0, 2.0)
            saved = s.attach(Photo(photo_id="a", url_small="http://x/a.jpg"), loc)
            s.save()
            pending = s.attach(Photo(photo_id="b", url_small="http://x/b.jpg"), loc)

            s.save_blob(saved, b"\x89PNG-a")

            assert pending in s.session.new
            assert saved not in s.session.dirty
            other = PhotoStore(url)
            try:
                rows = other.session.query(Photo).all()
                assert [(p.photo_id, p.image_data) for p in rows] == [("a", b"\x89PNG-a")]
            finally:
                other.close()
        finally:
            s.close()

    def test_save_blob_failure_leaves_session_alone(self, store, location):
        saved = store.attach(Photo(photo_id="a", url_small="http://x/a.jpg"), location)
        store.save()
        pending = store.attach(Photo(photo_id="b", url_small="http://x/b.jpg"), location)
        err = OperationalError("UPDATE", {}, Exception("database is locked"))

        with patch.object(store, "_side_sessions") as side_factory:
            side_factory.return_value.commit.side_effect = err
            with pytest.raises(PersistenceError, match="blob save failed"):
                store.save_blob(saved, b"png")

        assert pending in store.session.new
        assert saved.image_data == b"png"
        assert saved in store.session.dirty

    def test_perform_returns_value(self, store):
        assert store.perform(lambda: 42) == 42

    def test_file_database_creates_directory(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'nested' / 'vt.db'}"
        s = PhotoStore(url)
        try:
            s.add_pin(1.0, 2.0)
            s.save()
        finally:
            s.close()
        assert (tmp_path / "nested" / "vt.db").exists()

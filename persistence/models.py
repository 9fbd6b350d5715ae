from __future__ import annotations

from sqlalchemy import Column, Float, ForeignKey, Integer, LargeBinary, String
from sqlalchemy.orm import declarative_base, relationship, validates


Base = declarative_base()


class Location(Base):
    """A dropped pin. Owns its photos; deleting it deletes them."""
    __tablename__ = "locations"
    id = Column(Integer, primary_key=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    page_number = Column(Integer, nullable=False, default=0)  # result page of the current collection

    photos = relationship(
        "Photo",
        back_populates="location",
        cascade="all, delete-orphan",
        order_by="Photo.id",
    )

    def __init__(self, latitude: float, longitude: float, page_number: int = 0):
        if not (-90.0 <= latitude <= 90.0) or not (-180.0 <= longitude <= 180.0):
            raise ValueError("lat/lon out of range")
        super().__init__(latitude=float(latitude), longitude=float(longitude), page_number=int(page_number))

    def __repr__(self) -> str:
        return f"<Location id={self.id} lat={self.latitude} lon={self.longitude} page={self.page_number}>"


class Photo(Base):
    """
    One downloadable image of a Location.

    `photo_id` and `url_small` are required at construction and can't be
    cleared afterwards, so every Photo is fetchable. `image_data` holds the
    PNG blob once the image has been downloaded.
    """
    __tablename__ = "photos"
    id = Column(Integer, primary_key=True)
    location_id = Column(Integer, ForeignKey("locations.id", ondelete="CASCADE"), nullable=False)
    photo_id = Column(String, nullable=False, index=True)
    url_small = Column(String, nullable=False)
    image_data = Column(LargeBinary, nullable=True)

    location = relationship("Location", back_populates="photos")

    def __init__(self, photo_id: str, url_small: str, location: Location | None = None):
        super().__init__(photo_id=photo_id, url_small=url_small)
        if location is not None:
            self.location = location

    @validates("photo_id", "url_small")
    def _require_text(self, key: str, value):
        if value is None or not str(value).strip():
            raise ValueError(f"Photo.{key} is required")
        return str(value)

    def __repr__(self) -> str:
        return f"<Photo photo_id={self.photo_id!r} cached_blob={self.image_data is not None}>"

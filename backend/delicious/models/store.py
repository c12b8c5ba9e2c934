"""Store model."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from delicious.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Store(Base):
    __tablename__ = "stores"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str | None] = mapped_column(String(200))
    slug: Mapped[str | None] = mapped_column(String(220), unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    tags: Mapped[list[str]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), default=list
    )
    created: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    # GeoJSON-style point; coordinates are [longitude, latitude]
    location_type: Mapped[str] = mapped_column(String(20), default="Point")
    longitude: Mapped[float | None] = mapped_column(Float)
    latitude: Mapped[float | None] = mapped_column(Float)
    address: Mapped[str | None] = mapped_column(Text)

    photo: Mapped[str | None] = mapped_column(Text)
    author_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id")
    )

    author = relationship("User", back_populates="stores")

    @validates("name", "description", "address")
    def _strip(self, key, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @property
    def coordinates(self) -> list[float]:
        """``[longitude, latitude]``, empty when the point is not set."""
        if self.longitude is None or self.latitude is None:
            return []
        return [self.longitude, self.latitude]

    @coordinates.setter
    def coordinates(self, value) -> None:
        if value and len(value) == 2 and None not in value:
            self.longitude, self.latitude = float(value[0]), float(value[1])
        else:
            self.longitude = self.latitude = None

    def __repr__(self):
        return f"<Store {self.slug}: {self.name}>"


# Full-text and geospatial indexes, PostgreSQL only (cube + earthdistance).
Index(
    "idx_stores_search",
    func.to_tsvector(
        "english",
        func.coalesce(Store.name, "") + " " + func.coalesce(Store.description, ""),
    ),
    postgresql_using="gin",
).ddl_if(dialect="postgresql")

Index(
    "idx_stores_location",
    func.ll_to_earth(Store.latitude, Store.longitude),
    postgresql_using="gist",
).ddl_if(dialect="postgresql")

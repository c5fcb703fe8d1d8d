"""Single-table item model backing the key-value store contract."""
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Index, String

from liftcycle.db.database import Base


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StoreItem(Base):
    """One record in the single-table layout.

    Every item lives under a partition key (the user identity) and a sort key
    that encodes its kind. Two optional secondary index key pairs support the
    range queries: GSI1 groups workouts by date, GSI2 groups cycle-scoped
    records by cycle number.
    """

    __tablename__ = "items"

    pk = Column(String(200), primary_key=True)
    sk = Column(String(300), primary_key=True)

    gsi1pk = Column(String(200), nullable=True)
    gsi1sk = Column(String(300), nullable=True)
    gsi2pk = Column(String(200), nullable=True)
    gsi2sk = Column(String(300), nullable=True)

    item_type = Column(String(50), nullable=False, index=True)
    data = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utc_now, onupdate=_utc_now)

    __table_args__ = (
        Index("ix_items_gsi1", "gsi1pk", "gsi1sk"),
        Index("ix_items_gsi2", "gsi2pk", "gsi2sk"),
    )

    # Attribute names as they appear in item dicts handed to/from the gateway
    KEY_ATTRIBUTES = {
        "PK": "pk",
        "SK": "sk",
        "GSI1PK": "gsi1pk",
        "GSI1SK": "gsi1sk",
        "GSI2PK": "gsi2pk",
        "GSI2SK": "gsi2sk",
        "type": "item_type",
    }

    @classmethod
    def from_dict(cls, item: dict) -> "StoreItem":
        columns = {
            column: item.get(attribute)
            for attribute, column in cls.KEY_ATTRIBUTES.items()
        }
        data = {k: v for k, v in item.items() if k not in cls.KEY_ATTRIBUTES}
        return cls(**columns, data=data, updated_at=_utc_now())

    def to_dict(self) -> dict:
        item = dict(self.data or {})
        for attribute, column in self.KEY_ATTRIBUTES.items():
            value = getattr(self, column)
            if value is not None:
                item[attribute] = value
        return item

    def __repr__(self) -> str:
        return f"<StoreItem(pk={self.pk!r}, sk={self.sk!r}, type={self.item_type!r})>"

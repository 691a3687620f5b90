"""
Module: splitbill_kernel.db.base
Responsibility: Declarative base and shared column types for the ledger's
    ORM models: UUID primary keys, UTC timestamps, Decimal money, and the
    group scoping carried by members, expenses and settlements.
Architecture position: Kernel > DB.  Lowest-level import target within the
    kernel; every model file imports from here.  MUST NOT import from
    models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - UUID primary keys, uuid4-generated, stored as String(36).
    - Money: Python Decimal maps to Numeric(38, 9).  NEVER use float.
    - Timestamps are timezone-aware in both directions.  Backends that drop
      the offset (SQLite) get UTC reattached on load, so rows read back
      compare cleanly with freshly stamped clock values.

Failure modes:
    - ValueError on binding a naive datetime to a UTCDateTime column.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import Date, DateTime, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID stored as its 36-character string form."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else PyUUID(value)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime normalized to UTC.

    Guarantees:
        - Values are converted to UTC before they are written.
        - Values read back are always aware (UTC).
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"naive datetime not allowed in a ledger timestamp: {value!r}")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """
    Declarative base for all ledger models.

    Guarantees:
        - ``id`` is a uuid4 primary key.
        - Annotated Decimal / datetime / date / UUID columns get the ledger
          column types without spelling them out per model.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: UTCDateTime(),
        date: Date(),
        PyUUID: UUIDString(),
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class GroupScoped:
    """
    Mixin for rows that belong to exactly one group.

    Groups are owned by the membership collaborator, so ``group_id`` is a
    plain column with no foreign key.
    """

    group_id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

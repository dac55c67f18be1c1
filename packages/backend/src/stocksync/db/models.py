"""SQLAlchemy ORM models — inventory and bills.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Only the two tables whose writes are broadcast live here. Customer details
are flattened onto the bill row and re-nested by the `customer` property so
the wire shape stays `{customer: {name, phone, ...}}`.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InventoryItem(Base):
    """One stocked product. `quantity` drops as bills are created."""

    __tablename__ = "inventory"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    hsn: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    size: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    colour: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    unit: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    min_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    price: Mapped[float] = mapped_column(
        Numeric(10, 2, asdecimal=False), default=0, nullable=False
    )
    gst: Mapped[float] = mapped_column(
        Numeric(5, 2, asdecimal=False), default=0, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )


class Bill(Base):
    """A completed sale. Totals are stored exactly as submitted."""

    __tablename__ = "bills"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    customer_gst: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    customer_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    customer_state: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    items: Mapped[list] = mapped_column(JSON, default=list)
    subtotal: Mapped[Optional[float]] = mapped_column(
        Numeric(10, 2, asdecimal=False), nullable=True
    )
    gst_breakdown: Mapped[dict] = mapped_column(JSON, default=dict)
    total_gst: Mapped[Optional[float]] = mapped_column(
        Numeric(10, 2, asdecimal=False), nullable=True
    )
    total: Mapped[Optional[float]] = mapped_column(
        Numeric(10, 2, asdecimal=False), nullable=True
    )
    payment_status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    payment_tracking: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    @property
    def customer(self) -> dict[str, Any]:
        return {
            "name": self.customer_name,
            "phone": self.customer_phone,
            "gst": self.customer_gst,
            "address": self.customer_address,
            "state": self.customer_state,
        }

    def set_customer(self, customer: dict[str, Any]) -> None:
        self.customer_name = customer.get("name")
        self.customer_phone = customer.get("phone")
        self.customer_gst = customer.get("gst")
        self.customer_address = customer.get("address")
        self.customer_state = customer.get("state")

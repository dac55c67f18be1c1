"""Pydantic schemas for bill writes.

Totals and the GST breakdown are computed by the billing screen and stored
as given. Each line in `items` whose `id` names a stocked product draws
its `quantity` (a positive whole number) down when the bill is created.
Lines without a known `id` are free text and leave stock alone.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CustomerIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    gst: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = None
    state: Optional[str] = Field(default=None, max_length=50)


class BillCreate(BaseModel):
    customer: CustomerIn
    items: list[dict[str, Any]] = Field(default_factory=list)
    subtotal: float = Field(default=0, ge=0)
    gst_breakdown: dict[str, Any] = Field(default_factory=dict)
    total_gst: float = Field(default=0, ge=0, alias="totalGST")
    total: float = Field(..., ge=0)
    payment_status: str = Field(default="paid", max_length=50)
    payment_tracking: Optional[dict[str, Any]] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BillUpdate(BillCreate):
    """Full replacement of a stored bill. Stock is not re-adjusted."""

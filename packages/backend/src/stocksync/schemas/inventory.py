"""Pydantic schemas for inventory writes.

Learn: Requests arrive camelCase (`minStock`) exactly like the events the
terminals receive; responses reuse the wire model from the protocol so the
HTTP body and the broadcast payload can never drift apart.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InventoryItemCreate(_CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    hsn: Optional[str] = Field(default=None, max_length=50)
    size: Optional[str] = Field(default=None, max_length=100)
    colour: Optional[str] = Field(default=None, max_length=100)
    unit: Optional[str] = Field(default=None, max_length=50)
    quantity: int = Field(default=0, ge=0)
    min_stock: int = Field(default=0, ge=0)
    price: float = Field(default=0, ge=0)
    gst: float = Field(default=0, ge=0, le=100)


class InventoryItemUpdate(_CamelModel):
    """Only the fields present in the body are changed.

    `name`, `quantity`, `minStock`, `price` and `gst` may be omitted but
    not sent as null; the stored row always has a value for them.
    """

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    hsn: Optional[str] = Field(default=None, max_length=50)
    size: Optional[str] = Field(default=None, max_length=100)
    colour: Optional[str] = Field(default=None, max_length=100)
    unit: Optional[str] = Field(default=None, max_length=50)
    quantity: Optional[int] = Field(default=None, ge=0)
    min_stock: Optional[int] = Field(default=None, ge=0)
    price: Optional[float] = Field(default=None, ge=0)
    gst: Optional[float] = Field(default=None, ge=0, le=100)

    @field_validator("name", "quantity", "min_stock", "price", "gst")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("may be omitted but not null")
        return v

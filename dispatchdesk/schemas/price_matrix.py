from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from dispatchdesk.models.records import PriceMatrixEntry
from dispatchdesk.services.money import MAX_AMOUNT


class PriceMatrixItem(BaseModel):
    origin: str = Field(min_length=1)
    destination: str = Field(min_length=1)
    truck_type: str = Field(min_length=1)
    subcontractor: str = Field(min_length=1)
    base_price: Decimal = Field(default=Decimal("0"), ge=0, le=MAX_AMOUNT)
    selling_base_price: Decimal = Field(default=Decimal("0"), ge=0, le=MAX_AMOUNT)
    payment_type: Literal["CREDIT", "CASH"] = "CREDIT"
    credit_days: Optional[int] = Field(default=None, ge=0)

    def to_entry(self) -> PriceMatrixEntry:
        return PriceMatrixEntry(
            origin=self.origin,
            destination=self.destination,
            truck_type=self.truck_type,
            subcontractor=self.subcontractor,
            base_price=self.base_price,
            selling_base_price=self.selling_base_price,
            payment_type=self.payment_type,
            credit_days=self.credit_days,
        )


class PriceMatrixReplace(BaseModel):
    items: List[PriceMatrixItem]


def serialize_price_entry(e: PriceMatrixEntry) -> dict:
    return {
        "origin": e.origin,
        "destination": e.destination,
        "truck_type": e.truck_type,
        "subcontractor": e.subcontractor,
        "base_price": f"{e.base_price:.2f}",
        "selling_base_price": f"{e.selling_base_price:.2f}",
        "payment_type": e.payment_type,
        "credit_days": e.credit_days,
    }

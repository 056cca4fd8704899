from pydantic import BaseModel
from typing import Optional
from decimal import Decimal


class ShiftAction(BaseModel):
    action: str
    cashier_id: int
    start_balance: Optional[Decimal] = None
    final_balance: Optional[Decimal] = None
    notes: Optional[str] = None

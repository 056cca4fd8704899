"""
Stock alerts.
Derived from current stock on every request.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from kasir.database import get_db
from kasir.schemas.inventory import InventoryAlert
from kasir.services.inventory import scan_inventory_alerts, LOW_STOCK_THRESHOLD

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.get("/alerts", response_model=List[InventoryAlert])
def list_alerts(
    threshold: int = Query(LOW_STOCK_THRESHOLD, ge=0),
    db: Session = Depends(get_db)
):
    """Active products at or below the threshold, lowest stock first."""
    return scan_inventory_alerts(db, threshold=threshold)

"""
Dashboard request schemas.
"""
from pydantic import BaseModel
from typing import Optional
from enum import Enum


class StatsPeriod(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ALL = "all"


class DashboardAction(BaseModel):
    action: str
    product_id: Optional[int] = None
    date: Optional[str] = None


class ReportExportRequest(BaseModel):
    action: str
    startDate: Optional[str] = None
    endDate: Optional[str] = None

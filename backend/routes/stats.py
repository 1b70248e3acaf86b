# backend/routes/stats.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from database import get_db
from models.users import User
from schemas.stats import CategoryInventory, CategorySales, InventoryRow, SalesSummary
from services.ledger import OrderLedger
from services.unit_of_work import ReadOnlyHandle
from utils.tokenJWT import role_required

router = APIRouter(
    prefix="/stats",
    tags=["Stats"]
)

ledger = OrderLedger()


# === Sales per category (from sale records written at checkout) ===

@router.get("/sales-by-category", response_model=List[CategorySales])
def get_sales_by_category(
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin"))
):
    return ledger.sales_by_category(ReadOnlyHandle(db))


# === Dashboard summary ===

@router.get("/summary", response_model=SalesSummary)
def get_sales_summary(
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin"))
):
    return ledger.sales_summary(ReadOnlyHandle(db))


# === Stock aggregated per category ===

@router.get("/inventory-by-category", response_model=List[CategoryInventory])
def get_inventory_by_category(
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin"))
):
    return ledger.inventory_by_category(ReadOnlyHandle(db))


# === Per-product stock with units sold ===

@router.get("/inventory", response_model=List[InventoryRow])
def get_inventory(
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required("admin"))
):
    return ledger.detailed_inventory(ReadOnlyHandle(db))

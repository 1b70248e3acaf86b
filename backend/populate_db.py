import os
import sys
from decimal import Decimal

import pandas as pd

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from config import settings
from database import SessionLocal, init_db
from models.cart import CartItem
from models.coupon import Coupon
from models.log import AuditEntry
from models.order import Order, OrderItem, SaleRecord
from models.product import Product
from models.users import User
from services.catalog import CatalogStore
from services.coupons import CouponStore
from services.unit_of_work import require_transaction, transaction
from utils.hashing import get_password_hash

# Configuration
DATA_DIR = os.path.join(os.path.dirname(__file__), "data_source")
CATALOG_CSV = os.path.join(DATA_DIR, "catalog.csv")
ADMIN_EMAIL = os.getenv("SEED_ADMIN_EMAIL", "admin@novahogar.mx")
ADMIN_PASSWORD = os.getenv("SEED_ADMIN_PASSWORD", "admin12345")
CUSTOMER_EMAIL = "cliente@novahogar.mx"
SAMPLE_COUPONS = {"BIENVENIDA10": settings.WELCOME_COUPON_PERCENT, "HOGAR20": 20}
# End Configuration


def load_catalog(path: str = CATALOG_CSV) -> pd.DataFrame:
    """Reads the catalog CSV and normalizes it into rows ready for insertion."""
    df = pd.read_csv(path, dtype={"price": str})
    df = df.dropna(subset=["name", "price"]).copy()

    df["name"] = df["name"].str.strip()
    df["category"] = df["category"].fillna("General").str.strip()
    df["description"] = df["description"].fillna("")
    df["stock"] = df["stock"].fillna(0).astype(int).clip(lower=0)
    df["price"] = df["price"].apply(lambda p: Decimal(p).quantize(Decimal("0.01")))
    df["image_url"] = df["image_seed"].apply(
        lambda seed: f"https://picsum.photos/seed/{seed}/300/300" if isinstance(seed, str) and seed else None
    )
    return df.drop_duplicates(subset=["name"])


def ensure_user(session, email, password, role, first_name, last_name):
    user = session.query(User).filter(User.email == email).first()
    if user:
        return user
    user = User(
        email=email,
        password_hash=get_password_hash(password),
        role=role,
        first_name=first_name,
        last_name=last_name,
    )
    session.add(user)
    session.flush()
    return user


def populate_database():
    """Main execution function to populate database."""
    init_db()

    catalog_df = load_catalog()
    catalog = CatalogStore()
    coupons = CouponStore()

    session = SessionLocal()
    try:
        with transaction(session) as tx:
            db = require_transaction(tx)

            # Clean shop data; users are preserved
            for model in (AuditEntry, SaleRecord, OrderItem, Order, CartItem, Coupon, Product):
                db.query(model).delete()

            ensure_user(db, ADMIN_EMAIL, ADMIN_PASSWORD, "admin", "Admin", "Nova Hogar")
            ensure_user(db, CUSTOMER_EMAIL, "cliente12345", "customer", "Cliente", "Demo")

            print(f"Inserting {len(catalog_df)} products...")
            for row in catalog_df.itertuples(index=False):
                catalog.create_product(
                    tx,
                    name=row.name,
                    price=row.price,
                    category=row.category,
                    description=row.description or None,
                    stock=int(row.stock),
                    image_url=row.image_url,
                )

            for code, percent in SAMPLE_COUPONS.items():
                coupons.create(tx, code, percent)
    finally:
        session.close()

    by_category = catalog_df.groupby("category")["stock"].sum()
    for category, units in by_category.items():
        print(f"  {category}: {units} units")
    print(f"Seeded {len(catalog_df)} products and {len(SAMPLE_COUPONS)} coupons.")


if __name__ == "__main__":
    populate_database()

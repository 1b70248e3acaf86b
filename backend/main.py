# backend/main.py
import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from database import init_db

load_dotenv()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

# Routers
from routes.auth import router as auth_router
from routes.admin import router as admin_router
from routes.cart import router as cart_router
from routes.coupons import router as coupons_router
from routes.orders import router as orders_router
from routes.shop import router as shop_router
from routes.stats import router as stats_router

# Schema bootstrap (migrations live in alembic/)
init_db()

app = FastAPI(title="Nova Hogar Shop API", version="1.0.0")

# CORS Configuration
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
if settings.FRONTEND_URL and settings.FRONTEND_URL not in origins:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(shop_router)
app.include_router(cart_router)
app.include_router(coupons_router)
app.include_router(orders_router)
app.include_router(stats_router)
app.include_router(admin_router)


@app.get("/")
def read_root():
    return {"message": "Nova Hogar Shop API is running"}

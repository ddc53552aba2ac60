from fastapi import APIRouter

from app.api.v1.endpoints import offers


api_router = APIRouter(prefix="/api/v1")

# ==================== Offers & Discounts ====================
api_router.include_router(offers.router)

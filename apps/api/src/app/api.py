from fastapi import APIRouter

from app.modules.auth import router as auth_router
from app.modules.card_applications import admin_router as admin_applications_router
from app.modules.card_applications import router as card_applications_router
from app.modules.payments import router as payments_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])

api_router.include_router(card_applications_router, tags=["Card Applications"])

api_router.include_router(
    admin_applications_router,
    prefix="/admin",
    tags=["Admin - Applications"],
)

api_router.include_router(payments_router, prefix="/payments", tags=["Payments"])


@api_router.get("/health", tags=["Health"])
async def api_health() -> dict[str, str]:
    return {"status": "ok"}

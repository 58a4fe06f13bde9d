from fastapi import APIRouter
from vetcore.modules.availability.router import router as availability_router
from vetcore.modules.calendar.router import router as calendar_router
from vetcore.modules.appointments.router import router as appointments_router
from vetcore.modules.credits.router import router as credits_router
from vetcore.modules.verification.router import router as verification_router
from vetcore.modules.audit.router import router as audit_router

api_router = APIRouter()
api_router.include_router(availability_router, tags=["availability"])
api_router.include_router(calendar_router, tags=["calendar"])
api_router.include_router(appointments_router, tags=["appointments"])
api_router.include_router(credits_router, tags=["credits"])
api_router.include_router(verification_router, tags=["verification"])
api_router.include_router(audit_router, tags=["audit"])

@api_router.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}

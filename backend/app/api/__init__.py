from fastapi import APIRouter
from app.api import auth
from app.api import contacts
from app.api import calls

router = APIRouter()


@router.get("/health")
async def health():
    return {"status": "ok"}


# Include auth, contacts, calls routers
router.include_router(auth.router)
router.include_router(contacts.router)
router.include_router(calls.router)

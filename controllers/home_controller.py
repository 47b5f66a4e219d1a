from fastapi import APIRouter

from database import db

router = APIRouter()


@router.get("/")
def read_root():
    return {"success": True, "message": "Event Hub API"}


@router.get("/health/database")
async def health_check():
    try:
        await db.command("ping")
        return {"success": True, "status": "MongoDB connected"}
    except Exception as e:
        return {"success": False, "status": "MongoDB connection failed", "error": str(e)}

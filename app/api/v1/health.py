from fastapi import APIRouter
from sqlalchemy import text

from app.core.deps import RealtimeDep, SessionDep

router = APIRouter()


@router.get("/health")
async def health_check(db: SessionDep, realtime: RealtimeDep):
    """Liveness plus a SELECT 1 database probe"""
    try:
        await db.execute(text("SELECT 1"))
        database = "ok"
    except Exception as e:
        database = f"error: {e}"

    return {
        "api": "ok",
        "database": database,
        "online_users": len(realtime.presence),
    }

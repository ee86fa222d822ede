from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from golden_palace.db.session import get_session


router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, bool]:
    """Basic liveness check."""
    return {"ok": True}


@router.get("/readiness")
async def readiness(session: AsyncSession = Depends(get_session)) -> dict[str, bool]:
    """Ensure the reservation database is reachable."""
    try:
        await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        raise HTTPException(status_code=503, detail="Database unavailable") from exc

    return {"ready": True}

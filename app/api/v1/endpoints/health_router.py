from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from app.api.v1.dependencies import get_database
from app.db.session import Database

router = APIRouter()


@router.get("/health", summary="Liveness + état de la base")
def health(database: Database = Depends(get_database)) -> JSONResponse:
    snapshot = database.health_check()
    healthy = snapshot.get("status") == "healthy"
    body = {
        "status": "ok" if healthy else "degraded",
        "message": "Math Learning App API is running"
        if healthy
        else "API is running but database is unhealthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": snapshot,
    }
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body,
    )

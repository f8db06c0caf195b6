import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from skinwatch.api.deps import get_sweeper
from skinwatch.api.schemas import SweepOut
from skinwatch.core.auth import verify_cron_secret
from skinwatch.db.session import get_db
from skinwatch.services.monitor import Sweeper

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/cron", tags=["cron"])


@router.get(
    "/check-alerts",
    response_model=SweepOut,
    dependencies=[Depends(verify_cron_secret)],
)
async def check_alerts(
    db: Session = Depends(get_db),
    sweeper: Sweeper = Depends(get_sweeper),
):
    try:
        stats = await sweeper.run(db)
    except Exception as e:
        logger.exception("cron.sweep_failed", error=str(e))
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return SweepOut(success=True, **stats.as_dict())

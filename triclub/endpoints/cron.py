from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from triclub.core.security import verify_api_key
from triclub.dependencies import get_db
from triclub.services.cancellation_audit import CancellationAuditService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])


@router.post("/reclassify-cancellations", dependencies=[Depends(verify_api_key)])
def reclassify_cancellations_endpoint(db: Session = Depends(get_db)):
    """
    Recomputes the late flag of every stored workout cancellation and fixes the
    related absences. Protected by the X-API-Key header.
    """
    service = CancellationAuditService(db)
    summary = service.reclassify_all()
    return {
        "message": "Cancellations reclassified",
        **summary,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from app.dependencies.services import get_store
from app.errors import UpstreamUnavailableError
from app.services.record_store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/check")
def health_check(store: RecordStore = Depends(get_store)):
    store_status = "ok"

    try:
        # a missing key still round-trips to the database
        store.get("health:ping")
    except UpstreamUnavailableError:
        logger.exception("Health check could not reach the record store")
        store_status = "failed"

    return {
        "status": "ok",
        "database": store_status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

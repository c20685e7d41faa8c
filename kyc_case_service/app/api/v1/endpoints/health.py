# API Router for Health Checks
import logging

from fastapi import APIRouter

from kyc_case_service.app.config import settings
from kyc_case_service.infrastructure.database import connection

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/health", tags=["Monitoring"])
async def health_check():
    components = {}
    if settings.VERIFICATION_SERVICE_URL:
        components["verification_service"] = "remote"
    else:
        mongodb_status = "connected"
        try:
            if connection.db is None:
                raise ConnectionError("not initialized")
            await connection.db.command('ping')
        except Exception as e:
            logger.error(f"MongoDB health check ping failed: {e}")
            mongodb_status = "disconnected"
        components["mongodb"] = mongodb_status
    components["kafka"] = "enabled" if settings.KAFKA_ENABLED else "disabled"
    return {"status": "ok", "components": components, "service_name": settings.SERVICE_NAME_API}

from fastapi import APIRouter

from app.api.errors import to_http_exception
from app.core.errors import MaintenanceDeskError
from app.dependencies.services import DatabaseTesterDep, StaffUser

router = APIRouter(prefix="/ping", tags=["health"])


@router.get("", summary="Public health check")
async def ping(tester: DatabaseTesterDep) -> dict[str, str]:
    try:
        await tester.test_connection()
    except MaintenanceDeskError as exc:
        raise to_http_exception(exc) from exc
    return {"status": "ok", "database": "ok"}


@router.get("/secure", summary="Staff-only health check")
async def secure_ping(user: StaffUser) -> dict[str, str]:
    return {"status": "ok", "user": user.actor_name}

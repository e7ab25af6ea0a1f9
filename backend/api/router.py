from __future__ import annotations

from fastapi import APIRouter, Depends

from api.deps import get_current_user, require_admin
from api.routes import accounts, auth, colleges, dashboard, data, departments, fees, rooms, students


api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])

# Every hostel data route needs a signed-in, approved account.
_protected = [Depends(get_current_user)]
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"], dependencies=_protected)
api_router.include_router(rooms.router, prefix="/rooms", tags=["rooms"], dependencies=_protected)
api_router.include_router(students.router, prefix="/students", tags=["students"], dependencies=_protected)
api_router.include_router(fees.router, prefix="/fees", tags=["fees"], dependencies=_protected)
api_router.include_router(departments.router, prefix="/departments", tags=["departments"], dependencies=_protected)
api_router.include_router(colleges.router, prefix="/colleges", tags=["colleges"], dependencies=_protected)
api_router.include_router(data.router, prefix="/data", tags=["data"], dependencies=_protected)

# Account administration is admin-only.
api_router.include_router(accounts.router, prefix="/accounts", tags=["accounts"], dependencies=[Depends(require_admin)])

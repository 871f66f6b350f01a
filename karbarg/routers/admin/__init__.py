"""Admin routers; every route requires the admin flag."""
from fastapi import APIRouter, Depends

from karbarg.dependencies import require_admin
from karbarg.routers.admin import microcopy, qa

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])

router.include_router(microcopy.router)
router.include_router(qa.router)

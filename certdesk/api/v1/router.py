# certdesk/api/v1/router.py
from fastapi import APIRouter
from certdesk.api.v1 import (
    auth,
    certificates,
    approvals,
    verify,
)

api_router = APIRouter()

# -------- rotas públicas --------
api_router.include_router(verify.router,       prefix="/verify",       tags=["verify"])
api_router.include_router(auth.router,         prefix="/auth",         tags=["auth"])

# -------- rotas com papel (admin / super_admin) --------
api_router.include_router(certificates.router, prefix="/certificates", tags=["certificates"])
api_router.include_router(approvals.router,    prefix="/approvals",    tags=["approvals"])

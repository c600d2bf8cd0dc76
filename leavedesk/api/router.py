from fastapi import APIRouter

from leavedesk.api.analytics import analytics_router
from leavedesk.api.leaves import leaves_router
from leavedesk.api.reimbursements import reimbursements_router
from leavedesk.api.subjects import subjects_router

api_router = APIRouter()
api_router.include_router(leaves_router)
api_router.include_router(reimbursements_router)
api_router.include_router(subjects_router)
api_router.include_router(analytics_router)

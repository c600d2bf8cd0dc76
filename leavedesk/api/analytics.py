from fastapi import APIRouter

from leavedesk.api.deps import RepositoryDep, ReviewerDep
from leavedesk.schemas.analytics import AnalyticsResponse
from leavedesk.services import analytics as analytics_service

analytics_router = APIRouter(prefix="/analytics", tags=["analytics"])


@analytics_router.get("", response_model=AnalyticsResponse)
async def get_analytics(_actor: ReviewerDep, repository: RepositoryDep) -> AnalyticsResponse:
    """Leave dashboard figures (managers and admins)."""
    return await analytics_service.get_analytics(repository)

"""
Ad Serving and Impression Endpoints.

Public endpoints called by video players:

- ``POST /ad/serve`` picks an ad for a video and reserves an impression
- ``POST /impression/confirm`` reports an event for the impression; the
  ``served`` event bills it

Authenticated helpers expose the scoring of every candidate for debugging.
"""

from typing import List

from fastapi import APIRouter, BackgroundTasks, Request, Response, status

from campaign_hub.core.logging_config import get_logger
from campaign_hub.core.models.io.serving import (
    ConfirmImpressionRequest,
    ConfirmImpressionResponse,
    ImpressionRead,
    ScoringDebugEntry,
    ScoringFactorsRead,
    ScoringWeightsRead,
    ServeAdRequest,
    ServeAdResponse,
)
from campaign_hub.server.core.config import settings
from campaign_hub.server.services.deps import CurrentUser, SessionDep
from campaign_hub.server.services.impressions import ImpressionService
from campaign_hub.server.services.monetization import notify_ad_confirmation
from campaign_hub.serving.budget import ad_remaining
from campaign_hub.serving.client_info import get_client_ip, parse_user_agent
from campaign_hub.serving.constants import AD_SERVING_LIMITS
from campaign_hub.serving.scoring import get_scoring_weights
from campaign_hub.serving.selector import AdSelector, ClientContext, ad_metadata

logger = get_logger(__name__)

ad_router = APIRouter(tags=["ad-serving"])
impression_router = APIRouter(tags=["impressions"])


def client_context(request: Request) -> ClientContext:
    """Fingerprint the caller from its headers and socket peer."""
    user_agent = request.headers.get("user-agent")
    os_type, device_type = parse_user_agent(user_agent)
    return ClientContext(
        user_agent=user_agent,
        ip_address=get_client_ip(request.headers, request.client.host if request.client else None),
        os_type=os_type,
        device_type=device_type,
    )


@ad_router.post(
    "/serve",
    response_model=ServeAdResponse,
    summary="Serve Ad",
    description="Select the best ad for a video and reserve an impression for it.",
    response_description="The ad creative and the impression token to confirm it with.",
    responses={
        200: {"description": "Ad selected and impression reserved"},
        204: {"description": "No eligible ad"},
        422: {"description": "Missing viewer identity or video context"},
    },
)
async def serve_ad(body: ServeAdRequest, request: Request, session: SessionDep):
    """
    Serve an ad.

    Candidates are active ads of active campaigns within their flight dates,
    preferring ads that share the video's category or a tag. Ads that cannot
    afford one view are skipped; the rest are scored on tag overlap, category
    match and remaining budget.

    - **video_id**: Video the ad plays against.
    - **category** / **tags**: Video context, at least one is required.
    - **user_id** / **anon_id**: Viewer identity, one is required.
    """
    served = await AdSelector(session).serve_ad(body, client_context(request))
    if served is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return served.response


@ad_router.post(
    "/debug",
    response_model=List[ScoringDebugEntry],
    summary="Debug Ad Scoring",
    description="Score every budget-eligible candidate for a request without reserving anything.",
)
async def debug_scoring(body: ServeAdRequest, user: CurrentUser, session: SessionDep) -> List[ScoringDebugEntry]:
    scored = await AdSelector(session).debug_scoring(body)
    logger.debug(f"User {user.id} requested scoring debug for video {body.video_id}")
    return [
        ScoringDebugEntry(
            ad=ad_metadata(candidate.payload),
            campaign_id=candidate.campaign_id,
            remaining_budget_cents=max(0, ad_remaining(candidate.budget, candidate.ledger)),
            score=result.score,
            factors=ScoringFactorsRead(
                tag_overlap=result.factors.tag_overlap,
                category_match=result.factors.category_match,
                budget_factor=result.factors.budget_factor,
                bid_amount=result.factors.bid_amount,
            ),
        )
        for candidate, result in scored
    ]


@ad_router.get(
    "/scoring-weights",
    response_model=ScoringWeightsRead,
    summary="Scoring Weights",
    description="Weights and limits used to rank candidates.",
)
async def scoring_weights() -> ScoringWeightsRead:
    return ScoringWeightsRead(
        weights=get_scoring_weights(),
        max_candidates=AD_SERVING_LIMITS["MAX_CANDIDATES"],
        min_score=AD_SERVING_LIMITS["MIN_SCORE"],
        cost_per_view_cents=settings.serving.cost_per_view_cents,
        impression_ttl_minutes=settings.serving.impression_ttl_minutes,
    )


@impression_router.post(
    "/confirm",
    response_model=ConfirmImpressionResponse,
    response_model_exclude_none=True,
    summary="Confirm Impression",
    description="Report a player event for a reserved impression. The served event bills the impression.",
    responses={
        200: {"description": "Event recorded"},
        400: {"description": "Invalid impression token"},
        402: {"description": "The ad ran out of budget; the impression is cancelled"},
        404: {"description": "Impression not found"},
        409: {"description": "Impression already confirmed"},
        410: {"description": "Impression expired"},
    },
)
async def confirm_impression(
    body: ConfirmImpressionRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    session: SessionDep,
) -> ConfirmImpressionResponse:
    """
    Confirm an impression.

    - **served**: Bills the impression once; VideoStreamPro is notified in the background.
    - **clicked** / **completed** / **skipped**: Record the viewer's action only.
    """
    outcome = await ImpressionService(session).confirm(body, client_context(request))
    if outcome.notification is not None:
        background_tasks.add_task(notify_ad_confirmation, outcome.notification)
    return outcome.response


@impression_router.get(
    "/{token}",
    response_model=ImpressionRead,
    summary="Get Impression",
    description="Status of an impression, without viewer or client details.",
    responses={400: {"description": "Invalid token"}, 404: {"description": "Impression not found"}},
)
async def get_impression(token: str, session: SessionDep) -> ImpressionRead:
    return await ImpressionService(session).get_view(token)

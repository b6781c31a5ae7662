from typing import Optional

from fastapi import APIRouter, Depends, status

from src.app.metrics.constants import Period
from src.app.metrics.domains import (
    ActivityResponse,
    DailyUsageResult,
    DailyUsageSubmission,
    DeviceMe,
    MetricsSubmission,
    MyMetrics,
    SubmissionResult,
)
from src.app.metrics.exceptions import MalformedRecordError
from src.app.metrics.service import MetricsService
from src.common.exceptions import APIException
from src.core.authentication import ResolvedIdentity, authenticate_caller, authenticate_device
from src.network.database import read_only_route

router = APIRouter()


@router.post('', response_model=SubmissionResult)
def submit_metrics(
    submission: MetricsSubmission,
    identity: ResolvedIdentity = Depends(authenticate_caller),
    metrics_service: MetricsService = Depends(MetricsService.factory),
) -> SubmissionResult:
    """
    Agent check in. Every date in the payload replaces what we had for
    that date, resubmitting is always safe.
    """
    return metrics_service.submit(identity=identity, submission=submission)


@router.post('/external', response_model=SubmissionResult)
def submit_external_metrics(
    submission: MetricsSubmission,
    identity: ResolvedIdentity = Depends(authenticate_device),
    metrics_service: MetricsService = Depends(MetricsService.factory),
) -> SubmissionResult:
    """
    Same as a CLI submission, recorded under the device's source. Also takes
    bare usage counters (OpenClaw per message, Claude totals, or a `usage`
    block), added to the day they were reported.
    """
    return metrics_service.submit(identity=identity, submission=submission)


@router.post('/external/daily', response_model=DailyUsageResult)
def submit_external_daily(
    submission: DailyUsageSubmission,
    identity: ResolvedIdentity = Depends(authenticate_device),
    metrics_service: MetricsService = Depends(MetricsService.factory),
) -> DailyUsageResult:
    """
    A device's own total for one day. Sending the same day again
    overwrites it instead of adding.
    """
    try:
        return metrics_service.submit_daily(identity=identity, submission=submission)
    except MalformedRecordError as e:
        raise APIException(code=status.HTTP_400_BAD_REQUEST, message=e.message)


@read_only_route
@router.get('/me', response_model=MyMetrics)
def get_my_metrics(
    period: str = Period.ALL.value,
    identity: ResolvedIdentity = Depends(authenticate_caller),
    metrics_service: MetricsService = Depends(MetricsService.factory),
) -> MyMetrics:
    return metrics_service.get_my_metrics(user_id=identity.user_id, period=period)


@read_only_route
@router.get('/activity', response_model=ActivityResponse)
def get_org_activity(
    days: Optional[int] = None,
    identity: ResolvedIdentity = Depends(authenticate_caller),
    metrics_service: MetricsService = Depends(MetricsService.factory),
) -> ActivityResponse:
    """Daily totals across the caller's organization for the activity chart."""
    if not identity.org_id:
        return ActivityResponse(activity=[])
    return ActivityResponse(activity=metrics_service.get_org_activity(org_id=identity.org_id, days=days))


@read_only_route
@router.get('/my-activity', response_model=ActivityResponse)
def get_my_activity(
    days: Optional[int] = None,
    identity: ResolvedIdentity = Depends(authenticate_caller),
    metrics_service: MetricsService = Depends(MetricsService.factory),
) -> ActivityResponse:
    return ActivityResponse(activity=metrics_service.get_user_activity(user_id=identity.user_id, days=days))


@read_only_route
@router.get('/external/me', response_model=DeviceMe)
def get_device_summary(
    identity: ResolvedIdentity = Depends(authenticate_device),
    metrics_service: MetricsService = Depends(MetricsService.factory),
) -> DeviceMe:
    """Today / week / all time for whoever linked this device."""
    return metrics_service.get_device_summary(identity)

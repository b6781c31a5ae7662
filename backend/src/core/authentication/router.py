from typing import List, Optional

from fastapi import APIRouter, Depends, status
from loguru import logger

from src.common.exceptions import APIException
from src.common.nanoid import NanoIdType
from src.core.authentication.domains import (
    DeviceRead,
    LinkDeviceRequest,
    LinkDeviceResponse,
    LinkingCodeRequest,
    LinkingCodeResponse,
    ResolvedIdentity,
)
from src.core.authentication.exceptions import DeviceNotFound, LinkingCodeInvalid
from src.core.authentication.guards import authenticate_caller, authenticate_cli_user
from src.core.authentication.services.device_service import DeviceService, to_device_read
from src.core.service import CoreService
from src.network.database import read_only_route

router = APIRouter()


@router.post('/linking-codes')
def create_linking_code(
    payload: Optional[LinkingCodeRequest] = None,
    identity: ResolvedIdentity = Depends(authenticate_cli_user),
    device_service: DeviceService = Depends(DeviceService.factory),
    core_service: CoreService = Depends(CoreService.factory),
) -> LinkingCodeResponse:
    """Short lived code a user types into a third party tool"""
    # The code references the user, make sure they exist locally
    core_service.ensure_identity(identity)
    linking_code = device_service.create_linking_code(
        user_id=identity.user_id,
        org_id=identity.org_id,
        device_name=payload.device_name if payload else None,
    )
    return LinkingCodeResponse(code=linking_code.code, expires_at=linking_code.expires_at)


@router.post('/link')
def link_device(
    payload: LinkDeviceRequest,
    device_service: DeviceService = Depends(DeviceService.factory),
) -> LinkDeviceResponse:
    """Trade a linking code for a device token, the token is only shown once"""
    try:
        secret, device = device_service.link_device(
            code=payload.code,
            device_name=payload.device_name,
            source=payload.source,
        )
    except LinkingCodeInvalid as e:
        logger.info(str(e))
        raise APIException(
            code=status.HTTP_400_BAD_REQUEST,
            message='Invalid or expired linking code',
        )

    return LinkDeviceResponse(
        token=secret,
        device=to_device_read(device),
        user_id=device.user_id,
        org_id=device.org_id,
    )


@read_only_route
@router.get('')
def list_devices(
    identity: ResolvedIdentity = Depends(authenticate_caller),
    device_service: DeviceService = Depends(DeviceService.factory),
) -> List[DeviceRead]:
    return device_service.list_devices(identity.user_id)


@router.delete('/{device_id}', status_code=status.HTTP_204_NO_CONTENT)
def revoke_device(
    device_id: NanoIdType,
    identity: ResolvedIdentity = Depends(authenticate_cli_user),
    device_service: DeviceService = Depends(DeviceService.factory),
) -> None:
    try:
        device_service.revoke_device(device_id=device_id, user_id=identity.user_id)
    except DeviceNotFound:
        raise APIException(
            code=status.HTTP_404_NOT_FOUND,
            message='Device not found',
        )

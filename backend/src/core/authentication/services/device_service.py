import hashlib
import secrets

from loguru import logger

from src import settings
from src.common.nanoid import NanoIdType, generate_custom_nanoid
from src.core.authentication.constants import (
    DEVICE_TOKEN_BYTES,
    LINKING_CODE_ALPHABET,
    LINKING_CODE_LENGTH,
)
from src.core.authentication.domains import (
    DeviceRead,
    DeviceTokenCreate,
    DeviceTokenRead,
    LinkingCodeCreate,
    LinkingCodeRead,
)
from src.core.authentication.exceptions import (
    AuthTokenInvalid,
    DeviceNotFound,
    DeviceTokenRevoked,
    LinkingCodeInvalid,
)
from src.core.authentication.models import DeviceToken, LinkingCode
from src.network.database import DatabaseMode, db
from src.network.database.repository.mixin import utc_now

_MAX_CODE_ATTEMPTS = 5


def hash_device_token(secret: str) -> str:
    return hashlib.sha256(secret.encode('utf-8')).hexdigest()


def normalize_linking_code(code: str) -> str:
    return code.strip().upper()


def to_device_read(device: DeviceTokenRead) -> DeviceRead:
    return DeviceRead(
        id=device.id,
        name=device.name,
        source=device.source,
        last_used_at=device.last_used_at,
        created_at=device.created_at,
    )


class DeviceService:
    """
    Third party tools (openclaw and friends) can't hold a CLI token, a
    signed in user mints a short linking code, types it into the tool
    and the tool trades it for a long lived device token.
    """

    @classmethod
    def factory(cls) -> 'DeviceService':
        return cls()

    def create_linking_code(
        self,
        user_id: NanoIdType,
        org_id: NanoIdType | None,
        device_name: str | None = None,
    ) -> LinkingCodeRead:
        code = self._generate_unused_code()
        return LinkingCode.create(
            LinkingCodeCreate(
                code=code,
                user_id=user_id,
                org_id=org_id,
                device_name=device_name,
                expires_at=utc_now() + settings.LINKING_CODE_LIFETIME,
            )
        )

    def link_device(
        self,
        code: str,
        device_name: str | None = None,
        source: str | None = None,
    ) -> tuple[str, DeviceTokenRead]:
        """
        Consume a linking code and return (secret, device). The secret is
        only ever available here.
        """
        code = normalize_linking_code(code)
        now = utc_now()
        # Conditional update so two tools racing on one code can't both win
        consumed = LinkingCode.get_query(
            LinkingCode.code == code,
            LinkingCode.consumed_at.is_(None),
            LinkingCode.expires_at > now,
        ).update({LinkingCode.consumed_at: now})
        if consumed != 1:
            raise LinkingCodeInvalid(f'Linking code {code} is unknown, expired or already used')

        linking_code = LinkingCode.get(code=code)
        secret = secrets.token_urlsafe(DEVICE_TOKEN_BYTES)
        device = DeviceToken.create(
            DeviceTokenCreate(
                user_id=linking_code.user_id,
                org_id=linking_code.org_id,
                name=device_name or linking_code.device_name,
                source=source or settings.DEFAULT_DEVICE_SOURCE,
                token_hash=hash_device_token(secret),
            )
        )
        logger.info(f'device {device.id} linked for {device.user_id} source={device.source}')
        return secret, device

    def verify_device_token(self, secret: str) -> DeviceTokenRead:
        device = DeviceToken.get_or_none(token_hash=hash_device_token(secret))
        if device is None:
            raise AuthTokenInvalid('Unknown device token')
        if device.revoked_at is not None:
            raise DeviceTokenRevoked(f'Device {device.id} was revoked')

        # Read only routes can't write, the next submission will stamp it
        if db.mode == DatabaseMode.READ_WRITE:
            device = DeviceToken.update(device.id, last_used_at=utc_now())
        return device

    def list_devices(self, user_id: NanoIdType) -> list[DeviceRead]:
        devices = DeviceToken.list(
            DeviceToken.user_id == user_id,
            DeviceToken.revoked_at.is_(None),
            ordering=['-created_at'],
        )
        return [to_device_read(device) for device in devices]

    def revoke_device(self, device_id: NanoIdType, user_id: NanoIdType) -> None:
        device = DeviceToken.get_or_none(
            DeviceToken.id == device_id,
            DeviceToken.user_id == user_id,
            DeviceToken.revoked_at.is_(None),
        )
        if device is None:
            raise DeviceNotFound(f'Device {device_id} not found for {user_id}')
        DeviceToken.update(device.id, revoked_at=utc_now())
        logger.info(f'device {device_id} revoked by {user_id}')

    def _generate_unused_code(self) -> str:
        for _ in range(_MAX_CODE_ATTEMPTS):
            code = generate_custom_nanoid(size=LINKING_CODE_LENGTH, char_pool=LINKING_CODE_ALPHABET)
            if LinkingCode.get_or_none(code=code) is None:
                return code
        raise LinkingCodeInvalid('Unable to allocate a free linking code')

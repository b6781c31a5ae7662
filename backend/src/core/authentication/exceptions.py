from src.common.exceptions import InternalException


class AuthError(InternalException):
    """
    A credential could not be resolved to a caller. Surfaced as 401
    before any metrics are touched.
    """

    default_detail = 'Not authenticated.'
    default_code = 'auth_error'


class AuthTokenInvalid(AuthError): ...


class AuthTokenExpired(AuthError): ...


class DeviceTokenRevoked(AuthError): ...


class LinkingCodeInvalid(InternalException):
    """
    Unknown, expired, or already consumed linking code
    """

    ...


class DeviceNotFound(InternalException): ...

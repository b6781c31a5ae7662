from src.common.exceptions import InternalException


class UserNotFound(InternalException): ...

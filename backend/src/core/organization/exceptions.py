from src.common.exceptions import InternalException


class OrganizationNotFound(InternalException): ...

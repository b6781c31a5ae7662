from src.core.user.constants import USER_PK_ABBREV
from src.core.user.domains import UserCreate, UserRead, UserUpdate
from src.core.user.exceptions import UserNotFound
from src.core.user.models import HasUser, User
from src.core.user.service import UserService

__all__ = [
    'USER_PK_ABBREV',
    'HasUser',
    'User',
    'UserCreate',
    'UserRead',
    'UserUpdate',
    'UserNotFound',
    'UserService',
]

from typing import Sequence

from src.common.nanoid import NanoIdType
from src.core.user.domains import UserCreate, UserRead
from src.core.user.exceptions import UserNotFound
from src.core.user.models import User


class UserService:
    @classmethod
    def factory(cls) -> 'UserService':
        return cls()

    def get_user_for_id(self, user_id: NanoIdType) -> UserRead:
        user = User.get_or_none(id=user_id)
        if user is None:
            raise UserNotFound(message=f'User not found with id: {user_id}')
        return user

    def ensure_user(
        self,
        user_id: NanoIdType,
        email: str,
        name: str | None = None,
        org_id: NanoIdType | None = None,
    ) -> UserRead:
        """
        Create on first sight, otherwise refresh the profile fields that
        changed. Users are never deleted.
        """
        existing = User.get_or_none(id=user_id)
        if existing is None:
            return User.create(UserCreate(id=user_id, email=email, name=name, org_id=org_id))

        updates = {}
        if email and existing.email != email:
            updates['email'] = email
        if name and existing.name != name:
            updates['name'] = name
        if org_id and existing.org_id != org_id:
            updates['org_id'] = org_id
        if not updates:
            return existing
        return User.update(user_id, **updates)

    def ensure_users_exist(self, users: Sequence[UserCreate]) -> None:
        """
        Bulk insert for membership sync, existing users are left untouched
        """
        if not users:
            return
        User.bulk_create_ignore(
            [{'id': user.id, 'email': user.email, 'name': user.name, 'org_id': user.org_id} for user in users],
            conflict_columns=['id'],
        )

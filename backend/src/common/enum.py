import enum
from typing import Any, TypeVar

_EnumType = TypeVar('_EnumType', bound='BaseEnum')


class BaseEnum(str, enum.Enum):
    @classmethod
    def has(cls, item: Any) -> bool:
        try:
            cls(item)
        except ValueError:
            return False
        else:
            return True

    @classmethod
    def coerce(cls: type[_EnumType], item: Any, default: _EnumType) -> _EnumType:
        """
        Lenient lookup for query params, anything outside the enum
        resolves to `default` instead of raising
        """
        if isinstance(item, str):
            item = item.strip().lower()
        if cls.has(item):
            return cls(item)
        return default

    def __str__(self) -> str:
        return str(self.value)

    @classmethod
    def list_all(cls) -> list[str]:
        return [e.value for e in cls]

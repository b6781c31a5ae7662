from datetime import datetime
from importlib import import_module
from typing import Any, Optional

from loguru import logger
from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.declarative import declared_attr
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from src import settings
from src.common.nanoid import NanoId, NanoIdType
from src.network.database.repository.mixin import (
    CreateDomainType,
    ReadDomainType,
    RepositoryMixin,
)

# JSONB on postgres, plain JSON everywhere else (sqlite in tests)
JSONType = JSON().with_variant(JSONB(), 'postgresql')


class BaseModel(DeclarativeBase, RepositoryMixin[ReadDomainType, CreateDomainType]):
    __pk_abbrev__: str = NotImplemented

    @declared_attr
    def id(cls) -> Mapped[str]:
        # Ensure an abbreviation is implemented
        if cls.__pk_abbrev__ == NotImplemented:
            raise NotImplementedError(f'__pk_abbrev__ must be implemented for {cls.__name__}')

        abbrev = cls.__pk_abbrev__
        return mapped_column(String(length=50), primary_key=True, default=lambda: NanoId.gen(abbrev=abbrev))

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(DateTime, server_default=func.now())

    @declared_attr
    def modified_at(cls) -> Mapped[Optional[datetime]]:
        return mapped_column(DateTime, onupdate=func.now(), nullable=True)

    @declared_attr.directive
    def __tablename__(cls) -> str:
        return cls.__name__.lower()

    def __repr__(self) -> str:
        return f'{self.__class__.__name__}(id={self.id!r})'

    @classmethod
    def generate_id(cls) -> NanoIdType:
        return NanoId.gen(abbrev=cls.__pk_abbrev__)


def import_model_modules() -> list[Any]:
    """
    Used by things like Alembic and tests to bring in the relevant models
    Looks for `models.py` in directories registered.
    """
    model_modules = []
    for app in settings.BOUNDARIES:
        import_path = f'{settings.BASE_MODULE}.{app}.models'
        logger.debug(f'importing: {import_path}')
        model_modules.append(import_module(import_path))

    return model_modules

"""Class-level `objects` manager exposing query sets on SQLModel tables."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from sqlalchemy import inspect as sa_inspect

from taskpilot_archival.db.queryset import QuerySet, qs

ModelT = TypeVar("ModelT")


class ModelManager(Generic[ModelT]):
    """Entry point for building query sets against one model."""

    def __init__(self, model: type[ModelT]) -> None:
        self.model = model

    def all(self) -> QuerySet[ModelT]:
        return qs(self.model)

    def filter(self, *criteria: Any) -> QuerySet[ModelT]:
        return self.all().filter(*criteria)

    def filter_by(self, **kwargs: Any) -> QuerySet[ModelT]:
        return self.all().filter_by(**kwargs)

    def by_id(self, obj_id: Any) -> QuerySet[ModelT]:
        primary_key = sa_inspect(self.model).primary_key
        if len(primary_key) != 1:
            raise TypeError(f"{self.model.__name__} has a composite primary key")
        return self.filter(primary_key[0] == obj_id)


class ManagerDescriptor:
    """Descriptor returning a fresh manager bound to the owning model class."""

    def __get__(self, instance: object, owner: type[ModelT]) -> ModelManager[ModelT]:
        return ModelManager(owner)

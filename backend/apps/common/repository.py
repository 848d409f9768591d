from typing import Type, TypeVar, Generic, Iterable, Optional
from django.core.exceptions import ValidationError
from django.db import models

T = TypeVar('T', bound=models.Model)


class GenericRepository(Generic[T]):
    """Thin ORM gateway shared by the app repositories."""

    def __init__(self, model: Type[T]):
        self.model = model

    def get(self, **filters) -> Optional[T]:
        return self.model.objects.filter(**filters).first()

    def list(self, **filters) -> Iterable[T]:
        return self.model.objects.filter(**filters)

    def create(self, **data) -> T:
        return self.model.objects.create(**data)

    def save(self, obj: T, *, update_fields=None) -> T:
        obj.save(update_fields=update_fields)
        return obj

    def get_by_identifier(self, raw_id) -> Optional[T]:
        """Look up by primary key accepting client-supplied ids (strings included).

        Identifiers that cannot be coerced to the key type resolve to ``None``
        rather than raising, matching a plain miss.
        """
        try:
            pk = self.model._meta.pk.to_python(raw_id)
        except (ValidationError, TypeError, ValueError):
            return None
        if pk is None:
            return None
        return self.get(pk=pk)

"""Static model catalog built from config. Immutable at runtime."""

from collections.abc import Iterable, Iterator
from types import MappingProxyType

from parley.errors import InvalidModelError
from parley.models import ModelDescriptor


class ModelCatalog:
    def __init__(self, models: Iterable[ModelDescriptor]) -> None:
        entries: dict[str, ModelDescriptor] = {}
        for descriptor in models:
            if descriptor.id in entries:
                raise ValueError(f"Duplicate model id in catalog: {descriptor.id}")
            entries[descriptor.id] = descriptor
        self._models = MappingProxyType(entries)

    def __iter__(self) -> Iterator[ModelDescriptor]:
        return iter(self._models.values())

    def __len__(self) -> int:
        return len(self._models)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._models

    def get(self, model_id: str) -> ModelDescriptor:
        """Return the descriptor for ``model_id``.

        Raises:
            InvalidModelError: If the id is not in the catalog.
        """
        try:
            return self._models[model_id]
        except KeyError:
            raise InvalidModelError(model_id) from None

    def display_name(self, model_id: str) -> str:
        """Human label for a model id; falls back to the id itself."""
        descriptor = self._models.get(model_id)
        return descriptor.display_name if descriptor else model_id

    def by_provider(self, provider_id: str) -> list[ModelDescriptor]:
        return [m for m in self._models.values() if m.provider_id == provider_id]

    def providers(self) -> list[str]:
        return sorted({m.provider_id for m in self._models.values()})

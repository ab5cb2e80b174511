# File: src/parkline/domain/registry.py
"""Vehicle registry: external id -> occupied slot index"""

from typing import Dict, Iterator

from .exceptions import AlreadyParked, NotFound


class Registry:
    """At most one binding per external id"""

    def __init__(self):
        self._bindings: Dict[str, int] = {}

    def bind(self, external_id: str, slot_index: int) -> None:
        if external_id in self._bindings:
            raise AlreadyParked(external_id, self._bindings[external_id])
        self._bindings[external_id] = slot_index

    def lookup(self, external_id: str) -> int:
        try:
            return self._bindings[external_id]
        except KeyError:
            raise NotFound(external_id) from None

    def unbind(self, external_id: str) -> int:
        try:
            return self._bindings.pop(external_id)
        except KeyError:
            raise NotFound(external_id) from None

    def clear(self) -> None:
        self._bindings.clear()

    def __contains__(self, external_id: object) -> bool:
        return external_id in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._bindings))

"""Persisted per-accessory key/value bag."""

from __future__ import annotations

from collections.abc import Callable, Iterator, MutableMapping
from typing import Any


class AccessoryContext(MutableMapping[str, Any]):
    """Key/value data that survives restarts for one accessory.

    Holds last known characteristic values under ``values``, the attached
    service names under ``services`` and connection metadata. Every
    mutation invokes ``on_change`` so the owning store can persist it.
    """

    def __init__(
        self,
        data: dict[str, Any] | None = None,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        """Wrap ``data`` and report mutations to ``on_change``."""

        self._data: dict[str, Any] = data if data is not None else {}
        self._on_change = on_change

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._changed()

    def __delitem__(self, key: str) -> None:
        del self._data[key]
        self._changed()

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()

    @property
    def values_map(self) -> dict[str, Any]:
        """Return the persisted characteristic values keyed ``Service.Name``."""

        return dict(self._data.get("values", {}))

    def set_value(self, key: str, value: Any) -> None:
        """Persist one characteristic value."""

        values = self._data.setdefault("values", {})
        if values.get(key) == value and key in values:
            return
        values[key] = value
        self._changed()

    def as_dict(self) -> dict[str, Any]:
        """Return the raw payload for serialisation."""

        return self._data

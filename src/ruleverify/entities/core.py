"""Core meta data model exchanged between storage adapters and rules."""

from __future__ import annotations

from typing import Any, Callable, Dict, ItemsView, Iterator, List, Mapping

from ..exceptions import NoSuchMetaDataKeyError


class MetaData:
    """Ordered bag of named attribute values observed during a single poll.

    Storage adapters build one instance per raw backend record and fill it
    through :meth:`put_property`. Rules only read it. The identity used for
    snapshot diffing is computed by the owning matchable and is never stored
    as a property.
    """

    def __init__(self, properties: Mapping[str, Any] | None = None) -> None:
        self._properties: Dict[str, Any] = {}
        for key, value in (properties or {}).items():
            self.put_property(key, value)

    def put_property(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``; a later write replaces an earlier one."""

        self._properties[str(key)] = value

    def get_property(self, key: str) -> Any:
        """Return the value stored under ``key``.

        Raises :class:`NoSuchMetaDataKeyError` when the key was never stored.
        """

        try:
            return self._properties[str(key)]
        except KeyError:
            raise NoSuchMetaDataKeyError(str(key)) from None

    def has_property(self, key: str) -> bool:
        return str(key) in self._properties

    def keys(self) -> List[str]:
        return list(self._properties)

    def items(self) -> ItemsView[str, Any]:
        return self._properties.items()

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._properties)

    def __iter__(self) -> Iterator[str]:
        return iter(self._properties)

    def __len__(self) -> int:
        return len(self._properties)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MetaData):
            return NotImplemented
        return type(self) is type(other) and self._properties == other._properties

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        body = ", ".join(f"{key}={value!r}" for key, value in self._properties.items())
        return f"{type(self).__name__}({body})"


IdentityStrategy = Callable[[MetaData], str]
"""Backend-specific function mapping a meta data instance to its identity key."""


__all__ = ["MetaData", "IdentityStrategy"]

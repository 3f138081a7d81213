"""Labels: key/value pairs used to annotate events, and lookups over them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional


class Key:
    """Identity of a label.

    Keys are compared by identity only; the name is meant for display and
    for communicating with external systems.
    """

    def __init__(self, name: str, description: str = "") -> None:
        self.name = name
        self.description = description

    def format(self, label: "Label") -> str:
        """Render the value carried by ``label`` as text."""
        return str(label.unpack_value())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class _PackedString(str):
    """Marks a value stored by :func:`of_string`."""


@dataclass(frozen=True)
class Label:
    """A key and the value attached to it."""

    key: Optional[Key] = None
    packed: int = 0
    untyped: Any = None

    def valid(self) -> bool:
        """Report whether the label has a key."""
        return self.key is not None

    def unpack_value(self) -> Any:
        """Return the value given to :func:`of_value`."""
        return self.untyped

    def unpack_64(self) -> int:
        """Return the integer given to :func:`of_64`."""
        return self.packed

    def unpack_string(self) -> str:
        """Return the string given to :func:`of_string`.

        Raises TypeError if the label was not built by :func:`of_string`.
        """
        if not isinstance(self.untyped, _PackedString):
            raise TypeError(
                f"label value is {type(self.untyped).__name__}, not a packed string"
            )
        return str(self.untyped)[: self.packed]

    def __str__(self) -> str:
        if self.key is None:
            return "nil"
        return f"{self.key.name}={self.key.format(self)}"


class ListMap:
    """A label map backed by a plain list of labels."""

    def __init__(self, labels: Iterable[Label] = ()) -> None:
        self.labels = list(labels)

    def find(self, key: Key) -> Label:
        """Return the first label with ``key``, or an invalid label."""
        return next((lbl for lbl in self.labels if lbl.key is key), Label())


class MapChain:
    """A label map that searches several maps in order."""

    def __init__(self, maps: Iterable[Any] = ()) -> None:
        self.maps = list(maps)

    def find(self, key: Key) -> Label:
        """Return the first valid label for ``key`` among the maps."""
        for source in self.maps:
            found = source.find(key)
            if found.valid():
                return found
        return Label()


def of_value(key: Key, value: Any) -> Label:
    """Build a label holding an arbitrary value."""
    return Label(key=key, untyped=value)


def of_64(key: Key, value: int) -> Label:
    """Build a label holding an integer packed into 64 bits."""
    return Label(key=key, packed=value & 0xFFFFFFFFFFFFFFFF)


def of_string(key: Key, value: str) -> Label:
    """Build a label holding a string."""
    return Label(key=key, packed=len(value), untyped=_PackedString(value))


def new_map(*args: Label) -> ListMap:
    """Build a label map from the given labels."""
    return ListMap(args)


def merge_maps(*args: Any) -> Any:
    """Combine maps so that earlier ones take precedence; None entries are dropped."""
    present = [m for m in args if m is not None]
    if len(present) == 1:
        return present[0]
    return MapChain(present)
"""Events, a small context type, and delivery of events to a global exporter."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Iterable, Iterator, Optional, Tuple

from gositools import keys
from gositools.label import Key, Label

_STATIC_SIZE = 3


class Context:
    """An immutable chain of key/value pairs carried alongside events."""

    __slots__ = ("_parent", "_key", "_value")

    def __init__(self) -> None:
        self._parent: Optional[Context] = None
        self._key: Any = None
        self._value: Any = None

    def with_value(self, key: Any, value: Any) -> "Context":
        """Return a new context in which ``key`` maps to ``value``."""
        child = Context()
        child._parent = self
        child._key = key
        child._value = value
        return child

    def value(self, key: Any) -> Any:
        """Return the innermost value stored for ``key``, or None."""
        ctx: Optional[Context] = self
        while ctx is not None and ctx._parent is not None:
            if ctx._key == key:
                return ctx._value
            ctx = ctx._parent
        return None


@dataclass(frozen=True)
class Event:
    """Something of note that happened, described by a list of labels."""

    at: Optional[datetime] = None
    static: Tuple[Label, ...] = (Label(),) * _STATIC_SIZE
    dynamic: Tuple[Label, ...] = ()

    def valid(self, index: int) -> bool:
        """Report whether ``index`` is within the event's labels."""
        return 0 <= index < len(self.static) + len(self.dynamic)

    def label(self, index: int) -> Label:
        """Return the label at ``index``; raises IndexError when out of range."""
        if not self.valid(index):
            raise IndexError(f"label index {index} out of range")
        if index < len(self.static):
            return self.static[index]
        return self.dynamic[index - len(self.static)]

    def find(self, key: Key) -> Label:
        """Return the first label with ``key``, or an invalid label."""
        return next((lbl for lbl in self if lbl.key is key), Label())

    def __iter__(self) -> Iterator[Label]:
        yield from self.static
        yield from self.dynamic


Exporter = Callable[[Context, Event, Any], Context]


def make_event(static: Iterable[Label], labels: Optional[Iterable[Label]]) -> Event:
    """Build an event from up to three leading labels and any further ones."""
    head = tuple(static)
    if len(head) > _STATIC_SIZE:
        raise ValueError(f"at most {_STATIC_SIZE} static labels, got {len(head)}")
    head += (Label(),) * (_STATIC_SIZE - len(head))
    return Event(static=head, dynamic=tuple(labels or ()))


def clone_event(ev: Event, at: Optional[datetime]) -> Event:
    """Return a copy of ``ev`` with its time set to ``at``."""
    return replace(ev, at=at)


class _ExporterSlot:
    exporter: Optional[Exporter] = None


def set_exporter(exporter: Optional[Exporter]) -> None:
    """Set the global exporter that receives all events; None disables delivery."""
    _ExporterSlot.exporter = exporter


def _deliver(ctx: Context, exporter: Exporter, ev: Event) -> Context:
    ev = replace(ev, at=datetime.now().astimezone())
    return exporter(ctx, ev, ev)


def export(ctx: Context, ev: Event) -> Context:
    """Deliver ``ev`` to the global exporter, if one is set."""
    exporter = _ExporterSlot.exporter
    if exporter is None:
        return ctx
    return _deliver(ctx, exporter, ev)


def export_pair(
    ctx: Context, begin: Event, end: Event
) -> Tuple[Context, Callable[[], None]]:
    """Deliver ``begin`` now and return a function that delivers ``end`` later."""
    exporter = _ExporterSlot.exporter
    if exporter is None:
        return ctx, lambda: None
    ctx = _deliver(ctx, exporter, begin)

    def done() -> None:
        _deliver(ctx, exporter, end)

    return ctx, done


def log1(ctx: Context, message: str, t1: Label) -> None:
    """Deliver a log event with a message and one label."""
    export(ctx, make_event((keys.MSG.of(message), t1), None))


def metric1(ctx: Context, t1: Label) -> Context:
    """Deliver a metric event with one label."""
    return export(ctx, make_event((keys.METRIC.new(), t1), None))


def start1(ctx: Context, name: str, t1: Label) -> Tuple[Context, Callable[[], None]]:
    """Start a span with one label; returns the context and the function ending it."""
    return export_pair(
        ctx,
        make_event((keys.START.of(name), t1), None),
        make_event((keys.END.new(),), None),
    )
"""Trace and span identifiers, and exporters that track spans and context labels."""

from __future__ import annotations

import random
import secrets
import threading
from dataclasses import dataclass, field
from typing import Any, List, Optional

from gositools import event, keys
from gositools.core import Context, Event, Exporter
from gositools.label import merge_maps

_MASK64 = (1 << 64) - 1


class _FixedID(bytes):
    SIZE = 0

    def __new__(cls, data: Optional[bytes] = None) -> "_FixedID":
        raw = bytes(cls.SIZE) if data is None else bytes(data)
        if len(raw) != cls.SIZE:
            raise ValueError(f"{cls.__name__} needs {cls.SIZE} bytes, got {len(raw)}")
        return super().__new__(cls, raw)

    def __str__(self) -> str:
        return self.hex()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.hex()!r})"


class TraceID(_FixedID):
    """A 16-byte trace identifier."""

    SIZE = 16


class SpanID(_FixedID):
    """An 8-byte span identifier."""

    SIZE = 8

    def is_valid(self) -> bool:
        """Report whether the identifier is not all zeros."""
        return any(self)


class _IdGenerator:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rng: Optional[random.Random] = None
        self._trace_add = (0, 0)
        self._next_span = 0
        self._span_inc = 0

    def _ensure_init(self) -> None:
        if self._rng is None:
            self._rng = random.Random(secrets.randbits(64))
            self._trace_add = (secrets.randbits(64), secrets.randbits(64))
            self._next_span = secrets.randbits(64)
            self._span_inc = secrets.randbits(64) | 1

    def trace_id(self) -> TraceID:
        with self._lock:
            self._ensure_init()
            assert self._rng is not None
            halves = (
                (self._rng.getrandbits(64) + add) & _MASK64 for add in self._trace_add
            )
            return TraceID(b"".join(h.to_bytes(8, "little") for h in halves))

    def span_id(self) -> SpanID:
        with self._lock:
            self._ensure_init()
            value = 0
            while value == 0:
                self._next_span = (self._next_span + self._span_inc) & _MASK64
                value = self._next_span
            return SpanID(value.to_bytes(8, "little"))


_GENERATOR = _IdGenerator()


def new_trace_id() -> TraceID:
    """Return a fresh random trace identifier."""
    return _GENERATOR.trace_id()


def new_span_id() -> SpanID:
    """Return a fresh, non-zero span identifier."""
    return _GENERATOR.span_id()


@dataclass
class SpanContext:
    """The identity of a span within its trace."""

    trace_id: TraceID = field(default_factory=TraceID)
    span_id: SpanID = field(default_factory=SpanID)

    def __str__(self) -> str:
        return f"{{{self.trace_id} {self.span_id}}}"


class Span:
    """A named span with its start and finish events and the events logged in it."""

    def __init__(self, name: str = "", start_event: Optional[Event] = None) -> None:
        self.name = name
        self.id = SpanContext()
        self.parent_id = SpanID()
        self._lock = threading.Lock()
        self._start = start_event if start_event is not None else Event()
        self._finish = Event()
        self._events: List[Event] = []

    def start(self) -> Event:
        """Return the event that started the span."""
        return self._start

    def finish(self) -> Event:
        """Return the event that ended the span, or an empty event."""
        with self._lock:
            return self._finish

    def events(self) -> List[Event]:
        """Return the log and label events delivered inside the span."""
        with self._lock:
            return list(self._events)

    def _add_event(self, ev: Event) -> None:
        with self._lock:
            self._events.append(ev)

    def _set_finish(self, ev: Event) -> None:
        with self._lock:
            self._finish = ev


class _ContextKey:
    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"<context key {self.name}>"


_SPAN_CONTEXT_KEY = _ContextKey("span")
_LABEL_CONTEXT_KEY = _ContextKey("labels")


def get_span(ctx: Context) -> Optional[Span]:
    """Return the span stored in ``ctx``, or None."""
    return ctx.value(_SPAN_CONTEXT_KEY)


def spans(output: Exporter) -> Exporter:
    """Wrap ``output`` with an exporter that maintains the span hierarchy in the context."""

    def process(ctx: Context, ev: Event, lm: Any) -> Context:
        if event.is_log(ev) or event.is_label(ev):
            span = get_span(ctx)
            if span is not None:
                span._add_event(ev)
        elif event.is_start(ev):
            span = Span(name=keys.START.get(lm), start_event=ev)
            parent = get_span(ctx)
            if parent is not None:
                span.id.trace_id = parent.id.trace_id
                span.parent_id = parent.id.span_id
            else:
                span.id.trace_id = new_trace_id()
            span.id.span_id = new_span_id()
            ctx = ctx.with_value(_SPAN_CONTEXT_KEY, span)
        elif event.is_end(ev):
            span = get_span(ctx)
            if span is not None:
                span._set_finish(ev)
        elif event.is_detach(ev):
            ctx = ctx.with_value(_SPAN_CONTEXT_KEY, None)
        return output(ctx, ev, lm)

    return process


def labels(output: Exporter) -> Exporter:
    """Wrap ``output`` with an exporter that keeps label and span-start labels in the context.

    Every event's label map is extended with the labels stored so far.
    """

    def process(ctx: Context, ev: Event, lm: Any) -> Context:
        stored = ctx.value(_LABEL_CONTEXT_KEY)
        if event.is_label(ev) or event.is_start(ev):
            stored = ev if stored is None else merge_maps(ev, stored)
            ctx = ctx.with_value(_LABEL_CONTEXT_KEY, stored)
        lm = merge_maps(lm, stored)
        return output(ctx, ev, lm)

    return process
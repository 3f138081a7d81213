"""Creating events of each kind and recognising them in exporters."""

from __future__ import annotations

from typing import Callable, Optional, Tuple

from gositools import core, keys
from gositools.core import Context, Event, Exporter
from gositools.label import Label


def set_exporter(exporter: Optional[Exporter]) -> None:
    """Set the global exporter that receives all events."""
    core.set_exporter(exporter)


def log(ctx: Context, message: str, *args: Label) -> None:
    """Deliver a log event with a message and labels."""
    core.export(ctx, core.make_event((keys.MSG.of(message),), args))


def is_log(ev: Event) -> bool:
    """Report whether ``ev`` was built by :func:`log` or :func:`error`."""
    return ev.label(0).key is keys.MSG


def error(ctx: Context, message: str, err: Optional[BaseException], *args: Label) -> None:
    """Deliver a log event that carries an exception."""
    core.export(ctx, core.make_event((keys.MSG.of(message), keys.ERR.of(err)), args))


def is_error(ev: Event) -> bool:
    """Report whether ``ev`` was built by :func:`error`."""
    return ev.label(0).key is keys.MSG and ev.label(1).key is keys.ERR


def metric(ctx: Context, *args: Label) -> None:
    """Deliver a metric event with the given labels."""
    core.export(ctx, core.make_event((keys.METRIC.new(),), args))


def is_metric(ev: Event) -> bool:
    """Report whether ``ev`` was built by :func:`metric`."""
    return ev.label(0).key is keys.METRIC


def label(ctx: Context, *args: Label) -> Context:
    """Deliver a label event; returns the context the exporter produced."""
    return core.export(ctx, core.make_event((keys.LABEL.new(),), args))


def is_label(ev: Event) -> bool:
    """Report whether ``ev`` was built by :func:`label`."""
    return ev.label(0).key is keys.LABEL


def start(ctx: Context, name: str, *args: Label) -> Tuple[Context, Callable[[], None]]:
    """Start a span; returns the new context and a function that ends the span."""
    return core.export_pair(
        ctx,
        core.make_event((keys.START.of(name),), args),
        core.make_event((keys.END.new(),), None),
    )


def is_start(ev: Event) -> bool:
    """Report whether ``ev`` starts a span."""
    return ev.label(0).key is keys.START


def is_end(ev: Event) -> bool:
    """Report whether ``ev`` ends a span."""
    return ev.label(0).key is keys.END


def is_detach(ev: Event) -> bool:
    """Report whether ``ev`` detaches the current span."""
    return ev.label(0).key is keys.DETACH
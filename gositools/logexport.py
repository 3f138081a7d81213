"""An exporter that writes log events, and span starts and ends, as text."""

from __future__ import annotations

import threading
from typing import Any, TextIO

from gositools import event, keys
from gositools.core import Context, Event, Exporter
from gositools.tracing import get_span


class Printer:
    """Formats log events as readable text."""

    def write_event(self, w: TextIO, ev: Event, lm: Any) -> None:
        """Write ``ev`` to ``w``, taking message and error from ``lm``."""
        if ev.at is not None:
            w.write(ev.at.strftime("%Y/%m/%d %H:%M:%S "))
        msg = keys.MSG.get(lm)
        w.write(msg)
        err = keys.ERR.get(lm)
        if err is not None:
            if msg:
                w.write(": ")
            w.write(str(err))
        for lbl in ev:
            if not lbl.valid() or lbl.key is keys.MSG or lbl.key is keys.ERR:
                continue
            w.write(f"\n\t{lbl.key.name}={lbl.key.format(lbl)}")
        w.write("\n")


class LogWriter:
    """Writes log events to a text stream, optionally only those carrying an error."""

    def __init__(self, writer: TextIO, only_errors: bool = False) -> None:
        self.writer = writer
        self.only_errors = only_errors
        self.printer = Printer()
        self._lock = threading.Lock()

    def process_event(self, ctx: Context, ev: Event, lm: Any) -> Context:
        """Exporter entry point: write the event if it is one this writer handles."""
        if event.is_log(ev):
            if self.only_errors and not event.is_error(ev):
                return ctx
            with self._lock:
                self.printer.write_event(self.writer, ev, lm)
        elif event.is_start(ev):
            span = get_span(ctx)
            if span is not None:
                self.writer.write(f"start: {span.name} {span.id}")
                if span.parent_id.is_valid():
                    self.writer.write(f"[{span.parent_id}]")
        elif event.is_end(ev):
            span = get_span(ctx)
            if span is not None:
                self.writer.write(f"finish: {span.name} {span.id}")
        return ctx


def log_writer(w: TextIO, only_errors: bool) -> Exporter:
    """Return an exporter that logs events to ``w``."""
    return LogWriter(w, only_errors).process_event
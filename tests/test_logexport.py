import io
import re
from datetime import datetime, timezone

import pytest

from gositools import core, event, keys, logexport, tracing


@pytest.fixture(autouse=True)
def reset_exporter():
    yield
    core.set_exporter(None)


def time_fixer(output):
    at = datetime(2020, 3, 5, 14, 27, 48, tzinfo=timezone.utc)

    def process(ctx, ev, lm):
        return output(ctx, core.clone_event(ev, at), lm)

    return process


def test_example_log():
    out = io.StringIO()
    event.set_exporter(time_fixer(logexport.log_writer(out, False)))
    ctx = core.Context()
    an_int = keys.Int("myInt", "an integer")
    a_string = keys.String("myString", "a string")
    event.log(ctx, "my event", an_int.of(6))
    event.error(ctx, "error event", Exception("an error"), a_string.of("some string value"))
    assert out.getvalue() == (
        "2020/03/05 14:27:48 my event\n"
        "\tmyInt=6\n"
        "2020/03/05 14:27:48 error event: an error\n"
        '\tmyString="some string value"\n'
    )


def test_only_errors_filters_plain_logs():
    out = io.StringIO()
    event.set_exporter(time_fixer(logexport.log_writer(out, True)))
    ctx = core.Context()
    event.log(ctx, "my event")
    event.error(ctx, "error event", Exception("an error"))
    assert out.getvalue() == "2020/03/05 14:27:48 error event: an error\n"


def test_printer_without_time_or_message():
    out = io.StringIO()
    ev = core.make_event((keys.MSG.of(""), keys.ERR.of(Exception("an error"))), None)
    logexport.Printer().write_event(out, ev, ev)
    assert out.getvalue() == "an error\n"


def test_non_log_events_ignored():
    out = io.StringIO()
    writer = logexport.LogWriter(out)
    ev = core.make_event((keys.METRIC.new(),), None)
    assert writer.process_event(core.Context(), ev, ev) is not None
    assert out.getvalue() == ""


def test_span_start_and_finish_lines():
    out = io.StringIO()
    event.set_exporter(tracing.spans(logexport.log_writer(out, False)))
    ctx, done = event.start(core.Context(), "outer")
    inner_ctx, inner_done = event.start(ctx, "inner")
    inner_done()
    done()
    outer = tracing.get_span(ctx)
    inner = tracing.get_span(inner_ctx)
    assert out.getvalue() == (
        f"start: outer {outer.id}"
        f"start: inner {inner.id}[{outer.id.span_id}]"
        f"finish: inner {inner.id}"
        f"finish: outer {outer.id}"
    )
    assert re.fullmatch(r"\{[0-9a-f]{32} [0-9a-f]{16}\}", str(outer.id))
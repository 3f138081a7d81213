from datetime import datetime, timezone

from gositools import core, keys, metric
from gositools.core import Context
from gositools.label import merge_maps, new_map

AT = datetime(1970, 1, 1, 0, 0, 40, tzinfo=timezone.utc)

key_method = keys.String("method", "a metric grouping key")
key_route = keys.String("route", "another metric grouping key")
latency_ms = keys.Float64("latency", "The latency in milliseconds")
bytes_in = keys.Int64("bytes_in", "Number of bytes in")
recursive_calls = keys.Int64("recursive_calls", "Number of recursive calls")


def latency_info():
    return metric.HistogramFloat64(
        name="latency_ms",
        description="The latency of calls in milliseconds",
        keys=[key_method, key_route],
        buckets=[0, 5, 10, 25, 50],
    )


def bytes_info():
    return metric.HistogramInt64(
        name="latency_ms",
        description="The latency of calls in milliseconds",
        keys=[key_method, key_route],
        buckets=[0, 10, 50, 100, 500, 1000, 2000],
    )


def scalar_info():
    return metric.Scalar(
        name="latency_ms",
        description="The latency of calls in milliseconds",
        keys=[key_method, key_route],
    )


def send(config, value_label, *context_labels):
    captured = []

    def out(ctx, ev, lm):
        captured.append(lm)
        return ctx

    exp = config.exporter(out)
    ev = core.clone_event(core.make_event((keys.METRIC.new(), value_label), None), AT)
    lm = merge_maps(new_map(*context_labels), ev) if context_labels else ev
    exp(Context(), ev, lm)
    return metric.ENTRIES.get(captured[0])


def test_histogram_float64_matches_source_case():
    config = metric.Config()
    latency_info().record(config, latency_ms)
    entries = send(config, latency_ms.of(96.58), key_method.of("godoc.ServeHTTP"))
    assert len(entries) == 1
    data = entries[0]
    assert data.handle() == "latency_ms"
    row = data.rows[0]
    assert row.count == 1
    assert row.sum == 96.58
    assert row.values == [0, 0, 0, 0, 0]
    assert data.end_time == AT


def test_histogram_int64_matches_source_case():
    config = metric.Config()
    bytes_info().record(config, bytes_in)
    entries = send(config, bytes_in.of(9700))
    row = entries[0].rows[0]
    assert row.count == 1
    assert row.sum == 9700
    assert row.values == [0, 0, 0, 0, 0, 0, 0]


def test_histogram_tracks_min_max_and_bucket_invariants():
    config = metric.Config()
    bytes_info().record(config, bytes_in)
    inputs = [40, 7, 600]
    for value in inputs:
        entries = send(config, bytes_in.of(value))
    row = entries[0].rows[0]
    assert row.count == len(inputs)
    assert row.sum == sum(inputs)
    assert row.min == min(inputs)
    assert row.max == max(inputs)
    assert row.values == sorted(row.values)
    assert row.values[-1] == len(inputs)
    assert row.values[0] == 0


def test_scalar_sums_and_snapshots_are_independent():
    config = metric.Config()
    scalar_info().sum_int64(config, recursive_calls)
    first = send(config, recursive_calls.of(3))[0]
    second = send(config, recursive_calls.of(4))[0]
    assert first.rows == [3]
    assert second.rows == [3 + 4]
    assert first.is_gauge is False


def test_groups_are_kept_sorted_with_rows():
    config = metric.Config()
    scalar_info().sum_int64(config, recursive_calls)
    send(config, recursive_calls.of(1), key_method.of("b"))
    data = send(config, recursive_calls.of(5), key_method.of("a"))[0]
    methods = [key_method.from_label(group[0]) for group in data.groups()]
    assert methods == ["a", "b"]
    assert data.rows == [5, 1]
    assert not data.groups()[0][1].valid()


def test_same_group_updates_existing_row():
    config = metric.Config()
    scalar_info().sum_int64(config, recursive_calls)
    send(config, recursive_calls.of(2), key_method.of("x"))
    data = send(config, recursive_calls.of(2), key_method.of("x"))[0]
    assert len(data.groups()) == 1
    assert data.rows == [4]


def test_unsubscribed_key_yields_no_entries():
    config = metric.Config()
    scalar_info().sum_int64(config, recursive_calls)
    assert send(config, bytes_in.of(10)) == []


def test_non_metric_events_pass_through():
    config = metric.Config()
    seen = []

    def out(ctx, ev, lm):
        seen.append(lm)
        return ctx

    exp = config.exporter(out)
    ev = core.make_event((keys.MSG.of("hello"),), None)
    ctx = Context()
    assert exp(ctx, ev, ev) is ctx
    assert seen == [ev]
    assert metric.ENTRIES.get(seen[0]) is None


def test_several_subscribers_on_one_key():
    config = metric.Config()
    bytes_info().record(config, bytes_in)
    scalar_info().sum_int64(config, bytes_in)
    entries = send(config, bytes_in.of(12))
    assert len(entries) == 2
    assert isinstance(entries[0], metric.HistogramInt64Data)
    assert isinstance(entries[1], metric.Int64Data)
    assert entries[1].rows == [12]


def test_float64_data_handle_and_groups():
    data = metric.Float64Data(info=scalar_info(), is_gauge=True, rows=[1.5])
    assert data.handle() == "latency_ms"
    assert data.groups() == []
# gositools

Lightweight event telemetry, plus helpers for walking Go source trees.

## Modules

- `gositools.label`: `Key`, `Label`, and label maps. `new_map` builds a map
  from labels. `merge_maps` chains maps so that the earlier ones win, and it
  drops `None` entries.
- `gositools.keys`: typed keys that build labels with `.of(...)`:
  - integers: `Int`, `Int8` … `Int64` and `UInt` … `UInt64`
  - floats: `Float32`, `Float64`
  - other values: `String`, `Boolean`, `Error`, `Value`, and the value-less
    `Tag` (whose labels come from `.new()`)

  It also holds the standard event-kind keys `MSG`, `ERR`, `START`, `END`,
  `LABEL`, `METRIC` and `DETACH`.
- `gositools.core`: `Context` (an immutable key/value chain), `Event`,
  `make_event`, `clone_event`, a single global exporter set with
  `set_exporter`, and the delivery functions:
  - `export` and `export_pair`
  - `log1`, `metric1` and `start1`, which take exactly one label
- `gositools.event`: the usual entry points `log`, `error`, `metric`,
  `label` and `start`. The checks `is_log`, `is_error`, `is_metric`,
  `is_label`, `is_start`, `is_end` and `is_detach` tell event kinds apart.
- `gositools.tracing`: `TraceID`, `SpanID`, `SpanContext` and `Span`.
  - `spans(output)` is an exporter that keeps the span tree in the context.
  - `labels(output)` carries label and span-start labels along through
    contexts.
  - `get_span(ctx)` returns the current span.
- `gositools.logexport`: `Printer`, `LogWriter` and `log_writer(w, only_errors)`.
  They write log events as text, and span starts and ends as well.
- `gositools.metric`: metric definitions `Scalar`, `HistogramInt64` and
  `HistogramFloat64`. They subscribe to a `Config`. `Config.exporter(output)`
  adds the updated metric data to each metric event's label map, under
  `metric.ENTRIES`.
- `gositools.wire`: dataclasses for OpenCensus agent trace and metric
  messages. `to_json_value` and `marshal` turn them into compact JSON, and
  leave out fields that are empty.
- `gositools.fastwalk`: `walk(root, walk_fn)` is a threaded directory walk.
  It calls `walk_fn(path, FileType)` for each entry. The callback steers the
  walk by raising `SkipDir`, `SkipFiles` or `TraverseLink`.
- `gositools.gopathwalk`: `walk`, `walk_skip` and `walk_dir` find the
  directories that hold `.go` files under `Root`s. Each root has a
  `RootType`: GOROOT, GOPATH, module cache and so on.
  - It skips `testdata`, hidden and `_` directories, and `node_modules`
    when modules are off.
  - For GOPATH roots it reads a `.goimportsignore` file.
  - It follows symlinks only when they do not make a loop.

## Installation

```
pip install gositools
```

## Logging events

```python
import sys
from gositools import core, event, keys, logexport

event.set_exporter(logexport.log_writer(sys.stdout, False))

count = keys.Int("count", "number of items")
ctx = core.Context()
event.log(ctx, "processed batch", count.of(6))
event.error(ctx, "write failed", OSError("disk full"))
```

## Tracing

```python
import sys
from gositools import core, event, logexport, tracing

event.set_exporter(tracing.spans(logexport.log_writer(sys.stdout, False)))
ctx, done = event.start(core.Context(), "work")
try:
    event.log(ctx, "inside the span")
finally:
    done()
```

## Metrics

```python
from gositools import core, event, keys, metric

latency = keys.Float64("latency", "latency in milliseconds")
config = metric.Config()
metric.HistogramFloat64("latency_ms", buckets=[0, 5, 10, 25, 50]).record(config, latency)

def output(ctx, ev, lm):
    for data in metric.ENTRIES.get(lm) or []:
        print(data.handle(), data.rows)
    return ctx

event.set_exporter(config.exporter(output))
event.metric(core.Context(), latency.of(7.5))
```

## Encoding agent messages

```python
from gositools.wire import Point, PointInt64Value, marshal

marshal(Point(value=PointInt64Value(int64_value=5)))  # b'{"int64Value":5}'
```

## Finding Go packages

```python
from gositools.gopathwalk import Options, Root, RootType, walk

found = []
walk([Root("/home/me/go/src", RootType.GOPATH)],
     lambda root, directory: found.append(directory),
     Options())
```

`walk` calls the `add` callback from several threads at once.

## What this package does not do

- Nothing here sends telemetry anywhere. `gositools.wire` defines the agent
  message types and their JSON encoding. There is no exporter that gathers
  spans and metrics into those messages or posts them to an agent over HTTP.
- There is no command-line tool. Everything is used as a library.

## Running the tests

```
pip install -e ".[test]"
pytest
```
"""JSON message types understood by the OpenCensus agent, and their encoding.

Every field is omitted from the JSON form when it holds its zero value,
except fields marked as optional pointers, which are omitted only when None.
Maps are written with their keys sorted, byte strings as base64, and floats
in their shortest form without a trailing ``.0``.
"""

from __future__ import annotations

import base64
import dataclasses
import enum
import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

Timestamp = str


def _f(name: str, default: Any = None, *, factory: Any = None, pointer: bool = False) -> Any:
    meta = {"json": name, "pointer": pointer}
    if factory is not None:
        return field(default_factory=factory, metadata=meta)
    return field(default=default, metadata=meta)


# ---------------------------------------------------------------- common types


class Language(enum.IntEnum):
    """Language of the library that produced the telemetry."""

    UNSPECIFIED = 0
    GO = 4


@dataclass
class ProcessIdentifier:
    host_name: str = _f("host_name", "")
    pid: int = _f("pid", 0)
    start_timestamp: Timestamp = _f("start_timestamp", "")


@dataclass
class LibraryInfo:
    language: Language = _f("language", Language.UNSPECIFIED)
    exporter_version: str = _f("exporter_version", "")
    core_library_version: str = _f("core_library_version", "")


@dataclass
class ServiceInfo:
    name: str = _f("name", "")


@dataclass
class Node:
    identifier: Optional[ProcessIdentifier] = _f("identifier")
    library_info: Optional[LibraryInfo] = _f("library_info")
    service_info: Optional[ServiceInfo] = _f("service_info")
    attributes: Dict[str, str] = _f("attributes", factory=dict)


@dataclass
class Resource:
    type: str = _f("type", "")
    labels: Dict[str, str] = _f("labels", factory=dict)


@dataclass
class TruncatableString:
    value: str = _f("value", "")
    truncated_byte_count: int = _f("truncated_byte_count", 0)


@dataclass
class StringAttribute:
    string_value: Optional[TruncatableString] = _f("stringValue")


@dataclass
class IntAttribute:
    int_value: int = _f("intValue", 0)


@dataclass
class BoolAttribute:
    bool_value: bool = _f("boolValue", False)


@dataclass
class DoubleAttribute:
    double_value: float = _f("doubleValue", 0.0)


@dataclass
class Attributes:
    attribute_map: Dict[str, Any] = _f("attributeMap", factory=dict)
    dropped_attributes_count: int = _f("dropped_attributes_count", 0)


@dataclass
class Module:
    module: Optional[TruncatableString] = _f("module")
    build_id: Optional[TruncatableString] = _f("build_id")


@dataclass
class StackFrame:
    function_name: Optional[TruncatableString] = _f("function_name")
    original_function_name: Optional[TruncatableString] = _f("original_function_name")
    file_name: Optional[TruncatableString] = _f("file_name")
    line_number: int = _f("line_number", 0)
    column_number: int = _f("column_number", 0)
    load_module: Optional[Module] = _f("load_module")
    source_version: Optional[TruncatableString] = _f("source_version")


@dataclass
class StackFrames:
    frame: List[StackFrame] = _f("frame", factory=list)
    dropped_frames_count: int = _f("dropped_frames_count", 0)


@dataclass
class StackTrace:
    stack_frames: Optional[StackFrames] = _f("stack_frames")
    stack_trace_hash_id: int = _f("stack_trace_hash_id", 0)


# ------------------------------------------------------------------ core types


@dataclass
class Int64Value:
    value: int = _f("value", 0)


@dataclass
class DoubleValue:
    value: float = _f("value", 0.0)


# --------------------------------------------------------------------- metrics


class MetricDescriptorType(enum.IntEnum):
    """The kind of values a metric holds."""

    UNSPECIFIED = 0
    GAUGE_INT64 = 1
    GAUGE_DOUBLE = 2
    GAUGE_DISTRIBUTION = 3
    CUMULATIVE_INT64 = 4
    CUMULATIVE_DOUBLE = 5
    CUMULATIVE_DISTRIBUTION = 6
    SUMMARY = 7


@dataclass
class LabelKey:
    key: str = _f("key", "")
    description: str = _f("description", "")


@dataclass
class LabelValue:
    value: str = _f("value", "")
    has_value: bool = _f("has_value", False)


@dataclass
class MetricDescriptor:
    name: str = _f("name", "")
    description: str = _f("description", "")
    unit: str = _f("unit", "")
    type: MetricDescriptorType = _f("type", MetricDescriptorType.UNSPECIFIED)
    label_keys: List[LabelKey] = _f("label_keys", factory=list)


@dataclass
class PointInt64Value:
    int64_value: int = _f("int64Value", 0)


@dataclass
class PointDoubleValue:
    double_value: float = _f("doubleValue", 0.0)


@dataclass
class BucketOptionsExplicit:
    bounds: List[float] = _f("bounds", factory=list)

    def json_value(self) -> Dict[str, Any]:
        """Wrap the bounds under ``explicit``, as the agent expects."""
        inner: Dict[str, Any] = {}
        if self.bounds:
            inner["bounds"] = [to_json_value(float(b)) for b in self.bounds]
        return {"explicit": inner}


@dataclass
class Exemplar:
    value: float = _f("value", 0.0)
    timestamp: Optional[Timestamp] = _f("timestamp", pointer=True)
    attachments: Dict[str, str] = _f("attachments", factory=dict)


@dataclass
class Bucket:
    count: int = _f("count", 0)
    exemplar: Optional[Exemplar] = _f("exemplar")


@dataclass
class DistributionValue:
    count: int = _f("count", 0)
    sum: float = _f("sum", 0.0)
    sum_of_squared_deviation: float = _f("sum_of_squared_deviation", 0.0)
    bucket_options: Optional[BucketOptionsExplicit] = _f("bucket_options")
    buckets: List[Bucket] = _f("buckets", factory=list)


@dataclass
class PointDistributionValue:
    distribution_value: Optional[DistributionValue] = _f("distributionValue")


@dataclass
class SnapshotValueAtPercentile:
    percentile: float = _f("percentile", 0.0)
    value: float = _f("value", 0.0)


@dataclass
class Snapshot:
    count: Optional[Int64Value] = _f("count")
    sum: Optional[DoubleValue] = _f("sum")
    percentile_values: List[SnapshotValueAtPercentile] = _f("percentile_values", factory=list)


@dataclass
class SummaryValue:
    count: Optional[Int64Value] = _f("count")
    sum: Optional[DoubleValue] = _f("sum")
    snapshot: Optional[Snapshot] = _f("snapshot")


@dataclass
class PointSummaryValue:
    summary_value: Optional[SummaryValue] = _f("summaryValue")


@dataclass
class Point:
    timestamp: Optional[Timestamp] = _f("timestamp", pointer=True)
    value: Any = _f("value")

    def json_value(self) -> Dict[str, Any]:
        """Flatten the value into the point, keyed by the value's kind.

        Raises TypeError for any value other than an int64, double or
        distribution point value.
        """
        out: Dict[str, Any] = {}
        if self.timestamp is not None:
            out["timestamp"] = self.timestamp
        value = self.value
        if isinstance(value, PointInt64Value):
            if value.int64_value:
                out["int64Value"] = int(value.int64_value)
        elif isinstance(value, PointDoubleValue):
            if value.double_value:
                out["doubleValue"] = float(value.double_value)
        elif isinstance(value, PointDistributionValue):
            if value.distribution_value is not None:
                out["distributionValue"] = to_json_value(value.distribution_value)
        else:
            raise TypeError(f"unknown point type {type(value).__name__}")
        return out


@dataclass
class TimeSeries:
    start_timestamp: Optional[Timestamp] = _f("start_timestamp", pointer=True)
    label_values: List[LabelValue] = _f("label_values", factory=list)
    points: List[Point] = _f("points", factory=list)


@dataclass
class Metric:
    metric_descriptor: Optional[MetricDescriptor] = _f("metric_descriptor")
    timeseries: List[TimeSeries] = _f("timeseries", factory=list)
    resource: Optional[Resource] = _f("resource")


@dataclass
class ExportMetricsServiceRequest:
    node: Optional[Node] = _f("node")
    metrics: List[Metric] = _f("metrics", factory=list)
    resource: Optional[Resource] = _f("resource")


# ----------------------------------------------------------------------- trace


class SpanKind(enum.IntEnum):
    """The role of a span in a request."""

    UNSPECIFIED = 0
    SERVER = 1
    CLIENT = 2


@dataclass
class TraceStateEntry:
    key: str = _f("key", "")
    value: str = _f("value", "")


@dataclass
class TraceState:
    entries: List[TraceStateEntry] = _f("entries", factory=list)


@dataclass
class Annotation:
    description: Optional[TruncatableString] = _f("description")
    attributes: Optional[Attributes] = _f("attributes")


@dataclass
class MessageEvent:
    type: int = _f("type", 0)
    id: int = _f("id", 0)
    uncompressed_size: int = _f("uncompressed_size", 0)
    compressed_size: int = _f("compressed_size", 0)


@dataclass
class TimeEvent:
    time: Timestamp = _f("time", "")
    message_event: Optional[MessageEvent] = _f("messageEvent")
    annotation: Optional[Annotation] = _f("annotation")


@dataclass
class TimeEvents:
    time_event: List[TimeEvent] = _f("timeEvent", factory=list)
    dropped_annotations_count: int = _f("dropped_annotations_count", 0)
    dropped_message_events_count: int = _f("dropped_message_events_count", 0)


@dataclass
class Link:
    trace_id: bytes = _f("trace_id", b"")
    span_id: bytes = _f("span_id", b"")
    type: int = _f("type", 0)
    attributes: Optional[Attributes] = _f("attributes")
    trace_state: Optional[TraceState] = _f("tracestate")


@dataclass
class Links:
    link: List[Link] = _f("link", factory=list)
    dropped_links_count: int = _f("dropped_links_count", 0)


@dataclass
class Status:
    code: int = _f("code", 0)
    message: str = _f("message", "")


@dataclass
class Span:
    trace_id: bytes = _f("trace_id", b"")
    span_id: bytes = _f("span_id", b"")
    trace_state: Optional[TraceState] = _f("tracestate")
    parent_span_id: bytes = _f("parent_span_id", b"")
    name: Optional[TruncatableString] = _f("name")
    kind: SpanKind = _f("kind", SpanKind.UNSPECIFIED)
    start_time: Timestamp = _f("start_time", "")
    end_time: Timestamp = _f("end_time", "")
    attributes: Optional[Attributes] = _f("attributes")
    stack_trace: Optional[StackTrace] = _f("stack_trace")
    time_events: Optional[TimeEvents] = _f("time_events")
    links: Optional[Links] = _f("links")
    status: Optional[Status] = _f("status")
    resource: Optional[Resource] = _f("resource")
    same_process_as_parent_span: bool = _f("same_process_as_parent_span", False)
    child_span_count: bool = _f("child_span_count", False)


@dataclass
class ExportTraceServiceRequest:
    node: Optional[Node] = _f("node")
    spans: List[Span] = _f("spans", factory=list)
    resource: Optional[Resource] = _f("resource")


# -------------------------------------------------------------------- encoding


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (bool, int, float)):
        return value == 0
    if isinstance(value, (str, bytes, bytearray, list, tuple, dict)):
        return len(value) == 0
    return False


def _struct_value(obj: Any) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for f in dataclasses.fields(obj):
        value = getattr(obj, f.name)
        if value is None:
            continue
        if not f.metadata.get("pointer") and _is_empty(value):
            continue
        out[f.metadata["json"]] = to_json_value(value)
    return out


def to_json_value(obj: Any) -> Any:
    """Convert a message (or any value inside one) to plain JSON-ready data."""
    if obj is None:
        return None
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        custom = getattr(obj, "json_value", None)
        if custom is not None:
            return custom()
        return _struct_value(obj)
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, int):
        return int(obj)
    if isinstance(obj, float):
        return obj
    if isinstance(obj, str):
        return str(obj)
    if isinstance(obj, (bytes, bytearray)):
        return base64.b64encode(bytes(obj)).decode("ascii")
    if isinstance(obj, Mapping):
        return {str(k): to_json_value(obj[k]) for k in sorted(obj, key=str)}
    if isinstance(obj, (list, tuple)):
        return [to_json_value(item) for item in obj]
    raise TypeError(f"cannot encode value of type {type(obj).__name__}")


_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _quote(text: str) -> str:
    parts = ['"']
    for ch in text:
        escaped = _ESCAPES.get(ch)
        if escaped is not None:
            parts.append(escaped)
        elif ord(ch) < 0x20:
            parts.append(f"\\u{ord(ch):04x}")
        else:
            parts.append(ch)
    parts.append('"')
    return "".join(parts)


def _format_float(value: float) -> str:
    if math.isnan(value) or math.isinf(value):
        raise ValueError(f"json: unsupported value: {value!r}")
    magnitude = abs(value)
    if magnitude != 0 and (magnitude < 1e-6 or magnitude >= 1e21):
        mantissa, exponent = repr(value).split("e")
        if exponent.startswith("-0"):
            exponent = "-" + exponent[2:]
        return f"{mantissa}e{exponent}"
    return format(Decimal(repr(value)).normalize(), "f")


def _encode(value: Any) -> str:
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, str):
        return _quote(value)
    if isinstance(value, dict):
        items = (f"{_quote(k)}:{_encode(v)}" for k, v in value.items())
        return "{" + ",".join(items) + "}"
    if isinstance(value, list):
        return "[" + ",".join(_encode(v) for v in value) + "]"
    raise TypeError(f"cannot encode value of type {type(value).__name__}")


def marshal(obj: Any) -> bytes:
    """Encode a message as compact JSON bytes."""
    return _encode(to_json_value(obj)).encode("utf-8")
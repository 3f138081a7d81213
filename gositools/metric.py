"""Aggregation of metric events into scalar and histogram time series."""

from __future__ import annotations

import bisect
import copy
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from gositools import event
from gositools import keys as _keys
from gositools.core import Context, Event, Exporter
from gositools.label import Key, Label, merge_maps, new_map

ENTRIES = _keys.Value("metric_entries", "The set of metrics calculated for an event")

Group = List[Label]
_Subscriber = Callable[[Optional[datetime], Any, Label], Any]


def _group_text(group: Sequence[Label]) -> str:
    return "[" + " ".join(str(lbl) for lbl in group) + "]"


def _get_group(
    lm: Any, groups: List[Group], group_keys: Sequence[Key]
) -> Tuple[int, bool, List[Group]]:
    """Locate the row for ``lm``; returns its index, whether it is new, and the groups."""
    group = [lm.find(key) for key in group_keys]
    text = _group_text(group)
    texts = [_group_text(g) for g in groups]
    index = bisect.bisect_left(texts, text)
    if index < len(groups) and texts[index] == text:
        return index, False, groups
    return index, True, groups[:index] + [group] + groups[index:]


@dataclass
class Scalar:
    """Construction information for a scalar metric."""

    name: str
    description: str = ""
    keys: List[Key] = field(default_factory=list)

    def sum_int64(self, config: "Config", key: _keys.Int64) -> None:
        """Subscribe a metric that sums every value recorded on ``key``."""
        data = Int64Data(info=copy.copy(self), _key=key)
        config._subscribe(key, data._sum)


@dataclass
class HistogramInt64:
    """Construction information for an integer histogram metric."""

    name: str
    description: str = ""
    keys: List[Key] = field(default_factory=list)
    buckets: List[int] = field(default_factory=list)

    def record(self, config: "Config", key: _keys.Int64) -> None:
        """Subscribe a metric that counts values recorded on ``key`` into buckets."""
        data = HistogramInt64Data(info=copy.copy(self), _key=key)
        config._subscribe(key, data._record)


@dataclass
class HistogramFloat64:
    """Construction information for a floating point histogram metric."""

    name: str
    description: str = ""
    keys: List[Key] = field(default_factory=list)
    buckets: List[float] = field(default_factory=list)

    def record(self, config: "Config", key: _keys.Float64) -> None:
        """Subscribe a metric that counts values recorded on ``key`` into buckets."""
        data = HistogramFloat64Data(info=copy.copy(self), _key=key)
        config._subscribe(key, data._record)


@dataclass
class Int64Data:
    """Integer scalar metric values, one row per label group."""

    info: Scalar
    is_gauge: bool = False
    rows: List[int] = field(default_factory=list)
    end_time: Optional[datetime] = None
    _groups: List[Group] = field(default_factory=list, repr=False)
    _key: Optional[_keys.Int64] = field(default=None, repr=False)

    def handle(self) -> str:
        return self.info.name

    def groups(self) -> List[Group]:
        return self._groups

    def _modify(
        self, at: Optional[datetime], lm: Any, f: Callable[[int], int]
    ) -> "Int64Data":
        index, insert, self._groups = _get_group(lm, self._groups, self.info.keys)
        rows = list(self.rows)
        if insert:
            rows.insert(index, 0)
        rows[index] = f(rows[index])
        self.rows = rows
        self.end_time = at
        return copy.copy(self)

    def _sum(self, at: Optional[datetime], lm: Any, lbl: Label) -> "Int64Data":
        assert self._key is not None
        amount = self._key.from_label(lbl)
        return self._modify(at, lm, lambda v: v + amount)


@dataclass
class Float64Data:
    """Floating point scalar metric values, one row per label group."""

    info: Scalar
    is_gauge: bool = False
    rows: List[float] = field(default_factory=list)
    end_time: Optional[datetime] = None
    _groups: List[Group] = field(default_factory=list, repr=False)

    def handle(self) -> str:
        return self.info.name

    def groups(self) -> List[Group]:
        return self._groups


@dataclass
class HistogramInt64Row:
    """Bucket counts and summary values for one group of an integer histogram."""

    values: List[int] = field(default_factory=list)
    count: int = 0
    sum: int = 0
    min: int = 0
    max: int = 0


@dataclass
class HistogramFloat64Row:
    """Bucket counts and summary values for one group of a float histogram."""

    values: List[int] = field(default_factory=list)
    count: int = 0
    sum: float = 0.0
    min: float = 0.0
    max: float = 0.0


def _record_into(row: Any, value: Any, buckets: Sequence[Any]) -> None:
    row.sum += value
    if row.min > value or row.count == 0:
        row.min = value
    if row.max < value or row.count == 0:
        row.max = value
    row.count += 1
    for i, bound in enumerate(buckets):
        if value <= bound:
            row.values[i] += 1


def _modify_histogram(data: Any, at: Optional[datetime], lm: Any, value: Any, empty: Any) -> Any:
    index, insert, data._groups = _get_group(lm, data._groups, data.info.keys)
    rows = list(data.rows)
    if insert:
        row = empty
        rows.insert(index, row)
    else:
        row = replace(rows[index])
    size = len(data.info.buckets)
    row.values = (list(row.values) + [0] * size)[:size]
    _record_into(row, value, data.info.buckets)
    rows[index] = row
    data.rows = rows
    data.end_time = at
    return copy.copy(data)


@dataclass
class HistogramInt64Data:
    """Integer histogram metric values, one row per label group."""

    info: HistogramInt64
    rows: List[HistogramInt64Row] = field(default_factory=list)
    end_time: Optional[datetime] = None
    _groups: List[Group] = field(default_factory=list, repr=False)
    _key: Optional[_keys.Int64] = field(default=None, repr=False)

    def handle(self) -> str:
        return self.info.name

    def groups(self) -> List[Group]:
        return self._groups

    def _record(self, at: Optional[datetime], lm: Any, lbl: Label) -> "HistogramInt64Data":
        assert self._key is not None
        return _modify_histogram(self, at, lm, self._key.from_label(lbl), HistogramInt64Row())


@dataclass
class HistogramFloat64Data:
    """Floating point histogram metric values, one row per label group."""

    info: HistogramFloat64
    rows: List[HistogramFloat64Row] = field(default_factory=list)
    end_time: Optional[datetime] = None
    _groups: List[Group] = field(default_factory=list, repr=False)
    _key: Optional[_keys.Float64] = field(default=None, repr=False)

    def handle(self) -> str:
        return self.info.name

    def groups(self) -> List[Group]:
        return self._groups

    def _record(self, at: Optional[datetime], lm: Any, lbl: Label) -> "HistogramFloat64Data":
        assert self._key is not None
        return _modify_histogram(self, at, lm, self._key.from_label(lbl), HistogramFloat64Row())


class Config:
    """The set of metrics subscribed to metric events."""

    def __init__(self) -> None:
        self._subscribers: Dict[Key, List[_Subscriber]] = {}

    def _subscribe(self, key: Key, subscriber: _Subscriber) -> None:
        self._subscribers.setdefault(key, []).append(subscriber)

    def exporter(self, output: Exporter) -> Exporter:
        """Wrap ``output`` so metric events carry the updated metrics under ENTRIES."""
        lock = threading.Lock()

        def process(ctx: Context, ev: Event, lm: Any) -> Context:
            if not event.is_metric(ev):
                return output(ctx, ev, lm)
            with lock:
                metrics = [
                    subscriber(ev.at, lm, lbl)
                    for lbl in ev
                    if lbl.valid()
                    for subscriber in self._subscribers.get(lbl.key, ())
                ]
                lm = merge_maps(new_map(ENTRIES.of(metrics)), lm)
                return output(ctx, ev, lm)

        return process
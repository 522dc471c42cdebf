# school_attendance/core/periods.py
"""
Class periods and time slots.

Periods are the atomic scheduling units of a school day ("第1节", "早读", ...)
and are configured as the JSON-encoded ``attendance_periods`` system setting.
Time slots are named presets grouping period IDs ("上午" -> 1..4).

This module turns a set of period IDs into a readable label and keeps a
slot-based selection in sync while individual periods are toggled.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)

FULL_DAY_LABEL = "全天"
LABEL_SEPARATOR = "、"
NUMBERED_PERIOD = re.compile(r"^第(\d+)节$")

# A run of consecutive numbered periods is collapsed into "第a-b节"
# only from this length on; shorter runs keep their own names.
MIN_RANGE_RUN = 3


@dataclass(frozen=True)
class Period:
    id: int
    name: str

    @property
    def number(self) -> Optional[int]:
        """Ordinal for "第N节"-style names, None for special periods."""
        match = NUMBERED_PERIOD.match(self.name)
        return int(match.group(1)) if match else None


@dataclass(frozen=True)
class TimeSlot:
    id: int
    name: str
    period_ids: tuple = ()


def _to_int_ids(ids: Optional[Iterable]) -> List[int]:
    result = []
    for value in ids or []:
        try:
            result.append(int(value))
        except (TypeError, ValueError):
            continue
    return result


def parse_periods(value) -> List[Period]:
    """
    Build the ordered period list from the ``attendance_periods`` setting.

    Accepts the raw JSON string or an already decoded list of
    ``{"id": ..., "name": ...}`` objects. Malformed input yields ``[]``.
    """
    if not value:
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            logger.warning("attendance_periods setting is not valid JSON")
            return []
    if not isinstance(value, list):
        return []

    periods = []
    for item in value:
        if not isinstance(item, dict):
            continue
        try:
            periods.append(Period(id=int(item["id"]), name=str(item["name"])))
        except (KeyError, TypeError, ValueError):
            continue
    return periods


def to_time_slots(rows) -> List[TimeSlot]:
    """Convert ORM rows or plain dicts into ``TimeSlot`` values."""
    slots = []
    for row in rows:
        if isinstance(row, TimeSlot):
            slots.append(row)
            continue
        get = row.get if isinstance(row, dict) else lambda key: getattr(row, key, None)
        slots.append(TimeSlot(
            id=int(get("id")),
            name=get("name"),
            period_ids=tuple(_to_int_ids(get("period_ids"))),
        ))
    return slots


def match_time_slot(period_ids: Iterable, time_slots: Sequence[TimeSlot]) -> Optional[TimeSlot]:
    """Return the slot whose period set equals ``period_ids`` exactly."""
    selected = sorted(set(_to_int_ids(period_ids)))
    if not selected:
        return None
    for slot in time_slots:
        slot_ids = sorted(set(_to_int_ids(slot.period_ids)))
        if slot_ids and slot_ids == selected:
            return slot
    return None


def expand_time_slot(slot_id: int, time_slots: Sequence[TimeSlot]) -> List[int]:
    for slot in time_slots:
        if slot.id == slot_id:
            return list(slot.period_ids)
    return []


def _flush_run(run: List[Period], tokens: List[str]):
    if not run:
        return
    if len(run) < MIN_RANGE_RUN:
        tokens.append(LABEL_SEPARATOR.join(p.name for p in run))
    else:
        tokens.append(f"第{run[0].number}-{run[-1].number}节")
    run.clear()


def describe_periods(period_ids, periods: Sequence[Period], time_slots: Sequence[TimeSlot] = ()) -> str:
    """
    Human-readable label for a period selection, without parentheses.

    Exact slot match wins, then full coverage, then an enumerated list in
    configured order where consecutive numbered periods are collapsed.
    """
    ids = _to_int_ids(period_ids)
    if not ids or not periods:
        return FULL_DAY_LABEL

    slot = match_time_slot(ids, time_slots)
    if slot is not None:
        return slot.name

    selected = set(ids)
    if selected >= {p.id for p in periods}:
        return FULL_DAY_LABEL

    # Unknown IDs are dropped; order follows the configured period list
    chosen = [p for p in periods if p.id in selected]
    if not chosen:
        return f"{len(selected)}节"

    tokens: List[str] = []
    run: List[Period] = []
    for period in chosen:
        number = period.number
        if number is None:
            _flush_run(run, tokens)
            tokens.append(period.name)
            continue
        if run and number != run[-1].number + 1:
            _flush_run(run, tokens)
        run.append(period)
    _flush_run(run, tokens)

    # Distinct tokens only, first occurrence wins
    return LABEL_SEPARATOR.join(dict.fromkeys(tokens))


def format_period_label(period_ids, periods: Sequence[Period], time_slots: Sequence[TimeSlot] = ()) -> str:
    return f"({describe_periods(period_ids, periods, time_slots)})"


@dataclass
class PeriodSelection:
    """
    A period selection driven by time-slot presets.

    Picking a slot pre-fills its periods. Toggling single periods afterwards
    re-tests the set against every slot, so the selection is relabelled as
    another slot when it happens to match one and reported as custom when no
    slot matches.
    """
    periods: Sequence[Period]
    time_slots: Sequence[TimeSlot]
    selected: List[int] = field(default_factory=list)
    time_slot: Optional[TimeSlot] = None

    def choose_slot(self, slot_id: int) -> "PeriodSelection":
        slot = next((s for s in self.time_slots if s.id == slot_id), None)
        if slot is None:
            raise KeyError(f"Unknown time slot {slot_id}")
        self.time_slot = slot
        self.selected = list(slot.period_ids)
        return self

    def toggle(self, period_id: int) -> "PeriodSelection":
        period_id = int(period_id)
        if period_id in self.selected:
            self.selected = [pid for pid in self.selected if pid != period_id]
        else:
            self.selected = self.selected + [period_id]
        self.time_slot = match_time_slot(self.selected, self.time_slots)
        return self

    @property
    def is_custom(self) -> bool:
        return bool(self.selected) and self.time_slot is None

    @property
    def period_ids(self) -> List[int]:
        order = {p.id: index for index, p in enumerate(self.periods)}
        return sorted(self.selected, key=lambda pid: (order.get(pid, len(order)), pid))

    @property
    def label(self) -> str:
        return describe_periods(self.selected, self.periods, self.time_slots)

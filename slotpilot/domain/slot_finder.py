"""
Local slot-finding heuristic used when no generative service is reachable.

Pure domain logic: no network, no I/O, deterministic for a given input.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Sequence

import pendulum
from pendulum import Time

from .models import BusyInterval, ScheduleCandidate

logger = logging.getLogger(__name__)

WEEKDAYS = ("MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY")

MAX_CANDIDATES = 3
SLOT_MINUTES = 30
COLLISION_MARGIN_HOURS = 1

# 12-hour range such as "09:00 AM - 10:00 AM" (hyphen or en dash).
TIME_RANGE_PATTERN = re.compile(
    r"(\d{1,2}):(\d{2})\s*([AP]M)\s*[-–]\s*(\d{1,2}):(\d{2})\s*([AP]M)",
    re.IGNORECASE,
)

TIME_FORMAT = "h:mm A"


@dataclass(frozen=True)
class AnchorSlot:
    """A fixed window tested against each day's busy intervals."""
    start: Time

    @property
    def end(self) -> Time:
        return self.start.add(minutes=SLOT_MINUTES)

    def format_range(self) -> str:
        return f"{self.start.format(TIME_FORMAT)} - {self.end.format(TIME_FORMAT)}"


ANCHOR_SLOTS = (
    AnchorSlot(pendulum.time(9, 0)),
    AnchorSlot(pendulum.time(11, 0)),
    AnchorSlot(pendulum.time(14, 0)),
    AnchorSlot(pendulum.time(16, 0)),
)

OPEN_DAY_SLOT = AnchorSlot(pendulum.time(10, 0))


def to_24_hour(hour: int, marker: str) -> int:
    """
    Convert a 12-hour clock hour to 24-hour form.

    12 AM is midnight and 12 PM is noon. Hours above 12 are taken as
    already being 24-hour ("13:00 PM" appears in hand-written calendars).
    """
    if hour > 12:
        return hour
    if marker.upper() == "PM":
        return hour if hour == 12 else hour + 12
    return 0 if hour == 12 else hour


def _parse_time(hour: str, minute: str, marker: str) -> Time:
    return pendulum.time(to_24_hour(int(hour), marker), int(minute))


def _display_day(day: str) -> str:
    return day.capitalize()


class SlotFinder:
    """
    Proposes up to three non-overlapping 30-minute slots from calendar text.

    Algorithm:
    1. Walk the lines, moving a day cursor whenever a line starts with a weekday
    2. Attribute every time range found to the day under the cursor
    3. For each day in order of appearance, take the first anchor slot
       whose hour is more than one hour away from every busy start hour
    4. Top up with the default slot on weekdays the text never mentions

    The check is hour-granular and only looks at busy *start* hours, so a
    long meeting only blocks anchors near its beginning.
    """

    def find_slots(
        self,
        text: str,
        compression_ratio: float | None = None,
    ) -> List[ScheduleCandidate]:
        """
        Find candidate slots in compressed or raw calendar text.

        Args:
            text: Calendar text, possibly compressed
            compression_ratio: Percentage to mention in the reasoning, if known

        Returns:
            At most three candidates, one per day
        """
        busy_by_day = self.parse_busy_intervals(text)

        candidates = self._gap_candidates(busy_by_day, compression_ratio)
        candidates.extend(
            self._open_day_candidates(
                days_seen=list(busy_by_day),
                needed=MAX_CANDIDATES - len(candidates),
            )
        )

        logger.debug(
            "Heuristic found %d candidate(s) across %d mentioned day(s)",
            len(candidates),
            len(busy_by_day),
        )
        return candidates

    def parse_busy_intervals(self, text: str) -> Dict[str, List[BusyInterval]]:
        """
        Parse busy intervals per weekday.

        The returned dict is ordered by first appearance of each day. Lines
        before any day header, and lines whose times are not valid clock
        times, are skipped.
        """
        busy_by_day: Dict[str, List[BusyInterval]] = {}
        current_day: str | None = None

        for line in text.splitlines():
            upper = line.strip().upper()
            for day in WEEKDAYS:
                if upper.startswith(day):
                    current_day = day
                    busy_by_day.setdefault(day, [])
                    break

            match = TIME_RANGE_PATTERN.search(line)
            if not match or current_day is None:
                continue

            try:
                start = _parse_time(*match.group(1, 2, 3))
                end = _parse_time(*match.group(4, 5, 6))
            except ValueError:
                logger.debug("Skipping unparseable time range: %r", line)
                continue

            busy_by_day[current_day].append(
                BusyInterval(day=current_day, start=start, end=end)
            )

        return busy_by_day

    def is_free(self, anchor: AnchorSlot, busy: Sequence[BusyInterval]) -> bool:
        return all(
            abs(interval.start.hour - anchor.start.hour) > COLLISION_MARGIN_HOURS
            for interval in busy
        )

    def _gap_candidates(
        self,
        busy_by_day: Dict[str, List[BusyInterval]],
        compression_ratio: float | None,
    ) -> List[ScheduleCandidate]:
        candidates: List[ScheduleCandidate] = []

        for day, busy in busy_by_day.items():
            if len(candidates) >= MAX_CANDIDATES:
                break

            for anchor in ANCHOR_SLOTS:
                if self.is_free(anchor, busy):
                    candidates.append(self._gap_candidate(day, anchor, compression_ratio))
                    break

        return candidates

    def _gap_candidate(
        self,
        day: str,
        anchor: AnchorSlot,
        compression_ratio: float | None,
    ) -> ScheduleCandidate:
        name = _display_day(day)
        reasoning = f"Gap found in {day.lower()}'s schedule."
        if compression_ratio is not None:
            reasoning += f" {compression_ratio:.0f}% compression applied."
        reasoning += " Add Gemini key for AI analysis."

        return ScheduleCandidate(
            title=f"Available: {name} {anchor.start.format(TIME_FORMAT)}",
            date=name,
            time=anchor.format_range(),
            duration_minutes=SLOT_MINUTES,
            reasoning=reasoning,
        )

    def _open_day_candidates(self, days_seen: List[str], needed: int) -> List[ScheduleCandidate]:
        candidates: List[ScheduleCandidate] = []

        for day in WEEKDAYS:
            if len(candidates) >= needed:
                break
            if day in days_seen:
                continue

            name = _display_day(day)
            candidates.append(
                ScheduleCandidate(
                    title=f"Available: {name} (Open)",
                    date=name,
                    time=OPEN_DAY_SLOT.format_range(),
                    duration_minutes=SLOT_MINUTES,
                    reasoning=(
                        f"{name} has no events in your calendar. "
                        "Add Gemini key for smarter suggestions."
                    ),
                )
            )

        return candidates


def encode_schedule(candidates: Sequence[ScheduleCandidate]) -> str:
    """Serialise candidates into the JSON payload carried by PipelineResult."""
    return json.dumps([candidate.to_wire() for candidate in candidates])

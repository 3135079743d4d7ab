from __future__ import annotations

import calendar as _calendar
from datetime import date, timedelta
from typing import Iterable

from nursestay.core.availability import nights_between
from nursestay.core.models import STATUS_AVAILABLE, CalendarCell, DayAvailability, RangeSelection


SUNDAY = 6
MONDAY = 0

CELL_DISABLED = "disabled"
CELL_PAST = "past"


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def build_month_grid(
    year: int,
    month: int,
    availability: Iterable[DayAvailability],
    today: date | None = None,
    week_start: int = SUNDAY,
) -> list[list[CalendarCell]]:
    """
    Seven-column grid for a month, padded with days from the adjacent months
    so that every row is full.

    Out-of-month cells are "disabled", days before today are "past", and the
    rest carry the derived day status ("available" when no entry exists).
    """
    current = today or date.today()
    by_day = {entry.date: entry for entry in availability}

    first = date(year, month, 1)
    last = date(year, month, _calendar.monthrange(year, month)[1])
    lead = (first.weekday() - week_start) % 7
    trail = (week_start - last.weekday() - 1) % 7

    cells: list[CalendarCell] = []
    day = first - timedelta(days=lead)
    stop = last + timedelta(days=trail)
    while day <= stop:
        in_month = day.month == month and day.year == year
        entry = by_day.get(day) if in_month else None
        if not in_month:
            state = CELL_DISABLED
        elif day < current:
            state = CELL_PAST
        else:
            state = entry.status if entry else STATUS_AVAILABLE
        cells.append(
            CalendarCell(
                date=day,
                day_of_month=day.day,
                is_current_month=in_month,
                state=state,
                availability=entry,
            )
        )
        day += timedelta(days=1)

    return [cells[i : i + 7] for i in range(0, len(cells), 7)]


def can_select(cell: CalendarCell) -> bool:
    return cell.is_current_month and cell.state == STATUS_AVAILABLE


def select_day(selection: RangeSelection, clicked: date, min_stay_nights: int = 1) -> RangeSelection:
    """
    Range-mode click handling for date pickers.

    An empty or completed selection starts a new range at the clicked day.
    Clicking before the current start restarts from that day. Clicking after
    it completes the range once the stay reaches min_stay_nights; shorter
    spans leave the selection unchanged.
    """
    if selection.start is None or selection.is_complete:
        return RangeSelection(start=clicked)
    if clicked < selection.start:
        return RangeSelection(start=clicked)
    if nights_between(selection.start, clicked) < max(1, min_stay_nights):
        return selection
    return RangeSelection(start=selection.start, end=clicked)


def is_in_selection(selection: RangeSelection, day: date, hovered: date | None = None) -> bool:
    if selection.start is None:
        return False
    if selection.end is not None:
        return selection.start <= day <= selection.end
    if hovered is not None and hovered >= selection.start:
        return selection.start <= day <= hovered
    return False

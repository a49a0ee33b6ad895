"""Time clock report calculations.

Pure functions over employee and time-entry rows (dicts as returned by the
repositories). `clock_in`/`clock_out` may be datetimes or ISO strings; naive
values are treated as UTC. Days and weeks are bucketed in the configured
local timezone, weeks run Monday to Sunday.
"""
from datetime import date, datetime, time, timedelta, timezone

from ..config import TIMEZONE, STALE_AFTER_HOURS


def to_datetime(value):
    if value is None or isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    if dt is not None and dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _now(now=None):
    return to_datetime(now) if now is not None else datetime.now(timezone.utc)


def round2(value):
    return round(value, 2)


def entry_hours(entry, now=None):
    """Hours worked; open entries count up to `now`."""
    start = to_datetime(entry['clock_in'])
    end = to_datetime(entry.get('clock_out')) or _now(now)
    return (end - start).total_seconds() / 3600


def is_stale(entry, now=None):
    """Open for longer than STALE_AFTER_HOURS (probably a forgotten clock-out)."""
    if entry.get('clock_out'):
        return False
    return entry_hours(entry, now) > STALE_AFTER_HOURS


def local_day(entry, tz=TIMEZONE):
    return to_datetime(entry['clock_in']).astimezone(tz).date()


def day_bounds(day, tz=TIMEZONE):
    """UTC [start, end) of a local calendar day."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), (start + timedelta(days=1)).astimezone(timezone.utc)


def week_range(day):
    """(monday, sunday) of the week containing `day`."""
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)


def month_weeks(year, month):
    """Monday-started weeks overlapping the month, as (monday, sunday) pairs."""
    first = date(year, month, 1)
    last = (date(year + (month == 12), month % 12 + 1, 1) - timedelta(days=1))
    weeks = []
    monday, _ = week_range(first)
    while monday <= last:
        weeks.append((monday, monday + timedelta(days=6)))
        monday += timedelta(days=7)
    return weeks


def employee_name(employee):
    return f"{employee.get('first_name', '')} {employee.get('last_name', '')}".strip()


def _hours_by_employee_day(entries, tz, now):
    totals = {}
    for entry in entries:
        key = (entry['employee_id'], local_day(entry, tz))
        totals[key] = totals.get(key, 0.0) + entry_hours(entry, now)
    return totals


def daily_report(employees, entries, day, daily_threshold, tz=TIMEZONE, now=None):
    """Entries clocked in on `day`, with per-employee daily overtime flags.

    Returns list of {employee, entry, hours, jobName, isOvertime, isStale}
    in clock-in order. Entries of unknown employees are dropped.
    """
    by_id = {e['id']: e for e in employees}
    day_entries = sorted(
        (e for e in entries if local_day(e, tz) == day and e['employee_id'] in by_id),
        key=lambda e: to_datetime(e['clock_in']),
    )
    totals = _hours_by_employee_day(day_entries, tz, now)

    rows = []
    for entry in day_entries:
        rows.append({
            'employee': by_id[entry['employee_id']],
            'entry': entry,
            'hours': round2(entry_hours(entry, now)),
            'jobName': entry.get('job_name'),
            'isOvertime': totals[(entry['employee_id'], day)] > daily_threshold,
            'isStale': is_stale(entry, now),
        })
    return rows


def weekly_summary(employees, entries, any_day, daily_threshold, weekly_threshold, tz=TIMEZONE, now=None):
    """Per active employee: Mon..Sun totals, daily and weekly overtime flags."""
    monday, _ = week_range(any_day)
    days = [monday + timedelta(days=i) for i in range(7)]
    totals = _hours_by_employee_day(entries, tz, now)

    rows = []
    for employee in employees:
        if not employee.get('is_active', True):
            continue
        raw = [totals.get((employee['id'], d), 0.0) for d in days]
        daily_hours = [round2(h) for h in raw]
        weekly_total = sum(daily_hours)
        rows.append({
            'employee': employee,
            'dailyHours': daily_hours,
            'dailyOvertimeFlags': [h > daily_threshold for h in raw],
            'weeklyTotal': round2(weekly_total),
            'isWeeklyOvertime': weekly_total > weekly_threshold,
        })
    return {'weekStart': monday.isoformat(), 'days': [d.isoformat() for d in days], 'rows': rows}


def monthly_summary(employees, entries, year, month, tz=TIMEZONE, now=None):
    """Per active employee: totals of every Monday-started week overlapping the month."""
    weeks = month_weeks(year, month)
    totals = _hours_by_employee_day(entries, tz, now)

    rows = []
    for employee in employees:
        if not employee.get('is_active', True):
            continue
        weekly_hours = []
        for monday, sunday in weeks:
            hours = sum(
                h for (emp_id, d), h in totals.items()
                if emp_id == employee['id'] and monday <= d <= sunday
            )
            weekly_hours.append(round2(hours))
        rows.append({
            'employee': employee,
            'weeklyHours': weekly_hours,
            'monthlyTotal': round2(sum(weekly_hours)),
        })
    return {
        'year': year,
        'month': month,
        'weeks': [{'start': m.isoformat(), 'end': s.isoformat()} for m, s in weeks],
        'rows': rows,
    }

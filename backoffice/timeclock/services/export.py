"""CSV exports of the time clock reports."""
import csv
import io
import calendar

from ..config import TIMEZONE
from .reports import to_datetime, employee_name

WEEKDAY_HEADERS = ['Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun']


def _hours_cell(hours):
    return f'{hours:.2f}' if hours > 0 else '-'


def _local_time(value, tz):
    if not value:
        return ''
    return to_datetime(value).astimezone(tz).strftime('%H:%M')


def _to_csv(header, rows):
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL)
    writer.writerow(header)
    writer.writerows(rows)
    return output.getvalue()


def daily_csv(report, tz=TIMEZONE):
    """Returns (filename, csv_text)."""
    rows = [
        [
            r['employee']['employee_number'],
            employee_name(r['employee']),
            _local_time(r['entry']['clock_in'], tz),
            _local_time(r['entry'].get('clock_out'), tz),
            f"{r['hours']:.2f}",
            r['entry'].get('notes') or '',
        ]
        for r in report['rows']
    ]
    header = ['Employee #', 'Name', 'Clock In', 'Clock Out', 'Hours', 'Notes']
    return f"timeclock-daily-{report['date']}.csv", _to_csv(header, rows)


def weekly_csv(summary):
    rows = [
        [r['employee']['employee_number'], employee_name(r['employee'])]
        + [_hours_cell(h) for h in r['dailyHours']]
        + [f"{r['weeklyTotal']:.2f}"]
        for r in summary['rows']
    ]
    header = ['Employee #', 'Name'] + WEEKDAY_HEADERS + ['Weekly Total']
    return f"timeclock-weekly-{summary['weekStart']}.csv", _to_csv(header, rows)


def monthly_csv(summary):
    week_headers = [f'Week {i + 1}' for i in range(len(summary['weeks']))]
    rows = [
        [r['employee']['employee_number'], employee_name(r['employee'])]
        + [_hours_cell(h) for h in r['weeklyHours']]
        + [f"{r['monthlyTotal']:.2f}"]
        for r in summary['rows']
    ]
    header = ['Employee #', 'Name'] + week_headers + ['Monthly Total']
    month_name = calendar.month_name[summary['month']].lower()
    return f"timeclock-monthly-{month_name}-{summary['year']}.csv", _to_csv(header, rows)

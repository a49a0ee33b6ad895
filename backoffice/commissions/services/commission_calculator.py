"""First-visit commission calculator.

Pure functions over Phorest payloads (plain dicts as returned by the API):
no I/O, so the whole rollup is unit-testable.

Rollup shape:
    {branches: [{branchId, branchName, branchTotal,
                 stylists: [{staffId, staffName, stylistTotal,
                             clients: [{clientId, clientName, firstVisitDate, clientTotal,
                                        services: [{appointmentId, serviceName,
                                                    appointmentDate, price, commission}]}]}]}],
     totalCommission, totalNewClients, fetchedAt}
"""
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from ..config import COMMISSION_RATE

UNKNOWN_STYLIST = 'Unknown Stylist'
UNKNOWN_CLIENT = 'Unknown Client'
DEFAULT_SERVICE_NAME = 'Service'

_CENT = Decimal('0.01')


def to_cents(value) -> float:
    """Round half-up to two decimals."""
    return float(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def commission_for(price, rate=COMMISSION_RATE) -> float:
    return to_cents(Decimal(str(price)) * Decimal(str(rate)))


def _parse_date(value) -> Optional[date]:
    """Date part of an ISO date/datetime string, or None."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def _positive_price(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    return price if price > 0 else None


def is_new_client(client: Optional[Dict[str, Any]], start: date, end: date) -> bool:
    """True when the client's first visit falls inside [start, end]."""
    if not client:
        return False
    first_visit = _parse_date(client.get('firstVisit'))
    return first_visit is not None and start <= first_visit <= end


def is_commissionable(appointment: Dict[str, Any]) -> bool:
    if appointment.get('deleted'):
        return False
    if appointment.get('activationState') == 'CANCELED':
        return False
    return _positive_price(appointment.get('price')) is not None


def _full_name(record: Dict[str, Any], fallback: str) -> str:
    name = f"{record.get('firstName') or ''} {record.get('lastName') or ''}".strip()
    return name or fallback


def calculate_commissions(branch_data: List[Dict[str, Any]],
                          clients: Dict[str, Dict[str, Any]],
                          start_date, end_date,
                          rate: float = COMMISSION_RATE) -> Dict[str, Any]:
    """Roll up first-visit commissions.

    Args:
        branch_data: [{'branch': {...}, 'staff': [...], 'appointments': [...]}]
        clients: clientId -> client payload
        start_date, end_date: inclusive range, `date` or 'YYYY-MM-DD'
        rate: commission rate applied to the appointment price
    """
    start = _parse_date(start_date)
    end = _parse_date(end_date)

    branches = []
    new_client_ids = set()
    total = Decimal('0')

    for entry in branch_data:
        branch = entry.get('branch') or {}
        staff_names = {
            s.get('staffId'): _full_name(s, UNKNOWN_STYLIST)
            for s in entry.get('staff') or []
        }

        stylists: Dict[str, Dict[str, Any]] = {}
        for appt in entry.get('appointments') or []:
            client_id = appt.get('clientId')
            client = clients.get(client_id) if client_id else None
            if not is_new_client(client, start, end) or not is_commissionable(appt):
                continue

            price = _positive_price(appt.get('price'))
            staff_id = appt.get('staffId') or ''
            stylist = stylists.setdefault(staff_id, {
                'staffId': staff_id,
                'staffName': staff_names.get(staff_id, UNKNOWN_STYLIST),
                'clients': {},
            })
            client_row = stylist['clients'].setdefault(client_id, {
                'clientId': client_id,
                'clientName': _full_name(client, UNKNOWN_CLIENT),
                'firstVisitDate': str(client.get('firstVisit'))[:10],
                'services': [],
            })
            client_row['services'].append({
                'appointmentId': appt.get('appointmentId'),
                'serviceName': appt.get('serviceName') or DEFAULT_SERVICE_NAME,
                'appointmentDate': appt.get('appointmentDate'),
                'price': to_cents(price),
                'commission': commission_for(price, rate),
            })
            new_client_ids.add(client_id)

        if not stylists:
            continue

        branch_total = Decimal('0')
        stylist_rows = []
        for stylist in stylists.values():
            client_rows = []
            stylist_total = Decimal('0')
            for client_row in stylist['clients'].values():
                client_row['services'].sort(key=lambda s: s['appointmentDate'] or '')
                client_total = sum((Decimal(str(s['commission'])) for s in client_row['services']), Decimal('0'))
                client_row['clientTotal'] = to_cents(client_total)
                stylist_total += client_total
                client_rows.append(client_row)
            client_rows.sort(key=lambda c: c['clientName'].lower())
            stylist_rows.append({
                'staffId': stylist['staffId'],
                'staffName': stylist['staffName'],
                'clients': client_rows,
                'stylistTotal': to_cents(stylist_total),
            })
            branch_total += stylist_total

        stylist_rows.sort(key=lambda s: (-s['stylistTotal'], s['staffName'].lower()))
        branches.append({
            'branchId': branch.get('branchId'),
            'branchName': branch.get('name') or '',
            'stylists': stylist_rows,
            'branchTotal': to_cents(branch_total),
        })
        total += branch_total

    return {
        'branches': branches,
        'totalCommission': to_cents(total),
        'totalNewClients': len(new_client_ids),
        'fetchedAt': datetime.now(timezone.utc).isoformat(),
    }

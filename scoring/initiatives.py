"""
Launch item statistics: rolls per-actor per-day ticket statistics into per launch item
ticket status counts and per actor launch participation.
"""
from typing import List, Dict, Any

from normalize.models import TicketStatus

# status kind -> counter name in the launch item rollup
STATUS_COUNTERS = {
    TicketStatus.NEW: 'new',
    TicketStatus.IN_PROGRESS: 'ongoing',
    TicketStatus.IN_TESTING: 'testing',
    TicketStatus.BLOCKED: 'blocked',
    TicketStatus.COMPLETED: 'completed',
}


def _ticket_field(ticket: Any, name: str) -> Any:
    if isinstance(ticket, dict):
        return ticket.get(name)
    return getattr(ticket, name, None)


def group_initiative_stats(stats: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Group daily actor statistics by actor and by launch item.

    Each stat is a dict: {'identity_id', 'initiative_id', 'day', 'effort', 'tickets': [{'key', 'status'}]}.
    Stats are processed by ascending day; a ticket is counted once per launch item, under the
    latest status reported for it across all stats.

    Returns:
        {'actors': {identity_id: {'initiatives': [ids]}},
         'initiatives': {initiative_id: {'effort', 'new', 'ongoing', 'testing', 'blocked', 'completed', 'tickets': [keys]}}}
    """
    if stats is None:
        raise TypeError("stats must be a list, got None")
    actors: Dict[str, Dict[str, List[str]]] = {}
    initiatives: Dict[str, Dict[str, Any]] = {}
    latest_ticket_status: Dict[str, str] = {}

    for stat in sorted(stats, key=lambda s: s.get('day') or 0):
        identity_id = stat.get('identity_id')
        initiative_id = stat.get('initiative_id')
        tickets = stat.get('tickets') or []

        actor = actors.setdefault(identity_id, {'initiatives': []})
        if initiative_id not in actor['initiatives']:
            actor['initiatives'].append(initiative_id)

        initiative = initiatives.get(initiative_id)
        if initiative is None:
            initiative = {'effort': 0, 'tickets': []}
            initiative.update({counter: 0 for counter in STATUS_COUNTERS.values()})
            initiatives[initiative_id] = initiative
        initiative['effort'] += stat.get('effort') or 0
        for ticket in tickets:
            key = _ticket_field(ticket, 'key')
            if key and key not in initiative['tickets']:
                initiative['tickets'].append(key)
            status = _ticket_field(ticket, 'status')
            if key and status:
                latest_ticket_status[key] = status

    for initiative in initiatives.values():
        for key in initiative['tickets']:
            counter = STATUS_COUNTERS.get(latest_ticket_status.get(key))
            if counter:
                initiative[counter] += 1

    return {'actors': actors, 'initiatives': initiatives}

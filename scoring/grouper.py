"""
Activity grouping: turns a combined activity list into dashboard aggregates.
- top actors per artifact/action
- priority histogram
- per initiative and per launch item counters
- per actor ticket and launch item rollups
"""
import logging
from typing import List, Dict, Any, Optional

from normalize.models import Activity, Ticket, TicketStatus, ARTIFACTS, PHASES
from correlate.linker import find_tickets, is_fake_ticket
from scoring.status import infer_ticket_status
from scoring.utils import Policy, DEFAULT_POLICY

logger = logging.getLogger(__name__)

TOP_ACTORS_OTHERS_ID = 'TOP_ACTORS_OTHERS'

# artifact-action key -> (sort order, label)
ARTIFACT_ACTIONS: Dict[str, Dict[str, Any]] = {
    'task-created': {'sort_order': 1, 'label': 'Task created'},
    'task-updated': {'sort_order': 2, 'label': 'Task updated'},
    'task-deleted': {'sort_order': 3, 'label': 'Task deleted'},
    'taskOrg-created': {'sort_order': 4, 'label': 'Task org. created'},
    'taskOrg-updated': {'sort_order': 5, 'label': 'Task org. updated'},
    'code-created': {'sort_order': 6, 'label': 'Code'},
    'code-updated': {'sort_order': 7, 'label': 'Code review'},
    'code-deleted': {'sort_order': 8, 'label': 'Code deleted'},
    'code-unknown': {'sort_order': 9, 'label': 'Code misc.'},
    'codeOrg-created': {'sort_order': 10, 'label': 'Code org. created'},
    'codeOrg-updated': {'sort_order': 11, 'label': 'Code org. updated'},
    'codeOrg-deleted': {'sort_order': 12, 'label': 'Code org. deleted'},
    'docOrg-created': {'sort_order': 13, 'label': 'Doc org. created'},
    'doc-created': {'sort_order': 14, 'label': 'Doc created'},
    'doc-updated': {'sort_order': 15, 'label': 'Doc updated'},
}


def build_artifact_action_key(artifact: str, action: str) -> str:
    return f"{artifact}-{action}"


def activities_total_effort(activities: List[Activity]) -> Optional[float]:
    """Sum of the efforts set on activities, None when no activity carries one."""
    efforts = [a.effort for a in activities if a.effort is not None]
    return sum(efforts) if efforts else None


def _new_counters(item_id: str) -> Dict[str, Any]:
    return {
        'id': item_id,
        'artifact_count': {artifact: 0 for artifact in ARTIFACTS},
        'phase_count': {phase: 0 for phase in PHASES},
        'actor_ids': set(),
        'actor_count': 0,
        'effort': 0,
    }


def _count_activity(counters: Dict[str, Any], activity: Activity, count_phase: bool):
    if activity.artifact in counters['artifact_count']:
        counters['artifact_count'][activity.artifact] += 1
    else:
        logger.debug("activity %s has unknown artifact %r", activity.id, activity.artifact)
    if count_phase and activity.phase:
        if activity.phase in counters['phase_count']:
            counters['phase_count'][activity.phase] += 1
        else:
            logger.debug("activity %s has unknown phase %r", activity.id, activity.phase)
    if activity.actor_id is not None:
        counters['actor_ids'].add(activity.actor_id)  # the set dedupes
    counters['effort'] += activity.effort or 0


def _finalize_counters(counters: Dict[str, Any]) -> Dict[str, Any]:
    result = {k: v for k, v in counters.items() if k != 'actor_ids'}
    result['actor_count'] = len(counters['actor_ids'])
    return result


def _cap_top_actors(actors: List[Dict[str, Any]], limit: int) -> List[Dict[str, Any]]:
    ranked = sorted(actors, key=lambda a: a['count'], reverse=True)
    top = ranked[:limit]
    total_others = sum(a['count'] for a in ranked[limit:])
    if total_others > 0:
        top.append({'id': TOP_ACTORS_OTHERS_ID, 'count': total_others})
    return top


def group_activities(activities: List[Activity], policy: Optional[Policy] = None) -> Dict[str, Any]:
    """
    Aggregate a combined activity list for the dashboard.

    Returns a dict with:
        top_actors: {'<artifact>-<action>': [{'id', 'count'}, ...]} capped to the policy limit,
            plus an 'others' entry holding the remaining count
        priorities: [{'id', 'count'}] sorted by descending priority id
        initiatives / launch_items: [{'id', 'artifact_count', 'phase_count', 'actor_count', 'effort'}]
    The input list is not modified.
    """
    if activities is None:
        raise TypeError("activities must be a list, got None")
    policy = policy or DEFAULT_POLICY

    top_actors: Dict[str, Dict[str, Dict[str, Any]]] = {}
    priorities: Dict[int, int] = {}
    initiatives: Dict[str, Dict[str, Any]] = {}
    launch_items: Dict[str, Dict[str, Any]] = {}

    for activity in activities:
        if activity.actor_id is not None:
            bucket = top_actors.setdefault(build_artifact_action_key(activity.artifact, activity.action), {})
            actor = bucket.setdefault(activity.actor_id, {'id': activity.actor_id, 'count': 0})
            actor['count'] += 1

        if activity.priority is not None and activity.priority != -1:
            priorities[activity.priority] = priorities.get(activity.priority, 0) + 1

        # phases are only counted for launch items
        if activity.initiative_id:
            initiative = initiatives.setdefault(activity.initiative_id, _new_counters(activity.initiative_id))
            _count_activity(initiative, activity, count_phase=False)

        if activity.launch_item_id:
            launch_item = launch_items.setdefault(activity.launch_item_id, _new_counters(activity.launch_item_id))
            _count_activity(launch_item, activity, count_phase=True)

    return {
        'top_actors': {key: _cap_top_actors(list(bucket.values()), policy.top_actors_limit) for key, bucket in top_actors.items()},
        'priorities': [{'id': p, 'count': c} for p, c in sorted(priorities.items(), key=lambda item: item[0], reverse=True)],
        'initiatives': [_finalize_counters(i) for i in initiatives.values()],
        'launch_items': [_finalize_counters(i) for i in launch_items.values()],
    }


def _upsert_ticket(tickets: Dict[str, Ticket], key: str, status: Optional[str]):
    ticket = tickets.get(key)
    if ticket is None:
        ticket = Ticket(key)
        tickets[key] = ticket
    # if the same ticket appears in multiple activities, the latest status wins
    ticket.status = status


def group_actor_activities(activities: List[Activity], policy: Optional[Policy] = None) -> Dict[str, Any]:
    """
    Roll the activities of one actor up into tickets and launch items.

    Activities are processed oldest first (stable sort on timestamp, input left untouched).
    Only actor-level fields are read: timestamp, metadata, description, ongoing, launch_item_id, effort.

    Returns a dict with:
        tickets: [Ticket] in first-seen order, status from the latest activity mentioning them
        launch_items: [{'launch_item_id', 'tickets': [Ticket], 'effort'}], effort None when never set
    """
    if activities is None:
        raise TypeError("activities must be a list, got None")
    policy = policy or DEFAULT_POLICY

    tickets: Dict[str, Ticket] = {}
    launch_items: Dict[str, Dict[str, Any]] = {}

    for activity in sorted(activities, key=lambda a: a.timestamp):
        ticket_keys = [
            key for key in find_tickets(activity.metadata, activity.description)
            if not is_fake_ticket(key, policy.fake_ticket_pattern)
        ]
        status = TicketStatus.IN_PROGRESS if activity.ongoing else infer_ticket_status(activity.metadata, policy)
        for key in ticket_keys:
            _upsert_ticket(tickets, key, status)

        if activity.launch_item_id:
            launch_item = launch_items.setdefault(
                activity.launch_item_id, {'launch_item_id': activity.launch_item_id, 'tickets': {}, 'effort': None}
            )
            for key in ticket_keys:
                _upsert_ticket(launch_item['tickets'], key, status)
            if activity.effort is not None:
                launch_item['effort'] = (launch_item['effort'] or 0) + activity.effort

    return {
        'tickets': list(tickets.values()),
        'launch_items': [
            {'launch_item_id': li['launch_item_id'], 'tickets': list(li['tickets'].values()), 'effort': li['effort']}
            for li in launch_items.values()
        ],
    }

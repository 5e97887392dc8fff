"""
Normalization utility helpers.
Small helpers to turn stored activity records (dicts) into normalize.models entities and back.
"""
import re
from typing import Dict, Any, List
from normalize.models import Activity

_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])([A-Z])')


class ActivityParseError(ValueError):
    """Raised when a stored activity record lacks the fields required to build an Activity."""


def to_snake_case(name: str) -> str:
    return _CAMEL_BOUNDARY.sub(r'_\1', name).lower()


def snake_keys(value: Any) -> Any:
    """Recursively convert dict keys from camelCase to snake_case. Values are left untouched."""
    if isinstance(value, dict):
        return {to_snake_case(k) if isinstance(k, str) else k: snake_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [snake_keys(v) for v in value]
    return value


def _first(raw: Dict[str, Any], *keys: str) -> Any:
    for k in keys:
        if raw.get(k) is not None:
            return raw.get(k)
    return None


def activity_from_dict(raw: Dict[str, Any]) -> Activity:
    """Create an Activity from a stored record.
    Both camelCase (as stored by the feeds) and snake_case keys are accepted.
    """
    if not isinstance(raw, dict):
        raise ActivityParseError(f"activity record must be an object, got {type(raw).__name__}")
    activity_id = raw.get('id')
    action = raw.get('action')
    artifact = raw.get('artifact')
    timestamp = _first(raw, 'timestamp', 'eventTimestamp', 'event_timestamp', 'createdTimestamp', 'created_timestamp')
    missing = [name for name, val in (('id', activity_id), ('action', action), ('artifact', artifact), ('timestamp', timestamp)) if val is None]
    if missing:
        raise ActivityParseError(f"activity {activity_id or '?'} is missing required fields: {', '.join(missing)}")
    try:
        timestamp = float(timestamp)
    except (TypeError, ValueError) as ex:
        raise ActivityParseError(f"activity {activity_id} has an invalid timestamp: {timestamp!r}") from ex

    metadata = raw.get('metadata')
    combined = raw.get('combined')
    return Activity(
        id=str(activity_id),
        action=action,
        artifact=artifact,
        timestamp=timestamp,
        created_timestamp=_first(raw, 'createdTimestamp', 'created_timestamp'),
        actor_id=_first(raw, 'actorId', 'actor_id', 'actorAccountId'),
        event=raw.get('event'),
        event_type=_first(raw, 'eventType', 'event_type'),
        initiative_id=_first(raw, 'initiativeId', 'initiative_id', 'initiative'),
        launch_item_id=_first(raw, 'launchItemId', 'launch_item_id'),
        priority=raw.get('priority'),
        phase=raw.get('phase'),
        effort=raw.get('effort'),
        description=raw.get('description'),
        ongoing=bool(raw.get('ongoing', False)),
        metadata=snake_keys(metadata) if isinstance(metadata, dict) else None,
        combined=snake_keys(combined) if isinstance(combined, list) else None,
    )


def activity_to_dict(activity: Activity) -> Dict[str, Any]:
    """Serialize an Activity to a JSON-friendly dict, omitting unset optional fields."""
    data = {
        'id': activity.id,
        'created_timestamp': activity.created_timestamp,
        'timestamp': activity.timestamp,
        'actor_id': activity.actor_id,
        'artifact': activity.artifact,
        'action': activity.action,
        'event': activity.event,
        'event_type': activity.event_type,
        'initiative_id': activity.initiative_id,
        'launch_item_id': activity.launch_item_id,
        'priority': activity.priority,
        'phase': activity.phase,
        'effort': activity.effort,
        'description': activity.description,
        'metadata': activity.metadata,
        'combined': activity.combined,
    }
    if activity.ongoing:
        data['ongoing'] = True
    return {k: v for k, v in data.items() if v is not None}


def identify_activities(activities: List[Activity], account_map: Dict[str, str]) -> List[Activity]:
    """Replace account ids with identity ids where the account is linked to an identity.
    Activities are updated in place; the same list is returned.
    """
    for activity in activities:
        if activity.actor_id and account_map.get(activity.actor_id):
            activity.actor_id = account_map[activity.actor_id]
    return activities

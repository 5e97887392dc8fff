"""
Initiative and launch item mapping.

Each initiative (or launch item) may define a boolean expression over an activity. The expression
compiler is injected by the caller; this module owns the cache of compiled predicates and the
dot-path lookup they evaluate against.
"""
import json
import logging
from typing import Any, Callable, Dict, List, Optional

from normalize.models import Activity

logger = logging.getLogger(__name__)

FIRST_ITEM_SUFFIX = '_1st'

Predicate = Callable[[Any], Any]


class MapperType:
    INITIATIVE = 'initiative'
    LAUNCH_ITEM = 'launch_item'

    ALL = (INITIATIVE, LAUNCH_ITEM)


def _get(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def resolve_path(obj: Any, path: str) -> Any:
    """Navigate a dot path through dicts and objects, returning None when a step is missing.

    A step suffixed with _1st reads the first element of the underlying list, e.g.
    metadata.commits_1st.message reads metadata['commits'][0]['message']. When that list is
    missing or empty the lookup stops and returns the object reached so far.
    """
    for name in path.split('.'):
        if obj is None:
            return None
        if name.endswith(FIRST_ITEM_SUFFIX):
            items = _get(obj, name[:-len(FIRST_ITEM_SUFFIX)])
            if isinstance(items, list) and items:
                obj = items[0]
            else:
                return obj
        else:
            obj = _get(obj, name)
    return obj


def definitions_hash(definitions: Dict[str, Optional[str]]) -> str:
    return json.dumps(definitions, sort_keys=True)


class ActivityMapper:
    """Caller-owned cache of compiled mapping predicates, one set per MapperType."""

    def __init__(self, compile_expression: Callable[[str], Predicate]):
        self.compile_expression = compile_expression
        self._compiled: Dict[str, Dict[str, Predicate]] = {t: {} for t in MapperType.ALL}
        self._hashes: Dict[str, str] = {t: '' for t in MapperType.ALL}

    def clear(self):
        self._compiled = {t: {} for t in MapperType.ALL}
        self._hashes = {t: '' for t in MapperType.ALL}

    def compile_mappers(self, mapper_type: str, definitions: Dict[str, Optional[str]]) -> bool:
        """Compile the expressions of definitions ({id: expression}) unless they are unchanged.

        Returns True when a recompilation happened.
        """
        if mapper_type not in MapperType.ALL:
            raise ValueError(f"Unknown mapper type: {mapper_type}")
        digest = definitions_hash(definitions)
        if digest == self._hashes[mapper_type]:
            return False
        compiled: Dict[str, Predicate] = {}
        for mapper_id, expression in definitions.items():
            if expression:
                compiled[mapper_id] = self.compile_expression(expression)
        self._compiled[mapper_type] = compiled
        self._hashes[mapper_type] = digest
        logger.debug("compiled %d %s mappers", len(compiled), mapper_type)
        return True

    def _matching_ids(self, mapper_type: str, activity: Activity) -> List[str]:
        ids = []
        for mapper_id, predicate in self._compiled[mapper_type].items():
            try:
                matched = predicate(activity)
            except Exception as ex:
                logger.debug("mapper %s failed on activity %s: %s", mapper_id, getattr(activity, 'id', '?'), ex)
                continue
            if matched is True:
                ids.append(mapper_id)
        return ids

    def map_activity(self, activity: Activity) -> Dict[str, List[str]]:
        return {
            'initiatives': self._matching_ids(MapperType.INITIATIVE, activity),
            'launch_items': self._matching_ids(MapperType.LAUNCH_ITEM, activity),
        }


def assign_mappings(activities: List[Activity], mapper: ActivityMapper) -> List[Activity]:
    """Set initiative_id and launch_item_id of each activity to its first match ('' if none)."""
    for activity in activities:
        mapping = mapper.map_activity(activity)
        activity.initiative_id = mapping['initiatives'][0] if mapping['initiatives'] else ''
        activity.launch_item_id = mapping['launch_items'][0] if mapping['launch_items'] else ''
    return activities

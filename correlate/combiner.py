"""
Activity combiner: folds a new activity into a previously recorded one describing the same
unit of work (same PR, commits, issue, comment thread, page or attachment parent).

The working list is expected to be sorted by ascending timestamp before each call. A merged
activity is moved to the end of the list, so the list is only approximately sorted afterwards.
Calls against the same list must be serialized by the caller.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from normalize.models import Activity

logger = logging.getLogger(__name__)


def _meta(activity: Activity) -> Dict[str, Any]:
    return activity.metadata or {}


def _sub(activity: Activity, name: str) -> Dict[str, Any]:
    value = _meta(activity).get(name)
    return value if isinstance(value, dict) else {}


def _starts_with(value: Optional[str], prefix: str) -> bool:
    return isinstance(value, str) and value.startswith(prefix)


def is_matching(a: Activity, b: Activity) -> bool:
    """Return True when b may be folded into a (a being the older activity).

    Activities without an actor, artifact or event type never match anything.
    """
    if None in (a.actor_id, a.artifact, a.event_type, b.actor_id, b.artifact, b.event_type):
        return False
    if a.actor_id != b.actor_id or a.artifact != b.artifact or a.event_type != b.event_type:
        return False
    if a.action == b.action and (
        a.event == b.event
        or (_starts_with(a.event, 'pull_request') and _starts_with(b.event, 'pull_request'))
        or (_starts_with(a.event, 'comment') and _starts_with(b.event, 'comment'))
    ):
        return True
    # an issue creation absorbs its own update webhook
    return a.action == 'created' and b.action == 'updated' and a.event == 'jira:issue_created' and b.event == 'jira:issue_updated'


def find_last_index(activities: List[Activity], predicate: Callable[[Activity], bool]) -> int:
    for index in range(len(activities) - 1, -1, -1):
        if predicate(activities[index]):
            return index
    return -1


def combine_to_new_activity(activities: List[Activity], old_index: int, old_activity: Activity, new_activity: Activity):
    """Replace the old activity by the new one, which inherits the old combination history."""
    new_activity.combined = list(old_activity.combined or [])
    new_activity.combined.append({'activity_id': old_activity.id, 'timestamp': old_activity.created_timestamp})
    del activities[old_index]
    activities.append(new_activity)


def dedupe_consecutive(items: List[Any], is_duplicate: Callable[[Any, Any], bool]) -> List[Any]:
    """Drop items that duplicate the item kept just before them."""
    deduped: List[Any] = []
    for item in items:
        if deduped and is_duplicate(deduped[-1], item):
            continue
        deduped.append(item)
    return deduped


def _is_duplicate_change(a: Dict[str, Any], b: Dict[str, Any]) -> bool:
    return (
        a.get('field') == b.get('field')
        and a.get('new_value') is not None
        and (a.get('new_value') == b.get('new_value') or a.get('field') == 'description')
    )


# --- guards: which rule handles a new activity ---

def _is_pull_request(activity: Activity) -> bool:
    return bool(_sub(activity, 'pull_request').get('uri'))


def _is_code_push(activity: Activity) -> bool:
    return activity.event == 'push' and bool(_meta(activity).get('commits'))


def _is_issue_change(activity: Activity) -> bool:
    return bool(_sub(activity, 'issue').get('key')) and isinstance(_meta(activity).get('change_log'), list)


def _is_jira_attachment(activity: Activity) -> bool:
    return activity.event == 'attachment_created' and bool(_sub(activity, 'attachment'))


def _is_comment(activity: Activity) -> bool:
    return _starts_with(activity.event, 'comment') and bool(_sub(activity, 'comment'))


def _is_comment_update(activity: Activity) -> bool:
    return _starts_with(activity.event, 'comment_') and _sub(activity, 'comment').get('id') is not None


def _is_page(activity: Activity) -> bool:
    return _sub(activity, 'page').get('id') is not None


def _is_page_attachments(activity: Activity) -> bool:
    files = _sub(activity, 'attachments').get('files')
    return isinstance(files, list) and len(files) > 0


# --- merges: return True when the new activity was folded into an existing one ---

def _merge_pull_request(new_activity: Activity, activities: List[Activity]) -> bool:
    metadata = new_activity.metadata
    label_name = _sub(new_activity, 'label').get('name')
    if metadata.get('code_action') == 'labeled' and label_name:
        metadata['code_action'] = f"labeled {label_name}"
    uri = metadata['pull_request']['uri']
    index = find_last_index(
        activities,
        lambda a: is_matching(a, new_activity) and _sub(a, 'pull_request').get('uri') == uri and bool(_meta(a).get('code_action')),
    )
    new_code_action = metadata.get('code_action')
    if index < 0 or not new_code_action:
        return False
    found = activities[index]
    found_code_action = found.metadata['code_action']
    code_actions = list(found_code_action) if isinstance(found_code_action, list) else [found_code_action]
    new_code_actions = new_code_action if isinstance(new_code_action, list) else [new_code_action]
    for code_action in reversed(new_code_actions):
        if code_action not in code_actions:
            code_actions.insert(0, code_action)
    new_activity.event = 'pull_request_*'
    metadata['code_action'] = code_actions
    combine_to_new_activity(activities, index, found, new_activity)
    return True


def _merge_code_push(new_activity: Activity, activities: List[Activity]) -> bool:
    index = find_last_index(activities, lambda a: is_matching(a, new_activity) and bool(_meta(a).get('commits')))
    if index < 0:
        return False
    found = activities[index]
    old_commits = found.metadata['commits']
    urls = {c.get('url') for c in old_commits if c.get('url')}
    messages = {c.get('message') for c in old_commits if c.get('message')}
    new_commits = new_activity.metadata['commits']
    # only combine when at least one commit is "identical"
    if not any(c.get('url') in urls or c.get('message') in messages for c in new_commits if c.get('url') or c.get('message')):
        return False
    added = []
    for commit in new_commits:
        if commit.get('url'):
            if commit['url'] in urls:
                continue
            urls.add(commit['url'])
        elif commit.get('message') in messages:
            continue
        added.append(commit)
    new_activity.metadata['commits'] = added + list(old_commits)
    combine_to_new_activity(activities, index, found, new_activity)
    return True


def _merge_issue_change(new_activity: Activity, activities: List[Activity]) -> bool:
    key = new_activity.metadata['issue']['key']
    index = find_last_index(
        activities,
        lambda a: is_matching(a, new_activity) and _sub(a, 'issue').get('key') == key and isinstance(_meta(a).get('change_log'), list),
    )
    if index < 0:
        return False
    found = activities[index]
    change_log = new_activity.metadata['change_log'] + found.metadata['change_log']
    new_activity.metadata['change_log'] = dedupe_consecutive(change_log, _is_duplicate_change)
    # creation dominates the updates folded into it
    if new_activity.action == 'updated' and found.action == 'created':
        new_activity.action = 'created'
        new_activity.event = found.event
    combine_to_new_activity(activities, index, found, new_activity)
    return True


def _merge_jira_attachment(new_activity: Activity, activities: List[Activity]) -> bool:
    index = find_last_index(activities, lambda a: is_matching(a, new_activity))
    if index < 0:
        return False
    found = activities[index]
    attachment = new_activity.metadata['attachment']
    found_files = _sub(found, 'attachments').get('files')
    if found_files:
        files = [attachment] + list(found_files)
    elif _sub(found, 'attachment'):
        files = [attachment, found.metadata['attachment']]
    else:
        logger.debug("activity %s matched %s which carries no attachment; keeping it separate", new_activity.id, found.id)
        return False
    new_activity.metadata['attachments'] = {'files': files}
    new_activity.metadata.pop('attachment', None)
    combine_to_new_activity(activities, index, found, new_activity)
    return True


def _merge_comment(new_activity: Activity, activities: List[Activity]) -> bool:
    issue_key = _sub(new_activity, 'issue').get('key')
    index = find_last_index(activities, lambda a: is_matching(a, new_activity) and _sub(a, 'issue').get('key') == issue_key)
    if index < 0:
        return False
    found = activities[index]
    comment = new_activity.metadata['comment']
    found_comments = _meta(found).get('comments')
    found_comment = _sub(found, 'comment')
    if found_comments:
        comments = [comment] + [c for c in found_comments if c.get('id') != comment.get('id')]
    elif found_comment:
        comments = [comment] + ([found_comment] if found_comment.get('id') != comment.get('id') else [])
    else:
        logger.debug("activity %s matched %s which carries no comment; keeping it separate", new_activity.id, found.id)
        return False
    new_activity.metadata['comments'] = comments
    new_activity.metadata.pop('comment', None)
    new_activity.event = 'comment_*'
    combine_to_new_activity(activities, index, found, new_activity)
    return True


def _merge_comment_update(new_activity: Activity, activities: List[Activity]) -> bool:
    comment_id = new_activity.metadata['comment']['id']
    index = find_last_index(activities, lambda a: is_matching(a, new_activity) and _sub(a, 'comment').get('id') == comment_id)
    if index < 0:
        return False
    new_activity.event = 'comment_*'
    combine_to_new_activity(activities, index, activities[index], new_activity)
    return True


def _merge_page(new_activity: Activity, activities: List[Activity]) -> bool:
    page = new_activity.metadata['page']
    index = find_last_index(activities, lambda a: is_matching(a, new_activity) and _sub(a, 'page').get('id') == page['id'])
    if index < 0:
        return False
    found = activities[index]
    found_version = found.metadata['page'].get('version')
    if page.get('version') and page.get('version') != found_version:
        page['version'] = f"{page['version']}, {found_version}"
    combine_to_new_activity(activities, index, found, new_activity)
    return True


def _file_key(file: Dict[str, Any]) -> Any:
    return file.get('id') or file.get('uri') or file.get('filename')


def _merge_page_attachments(new_activity: Activity, activities: List[Activity]) -> bool:
    attachments = new_activity.metadata['attachments']
    parent_id = (attachments.get('parent') or {}).get('id')
    if not parent_id:
        return False
    index = find_last_index(
        activities,
        lambda a: is_matching(a, new_activity) and (_sub(a, 'attachments').get('parent') or {}).get('id') == parent_id,
    )
    if index < 0:
        return False
    found = activities[index]
    seen = {_file_key(f) for f in attachments['files']}
    old_files = [f for f in (found.metadata['attachments'].get('files') or []) if _file_key(f) not in seen]
    attachments['files'] = list(attachments['files']) + old_files
    combine_to_new_activity(activities, index, found, new_activity)
    return True


# evaluated in order: the first rule whose guard accepts the new activity is the only one tried
COMBINE_RULES = [
    ('pull_request', _is_pull_request, _merge_pull_request),
    ('code_push', _is_code_push, _merge_code_push),
    ('issue_change', _is_issue_change, _merge_issue_change),
    ('jira_attachment', _is_jira_attachment, _merge_jira_attachment),
    ('comment', _is_comment, _merge_comment),
    ('comment_update', _is_comment_update, _merge_comment_update),
    ('page', _is_page, _merge_page),
    ('page_attachments', _is_page_attachments, _merge_page_attachments),
]


def combine_and_push_activity(new_activity: Activity, sorted_activities: List[Activity]) -> List[Activity]:
    """
    Try to combine new_activity with an existing element of sorted_activities, otherwise append it.

    Parameters:
        new_activity: the activity to add; it becomes the surviving record when a merge happens.
        sorted_activities: previously combined activities of the same scope, ascending by timestamp.

    Returns:
        the same list, mutated in place.
    """
    if sorted_activities is None:
        raise TypeError("sorted_activities must be a list, got None")
    if not new_activity.metadata:
        sorted_activities.append(new_activity)
        return sorted_activities

    for name, applies, merge in COMBINE_RULES:
        if not applies(new_activity):
            continue
        if merge(new_activity, sorted_activities):
            logger.debug("combined activity %s (%s), history: %s", new_activity.id, name, [c['activity_id'] for c in new_activity.combined])
            return sorted_activities
        break

    # no similar activity found, push it as new
    sorted_activities.append(new_activity)
    return sorted_activities


def combine_activities(activities: List[Activity]) -> List[Activity]:
    """Combine a batch of activities, oldest first, into a new list."""
    if activities is None:
        raise TypeError("activities must be a list, got None")
    combined: List[Activity] = []
    for activity in sorted(activities, key=lambda a: a.timestamp):
        combine_and_push_activity(activity, combined)
    return combined

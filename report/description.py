"""
Human readable descriptions of activities: a summary line, the action lines and a link.
Phrases for PR code actions and Jira changelog fields come from the policy tables.
"""
from typing import Dict, Any, Optional, List

from normalize.models import Activity, EVENT_TYPES
from scoring.utils import Policy, DEFAULT_POLICY

LIST_SEPARATOR = ', '

EVENT_DESCRIPTIONS = {
    'organization': 'Organization',
    'repository': 'Repository',
    'repository_ruleset': 'Repository ruleset',
    'project_created': 'Project created',
}


def mime_type_label(mime_type: Optional[str]) -> Optional[str]:
    if not mime_type:
        return None
    if mime_type == 'application/pdf':
        return 'PDF'
    kind = mime_type.split('/')[0]
    return kind if kind in ('image', 'video', 'audio', 'text') else None


def get_activity_description(activity: Activity) -> str:
    """One line summary of what an activity is about."""
    if activity.description:
        return activity.description
    metadata = activity.metadata or {}

    if metadata.get('issue'):
        issue = metadata['issue']
        return f"{issue.get('key')} {issue.get('summary') or ''}".strip()
    attachment = metadata.get('attachment')
    if attachment and attachment.get('filename'):
        kind = mime_type_label(attachment.get('mime_type'))
        return f"Attached {kind} {attachment['filename']}" if kind else f"Attached {attachment['filename']}"
    if metadata.get('sprint'):
        return f"Sprint {metadata['sprint'].get('name')} {metadata['sprint'].get('state')}"
    if metadata.get('worklog'):
        return 'Worklog'
    if metadata.get('space'):
        return f"Space: {metadata['space'].get('title')}"
    if metadata.get('page'):
        return f"{metadata['page'].get('title')}"
    if metadata.get('pull_request') and (metadata.get('comment') or metadata.get('comments')):
        comment = metadata.get('comment') or metadata['comments'][0]
        return (comment.get('parent') or {}).get('title') or 'Commented'
    if metadata.get('label') and not metadata.get('pull_request'):
        label = metadata['label']
        content_type = f"{label['content_type']} " if label.get('content_type') else ''
        return f"Labeled {content_type}{label.get('name')}"
    if metadata.get('attachments'):
        attachments = metadata['attachments']
        files = LIST_SEPARATOR.join(f['filename'] for f in attachments.get('files') or [] if f.get('filename'))
        parent = attachments.get('parent')
        if parent:
            return f"Attached {files} to {parent.get('type')} {parent.get('title')}"
        return f"Attached {files}"
    if metadata.get('pull_request'):
        return f"{metadata['pull_request'].get('code_action') or ''} {metadata['pull_request'].get('title')}".strip()
    if metadata.get('pull_request_comment'):
        # prefer the PR title
        return (metadata.get('pull_request_issue') or {}).get('title') or metadata['pull_request_comment'].get('body') or ''
    if metadata.get('commits'):
        return metadata['commits'][0].get('message') or ''
    return EVENT_DESCRIPTIONS.get(activity.event, '')


def change_log_phrase(change: Dict[str, Any], fields: Dict[str, Dict[str, str]]) -> Optional[str]:
    """Phrase one changelog entry, or None when the field table has nothing for this change."""
    rule = fields.get(change.get('field'))
    if not rule:
        return None
    if rule.get('always'):
        return rule['always']
    old, new = change.get('old_value'), change.get('new_value')
    template = None
    if old and new:
        template = rule.get('transition') or rule.get('changed')
    elif new:
        template = rule.get('set') or rule.get('changed')
    elif old:
        template = rule.get('unset')
    return template.format(old=old, new=new) if template else None


def code_action_phrase(code_action: str, metadata: Dict[str, Any], policy: Policy) -> str:
    if metadata.get('pull_request_comment') and code_action in policy.comment_code_actions:
        return policy.comment_code_actions[code_action]
    # "labeled <name>" as built by the combiner
    if code_action.startswith('labeled'):
        code_action = 'labeled'
    return policy.code_actions.get(code_action, code_action)


def get_activity_action_description(activity: Activity, policy: Optional[Policy] = None) -> Optional[List[str]]:
    """Describe what was done, one line per action.

    Covers issue field transitions (plus 'Issue created'), attachments, page moves and versions,
    and PR code actions (scalar or combined list). Returns None when there is nothing to describe.
    """
    metadata = activity.metadata
    if not metadata:
        return None
    policy = policy or DEFAULT_POLICY

    if metadata.get('issue'):
        actions: List[str] = []
        for change in metadata.get('change_log') or []:
            phrase = change_log_phrase(change, policy.change_log_fields)
            if phrase:
                actions.append(phrase)
        if activity.action == 'created':
            actions.append('Issue created')
        return actions
    if (metadata.get('attachment') or {}).get('uri'):
        return [metadata['attachment']['uri']]
    files = (metadata.get('attachments') or {}).get('files')
    if files:
        return [f['uri'] for f in files if f.get('uri')]

    version = (metadata.get('page') or {}).get('version')
    old_parent = metadata.get('old_parent') or {}
    new_parent = metadata.get('new_parent') or {}
    if old_parent.get('title') and new_parent.get('title') and old_parent.get('id') != new_parent.get('id'):
        prefix = f"Version {version}. " if version else ''
        return [f"{prefix}Moved from {old_parent['title']} to {new_parent['title']}"]
    if version:
        # combined pages carry "4, 3"
        plural = 's' if ',' in str(version) else ''
        return [f"Version{plural} {version}"]

    code_action = metadata.get('code_action')
    if code_action and (metadata.get('pull_request') or metadata.get('pull_request_comment')):
        code_actions = code_action if isinstance(code_action, list) else [code_action]
        return ['PR ' + code_action_phrase(a, metadata, policy) for a in code_actions]
    if code_action == 'member_invited':
        return ['Member invited']
    if code_action == 'edited':
        return ['Edited']
    return None


def issue_url_to_web(url: str, key: str) -> str:
    """Turn a Jira REST issue url into its browse url."""
    if 'rest' in url:
        return f"{url.split('rest')[0]}browse/{key}"
    return url


def _url_type(activity: Activity, metadata: Dict[str, Any]) -> Optional[str]:
    if activity.event_type in EVENT_TYPES:
        return activity.event_type
    # records stored before event_type existed
    if metadata.get('issue'):
        return 'jira'
    if metadata.get('pull_request') or metadata.get('pull_request_comment') or metadata.get('commits'):
        return 'github'
    return None


def get_activity_url(activity: Activity) -> Optional[Dict[str, str]]:
    """Link to the thing an activity is about, as {'url', 'type'} with type jira/confluence/github."""
    metadata = activity.metadata or {}
    url_type = _url_type(activity, metadata)
    if not url_type:
        return None

    issue = metadata.get('issue') or {}
    if issue.get('uri'):
        return {'url': issue_url_to_web(issue['uri'], issue.get('key')), 'type': url_type}

    comments = metadata.get('comments') or [{}]
    candidates = [
        (metadata.get('space') or {}).get('uri'),
        (metadata.get('page') or {}).get('uri'),
        (metadata.get('comment') or {}).get('uri'),
        comments[0].get('uri'),
        (metadata.get('label') or {}).get('content_uri'),
        ((metadata.get('attachments') or {}).get('parent') or {}).get('uri'),
        (metadata.get('pull_request') or {}).get('uri'),
        (metadata.get('pull_request_comment') or {}).get('uri'),
        (metadata.get('commits') or [{}])[0].get('url'),
    ]
    for url in candidates:
        if url:
            return {'url': url, 'type': url_type}
    return None

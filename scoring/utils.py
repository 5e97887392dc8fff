"""
Policy configuration helpers.
Loads the deployment-specific tables (ticket status names, fake ticket pattern, description phrases)
used by scoring, correlate and report modules.
"""
from typing import Dict, Any, Optional, List
import os

import yaml

from normalize.models import TicketStatus
from correlate.linker import DEFAULT_FAKE_TICKET_PATTERN

# filename used for the policy YAML configuration
POLICY_FILENAME = 'policy.yaml'

DEFAULT_TOP_ACTORS_LIMIT = 10

# status kind -> Jira status names
DEFAULT_TICKET_STATUS: Dict[str, List[str]] = {
    TicketStatus.NEW: ['To Do', 'Backlog', 'Development Backlog'],
    TicketStatus.IN_PROGRESS: ['Selected for Development', 'In Development', 'Code Review', 'Work in progress', 'Pending closure'],
    TicketStatus.IN_TESTING: ['Ready for Regression', 'In Regression', 'In QA', 'Ready for Release'],
    TicketStatus.BLOCKED: ['Blocked', 'Waiting for support', 'Pending Customer'],
    TicketStatus.COMPLETED: ['Closed', 'Rejected'],
}

DEFAULT_CODE_ACTIONS: Dict[str, str] = {
    'opened': 'opened',
    'ready_for_review': 'ready for review',
    'review_requested': 'review requested',
    'review_request_removed': 'review request removed',
    'submitted': 'submitted',
    'assigned': 'assigned',
    'resolved': 'discussion resolved',
    'edited': 'edited',
    'labeled': 'labeled',
    'closed': 'closed',
    'dismissed': 'dismissed',
    'reopened': 'reopened',
    'created': 'created',
    'deleted': 'deleted',
    'converted_to_draft': 'converted to draft',
    'unlabeled': 'unlabeled',
}

# code actions only meaningful on PR comments
DEFAULT_COMMENT_CODE_ACTIONS: Dict[str, str] = {
    'created': 'commented',
    'deleted': 'comment deleted',
}

# changelog field -> phrase templates, filled with {old} and {new}:
#   transition: both values present; set: only the new one; unset: only the old one
#   changed: any change with a new value (fallback for transition and set); always: emitted as is
DEFAULT_CHANGE_LOG_FIELDS: Dict[str, Dict[str, str]] = {
    'status': {'transition': 'Status: {old} → {new}'},
    'assignee': {'transition': 'Assignee: {old} → {new}', 'set': 'Assigned to {new}', 'unset': 'Unassigned from {old}'},
    'labels': {'transition': 'Labels: {old} → {new}', 'set': 'Labeled: {new}', 'unset': 'Unlabeled: {old}'},
    'priority': {'transition': 'Priority: {old} → {new}'},
    'Link': {'changed': '{new}'},
    'Rank': {'changed': '{new}'},
    'Domain': {'changed': 'Domain: {new}'},
    'Platform': {'changed': 'Platform: {new}'},
    'Fix Version': {'changed': 'Fix Version: {new}'},
    'Epic Link': {'changed': 'Epic Link'},
    'Start date': {'changed': 'Start date: {new}'},
    'Expected Delivery Date': {'transition': 'Expected delivery date: {old} → {new}', 'set': 'Expected delivery date: {new}'},
    'Sprint': {'transition': 'Sprint: {old} → {new}', 'set': 'Sprint: {new}'},
    'Story Points': {'transition': 'Story Points: {old} → {new}', 'set': 'Story Points: {new}'},
    'summary': {'always': 'Set summary'},
    'description': {'always': 'Set description'},
}


def invert_status_table(table: Dict[str, List[str]]) -> Dict[str, str]:
    """Turn {status kind: [status names]} into {status name: status kind}."""
    names: Dict[str, str] = {}
    for kind, status_names in table.items():
        if kind not in TicketStatus.ALL:
            raise ValueError(f"Unknown ticket status kind '{kind}', expected one of {', '.join(TicketStatus.ALL)}")
        for name in status_names or []:
            names[str(name)] = kind
    return names


class Policy:
    """
    Deployment-specific policy tables.
    """
    def __init__(
        self,
        ticket_status: Optional[Dict[str, List[str]]] = None,
        fake_ticket_pattern: Optional[str] = DEFAULT_FAKE_TICKET_PATTERN,
        code_actions: Optional[Dict[str, str]] = None,
        comment_code_actions: Optional[Dict[str, str]] = None,
        change_log_fields: Optional[Dict[str, Dict[str, Any]]] = None,
        top_actors_limit: int = DEFAULT_TOP_ACTORS_LIMIT,
    ):
        self.status_names = invert_status_table(ticket_status if ticket_status is not None else DEFAULT_TICKET_STATUS)
        self.fake_ticket_pattern = fake_ticket_pattern
        self.code_actions = dict(code_actions if code_actions is not None else DEFAULT_CODE_ACTIONS)
        self.comment_code_actions = dict(comment_code_actions if comment_code_actions is not None else DEFAULT_COMMENT_CODE_ACTIONS)
        self.change_log_fields = dict(change_log_fields if change_log_fields is not None else DEFAULT_CHANGE_LOG_FIELDS)
        self.top_actors_limit = int(top_actors_limit)


DEFAULT_POLICY = Policy()


def default_policy_path() -> str:
    return os.path.join(os.path.dirname(os.path.dirname(__file__)), 'config', POLICY_FILENAME)


def load_policy(path: Optional[str] = None) -> Policy:
    """
    Load policy tables from a YAML file, falling back to the defaults for missing sections.

    Without a path the bundled config/policy.yaml is used when present, otherwise the defaults.
    An explicit path that does not exist, or a file that does not parse, raises ValueError.
    """
    explicit = bool(path)
    if not path:
        path = default_policy_path()
    if not os.path.exists(path):
        if explicit:
            raise ValueError(f"Policy config file not found at: {path}")
        return Policy()
    try:
        with open(path, 'r', encoding='utf-8') as f:
            doc = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as ex:
        raise ValueError(f"Failed to load policy from {path}: {ex}") from ex
    if not isinstance(doc, dict):
        raise ValueError(f"Policy file {path} must contain a mapping, got {type(doc).__name__}")

    # tables given in the file replace the defaults; missing ones keep them
    return Policy(
        ticket_status=doc.get('ticket_status'),
        fake_ticket_pattern=doc.get('fake_ticket_pattern', DEFAULT_FAKE_TICKET_PATTERN),
        code_actions=doc.get('code_actions'),
        comment_code_actions=doc.get('comment_code_actions'),
        change_log_fields=doc.get('change_log_fields'),
        top_actors_limit=doc.get('top_actors_limit', DEFAULT_TOP_ACTORS_LIMIT),
    )

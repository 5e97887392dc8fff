"""
Ticket status inference from activity metadata.
The status name table comes from the policy (see scoring.utils); it differs per Jira deployment.
"""
from typing import Dict, Any, Optional

from normalize.models import TicketStatus
from scoring.utils import Policy, DEFAULT_POLICY


def infer_ticket_status(metadata: Optional[Dict[str, Any]], policy: Optional[Policy] = None) -> Optional[str]:
    """Classify the ticket an activity refers to.

    The issue status name is looked up in the policy table. Without a status name, code work
    (commits, PR, PR comment) means the ticket is in progress. Returns None when unclassified.
    """
    if not metadata:
        return None
    policy = policy or DEFAULT_POLICY
    status = (metadata.get('issue') or {}).get('status')
    status_name = status.get('name') if isinstance(status, dict) else status
    if not status_name:
        if metadata.get('commits') or metadata.get('pull_request') or metadata.get('pull_request_comment'):
            return TicketStatus.IN_PROGRESS
        return None
    return policy.status_names.get(status_name)

"""
Unified data models for normalized activities and tickets.
"""

from typing import List, Optional, Dict, Any

# closed sets used by the grouping counters
ARTIFACTS = ('code', 'codeOrg', 'task', 'taskOrg', 'doc', 'docOrg')
PHASES = ('design', 'dev', 'test', 'deploy', 'stabilize', 'ops')

EVENT_TYPES = ('github', 'jira', 'confluence')


class TicketStatus:
    """
    Workflow status kinds a ticket can be classified into.
    """
    NEW = 'new'
    IN_PROGRESS = 'in_progress'
    IN_TESTING = 'in_testing'
    BLOCKED = 'blocked'
    COMPLETED = 'completed'

    ALL = (NEW, IN_PROGRESS, IN_TESTING, BLOCKED, COMPLETED)


class Activity:
    """
    Normalized record of one unit of developer work or communication.
    """
    def __init__(
        self,
        id: str,
        action: str,
        artifact: str,
        timestamp: float,
        created_timestamp: Optional[float] = None,
        actor_id: Optional[str] = None,
        event: Optional[str] = None,
        event_type: Optional[str] = None,
        initiative_id: Optional[str] = None,
        launch_item_id: Optional[str] = None,
        priority: Optional[int] = None,
        phase: Optional[str] = None,
        effort: Optional[float] = None,
        description: Optional[str] = None,
        ongoing: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
        combined: Optional[List[Dict[str, Any]]] = None,
    ):
        self.id = id
        self.action = action
        self.artifact = artifact
        self.timestamp = timestamp
        self.created_timestamp = created_timestamp if created_timestamp is not None else timestamp
        self.actor_id = actor_id
        self.event = event
        self.event_type = event_type  # jira/github/confluence
        self.initiative_id = initiative_id
        self.launch_item_id = launch_item_id
        self.priority = priority  # -1 or None when unknown
        self.phase = phase
        self.effort = effort
        self.description = description
        self.ongoing = ongoing
        self.metadata = metadata  # e.g. {'pull_request': {...}, 'commits': [...], 'issue': {...}, 'change_log': [...]}
        self.combined = combined  # e.g. [{'activity_id': ..., 'timestamp': ...}], only set on merge

    def __repr__(self):
        return f"Activity(id={self.id!r}, event={self.event!r}, actor_id={self.actor_id!r}, timestamp={self.timestamp!r})"


class Ticket:
    """
    Ticket reference derived from activities, identified by its key (e.g. PROJ-123).
    """
    def __init__(self, key: str, status: Optional[str] = None):
        self.key = key
        self.status = status

    def __eq__(self, other):
        return isinstance(other, Ticket) and self.key == other.key and self.status == other.status

    def __repr__(self):
        return f"Ticket(key={self.key!r}, status={self.status!r})"

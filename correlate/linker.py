"""
Linker heuristics to associate commits/PRs/comments/issues with Jira tickets.
Ticket references are looked up, strongest signal first:
- explicit issue key
- PR ref, then PR title
- commit messages
- free-text description
"""
import re
from typing import List, Dict, Optional, Any

JIRA_KEY_PATTERN = r"[A-Z][A-Z0-9]+-[0-9]+"

# ticket-like strings that are not tickets (CVE ids, encodings, digests...)
DEFAULT_FAKE_TICKET_PATTERN = r"^(CVE|ISO|RFC|SHA|UTF)-[0-9]+$"


def find_jira_tickets(text: Optional[str], key_pattern: str = JIRA_KEY_PATTERN) -> List[str]:
    """Return the ticket keys found in text, deduped, in order of appearance."""
    if not text:
        return []
    pattern = re.compile(key_pattern)
    return list(dict.fromkeys(m.group(0) for m in pattern.finditer(text)))


def is_fake_ticket(key: str, fake_pattern: Optional[str] = DEFAULT_FAKE_TICKET_PATTERN) -> bool:
    if not fake_pattern:
        return False
    return re.search(fake_pattern, key) is not None


def _commit_messages(metadata: Dict[str, Any]) -> List[str]:
    commits = metadata.get('commits') or []
    return [c.get('message') for c in commits if isinstance(c, dict) and c.get('message')]


# helper: ticket sources of an activity, strongest signal first (issue key excluded)
def _ticket_sources(metadata: Dict[str, Any], description: Optional[str]) -> List[str]:
    pull_request = metadata.get('pull_request') or {}
    sources = [pull_request.get('ref'), pull_request.get('title')]
    sources.extend(_commit_messages(metadata))
    sources.append(description)
    return [s for s in sources if isinstance(s, str) and s]


def _issue_key(metadata: Optional[Dict[str, Any]]) -> Optional[str]:
    if not metadata:
        return None
    return (metadata.get('issue') or {}).get('key') or None


def find_first_ticket(metadata: Optional[Dict[str, Any]], description: Optional[str] = None) -> Optional[str]:
    """Return the first ticket referenced by an activity, or None.

    An explicit issue key short-circuits every other source. Otherwise the PR ref, PR title,
    each commit message and the description are scanned in that order; a source without any
    key is skipped.
    """
    if not metadata:
        return None
    key = _issue_key(metadata)
    if key:
        return key
    for text in _ticket_sources(metadata, description):
        tickets = find_jira_tickets(text)
        if tickets:
            return tickets[0]
    return None


def find_tickets(metadata: Optional[Dict[str, Any]], description: Optional[str] = None) -> List[str]:
    """Return every ticket referenced by an activity, in source priority order.

    An explicit issue key is returned alone. Keys repeated across sources are listed again;
    callers upserting by key are not affected.
    """
    if not metadata and not description:
        return []
    key = _issue_key(metadata)
    if key:
        return [key]
    tickets: List[str] = []
    for text in _ticket_sources(metadata or {}, description):
        tickets.extend(find_jira_tickets(text))
    return tickets


def infer_priority(ticket_priorities: Dict[str, int], metadata: Optional[Dict[str, Any]]) -> int:
    """Return the priority of the first ticket referenced by metadata, -1 when unknown."""
    ticket = find_first_ticket(metadata)
    if not ticket:
        return -1
    priority = ticket_priorities.get(ticket)
    return priority if priority is not None else -1

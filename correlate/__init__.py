"""
Correlate package: ticket linking, activity combination and initiative mapping.
"""

from .combiner import combine_and_push_activity, combine_activities
from .linker import find_first_ticket, find_tickets

__all__ = ["combine_and_push_activity", "combine_activities", "find_first_ticket", "find_tickets"]

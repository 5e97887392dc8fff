import unittest

import pytest

from normalize.models import TicketStatus
from scoring.utils import load_policy, invert_status_table, default_policy_path, Policy, DEFAULT_TOP_ACTORS_LIMIT
from correlate.linker import DEFAULT_FAKE_TICKET_PATTERN


class TestScoringUtils(unittest.TestCase):
    def test_invert_status_table(self):
        names = invert_status_table({TicketStatus.NEW: ['To Do'], TicketStatus.COMPLETED: ['Done', 'Closed']})
        self.assertEqual(names, {'To Do': 'new', 'Done': 'completed', 'Closed': 'completed'})

    def test_invert_status_table_unknown_kind(self):
        with self.assertRaises(ValueError):
            invert_status_table({'parked': ['Parked']})

    def test_load_policy_defaults(self):
        policy = load_policy(path=None)
        self.assertEqual(policy.status_names['In QA'], TicketStatus.IN_TESTING)
        self.assertEqual(policy.fake_ticket_pattern, DEFAULT_FAKE_TICKET_PATTERN)
        self.assertEqual(policy.top_actors_limit, DEFAULT_TOP_ACTORS_LIMIT)
        self.assertIn('review_requested', policy.code_actions)

    def test_bundled_policy_matches_defaults(self):
        bundled = load_policy(default_policy_path())
        defaults = Policy()
        self.assertEqual(bundled.status_names, defaults.status_names)
        self.assertEqual(bundled.code_actions, defaults.code_actions)
        self.assertEqual(bundled.comment_code_actions, defaults.comment_code_actions)
        self.assertEqual(bundled.change_log_fields, defaults.change_log_fields)
        self.assertEqual(bundled.change_log_fields['priority'], {'transition': 'Priority: {old} → {new}'})
        self.assertEqual(bundled.code_actions['converted_to_draft'], 'converted to draft')

    def test_policy_defaults_are_copies(self):
        a, b = Policy(), Policy()
        a.code_actions['opened'] = 'changed'
        self.assertEqual(b.code_actions['opened'], 'opened')


def test_load_policy_partial_file(tmp_path):
    path = tmp_path / 'policy.yaml'
    path.write_text("ticket_status:\n  completed:\n    - Done\ntop_actors_limit: 3\n", encoding='utf-8')
    policy = load_policy(str(path))
    assert policy.status_names == {'Done': TicketStatus.COMPLETED}
    assert policy.top_actors_limit == 3
    # sections left out keep their defaults
    assert policy.fake_ticket_pattern == DEFAULT_FAKE_TICKET_PATTERN
    assert policy.code_actions['resolved'] == 'discussion resolved'


def test_load_policy_empty_file(tmp_path):
    path = tmp_path / 'policy.yaml'
    path.write_text("", encoding='utf-8')
    assert load_policy(str(path)).top_actors_limit == DEFAULT_TOP_ACTORS_LIMIT


def test_load_policy_missing_explicit_path(tmp_path):
    with pytest.raises(ValueError):
        load_policy(str(tmp_path / 'nope.yaml'))


def test_load_policy_not_a_mapping(tmp_path):
    path = tmp_path / 'policy.yaml'
    path.write_text("- a\n- b\n", encoding='utf-8')
    with pytest.raises(ValueError):
        load_policy(str(path))


def test_load_policy_invalid_yaml(tmp_path):
    path = tmp_path / 'policy.yaml'
    path.write_text("ticket_status: [unclosed\n", encoding='utf-8')
    with pytest.raises(ValueError):
        load_policy(str(path))


if __name__ == '__main__':
    unittest.main()

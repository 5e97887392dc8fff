import unittest
from correlate.linker import find_jira_tickets, find_first_ticket, find_tickets, infer_priority, is_fake_ticket


class TestLinker(unittest.TestCase):
    def test_find_keys_in_order(self):
        text = "Fixed PROJ-123 and addressed PROJ-456 in this change, see PROJ-123"
        self.assertEqual(find_jira_tickets(text), ['PROJ-123', 'PROJ-456'])

    def test_find_keys_requires_uppercase_project(self):
        self.assertEqual(find_jira_tickets("proj-1 and P-2 but AB2-3"), ['AB2-3'])
        self.assertEqual(find_jira_tickets(None), [])

    def test_issue_key_short_circuits(self):
        metadata = {
            'issue': {'key': 'PROJ-1'},
            'pull_request': {'ref': 'PROJ-2-branch', 'title': 'PROJ-3 title'},
            'commits': [{'message': 'PROJ-4'}],
        }
        self.assertEqual(find_first_ticket(metadata, 'PROJ-5'), 'PROJ-1')
        self.assertEqual(find_tickets(metadata, 'PROJ-5'), ['PROJ-1'])

    def test_ref_before_title(self):
        metadata = {'pull_request': {'ref': 'feature/PROJ-2-x', 'title': 'PROJ-3 title'}}
        self.assertEqual(find_first_ticket(metadata), 'PROJ-2')

    def test_source_without_key_is_skipped(self):
        metadata = {
            'pull_request': {'ref': 'main', 'title': 'No ticket here'},
            'commits': [{'message': 'wip'}, {'message': 'PROJ-9: fix'}],
        }
        self.assertEqual(find_first_ticket(metadata), 'PROJ-9')

    def test_description_is_last_resort(self):
        self.assertEqual(find_first_ticket({'commits': []}, 'Worked on ABC-7'), 'ABC-7')
        self.assertIsNone(find_first_ticket({'commits': []}))
        self.assertIsNone(find_first_ticket(None, 'ABC-7'))

    def test_find_tickets_in_source_order(self):
        metadata = {
            'pull_request': {'ref': 'PROJ-2', 'title': 'PROJ-3 and PROJ-4'},
            'commits': [{'message': 'PROJ-5'}],
        }
        self.assertEqual(find_tickets(metadata, 'PROJ-6'), ['PROJ-2', 'PROJ-3', 'PROJ-4', 'PROJ-5', 'PROJ-6'])
        self.assertEqual(find_tickets(None, 'PROJ-6'), ['PROJ-6'])
        self.assertEqual(find_tickets(None), [])

    def test_infer_priority(self):
        priorities = {'PROJ-1': 2}
        self.assertEqual(infer_priority(priorities, {'issue': {'key': 'PROJ-1'}}), 2)
        self.assertEqual(infer_priority(priorities, {'issue': {'key': 'PROJ-8'}}), -1)
        self.assertEqual(infer_priority(priorities, {}), -1)

    def test_fake_tickets(self):
        self.assertTrue(is_fake_ticket('CVE-2023'))
        self.assertTrue(is_fake_ticket('UTF-8'))
        self.assertFalse(is_fake_ticket('PROJ-1'))
        self.assertFalse(is_fake_ticket('CVE-2023', None))
        self.assertTrue(is_fake_ticket('TMP-1', r'^TMP-'))


if __name__ == '__main__':
    unittest.main()

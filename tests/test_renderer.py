import json
import unittest

from normalize.models import BugHealth, StatsSnapshot
from normalize.util import normalize_bug, normalize_project
from report.renderer import render, render_stats_csv, render_stats_markdown, render_stats_text


class TestStatsRendering(unittest.TestCase):
    def setUp(self):
        self.snap = StatsSnapshot(total=4, open=2, in_progress=1, closed=1, resolved=0, project_count=3)

    def test_text_and_markdown(self):
        text = render_stats_text(self.snap)
        self.assertIn('Total Bugs', text)
        self.assertIn('Projects', text)
        md = render_stats_markdown(self.snap, error='bugs unavailable')
        self.assertIn('# Dashboard', md)
        self.assertIn('- Open: **2**', md)
        self.assertIn('Error: bugs unavailable', md)

    def test_csv(self):
        csv = render_stats_csv(self.snap)
        self.assertEqual(csv.splitlines()[0], 'total,open,in_progress,closed,resolved,project_count')
        self.assertEqual(csv.splitlines()[1], '4,2,1,1,0,3')

    def test_json(self):
        parsed = json.loads(render('stats', 'json', snapshot=self.snap, error=None))
        self.assertEqual(parsed['stats']['project_count'], 3)
        self.assertIsNone(parsed['error'])

    def test_html_uses_template(self):
        html = render('stats', 'html', snapshot=self.snap, error='<oops>', generated_at='now')
        self.assertIn('<h1>Dashboard</h1>', html)
        self.assertIn('In Progress', html)
        # autoescaped
        self.assertIn('&lt;oops&gt;', html)


class TestTableRendering(unittest.TestCase):
    def setUp(self):
        self.bugs = [
            normalize_bug({'_id': 'b1', 'title': 'Crash | save', 'status': 'OPEN', 'priority': 'HIGH', 'projectId': 'p1'}),
            normalize_bug({'_id': 'b2', 'title': 'Typo', 'status': 'CLOSED', 'assignedTo': {'_id': 'u2', 'name': 'Dev'}}),
        ]

    def test_bugs_text(self):
        text = render('bugs', 'text', bugs=self.bugs)
        lines = text.splitlines()
        self.assertTrue(lines[0].startswith('bug_id'))
        self.assertEqual(len(lines), 4)
        self.assertIn('Dev', lines[3])

    def test_bugs_markdown_escapes_pipes(self):
        md = render('bugs', 'md', bugs=self.bugs)
        self.assertIn('Crash \\| save', md)

    def test_bugs_json_and_csv(self):
        rows = json.loads(render('bugs', 'json', bugs=self.bugs))
        self.assertEqual([r['bug_id'] for r in rows], ['b1', 'b2'])
        csv = render('bugs', 'csv', bugs=self.bugs)
        self.assertTrue(csv.startswith('bug_id,title,status'))

    def test_empty_lists(self):
        self.assertEqual(render('bugs', 'text', bugs=[]), 'No results.')
        self.assertIn('No results', render('projects', 'md', projects=[]))
        self.assertIn('No results', render('projects', 'html', projects=[]))

    def test_projects_with_health(self):
        projects = [normalize_project({'_id': 'p1', 'name': 'Core'}), normalize_project({'_id': 'p2', 'name': 'Web'})]
        health = {'p1': (2, BugHealth.OPEN), 'p2': (0, BugHealth.EMPTY)}
        rows = json.loads(render('projects', 'json', projects=projects, health=health))
        self.assertEqual(rows[0]['health'], 'OPEN')
        self.assertEqual(rows[0]['bug_count'], 2)
        html = render('projects', 'html', projects=projects, health=health)
        self.assertIn('<td>Core</td>', html)

    def test_html_escapes_api_text(self):
        bugs = [normalize_bug({'_id': 'b1', 'title': '<script>alert(1)</script>', 'status': 'OPEN'})]
        html = render('bugs', 'html', bugs=bugs)
        self.assertNotIn('<script>', html)
        self.assertIn('&lt;script&gt;alert(1)&lt;/script&gt;', html)

    def test_status_view_lists_every_known_status(self):
        rows = json.loads(render('status', 'json', bug_counts={'OPEN': 2, 'BLOCKED': 1}, project_counts={'ACTIVE': 1}))
        bug_rows = [(r['status'], r['count']) for r in rows if r['kind'] == 'bug']
        self.assertEqual(bug_rows, [('OPEN', 2), ('IN_PROGRESS', 0), ('CLOSED', 0), ('RESOLVED', 0), ('BLOCKED', 1)])
        project_rows = [r['status'] for r in rows if r['kind'] == 'project']
        self.assertEqual(project_rows, ['ACTIVE', 'ON_HOLD', 'COMPLETED', 'ARCHIVED'])
        text = render('status', 'text', bug_counts={}, project_counts={})
        self.assertTrue(text.startswith('kind'))

    def test_unknown_view(self):
        with self.assertRaises(ValueError):
            render('users', 'text')


if __name__ == '__main__':
    unittest.main()

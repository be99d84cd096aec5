import unittest

from normalize.envelope import (
    normalize_collection,
    normalize_resource,
    unwrap_collection,
    unwrap_resource,
)


class TestUnwrapCollection(unittest.TestCase):
    def test_bare_list_returned_as_is(self):
        payload = [{'_id': '1'}, {'_id': '2'}]
        res = unwrap_collection(payload, 'bugs')
        self.assertIs(res.value, payload)
        self.assertEqual(res.rule, 'bare')
        self.assertTrue(res.ok)

    def test_empty_list_is_bare(self):
        self.assertEqual(unwrap_collection([]).rule, 'bare')

    def test_data_envelope(self):
        inner = [{'_id': '1'}]
        res = unwrap_collection({'data': inner, 'count': 1}, 'bugs')
        self.assertIs(res.value, inner)
        self.assertEqual(res.rule, 'data')

    def test_resource_named_envelope(self):
        inner = [{'_id': 'b1', 'status': 'OPEN'}]
        res = unwrap_collection({'bugs': inner}, 'bugs')
        self.assertIs(res.value, inner)
        self.assertEqual(res.rule, 'resource')

    def test_data_wins_over_resource_name(self):
        data = [{'_id': 'd'}]
        res = unwrap_collection({'bugs': [{'_id': 'b'}], 'data': data}, 'bugs')
        self.assertIs(res.value, data)

    def test_data_not_a_list_falls_through_to_resource(self):
        inner = [{'_id': 'p1'}]
        res = unwrap_collection({'data': {'page': 1}, 'projects': inner}, 'projects')
        self.assertIs(res.value, inner)
        self.assertEqual(res.rule, 'resource')

    def test_scan_returns_first_list_in_insertion_order(self):
        first = [{'_id': 'x'}]
        res = unwrap_collection({'meta': {'total': 2}, 'items': first, 'other': [1, 2]}, 'bugs')
        self.assertIs(res.value, first)
        self.assertEqual(res.rule, 'scan')

    def test_scan_can_be_disabled(self):
        res = unwrap_collection({'items': [{'_id': 'x'}]}, 'bugs', scan_fallback=False)
        self.assertEqual(res.value, [])
        self.assertFalse(res.ok)
        self.assertIn("'bugs'", res.failure.reason)

    def test_no_list_anywhere_yields_empty_with_failure(self):
        res = unwrap_collection({'message': 'ok', 'count': 0}, 'bugs')
        self.assertEqual(res.value, [])
        self.assertIsNone(res.rule)
        self.assertIsNotNone(res.failure)
        self.assertEqual(res.failure.payload_type, 'dict')

    def test_non_container_payloads_never_raise(self):
        for payload in (None, 'oops', 42, 3.5, True):
            res = unwrap_collection(payload, 'bugs')
            self.assertEqual(res.value, [])
            self.assertFalse(res.ok)

    def test_normalize_collection_shortcut(self):
        self.assertEqual(normalize_collection({'projects': [{'_id': 'p'}]}, 'projects'), [{'_id': 'p'}])
        self.assertEqual(normalize_collection(None), [])


class TestUnwrapResource(unittest.TestCase):
    def test_bare_object_with_id(self):
        bug = {'_id': 'b1', 'title': 't'}
        res = unwrap_resource(bug, 'bug')
        self.assertIs(res.value, bug)
        self.assertEqual(res.rule, 'bare')

    def test_plain_id_key_is_accepted(self):
        self.assertEqual(unwrap_resource({'id': 7}).rule, 'bare')

    def test_data_envelope(self):
        bug = {'_id': 'b1'}
        res = unwrap_resource({'success': True, 'data': bug}, 'bug')
        self.assertIs(res.value, bug)
        self.assertEqual(res.rule, 'data')

    def test_resource_named_envelope(self):
        project = {'_id': 'p1', 'name': 'Core'}
        res = unwrap_resource({'message': 'created', 'project': project}, 'project')
        self.assertIs(res.value, project)
        self.assertEqual(res.rule, 'resource')

    def test_no_scan_for_single_resources(self):
        res = unwrap_resource({'message': 'ok', 'something': {'_id': 'x'}}, 'bug')
        self.assertIsNone(res.value)
        self.assertFalse(res.ok)

    def test_lists_and_scalars_fail_softly(self):
        for payload in ([{'_id': 'x'}], None, 'text', 0):
            self.assertIsNone(normalize_resource(payload, 'bug'))


if __name__ == '__main__':
    unittest.main()

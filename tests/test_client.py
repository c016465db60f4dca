import unittest
import sys
import os
from unittest import mock

import requests

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from client import FitnessClient


def _response(payload, status=200):
    resp = mock.Mock()
    resp.json.return_value = payload
    resp.status_code = status
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(str(status))
    return resp


class ClientTest(unittest.TestCase):
    def setUp(self) -> None:
        self.client = FitnessClient(base_url='http://testserver/', timeout=5)

    def test_create_user_stores_key(self) -> None:
        with mock.patch('client.requests.post', return_value=_response({'id': 1, 'api_key': 'abc'})) as post:
            data = self.client.create_user('alice', admin_key='root')
        self.assertEqual(data['id'], 1)
        self.assertEqual(self.client.api_key, 'abc')
        post.assert_called_once_with(
            'http://testserver/api/users',
            params={'username': 'alice'},
            headers={'X-Admin-Key': 'root'},
            timeout=5,
        )

    def test_generate_program(self) -> None:
        self.client.api_key = 'abc'
        payload = {'message': 'Created 3 workouts', 'workouts': [{'id': 1}, {'id': 2}, {'id': 3}]}
        with mock.patch('client.requests.post', return_value=_response(payload)) as post:
            workouts = self.client.generate_program()
        self.assertEqual(len(workouts), 3)
        self.assertEqual(post.call_args.kwargs['headers'], {'X-API-Key': 'abc'})

    def test_set_preferences_sends_json(self) -> None:
        self.client.api_key = 'abc'
        with mock.patch('client.requests.put', return_value=_response({'workouts': []})) as put:
            self.client.set_preferences(goal='strength', frequency=3)
        self.assertEqual(put.call_args.args[0], 'http://testserver/api/users/me/preferences')
        self.assertEqual(put.call_args.kwargs['json'], {'goal': 'strength', 'frequency': 3})

    def test_errors_raise(self) -> None:
        with mock.patch('client.requests.put', return_value=_response({'detail': 'bad'}, 400)):
            with self.assertRaises(requests.HTTPError):
                self.client.set_preferences(frequency=9)

    def test_program_endpoints(self) -> None:
        self.client.api_key = 'abc'
        with mock.patch('client.requests.put', return_value=_response({'status': 'reordered'})) as put:
            self.client.reorder_exercises(7, [3, 1, 2])
        self.assertEqual(put.call_args.args[0], 'http://testserver/api/workouts/7/exercises/order')
        self.assertEqual(put.call_args.kwargs['json'], {'order': [3, 1, 2]})
        with mock.patch('client.requests.get', return_value=_response([{'id': 1}])) as get:
            self.assertEqual(self.client.list_workouts(include_inactive=True), [{'id': 1}])
        self.assertEqual(get.call_args.kwargs['params'], {'include_inactive': True})
        with mock.patch('client.requests.post', return_value=_response({'workouts_created': 4})) as post:
            self.assertEqual(self.client.regenerate_program(is_temporary=True)['workouts_created'], 4)
        self.assertEqual(post.call_args.kwargs['json'], {'is_temporary': True})
        with mock.patch('client.requests.post', return_value=_response({'workouts': [{'id': 1}]})):
            self.assertEqual(self.client.restore_program(), [{'id': 1}])

    def test_run_tool_and_search(self) -> None:
        self.client.api_key = 'abc'
        with mock.patch('client.requests.post', return_value=_response({'success': True, 'message': 'ok'})) as post:
            result = self.client.run_tool('explain_exercise', exercise_name='plank')
        self.assertTrue(result['success'])
        self.assertEqual(post.call_args.args[0], 'http://testserver/api/coach/tools/explain_exercise')
        with mock.patch('client.requests.get', return_value=_response([{'id': 'plank'}])) as get:
            self.assertEqual(self.client.search_exercises(equipment='bodyweight'), [{'id': 'plank'}])
        self.assertEqual(get.call_args.kwargs['params'], {'equipment': 'bodyweight'})

if __name__ == '__main__':
    unittest.main()

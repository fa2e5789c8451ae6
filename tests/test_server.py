#!/usr/bin/env python3
"""
Tests for the Flask routes in slotkeeper_server.

Run with:
    python -m pytest tests/test_server.py
"""
import json
import os
import shutil
import sys
import tempfile
import unittest
from unittest.mock import patch

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import slotkeeper
import slotkeeper_server
from app.services import FileService

STEAM_ID = '76561190000000001'


class ServerTestCase(unittest.TestCase):
    """Builds an app whose save directories live in a temp directory."""

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.players_dir = os.path.join(self.tmp, 'players')
        self.slots_dir = os.path.join(self.tmp, 'slots')
        self.backup_dir = os.path.join(self.tmp, 'backups')
        config = slotkeeper.load_config(None, overrides={
            'players_dir': self.players_dir,
            'slots_dir': self.slots_dir,
            'backup_dir': self.backup_dir,
            'max_file_size': 1024,
        })
        self.app = slotkeeper_server.create_app(config)
        self.app.config['TESTING'] = True
        self.client = self.app.test_client()

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def _player_file(self, steamid: str = STEAM_ID) -> str:
        return os.path.join(self.players_dir, f'{steamid}.json')

    def _slot_file(self, slot_id: str, steamid: str = STEAM_ID) -> str:
        return os.path.join(self.slots_dir, steamid, f'{slot_id}.json')

    def _write_json(self, path: str, data) -> None:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'w') as f:
            if isinstance(data, str):
                f.write(data)
            else:
                json.dump(data, f)

    def _read_json(self, path: str):
        with open(path) as f:
            return json.load(f)


# ===========================================================================
# Request decoding
# ===========================================================================

class TestRequestHandling(ServerTestCase):

    def test_health(self):
        resp = self.client.get('/health')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(json.loads(resp.data), {'status': 'ok'})

    def test_missing_parameter_get(self):
        resp = self.client.get('/check')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(json.loads(resp.data), {'error': 'steamid is required'})

    def test_missing_parameters_post(self):
        resp = self.client.post('/transfer', json={'steamid': STEAM_ID})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(json.loads(resp.data)['error'], 'old_slot_id is required')

    def test_all_missing_parameters_listed(self):
        resp = self.client.get('/slot-file')
        self.assertEqual(json.loads(resp.data)['error'], 'steamid and slot_id are required')

    def test_invalid_json_body(self):
        resp = self.client.post('/check', data='{nope', content_type='application/json')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(json.loads(resp.data), {'error': 'Invalid JSON'})

    def test_method_not_allowed(self):
        resp = self.client.put('/check', json={'steamid': STEAM_ID})
        self.assertEqual(resp.status_code, 405)
        self.assertEqual(json.loads(resp.data), {'error': 'Method not allowed'})

    def test_options_short_circuits(self):
        resp = self.client.options('/check')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data, b'')

    def test_cors_header_on_every_response(self):
        for resp in (self.client.get('/health'),
                     self.client.get('/health', headers={'Origin': 'http://example.com'}),
                     self.client.get('/check'),
                     self.client.get('/check', query_string={'steamid': STEAM_ID})):
            self.assertEqual(resp.headers.get('Access-Control-Allow-Origin'), '*')

    def test_path_traversal_rejected(self):
        resp = self.client.get('/check', query_string={'steamid': '../etc'})
        self.assertEqual(resp.status_code, 400)

    def test_numeric_steamid_in_post_body(self):
        resp = self.client.post('/check', json={'steamid': 123})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(json.loads(resp.data), {'error': 'steamid must be a string'})

    def test_nul_byte_in_file_path(self):
        resp = self.client.get('/file-content?file_path=a%00b')
        self.assertEqual(resp.status_code, 400)
        self.assertIn('Invalid path', json.loads(resp.data)['error'])

    def test_unhandled_error_returns_json_500(self):
        self.app.config['PROPAGATE_EXCEPTIONS'] = False
        with patch.object(FileService, 'info', side_effect=RuntimeError('boom')):
            resp = self.client.get('/file-info', query_string={'file_path': self.tmp})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(json.loads(resp.data), {'error': 'Internal server error'})


# ===========================================================================
# Player endpoints
# ===========================================================================

class TestPlayerRoutes(ServerTestCase):

    def test_check_missing_player(self):
        resp = self.client.get('/check', query_string={'steamid': STEAM_ID})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(json.loads(resp.data),
                         {'exists': False, 'file_path': self._player_file()})

    def test_check_existing_player(self):
        self._write_json(self._player_file(), {'a': 1})
        resp = self.client.post('/check', json={'steamid': STEAM_ID})
        self.assertTrue(json.loads(resp.data)['exists'])

    def test_player_file_content(self):
        self._write_json(self._player_file(), {'b': 2, 'a': 1})
        resp = self.client.get('/player-file', query_string={'steamid': STEAM_ID})
        data = json.loads(resp.data)
        self.assertTrue(data['success'])
        self.assertEqual(data['content'], {'b': 2, 'a': 1})
        self.assertLess(resp.data.index(b'"b"'), resp.data.index(b'"a"'))

    def test_player_file_missing(self):
        resp = self.client.get('/player-file', query_string={'steamid': STEAM_ID})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(json.loads(resp.data),
                         {'success': False, 'error': 'File not found'})

    def test_delete_player_file_with_backup(self):
        self._write_json(self._player_file(), {'a': 1})
        resp = self.client.get('/delete-player-file',
                               query_string={'steamid': STEAM_ID, 'backup': 'true'})
        data = json.loads(resp.data)
        self.assertTrue(data['deleted'])
        self.assertTrue(os.path.exists(data['backup_path']))
        self.assertFalse(os.path.exists(self._player_file()))


# ===========================================================================
# Slot endpoints
# ===========================================================================

class TestSlotRoutes(ServerTestCase):

    def test_transfer_and_restore(self):
        self._write_json(self._player_file(), {'datafile': 'dino', 'slot_id': 'old'})

        resp = self.client.post('/transfer', json={'steamid': STEAM_ID, 'old_slot_id': 's1'})
        data = json.loads(resp.data)
        self.assertTrue(data['success'])
        self.assertEqual(data['slot_file'], self._slot_file('s1'))
        self.assertFalse(os.path.exists(self._player_file()))

        resp = self.client.get('/restore-slot', query_string={'steamid': STEAM_ID, 'slot_id': 's1'})
        data = json.loads(resp.data)
        self.assertTrue(data['success'])
        self.assertEqual(self._read_json(self._player_file()),
                         {'datafile': 'dino', 'slot_id': 's1'})

    def test_transfer_with_numeric_slot_id_rejected(self):
        self._write_json(self._player_file(), {'datafile': 'dino'})
        resp = self.client.post('/transfer', json={'steamid': STEAM_ID, 'old_slot_id': 5})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(json.loads(resp.data), {'error': 'old_slot_id must be a string'})
        self.assertFalse(os.path.exists(self._slot_file('5')))
        self.assertTrue(os.path.exists(self._player_file()))

    def test_transfer_without_player_file(self):
        resp = self.client.get('/transfer', query_string={'steamid': STEAM_ID, 'old_slot_id': 's1'})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(json.loads(resp.data),
                         {'success': False, 'error': 'Player file not found'})

    def test_empty_slot(self):
        resp = self.client.post('/empty-slot', json={'steamid': STEAM_ID, 'old_slot_id': 's2'})
        self.assertTrue(json.loads(resp.data)['success'])
        self.assertEqual(self._read_json(self._slot_file('s2')),
                         {'slot_id': 's2', 'datafile': None})

    def test_write_slot_without_data(self):
        resp = self.client.post('/write-slot', json={'steamid': '123', 'file_name': 'slot1'})
        data = json.loads(resp.data)
        self.assertTrue(data['success'])
        self.assertEqual(data['file_path'], self._slot_file('slot1', '123'))
        doc = self._read_json(data['file_path'])
        self.assertEqual(doc['slot_id'], 'slot1')
        self.assertIsNone(doc['datafile'])
        self.assertIn('created', doc)

    def test_write_slot_with_query_data(self):
        resp = self.client.get('/write-slot', query_string={
            'steamid': '123', 'file_name': 'slot1.json', 'data': '{"datafile": "z"}'})
        data = json.loads(resp.data)
        self.assertEqual(self._read_json(data['file_path']),
                         {'datafile': 'z', 'slot_id': 'slot1'})

    def test_write_slot_post_string_data_rejected(self):
        resp = self.client.post('/write-slot', json={
            'steamid': '123', 'file_name': 'slot1', 'data': '{"datafile": "z"}'})
        data = json.loads(resp.data)
        self.assertFalse(data['success'])
        self.assertEqual(data['error'], 'Slot data must be a JSON object')

    def test_slot_file_content(self):
        self._write_json(self._slot_file('s1'), {'slot_id': 's1'})
        resp = self.client.get('/slot-file', query_string={'steamid': STEAM_ID, 'slot_id': 's1'})
        self.assertEqual(json.loads(resp.data),
                         {'success': True, 'content': {'slot_id': 's1'}})

    def test_delete_slot_file(self):
        self._write_json(self._slot_file('s1'), {'slot_id': 's1'})
        resp = self.client.post('/delete-slot-file',
                                json={'steamid': STEAM_ID, 'slot_id': 's1', 'backup': False})
        data = json.loads(resp.data)
        self.assertTrue(data['deleted'])
        self.assertNotIn('backup_path', data)


# ===========================================================================
# By-path file endpoints
# ===========================================================================

class TestFileRoutes(ServerTestCase):

    def test_write_then_read(self):
        path = os.path.join(self.tmp, 'misc', 'a.json')
        resp = self.client.post('/write-file', json={'file_path': path, 'data': {'k': 'v'}})
        data = json.loads(resp.data)
        self.assertTrue(data['success'])
        self.assertEqual(data['size'], os.path.getsize(path))

        resp = self.client.get('/file-content', query_string={'file_path': path})
        data = json.loads(resp.data)
        self.assertTrue(data['success'])
        self.assertEqual(json.loads(data['content']), {'k': 'v'})

    def test_write_file_post_string_data(self):
        path = os.path.join(self.tmp, 'a.json')
        resp = self.client.post('/write-file', json={'file_path': path, 'data': 'hello'})
        self.assertTrue(json.loads(resp.data)['success'])
        self.assertEqual(self._read_json(path), 'hello')

    def test_write_file_requires_data(self):
        resp = self.client.get('/write-file', query_string={'file_path': 'x.json'})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(json.loads(resp.data), {'error': 'data is required'})

    def test_write_file_invalid_json(self):
        path = os.path.join(self.tmp, 'a.json')
        resp = self.client.get('/write-file', query_string={'file_path': path, 'data': '{x'})
        data = json.loads(resp.data)
        self.assertFalse(data['success'])
        self.assertTrue(data['error'].startswith('Invalid JSON data'))

    def test_file_content_too_large(self):
        path = os.path.join(self.tmp, 'big.txt')
        self._write_json(path, 'x' * 2048)
        resp = self.client.get('/file-content', query_string={'file_path': path})
        data = json.loads(resp.data)
        self.assertFalse(data['success'])
        self.assertIn('too large', data['error'])

    def test_file_content_directory(self):
        resp = self.client.get('/file-content', query_string={'file_path': self.tmp})
        self.assertFalse(json.loads(resp.data)['success'])

    def test_file_info(self):
        resp = self.client.post('/file-info', json={'file_path': self.tmp})
        data = json.loads(resp.data)
        self.assertTrue(data['exists'])
        self.assertTrue(data['is_directory'])

    def test_delete_missing_file(self):
        resp = self.client.get('/delete-file',
                               query_string={'file_path': os.path.join(self.tmp, 'nope')})
        data = json.loads(resp.data)
        self.assertTrue(data['success'])
        self.assertFalse(data['deleted'])

    def test_delete_non_empty_directory(self):
        self._write_json(os.path.join(self.tmp, 'full', 'a.json'), '{}')
        resp = self.client.get('/delete-file',
                               query_string={'file_path': os.path.join(self.tmp, 'full')})
        data = json.loads(resp.data)
        self.assertFalse(data['success'])
        self.assertEqual(data['error'], 'Directory is not empty')

    def test_delete_empty_directory(self):
        path = os.path.join(self.tmp, 'empty')
        os.mkdir(path)
        resp = self.client.get('/delete-file', query_string={'file_path': path})
        self.assertTrue(json.loads(resp.data)['deleted'])


if __name__ == '__main__':
    unittest.main()

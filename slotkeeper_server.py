#!/usr/bin/env python3
"""
SlotKeeper server - HTTP API over a game server's player and slot save files.

Every endpoint accepts GET (parameters in the query string) or POST
(parameters in a JSON body) and answers with JSON.
"""

import argparse
import logging
import os
import sys
from functools import wraps
from typing import Any, Dict, Optional

from colorama import init, Fore, Style
from dotenv import load_dotenv
from flask import Blueprint, Flask, current_app, jsonify, request
from flask_cors import CORS

import slotkeeper
from app.errors import ConfigError, InvalidParameter, MissingParameter, SlotKeeperError
from app.repositories import FileRepository, PlayerRepository, SlotRepository
from app.services import FileService, PlayerService, SlotService

server_logger = logging.getLogger('slotkeeper.server')

api = Blueprint('api', __name__)

# Fields used to build filesystem paths; a JSON body must send them as strings.
IDENTIFIER_FIELDS = ('steamid', 'slot_id', 'old_slot_id', 'file_name', 'file_path')


def _services() -> Dict[str, Any]:
    return current_app.extensions['slotkeeper']


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def json_endpoint(*required: str, optional=()):
    """Decorator shared by all file endpoints.

    Collects parameters from the query string (GET) or JSON body (POST),
    rejects requests missing any of *required* or sending a non-string
    identifier with a 400, passes *required* and *optional* fields to the
    view as keyword arguments and converts
    :class:`~app.errors.SlotKeeperError` into ``{"success": false, "error": ...}``.
    """
    def decorator(f):
        name = f.__name__

        @wraps(f)
        def decorated_function():
            if request.method == 'GET':
                params = request.args.to_dict()
            else:
                params = request.get_json(force=True, silent=True)
                if not isinstance(params, dict):
                    server_logger.warning('%s: invalid JSON in POST request', name)
                    return jsonify({'error': 'Invalid JSON'}), 400

            missing = [field for field in required if _is_blank(params.get(field))]
            if missing:
                verb = 'is' if len(missing) == 1 else 'are'
                server_logger.warning('%s: missing parameters %s', name, missing)
                return jsonify({'error': f"{' and '.join(missing)} {verb} required"}), 400

            for field in required + tuple(optional):
                value = params.get(field)
                if field in IDENTIFIER_FIELDS and value is not None and not isinstance(value, str):
                    server_logger.warning('%s: non-string %s %r', name, field, value)
                    return jsonify({'error': f"{field} must be a string"}), 400

            kwargs = {field: params.get(field) for field in required + tuple(optional)}
            server_logger.info('%s: processing request %s', name,
                               {k: v for k, v in kwargs.items() if k != 'data'})
            try:
                result = f(**kwargs)
            except (MissingParameter, InvalidParameter) as e:
                server_logger.warning('%s: %s', name, e)
                return jsonify({'error': str(e)}), 400
            except SlotKeeperError as e:
                result = {'success': False, 'error': str(e)}
            except OSError as e:
                server_logger.exception('%s: unexpected I/O error', name)
                result = {'success': False, 'error': str(e)}

            server_logger.info('%s: response success=%s error=%s', name,
                               result.get('success', result.get('exists')),
                               result.get('error', ''))
            return jsonify(result)
        return decorated_function
    return decorator


# ===========================================================================
# Player endpoints
# ===========================================================================

@api.route('/check', methods=['GET', 'POST'])
@json_endpoint('steamid')
def check(steamid):
    """Report whether the player has an active save file."""
    return _services()['players'].check(steamid)


@api.route('/player-file', methods=['GET', 'POST'])
@json_endpoint('steamid')
def player_file(steamid):
    return {'success': True, 'content': _services()['players'].content(steamid)}


@api.route('/delete-player-file', methods=['GET', 'POST'])
@json_endpoint('steamid', optional=('backup',))
def delete_player_file(steamid, backup):
    return _services()['players'].delete(steamid, slotkeeper.parse_bool(backup))


# ===========================================================================
# Slot endpoints
# ===========================================================================

@api.route('/slot-file', methods=['GET', 'POST'])
@json_endpoint('steamid', 'slot_id')
def slot_file(steamid, slot_id):
    return {'success': True, 'content': _services()['slots'].content(steamid, slot_id)}


@api.route('/transfer', methods=['GET', 'POST'])
@json_endpoint('steamid', 'old_slot_id')
def transfer(steamid, old_slot_id):
    """Move the active save into a slot and remove the player file."""
    return _services()['slots'].transfer(steamid, old_slot_id)


@api.route('/empty-slot', methods=['GET', 'POST'])
@json_endpoint('steamid', 'old_slot_id')
def empty_slot(steamid, old_slot_id):
    return _services()['slots'].create_empty(steamid, old_slot_id)


@api.route('/restore-slot', methods=['GET', 'POST'])
@json_endpoint('steamid', 'slot_id')
def restore_slot(steamid, slot_id):
    """Copy a slot back over the player's active save."""
    return _services()['slots'].restore(steamid, slot_id)


@api.route('/write-slot', methods=['GET', 'POST'])
@json_endpoint('steamid', 'file_name', optional=('data',))
def write_slot(steamid, file_name, data):
    return _services()['slots'].write(steamid, file_name, data,
                                      from_query=request.method == 'GET')


@api.route('/delete-slot-file', methods=['GET', 'POST'])
@json_endpoint('steamid', 'slot_id', optional=('backup',))
def delete_slot_file(steamid, slot_id, backup):
    return _services()['slots'].delete(steamid, slot_id, slotkeeper.parse_bool(backup))


# ===========================================================================
# By-path file endpoints
# ===========================================================================

@api.route('/file-content', methods=['GET', 'POST'])
@json_endpoint('file_path')
def file_content(file_path):
    return _services()['files'].content(file_path)


@api.route('/write-file', methods=['GET', 'POST'])
@json_endpoint('file_path', 'data')
def write_file(file_path, data):
    return _services()['files'].write(file_path, data,
                                      from_query=request.method == 'GET')


@api.route('/file-info', methods=['GET', 'POST'])
@json_endpoint('file_path')
def file_info(file_path):
    return _services()['files'].info(file_path)


@api.route('/delete-file', methods=['GET', 'POST'])
@json_endpoint('file_path', optional=('backup',))
def delete_file(file_path, backup):
    return _services()['files'].delete(file_path, slotkeeper.parse_bool(backup))


# ===========================================================================
# Misc
# ===========================================================================

@api.route('/health', methods=['GET'])
def health():
    server_logger.debug('Health check requested from %s', request.remote_addr)
    return jsonify({'status': 'ok'})


@api.app_errorhandler(404)
def not_found(e):
    return jsonify({'error': 'Not found'}), 404


@api.app_errorhandler(405)
def method_not_allowed(e):
    server_logger.warning('Method not allowed: %s %s', request.method, request.path)
    return jsonify({'error': 'Method not allowed'}), 405


@api.app_errorhandler(500)
def internal_error(e):
    server_logger.error('Unhandled error on %s %s: %r', request.method, request.path,
                        getattr(e, 'original_exception', e))
    return jsonify({'error': 'Internal server error'}), 500


def create_app(config: Optional[Dict[str, Any]] = None) -> Flask:
    """Build the Flask application for *config* (defaults to :func:`load_config`)."""
    if config is None:
        config = slotkeeper.load_config()

    app = Flask(__name__)
    # keep document key order in responses
    app.json.sort_keys = False
    CORS(app, send_wildcard=True)

    backup_dir = config['backup_dir']
    app.extensions['slotkeeper'] = {
        'players': PlayerService(PlayerRepository(config['players_dir']), backup_dir=backup_dir),
        'slots': SlotService(PlayerRepository(config['players_dir']),
                             SlotRepository(config['slots_dir']),
                             slot_id_policy=config['slot_id_policy'],
                             backup_dir=backup_dir),
        'files': FileService(FileRepository(), max_size=config['max_file_size'],
                             backup_dir=backup_dir),
    }
    app.register_blueprint(api)
    return app


def _attach_file_handler(log_file: str, level: str) -> None:
    if not log_file:
        return
    try:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        fh = logging.FileHandler(log_file)
        fh.setFormatter(logging.Formatter('[%(asctime)s] %(levelname)s %(name)s: %(message)s'))
        fh.setLevel(getattr(logging, level.upper(), logging.INFO))
        logging.getLogger('slotkeeper').addHandler(fh)
    except OSError:
        server_logger.warning('Could not create log file handler for %s', log_file)


def main(argv=None):
    """Main entry point for the server"""
    parser = argparse.ArgumentParser(description='SlotKeeper save-slot file server')
    parser.add_argument('--config', default='config.json', help='Path to config file')
    parser.add_argument('--host', help='Interface to bind (overrides config)')
    parser.add_argument('--port', type=int, help='TCP port to listen on (overrides config)')
    parser.add_argument('--log-level', help='DEBUG, INFO, WARNING, ERROR or CRITICAL')
    args = parser.parse_args(argv)

    init(autoreset=True)
    load_dotenv()

    try:
        config = slotkeeper.load_config(args.config, overrides={
            'host': args.host,
            'port': args.port,
            'log_level': args.log_level,
        })
    except ConfigError as e:
        print(f"{Fore.RED}Error: {e}")
        sys.exit(1)

    slotkeeper.setup_logging(config['log_level'])
    _attach_file_handler(config['log_file'], config['log_level'])

    app = create_app(config)

    print(f"{Style.BRIGHT}SlotKeeper server starting on {config['host']}:{config['port']}")
    print(f"{Fore.CYAN}  players: {config['players_dir']}")
    print(f"{Fore.CYAN}  slots:   {config['slots_dir']}")
    print(f"{Fore.CYAN}  backups: {config['backup_dir']}")
    server_logger.info('Server started on port %s', config['port'])

    try:
        app.run(host=config['host'], port=config['port'], debug=False)
    except OSError as e:
        server_logger.error('Could not bind %s:%s: %s', config['host'], config['port'], e)
        sys.exit(1)
    except KeyboardInterrupt:
        print(f"\n{Fore.YELLOW}SlotKeeper server stopped")


if __name__ == "__main__":
    main()

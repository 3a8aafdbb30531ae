from flask import Blueprint, jsonify, request

from solotoon_app.csrf import csrf_protect
from solotoon_app.log import log
from solotoon_app.rate_limit import limit_light
from solotoon_app.storage import DEFAULT_SETTINGS, load_settings, save_settings
from . import get_services
from .validators import unknown_keys, validate_language

settings_bp = Blueprint('settings_api', __name__, url_prefix='/api')


@settings_bp.route('/settings', methods=['GET'])
@limit_light
def get_settings():
    return jsonify(load_settings(get_services()['store']))


@settings_bp.route('/settings', methods=['PUT'])
@limit_light
@csrf_protect
def update_settings():
    """
    Update user settings.

    Body:
        {"dataSaver": bool, "preferredLanguage": "en" | null}
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({'error': 'Expected a JSON object', 'code': 'BAD_REQUEST'}), 400

    payload = {k: v for k, v in payload.items() if k != '_csrf_token'}
    unknown = unknown_keys(payload, DEFAULT_SETTINGS)
    if unknown:
        return jsonify({'error': f"Unknown settings: {', '.join(unknown)}", 'code': 'BAD_REQUEST'}), 400

    if 'dataSaver' in payload and not isinstance(payload['dataSaver'], bool):
        return jsonify({'error': "Field 'dataSaver' must be bool", 'code': 'BAD_REQUEST'}), 400

    if 'preferredLanguage' in payload:
        lang = payload['preferredLanguage']
        if lang is not None and (not isinstance(lang, str) or validate_language(lang)):
            return jsonify({'error': 'Invalid language code', 'code': 'BAD_REQUEST'}), 400

    settings = save_settings(get_services()['store'], payload)
    log(f"⚙️ Settings updated: {', '.join(sorted(payload)) or 'nothing'}")
    return jsonify(settings)

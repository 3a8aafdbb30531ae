"""Image proxy API.

Passes allow-listed provider images through to the client with cache headers.
The `quality` parameter is accepted and ignored; images are served as-is.
"""

from typing import Tuple

import requests
from flask import Blueprint, Response, jsonify, request

from solotoon_app.log import log
from solotoon_app.rate_limit import limit_burst
from . import get_services

proxy_bp = Blueprint('proxy_api', __name__, url_prefix='/api/proxy')

FETCH_TIMEOUT = 15

# Session with proper headers for image proxying
session = requests.Session()
session.headers.update({
    'User-Agent': 'SoloToon/1.0'
})


def _validate_image_content(response: requests.Response) -> Tuple[bool, str]:
    """Validate response is actually an image."""
    content_type = response.headers.get('content-type', '').lower()
    base_type = content_type.split(';')[0].strip()
    if not base_type.startswith('image/'):
        return False, f'Not an image: {base_type or "unknown"}'
    return True, ''


@proxy_bp.route('/image', methods=['GET'])
@limit_burst
def proxy_image():
    """Proxy one image.

    Query Parameters:
        - src (required): original image URL
        - quality (optional): "low" when requested in data-saver mode
    """
    image_url = request.args.get('src', '').strip()
    image_proxy = get_services()['image_proxy']

    if not image_proxy.is_allowed_url(image_url):
        log(f'🚫 [SECURITY] Proxy rejected URL: {image_url[:100]}')
        return jsonify({'error': 'Image URL not allowed', 'code': 'BAD_REQUEST'}), 400

    try:
        response = session.get(image_url, timeout=FETCH_TIMEOUT, stream=True, allow_redirects=True)
        response.raise_for_status()

        # Redirect destination must be allowed too
        if response.url != image_url and not image_proxy.is_allowed_url(response.url):
            log(f'🚫 Redirect to disallowed URL: {response.url[:100]}')
            return jsonify({'error': 'Redirect blocked', 'code': 'BAD_REQUEST'}), 400

        is_image, error = _validate_image_content(response)
        if not is_image:
            log(f'⚠️ {error}')
            return jsonify({'error': error, 'code': 'BAD_GATEWAY'}), 502

        image_data = response.content
        if not image_data:
            return jsonify({'error': 'Empty image response', 'code': 'BAD_GATEWAY'}), 502

        content_type = response.headers.get('content-type', 'image/jpeg').split(';')[0].strip().lower()
        return Response(
            image_data,
            mimetype=content_type,
            headers={
                'Cache-Control': 'public, max-age=2592000, immutable',  # 30 days
                'X-Content-Type-Options': 'nosniff',
                'Access-Control-Allow-Origin': '*'
            }
        )

    except requests.Timeout:
        log(f'⏱️ Image proxy timeout: {image_url[:60]}... (>{FETCH_TIMEOUT}s)')
        return jsonify({'error': 'Image fetch timeout', 'code': 'TIMEOUT'}), 504

    except requests.HTTPError as e:
        status = e.response.status_code if e.response is not None else 502
        log(f'❌ Upstream image error {status}: {image_url[:60]}')
        return jsonify({'error': f'Upstream returned {status}', 'code': 'HTTP_ERROR', 'status': status}), 502

    except requests.RequestException as e:
        log(f'❌ Connection error: {str(e)[:100]}')
        return jsonify({'error': 'Failed to connect to source', 'code': 'NETWORK_ERROR'}), 502

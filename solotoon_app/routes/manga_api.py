from flask import Blueprint, jsonify, request

from solotoon_app.csrf import csrf_protect
from solotoon_app.log import log
from solotoon_app.rate_limit import limit_heavy, limit_light, limit_medium
from solotoon_app.search import serialize_search_response
from solotoon_app.search.aggregator import DEFAULT_BROWSE_PROVIDER
from solotoon_app.storage import load_settings
from . import get_services, run_async
from .validators import (
    MAX_QUERY_LENGTH, PROVIDER_ID_PATTERN, parse_bool, parse_provider_ids, sanitize_string,
    validate_language, validate_order, validate_pagination
)

manga_bp = Blueprint('manga_api', __name__, url_prefix='/api')


def _bad_request(message: str):
    return jsonify({'error': message, 'code': 'BAD_REQUEST'}), 400


# =============================================================================
# SEARCH
# =============================================================================

@manga_bp.route('/search', methods=['GET'])
@limit_heavy
def search():
    """
    Search every provider and return deduplicated results.

    Query Parameters:
        - q: search text (blank returns an empty page)
        - page: 1-based page number
        - limit: results per page
        - lang: language code (defaults to the stored preferred language)
        - providers: comma separated provider ids
    """
    services = get_services()
    query = sanitize_string(request.args.get('q', ''), max_length=MAX_QUERY_LENGTH)

    page, limit, error = validate_pagination(
        request.args.get('page'),
        request.args.get('limit'),
        default_limit=services['settings'].page_size
    )
    if error:
        return _bad_request(error)

    lang = request.args.get('lang') or load_settings(services['store']).get('preferredLanguage')
    error = validate_language(lang)
    if error:
        return _bad_request(error)

    providers, error = parse_provider_ids(request.args.get('providers'))
    if error:
        return _bad_request(error)

    result = run_async(services['aggregator'].search_multi(
        query, page=page, lang=lang, providers=providers, limit=limit
    ))
    return jsonify(serialize_search_response(result))


@manga_bp.route('/popular', methods=['GET'])
@limit_heavy
def popular():
    """
    Popular manga from a single provider.

    Query Parameters:
        - page: 1-based page number
        - provider: provider id (default: mangadex)
    """
    page, _, error = validate_pagination(request.args.get('page'))
    if error:
        return _bad_request(error)

    provider = request.args.get('provider') or DEFAULT_BROWSE_PROVIDER
    if not PROVIDER_ID_PATTERN.match(provider):
        return _bad_request("Invalid provider ID format")

    log(f"📚 Loading popular manga from {provider} (page {page})...")
    result = run_async(get_services()['aggregator'].get_popular(page=page, provider=provider))
    return jsonify(serialize_search_response(result))


@manga_bp.route('/search/suggestions', methods=['GET'])
@limit_heavy
def search_suggestions():
    """Search-as-you-type matches: ?q=...&provider=..."""
    query = sanitize_string(request.args.get('q', ''), max_length=MAX_QUERY_LENGTH)
    provider = request.args.get('provider') or DEFAULT_BROWSE_PROVIDER
    if not PROVIDER_ID_PATTERN.match(provider):
        return _bad_request("Invalid provider ID format")

    result = run_async(get_services()['aggregator'].suggest(query, provider=provider))
    return jsonify({'data': [manga.to_dict() for manga in result['data']]})


# =============================================================================
# SERIES / CHAPTERS / PAGES
# =============================================================================

@manga_bp.route('/manga/<global_id>', methods=['GET'])
@limit_medium
def manga_details(global_id):
    manga = run_async(get_services()['aggregator'].get_details(global_id))
    return jsonify(manga.to_dict())


@manga_bp.route('/manga/<global_id>/chapters', methods=['GET'])
@limit_medium
def manga_chapters(global_id):
    lang = request.args.get('lang') or None
    order = request.args.get('order', 'asc')
    error = validate_language(lang) or validate_order(order)
    if error:
        return _bad_request(error)

    chapters = run_async(get_services()['aggregator'].get_chapters(global_id, lang=lang, order=order))
    return jsonify({'chapters': [c.to_dict() for c in chapters], 'count': len(chapters)})


@manga_bp.route('/chapters/<global_id>/pages', methods=['GET'])
@limit_medium
def chapter_pages(global_id):
    services = get_services()
    default_saver = bool(load_settings(services['store']).get('dataSaver'))
    data_saver = parse_bool(request.args.get('data_saver'), default=default_saver)

    pages = run_async(services['aggregator'].get_pages(global_id, data_saver=data_saver))
    return jsonify({'pages': [p.to_dict() for p in pages], 'count': len(pages)})


# =============================================================================
# PROVIDERS AND CACHE
# =============================================================================

@manga_bp.route('/sources', methods=['GET'])
@limit_light
def list_sources():
    providers = get_services()['aggregator'].list_providers()
    return jsonify({'sources': providers, 'count': len(providers)})


@manga_bp.route('/cache/stats', methods=['GET'])
@limit_light
def cache_stats():
    return jsonify(get_services()['aggregator'].cache_stats())


@manga_bp.route('/cache/clear', methods=['POST'])
@limit_light
@csrf_protect
def clear_cache():
    get_services()['aggregator'].clear_cache()
    log("🧹 Caches cleared")
    return jsonify({'status': 'cleared'})

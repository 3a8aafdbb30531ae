# Load environment variables FIRST before any other imports
from dotenv import load_dotenv
load_dotenv()

import atexit
import os
import secrets
import time
import uuid
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Dict, Optional

from flask import Flask, g, jsonify, request

from sources import ProviderRegistry, build_registry, default_provider_configs
from sources.errors import MangaApiError
from sources.http_client import HostRateLimiter, JsonTransport


def create_app(
    test_config: Optional[Dict[str, Any]] = None,
    settings=None,
    registry: Optional[ProviderRegistry] = None,
    store=None
):
    """Create and configure an instance of the Flask application.

    Args:
        test_config: values applied over the default Flask config
        settings: config.Settings (read from the environment when omitted)
        registry: provider registry (Consumet providers when omitted)
        store: KeyValueStore for user settings
    """
    from .config import Settings
    from .storage import JsonFileStore

    settings = settings or Settings.from_env()

    app = Flask(__name__, instance_relative_config=True)

    # =============================================================================
    # CONFIGURATION
    # =============================================================================
    def get_or_create_secret_key() -> str:
        env_key = os.environ.get('SECRET_KEY')
        if env_key:
            return env_key
        key_file = os.path.join(app.instance_path, '.secret_key')
        if os.path.exists(key_file):
            with open(key_file, 'r') as f:
                return f.read().strip()
        new_key = secrets.token_hex(32)
        with open(key_file, 'w') as f:
            f.write(new_key)
        return new_key

    # Ensure instance folder exists
    os.makedirs(app.instance_path, exist_ok=True)

    app.config.from_mapping(
        JSON_SORT_KEYS=False,
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE='Lax',
        RATELIMIT_STORAGE_URI=settings.ratelimit_storage_uri,
        # How long a view waits on the background loop before answering 504
        AGGREGATOR_WAIT_SECONDS=settings.request_timeout * 3,
        HOST=settings.host,
        PORT=settings.port,
        DEBUG=settings.debug,
    )
    if test_config:
        app.config.update(test_config)
    if not app.config.get('SECRET_KEY'):
        app.config['SECRET_KEY'] = get_or_create_secret_key()

    # =============================================================================
    # LOGGING, CSRF, RATE LIMITING
    # =============================================================================
    from .log import attach_library_loggers, debug_log_event, log
    from .csrf import ensure_csrf_token, get_csrf_token
    from .rate_limit import init_rate_limiting

    attach_library_loggers('sources', 'solotoon_app')
    init_rate_limiting(app)

    @app.before_request
    def assign_request_id():
        g.request_id = uuid.uuid4().hex[:12]
        g.request_start = time.time()

    @app.after_request
    def debug_request_log(response):
        path = request.path or ''
        if path.startswith('/static') or path.startswith('/favicon'):
            return response
        start_time = getattr(g, 'request_start', None)
        debug_log_event({
            'event': 'request',
            'request_id': getattr(g, 'request_id', None),
            'method': request.method,
            'path': path,
            'query': request.query_string.decode('utf-8', errors='ignore'),
            'status': response.status_code,
            'duration_ms': int((time.time() - start_time) * 1000) if start_time else None,
            'remote_addr': request.remote_addr,
        })
        return response

    @app.teardown_request
    def debug_exception_log(error=None):
        if not error:
            return
        debug_log_event({
            'event': 'exception',
            'request_id': getattr(g, 'request_id', None),
            'path': request.path,
            'error_type': error.__class__.__name__,
            'error': str(error)
        })

    app.before_request(ensure_csrf_token)

    @app.route('/api/csrf-token')
    def csrf_token_route():
        return get_csrf_token()

    # =============================================================================
    # ERROR HANDLERS
    # =============================================================================
    @app.errorhandler(MangaApiError)
    def handle_manga_api_error(error: MangaApiError):
        log(f"⚠️ {error.code}: {error}")
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(FutureTimeoutError)
    def handle_wait_timeout(error):
        log(f"⏱️ Request exceeded {app.config['AGGREGATOR_WAIT_SECONDS']}s")
        return jsonify({'error': 'Upstream providers did not answer in time', 'code': 'TIMEOUT'}), 504

    # =============================================================================
    # AGGREGATION SERVICES
    # =============================================================================
    from .async_runner import AsyncRunner
    from .image_proxy import ImageProxy
    from .search import MangaAggregator, SearchDeduplicator

    transport = None
    if registry is None:
        transport = JsonTransport(
            limiter=HostRateLimiter(settings.rate_limit_tokens, settings.rate_limit_period),
            timeout=settings.request_timeout,
            retry_backoff=settings.retry_backoff,
        )
        registry = build_registry(transport, default_provider_configs(settings.consumet_url))

    if store is None:
        store = JsonFileStore(settings.store_path or os.path.join(app.instance_path, "store.json"))

    image_proxy = ImageProxy()
    aggregator = MangaAggregator(
        registry,
        deduplicator=SearchDeduplicator(registry.priorities(), settings.match_threshold),
        image_proxy=image_proxy,
        page_size=settings.page_size,
        search_cache_size=settings.search_cache_size,
        details_cache_size=settings.details_cache_size,
        chapters_cache_size=settings.chapters_cache_size,
    )
    runner = AsyncRunner()

    app.extensions['solotoon'] = {
        'settings': settings,
        'registry': registry,
        'aggregator': aggregator,
        'image_proxy': image_proxy,
        'store': store,
        'runner': runner,
    }

    def shutdown():
        if transport is not None and runner.running:
            runner.run(transport.close(), timeout=5)
        runner.stop()

    atexit.register(shutdown)

    # =============================================================================
    # BLUEPRINTS & ROUTES
    # =============================================================================
    from .routes.manga_api import manga_bp
    from .routes.proxy_api import proxy_bp
    from .routes.settings_api import settings_bp

    app.register_blueprint(manga_bp)
    app.register_blueprint(proxy_bp)
    app.register_blueprint(settings_bp)

    log("=" * 60)
    log("  SoloToon v1.0 - Multi-Source Manga Aggregator")
    log("=" * 60)
    log(f"📚 Loaded {len(registry)} providers:")
    for provider in registry.sorted_by_priority():
        log(f"   {provider.to_dict().get('icon', '📚')} {provider.name} ({provider.id}, priority {provider.priority})")
    log(f"🌐 Server: http://{app.config['HOST']}:{app.config['PORT']}")
    if app.config['DEBUG']:
        log("⚠️  Debug mode is ON - do not use in production!")

    return app

# App instance should be created by the caller (run.py or WSGI entrypoint)

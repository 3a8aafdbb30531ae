"""
Rate limiting configuration for the SoloToon API.

Uses Flask-Limiter to protect API endpoints from abuse.

Rate Limit Tiers:
- Heavy: /api/search, /api/popular, /api/search/suggestions (provider fan-out)
- Medium: /api/manga/*, /api/chapters/* (one provider call)
- Light: /api/sources, /api/settings, /api/cache/* (local reads)
- Burst: /api/proxy/image (high volume)
"""

import os
from flask import jsonify
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Initialize limiter (will be attached to app in create_app)
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=os.environ.get("RATELIMIT_STORAGE_URI", "memory://"),
    strategy="fixed-window",
    headers_enabled=True,  # Add X-RateLimit-* headers to responses
)


# ==============================================================================
# RATE LIMIT TIERS
# ==============================================================================

# Heavy operations - parallel provider queries
HEAVY_LIMIT = "20 per minute"

# Medium operations - single provider calls
MEDIUM_LIMIT = "60 per minute"

# Light operations - fast reads
LIGHT_LIMIT = "120 per minute"

# Burst operations - manga pages and covers through the image proxy
BURST_LIMIT = "1200 per minute"


# ==============================================================================
# RATE LIMIT DECORATORS
# ==============================================================================

def limit_heavy(f):
    """Apply heavy rate limit to expensive operations like search."""
    return limiter.limit(HEAVY_LIMIT)(f)


def limit_medium(f):
    """Apply medium rate limit to moderate operations."""
    return limiter.limit(MEDIUM_LIMIT)(f)


def limit_light(f):
    """Apply light rate limit to cheap operations."""
    return limiter.limit(LIGHT_LIMIT)(f)


def limit_burst(f):
    """Apply burst rate limit to high-volume operations."""
    return limiter.limit(BURST_LIMIT)(f)


# ==============================================================================
# ERROR HANDLER
# ==============================================================================

def rate_limit_exceeded_handler(e):
    """JSON body for 429 responses."""
    retry_after = getattr(e, 'retry_after', None) or 60
    return jsonify({
        "error": "Rate limit exceeded",
        "code": "RATE_LIMITED",
        "message": str(e.description),
        "retry_after": retry_after
    }), 429


def init_rate_limiting(app):
    """
    Initialize rate limiting for a Flask app.

    Call this in create_app() after app configuration.
    """
    app.config.setdefault('RATELIMIT_ENABLED', not app.config.get('DISABLE_RATE_LIMITING', False))
    limiter.init_app(app)

    # Register custom error handler
    app.errorhandler(429)(rate_limit_exceeded_handler)

    return limiter

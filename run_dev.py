#!/usr/bin/env python3
"""
SoloToon Development Server
Runs Flask on port 5000 with rate limiting off
"""
from solotoon_app import create_app

if __name__ == '__main__':
    app = create_app({'DISABLE_RATE_LIMITING': True})
    app.run(
        host='0.0.0.0',
        port=5000,
        debug=True,
        use_reloader=False
    )

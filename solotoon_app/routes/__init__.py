"""HTTP blueprints."""

from flask import current_app


def get_services() -> dict:
    """Shared objects built by create_app() (aggregator, runner, store...)."""
    return current_app.extensions['solotoon']


def run_async(coro):
    """Run a coroutine on the app's background loop and wait for the result."""
    services = get_services()
    return services['runner'].run(coro, timeout=current_app.config.get('AGGREGATOR_WAIT_SECONDS'))

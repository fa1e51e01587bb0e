# shared/common/health.py
"""
Liveness and readiness endpoints.

Readiness covers the database (bookings and slot counters), the cache
(also the Redis connection events are published on) and the configured
event backend.
"""

import logging
import time
import uuid
from typing import Any, Callable, Dict

from django.conf import settings
from django.core.cache import cache
from django.db import connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)

HEALTHY = 'healthy'
UNHEALTHY = 'unhealthy'
EVENT_BACKENDS = ('log', 'redis', 'memory')


# =============================================================================
# CHECKS
# =============================================================================

def _database() -> None:
    with connection.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()


def _cache() -> None:
    key = f"readiness:{uuid.uuid4().hex}"
    cache.set(key, 'ok', 10)
    try:
        if cache.get(key) != 'ok':
            raise RuntimeError("Cache read/write mismatch")
    finally:
        cache.delete(key)


def _event_backend() -> None:
    backend = getattr(settings, 'EVENT_BACKEND', 'log')
    if backend not in EVENT_BACKENDS:
        raise RuntimeError(f"Unknown event backend '{backend}'")


def run_check(name: str, check: Callable[[], None]) -> Dict[str, Any]:
    """Run one check and report its status and latency."""
    started = time.monotonic()
    try:
        check()
    except Exception as e:
        logger.error(f"Readiness check '{name}' failed: {e}")
        return {'status': UNHEALTHY, 'error': str(e)}
    return {
        'status': HEALTHY,
        'latency_ms': round((time.monotonic() - started) * 1000, 2),
    }


# =============================================================================
# VIEWS
# =============================================================================

def health_check(request):
    """Liveness: the process is up and serving."""
    return JsonResponse({
        'status': HEALTHY,
        'service': settings.SERVICE_NAME,
        'version': settings.SERVICE_VERSION,
    })


def readiness_check(request):
    checks = {
        'database': run_check('database', _database),
        'cache': run_check('cache', _cache),
        'events': run_check('events', _event_backend),
    }
    ready = all(check['status'] == HEALTHY for check in checks.values())

    return JsonResponse({
        'status': 'ready' if ready else 'not_ready',
        'service': settings.SERVICE_NAME,
        'checks': checks,
    }, status=200 if ready else 503)

"""
Caching utilities for dashboard KPIs

Keys carry a per-shop version number; bumping the version invalidates every
cached KPI of that shop without scanning the key space, so the same code works
on Redis (django-redis) and on the local-memory cache.
"""
from django.conf import settings
from django.core.cache import cache
import hashlib
import logging

logger = logging.getLogger(__name__)

VERSION_KEY = "dashboard_version:{shop_id}"


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def _dashboard_version(shop_id):
    return cache.get_or_set(VERSION_KEY.format(shop_id=shop_id or 'all'), 1, None)


def dashboard_cache_key(name, shop_id, *args):
    version = _dashboard_version(shop_id)
    return make_cache_key(f"dashboard_{name}", shop_id or 'all', version, *args)


def get_cached_dashboard(name, shop_id, *args):
    """Returns tuple: (cached_data, cache_key)"""
    cache_key = dashboard_cache_key(name, shop_id, *args)
    cached_data = cache.get(cache_key)
    if cached_data is not None:
        logger.debug(f"Cache HIT for {name}: {cache_key}")
    return cached_data, cache_key


def cache_dashboard(cache_key, data, ttl=None):
    cache.set(cache_key, data, ttl if ttl is not None else settings.SHOPDESK_DASHBOARD_CACHE_TTL)
    logger.debug(f"Cached dashboard data: {cache_key}")


def invalidate_dashboard_cache(shop_id=None):
    """Invalidate the KPIs of one shop and the platform-wide ones"""
    for key in {VERSION_KEY.format(shop_id=shop_id or 'all'), VERSION_KEY.format(shop_id='all')}:
        try:
            cache.incr(key)
        except ValueError:
            cache.set(key, 2, None)
    logger.debug(f"Invalidated dashboard cache for shop {shop_id}")

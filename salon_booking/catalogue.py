"""Cached reads of the service list and the weekly schedule.

Values stored in the cache are plain JSON-compatible dicts so they survive
the Redis backend.
"""
from __future__ import annotations

import logging

from .cache import (AVAILABILITY_ACTIVE, SERVICES_ACTIVE, SERVICES_ALL,
                    WORKING_DAYS, TTLCache, service_key)
from .extensions import db
from .models import Service, WeeklyAvailability
from .scheduling.availability import WEEK, working_days

logger = logging.getLogger(__name__)

_DAY_ORDER = {day.value: index for index, day in enumerate(WEEK)}


def list_services(cache: TTLCache, include_inactive: bool = False) -> list[dict]:
    key = SERVICES_ALL if include_inactive else SERVICES_ACTIVE
    cached = cache.get(key)
    if cached is not None:
        return cached

    query = Service.query
    if not include_inactive:
        query = query.filter(Service.is_active.is_(True))
    services = [s.to_dict() for s in query.order_by(Service.display_order, Service.name).all()]
    cache.set(key, services)
    return services


def get_service(cache: TTLCache, service_id: int) -> dict | None:
    cached = cache.get(service_key(service_id))
    if cached is not None:
        return cached

    service = db.session.get(Service, service_id)
    if service is None:
        return None
    data = service.to_dict()
    cache.set(service_key(service_id), data)
    return data


def invalidate_services(cache: TTLCache, service_id: int | None = None) -> None:
    keys = [SERVICES_ACTIVE, SERVICES_ALL]
    if service_id is not None:
        keys.append(service_key(service_id))
    cache.invalidate(*keys)
    logger.info("Service cache invalidated (service=%s)", service_id)


def list_weekly_availability(cache: TTLCache, include_inactive: bool = False) -> list[dict]:
    if not include_inactive:
        cached = cache.get(AVAILABILITY_ACTIVE)
        if cached is not None:
            return cached

    query = WeeklyAvailability.query
    if not include_inactive:
        query = query.filter(WeeklyAvailability.is_active.is_(True))
    rows = sorted(query.all(), key=lambda w: (_DAY_ORDER[w.day_of_week], w.start_time))
    windows = [row.to_dict() for row in rows]

    if not include_inactive:
        cache.set(AVAILABILITY_ACTIVE, windows)
    return windows


def get_working_days(cache: TTLCache) -> list[str]:
    cached = cache.get(WORKING_DAYS)
    if cached is not None:
        return cached

    rows = WeeklyAvailability.query.filter(WeeklyAvailability.is_active.is_(True)).all()
    days = [day.value for day in working_days(rows)]
    cache.set(WORKING_DAYS, days)
    return days


def invalidate_availability(cache: TTLCache) -> None:
    cache.invalidate(AVAILABILITY_ACTIVE, WORKING_DAYS)

"""
Core views providing infrastructure endpoints.

This module contains views that are not part of the business domain but are
essential for application infrastructure, such as health checks.
"""

import os

from django.conf import settings
from django.db import connection
from django.http import JsonResponse


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Returns:
        JsonResponse with status and component health:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "disconnected"
        - cache: "connected" or "disconnected"
        - job_spool: "writable", "missing" or "readonly"

    HTTP Status Codes:
        200: All systems operational
        503: Database unreachable

    Note:
        Cache and job spool problems degrade email delivery (the worker
        handoff falls back to synchronous sends) but do not fail the check.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
        "job_spool": "unknown",
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except Exception:
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    try:
        from django.core.cache import cache

        cache.set("health_check", "ok", timeout=1)
        if cache.get("health_check") == "ok":
            health_status["cache"] = "connected"
        else:
            health_status["cache"] = "disconnected"
    except Exception:
        health_status["cache"] = "disconnected"

    job_dir = str(settings.NOTIFICATION_JOB_DIR)
    if not os.path.isdir(job_dir):
        # Created lazily on the first spawn
        health_status["job_spool"] = "missing"
    elif os.access(job_dir, os.W_OK):
        health_status["job_spool"] = "writable"
    else:
        health_status["job_spool"] = "readonly"

    status_code = 200 if is_healthy else 503

    return JsonResponse(health_status, status=status_code)

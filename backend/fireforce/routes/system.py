# backend/fireforce/routes/system.py
"""
System health and status endpoints.

/health checks the configured record store and the local store;
/api/system/status reports which store is active and whether the service
fell back to local data.
"""

import time
from flask import Blueprint, current_app, jsonify

from ..decorators import require_auth, require_role
from ..extensions import services
from ..services.data_service import PersistenceError
from ..services.record_schemas import ROLE_OFFICE
from ..store import CUSTOMERS, StoreError
from fireforce.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_store_health(store) -> dict:
    """
    Probe one record store with a cheap read.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        customer_count = len(store.load_all(CUSTOMERS))
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"backend": store.name, "customers": customer_count},
        }
    except StoreError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("%s store health check failed", store.name)
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Store error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: configured store healthy (or local store healthy while degraded)
    - 503: no usable store
    """
    start_time = time.time()
    bundle = services()

    primary = check_store_health(bundle.data.primary_store)
    checks = {"primary_store": primary}
    if bundle.data.primary_store is not bundle.local_store:
        checks["local_store"] = check_store_health(bundle.local_store)

    statuses = [check["status"] for check in checks.values()]
    if primary["status"] == "healthy":
        overall_status, http_status = "healthy", 200
    elif "healthy" in statuses:
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "unhealthy", 503

    response = {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }
    return response, http_status


@system_bp.get("/api/system/status")
@require_auth
@require_role(ROLE_OFFICE)
def system_status():
    bundle = services()
    try:
        bundle.data.ensure_loaded()
    except PersistenceError as exc:
        current_app.logger.exception("Status check could not load data")
        return jsonify({"error": str(exc)}), 500
    return jsonify({
        "system": current_app.config["SYSTEM_NAME"],
        "data": bundle.data.status(),
        "scheduler": {
            "running": bundle.scheduler.running,
            "autoBackupEnabled": bundle.scheduler.is_enabled(),
            "backupDue": bundle.scheduler.is_backup_due(),
        },
    })

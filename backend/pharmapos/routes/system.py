# backend/pharmapos/routes/system.py
"""
System health and version endpoints.

/api/health reports database reachability plus the seed data a sale needs
(an active user and the senior/PWD discount row). Missing seed data is
"degraded", not "unhealthy": sales still work through the configured
fallbacks.
"""

import sys
import time

from flask import Blueprint, current_app

from ..extensions import db
from ..models import Discount, Product, User
from ..time_utils import utcnow

API_VERSION = "1.0.0"

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        user_count = db.session.query(User).filter(User.is_active.is_(True)).count()
        product_count = db.session.query(Product).filter(Product.is_active.is_(True)).count()
        discount_configured = (
            db.session.query(Discount)
            .filter(Discount.name == current_app.config["SENIOR_DISCOUNT_NAME"])
            .count()
            > 0
        )
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }

    elapsed_ms = (time.time() - start_time) * 1000
    details = {
        "active_users": user_count,
        "active_products": product_count,
        "senior_discount_configured": discount_configured,
    }

    warnings = []
    if user_count == 0:
        warnings.append("No active users")
    if not discount_configured:
        warnings.append("Senior/PWD discount row missing; default percent applies")

    if warnings:
        return {
            "status": "degraded",
            "latency_ms": round(elapsed_ms, 2),
            "warning": "; ".join(warnings),
            "details": details,
        }
    return {"status": "healthy", "latency_ms": round(elapsed_ms, 2), "details": details}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    database_health = check_database_health()
    http_status = 503 if database_health["status"] == "unhealthy" else 200

    return {
        "status": database_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {"database": database_health},
    }, http_status


@system_bp.get("/version")
def version():
    """Non-sensitive deployment info; never exposes secrets or DB credentials."""
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": API_VERSION,
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }

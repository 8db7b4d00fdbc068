# backend/storefront/routes/system.py
"""
System health, version and index endpoints.
"""

import sys
import time

from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Cart, Order, Product, Promo
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)

API_VERSION = "1.0.0"


def check_database_health() -> dict:
    """Row counts for the core tables, timed."""
    start_time = time.time()
    try:
        details = {
            "products": db.session.query(Product).count(),
            "promos": db.session.query(Promo).count(),
            "orders": db.session.query(Order).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2), "details": details}
    except SQLAlchemyError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "latency_ms": round(elapsed_ms, 2), "error": "Database error"}


def check_cart_expiry_health() -> dict:
    """Expired carts still on disk; non-zero means the purge job is behind."""
    start_time = time.time()
    try:
        expired = db.session.query(Cart).filter(Cart.expires_at <= utcnow()).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy" if expired == 0 else "degraded",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"expired_pending_purge": expired},
        }
    except SQLAlchemyError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Cart expiry health check failed")
        return {"status": "unhealthy", "latency_ms": round(elapsed_ms, 2), "error": "Database error"}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: a dependency is unhealthy
    """
    start_time = time.time()
    database_health = check_database_health()
    cart_health = check_cart_expiry_health()

    checks = [database_health, cart_health]
    if any(c["status"] == "unhealthy" for c in checks):
        overall_status, http_status = "unhealthy", 503
    elif any(c["status"] == "degraded" for c in checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "success": http_status == 200,
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "cart_expiry": cart_health,
        },
    }, http_status


@system_bp.get("/version")
def version():
    env = "production" if not current_app.debug else "development"
    return {
        "success": True,
        "api_version": API_VERSION,
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }


@system_bp.get("/")
def index():
    return {
        "success": True,
        "message": "Welcome to the storefront API",
        "version": API_VERSION,
        "endpoints": {
            "products": "/api/products",
            "cart": "/api/cart",
            "promos": "/api/promos",
            "orders": "/api/orders",
        },
    }

# Overview: Dashboard statistics route.

from flask import Blueprint

from ..decorators import require_auth
from ..services import products_service

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/stats")
@require_auth
def stats_route():
    """Stock totals, stock value and low-stock count across all products."""
    return products_service.get_statistics(), 200

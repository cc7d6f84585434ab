import logging
from datetime import datetime

from flask import Blueprint, jsonify, current_app
from sqlalchemy.sql import text

from drillsync.extensions import db
from drillsync.services.container import get_container

health_bp = Blueprint('health', __name__)
log = logging.getLogger(__name__)
start_time = datetime.utcnow()


def _check_db_connection():
    try:
        db.session.execute(text('SELECT 1'))
        return True
    except Exception as e:
        log.error(f"Database health check failed: {e}")
        return False


@health_bp.route('/')
def index():
    """Return service health as JSON."""
    container = get_container()
    store = container.store
    db_ok = _check_db_connection()
    return jsonify({
        'status': 'ok' if db_ok and not store.using_fallback else 'degraded',
        'version': current_app.config.get('VERSION', '1.0.0'),
        'timestamp': datetime.utcnow().isoformat(),
        'uptime': str(datetime.utcnow() - start_time).split('.')[0],
        'database': 'connected' if db_ok else 'disconnected',
        'storage': 'memory-fallback' if store.using_fallback else 'persistent',
        'online': container.connectivity.is_online,
        'pending': store.pending_count()['total'],
    })

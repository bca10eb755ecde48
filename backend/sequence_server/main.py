from flask import Blueprint, jsonify
from datetime import datetime, timezone
import time

main = Blueprint('main', __name__)

_started_at = time.time()


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


@main.route('/')
def index():
    return jsonify({'message': 'Sequence game server is running!', 'timestamp': _now_iso()})


@main.route('/health')
def health():
    return jsonify({
        'status': 'healthy',
        'uptime': round(time.time() - _started_at, 3),
        'timestamp': _now_iso(),
    })

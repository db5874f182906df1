#!/usr/bin/env python3
"""
Circuit Sketch API Server
Exposes the normalization pipeline to a drawing front-end over HTTP.
"""

import os
import logging
import threading
import time
from typing import Dict, Optional
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from flask import Flask, request, jsonify
from flask_cors import CORS
from PIL import UnidentifiedImageError

from .exceptions import NormalizationFailure
from .models.raster_image import RasterImage
from .models.target_dimensions import TargetDimensions
from .repositories.drawing_repository import DrawingRepository
from .services.image_service import ImageService
from .services.normalization_service import NormalizationService
from .services.normalization_dispatcher import NormalizationDispatcher

app = Flask(__name__)
CORS(app)  # Enable CORS for frontend communication

# Configuration
MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_SIZE_MB", "20")) * 1024 * 1024
app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH
MAX_TARGET_SIDE = int(os.getenv("MAX_TARGET_SIDE", "4096"))
MAX_SESSIONS = int(os.getenv("MAX_SESSIONS", "32"))
SESSION_IDLE_TTL_S = float(os.getenv("SESSION_IDLE_TTL_S", "900"))

# Initialize services
image_service = ImageService()
normalization_service = NormalizationService(image_service=image_service)
drawing_repository = DrawingRepository()

logger = logging.getLogger(__name__)

# Per-canvas state: each session owns a dispatcher and its result slot
sessions: Dict[str, "CanvasSession"] = {}
_sessions_lock = threading.Lock()


class CanvasSession:
    """Background analysis state for a single drawing canvas."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self.dispatcher = NormalizationDispatcher(normalization_service)
        self.last_used = time.monotonic()

    def touch(self):
        self.last_used = time.monotonic()

    def clear(self):
        self.dispatcher.shutdown(wait=False)


def _evict_sessions(keep: str) -> list:
    """Drop idle sessions, then the least recently used ones while at capacity. Caller holds the lock."""
    now = time.monotonic()
    evicted = [s for sid, s in sessions.items()
               if sid != keep and now - s.last_used > SESSION_IDLE_TTL_S]
    for session in evicted:
        del sessions[session.session_id]

    while len(sessions) >= MAX_SESSIONS and sessions:
        oldest = min(sessions.values(), key=lambda s: s.last_used)
        del sessions[oldest.session_id]
        evicted.append(oldest)
    return evicted


def get_or_create_session(session_id: str) -> CanvasSession:
    with _sessions_lock:
        session = sessions.get(session_id)
        evicted = _evict_sessions(keep=session_id) if session is None else []
        if session is None:
            session = sessions[session_id] = CanvasSession(session_id)
        session.touch()

    for old in evicted:
        old.clear()
        logger.info(f"Evicted session {old.session_id}")
    return session


def _requested_target() -> TargetDimensions:
    """Target from form/query/JSON fields, falling back to the configured one."""
    default = TargetDimensions.from_env()
    body = request.get_json(silent=True) if request.is_json else None
    source = body if isinstance(body, dict) else request.values
    try:
        target = TargetDimensions(
            width=int(source.get('width', default.width)),
            height=int(source.get('height', default.height)),
        )
    except (TypeError, ValueError, OverflowError):
        raise ValueError("width and height must be integers")
    if max(target.width, target.height) > MAX_TARGET_SIDE:
        raise ValueError(f"width and height must not exceed {MAX_TARGET_SIDE}")
    return target


def _uploaded_image() -> RasterImage:
    if 'image' not in request.files:
        raise ValueError("No image provided")
    file = request.files['image']
    if file.filename == '':
        raise ValueError("No file selected")
    try:
        return image_service.from_bytes(file.read())
    except UnidentifiedImageError:
        raise ValueError("Uploaded file is not a readable image")


def _normalized_response(snapshot: RasterImage, target: TargetDimensions):
    try:
        result = normalization_service.normalize(snapshot, target)
    except NormalizationFailure as e:
        logger.warning(f"Normalization failed: {e}")
        return jsonify({'success': False, 'message': str(e)}), 422

    return jsonify({
        'success': True,
        'width': result.width,
        'height': result.height,
        'image': image_service.to_data_url(result),
    })


def _result_payload(session: CanvasSession) -> dict:
    latest = session.dispatcher.slot.latest
    return {
        'session_id': session.session_id,
        'processing': session.dispatcher.slot.is_processing,
        'sequence': latest.sequence if latest else None,
        'image': image_service.to_data_url(latest.image) if latest and latest.ok else None,
        'error': str(latest.error) if latest and latest.error else None,
    }


@app.route('/api/health', methods=['GET'])
def health_check():
    target = TargetDimensions.from_env()
    return jsonify({
        'status': 'healthy',
        'target': {'width': target.width, 'height': target.height},
        'active_sessions': len(sessions),
    })


@app.route('/api/normalize', methods=['POST'])
def normalize_image():
    """Normalize an uploaded raster snapshot."""
    try:
        snapshot = _uploaded_image()
        target = _requested_target()
    except ValueError as e:
        return jsonify({'success': False, 'message': str(e)}), 400

    logger.info(f"Normalizing upload {snapshot.width}x{snapshot.height} → {target.width}x{target.height}")
    return _normalized_response(snapshot, target)


@app.route('/api/normalize-drawing', methods=['POST'])
def normalize_drawing():
    """Rasterize a stroke drawing (JSON) and normalize it."""
    try:
        drawing = drawing_repository.from_dict(request.get_json(silent=True))
        snapshot = drawing_repository.rasterize(drawing, scale=1.0)
        target = _requested_target()
    except ValueError as e:
        return jsonify({'success': False, 'message': str(e)}), 400

    logger.info(f"Normalizing drawing with {len(drawing.strokes)} strokes")
    return _normalized_response(snapshot, target)


@app.route('/api/detect-components', methods=['POST'])
def detect_components():
    try:
        image = _uploaded_image()
    except ValueError as e:
        return jsonify({'success': False, 'message': str(e)}), 400

    components = normalization_service.detect_components(image)
    return jsonify({
        'success': True,
        'components': [c.to_dict() for c in components],
    })


@app.route('/api/sessions/<session_id>/analyze', methods=['POST'])
def analyze_in_background(session_id: str):
    """Queue a drawing for background normalization; poll /result for the outcome."""
    try:
        drawing = drawing_repository.from_dict(request.get_json(silent=True))
        snapshot = drawing_repository.rasterize(drawing, scale=1.0)
        target = _requested_target()
    except ValueError as e:
        return jsonify({'success': False, 'message': str(e)}), 400

    session = get_or_create_session(session_id)
    try:
        submission = session.dispatcher.submit(snapshot, target)
    except RuntimeError:
        return jsonify({'success': False, 'message': 'Session was cleared'}), 409

    return jsonify({'success': True, 'session_id': session_id, 'sequence': submission.sequence}), 202


@app.route('/api/sessions/<session_id>/result', methods=['GET'])
def session_result(session_id: str):
    with _sessions_lock:
        session: Optional[CanvasSession] = sessions.get(session_id)
        if session is not None:
            session.touch()
    if session is None:
        return jsonify({'success': False, 'message': 'Unknown session'}), 404
    return jsonify({'success': True, **_result_payload(session)})


@app.route('/api/clear-session', methods=['POST'])
def clear_session():
    data = request.get_json(silent=True) or {}
    session_id = data.get('session_id')
    with _sessions_lock:
        session = sessions.pop(session_id, None)
    if session is None:
        return jsonify({'success': False, 'message': 'Unknown session'}), 404
    session.clear()
    logger.info(f"Cleared session {session_id}")
    return jsonify({'success': True, 'message': 'Session cleared'})


@app.errorhandler(413)
def too_large(e):
    return jsonify({'success': False, 'message': 'File too large'}), 413


@app.errorhandler(400)
def bad_request(e):
    return jsonify({'success': False, 'message': 'Bad request'}), 400


@app.errorhandler(500)
def internal_error(e):
    logger.error(f"Internal server error: {e}")
    return jsonify({'success': False, 'message': 'Internal server error'}), 500


def main():
    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )
    host = os.getenv("API_HOST", "127.0.0.1")
    port = int(os.getenv("API_PORT", "5000"))
    logger.info(f"Starting Circuit Sketch API on {host}:{port}")
    app.run(host=host, port=port, debug=False, threaded=True)


if __name__ == '__main__':
    main()

import logging
import os
import threading
import traceback
from datetime import datetime
from typing import Set

from flask import Flask, jsonify, request
from flask_cors import CORS

from expert_ranking.core import (
    Brainlift, ExpertRanker, ExpertRankingConfig, Fact, InMemoryStorage, ReadingListItem
)

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

app = Flask(__name__)

CORS(app, resources={
    r"/api/*": {
        "origins": os.environ.get('CORS_ORIGINS', 'http://localhost:5000').split(','),
        "methods": ["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        "allow_headers": ["Content-Type", "Authorization"],
        "supports_credentials": False
    }
})

storage = InMemoryStorage()
config = ExpertRankingConfig.from_env()

# One refresh at a time per brainlift; save_experts is a full delete-then-insert
_refreshing: Set[int] = set()
_refreshing_guard = threading.Lock()


def create_ranker() -> ExpertRanker:
    return ExpertRanker(config)


def _begin_refresh(brainlift_id: int) -> bool:
    """Mark a brainlift as refreshing; False if a refresh is already running."""
    with _refreshing_guard:
        if brainlift_id in _refreshing:
            return False
        _refreshing.add(brainlift_id)
        return True


def _end_refresh(brainlift_id: int) -> None:
    with _refreshing_guard:
        _refreshing.discard(brainlift_id)


def _error(message: str, status: int):
    return jsonify({'status': 'error', 'error': message}), status


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.now().isoformat(),
        'ranking_oracle': config.oracle_enabled
    })


@app.route('/api/brainlifts', methods=['POST'])
def create_brainlift():
    """
    Register a brainlift document

    Request body:
    {
        "slug": str,
        "title": str,
        "description": str (optional),
        "author": str (optional),
        "originalContent": str (optional),
        "facts": [{"fact", "note", "source", "score"}] (optional),
        "readingList": [{"author", "topic", ...}] (optional)
    }
    """
    data = request.get_json(silent=True)
    if not data:
        return _error('Request body is required', 400)

    slug = data.get('slug')
    title = data.get('title')
    if not slug or not title:
        return _error('slug and title are required', 400)

    try:
        brainlift = storage.create_brainlift(Brainlift(
            id=0,
            slug=slug,
            title=title,
            description=data.get('description') or '',
            author=data.get('author'),
            original_content=data.get('originalContent') or '',
            facts=[Fact.from_dict(f) for f in data.get('facts') or []],
            reading_list=[ReadingListItem.from_dict(r) for r in data.get('readingList') or []],
        ))
    except (TypeError, ValueError, AttributeError) as e:
        return _error(str(e), 400)

    return jsonify({'status': 'success', 'data': {'id': brainlift.id, 'slug': brainlift.slug}}), 201


@app.route('/api/brainlifts/<slug>/experts', methods=['GET'])
def get_experts(slug: str):
    """Get experts for a brainlift, highest rank first"""
    brainlift = storage.get_brainlift_by_slug(slug)
    if not brainlift:
        return _error('Brainlift not found', 404)

    experts = storage.get_experts_by_brainlift_id(brainlift.id)
    return jsonify([e.to_dict() for e in experts])


@app.route('/api/brainlifts/<slug>/experts/refresh', methods=['POST'])
def refresh_experts(slug: str):
    """Re-rank the experts of a brainlift and replace the stored set"""
    brainlift = storage.get_brainlift_by_slug(slug)
    if not brainlift:
        return _error('Brainlift not found', 404)

    if not _begin_refresh(brainlift.id):
        return _error('Expert refresh already in progress', 409)

    try:
        saved = create_ranker().refresh(brainlift, storage)
        return jsonify([e.to_dict() for e in saved])
    except Exception as e:
        logger.error(f"Refresh experts error: {e}")
        logger.error(traceback.format_exc())
        return _error(str(e) or 'Failed to refresh experts', 500)
    finally:
        _end_refresh(brainlift.id)


@app.route('/api/experts/<int:expert_id>/follow', methods=['PATCH'])
def update_expert_following(expert_id: int):
    """Update expert following status"""
    data = request.get_json(silent=True) or {}
    is_following = data.get('isFollowing')
    if not isinstance(is_following, bool):
        return _error('isFollowing must be a boolean', 400)

    try:
        updated = storage.update_expert_following(expert_id, is_following)
    except KeyError:
        return _error('Expert not found', 404)
    return jsonify(updated.to_dict())


@app.route('/api/experts/<int:expert_id>', methods=['DELETE'])
def delete_expert(expert_id: int):
    try:
        storage.delete_expert(expert_id)
    except KeyError:
        return _error('Expert not found', 404)
    return jsonify({'status': 'success'})


@app.route('/api/brainlifts/<slug>/experts/following', methods=['GET'])
def get_followed_experts(slug: str):
    """Followed experts for a brainlift, used by tweet search"""
    brainlift = storage.get_brainlift_by_slug(slug)
    if not brainlift:
        return _error('Brainlift not found', 404)

    experts = storage.get_followed_experts(brainlift.id)
    return jsonify([e.to_dict() for e in experts])


@app.errorhandler(404)
def not_found(error):
    return jsonify({
        'status': 'error',
        'error': 'Endpoint not found'
    }), 404


@app.errorhandler(500)
def internal_error(error):
    return jsonify({
        'status': 'error',
        'error': 'Internal server error'
    }), 500


if __name__ == '__main__':
    logger.info("Starting Flask API server...")
    logger.info(f"Expert ranking config: {config.to_json()}")

    port = int(os.environ.get('PORT', 5000))
    debug = os.environ.get('DEBUG', 'False').lower() == 'true'

    app.run(host='0.0.0.0', port=port, debug=debug)

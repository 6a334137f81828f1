"""Flask JSON API for the travel companion matching service."""

import logging
import os
from functools import wraps

from flask import Flask, jsonify, request, session

from config import SECRET_KEY
from travelmatch.services import (
    MatchingService,
    NotFoundError,
    ProfileService,
    RecommendationService,
    RemoteOperationError,
    ValidationError,
)

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config['SECRET_KEY'] = SECRET_KEY


def login_required(f):
    """Decorator to require a signed-in user for API endpoints."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not session.get('user_id'):
            return jsonify({'error': 'Authentication required'}), 401
        return f(*args, **kwargs)
    return decorated_function


def current_user_id() -> str:
    return session['user_id']


@app.errorhandler(ValidationError)
def handle_validation_error(e):
    return jsonify({'error': str(e)}), 400


@app.errorhandler(NotFoundError)
def handle_not_found(e):
    return jsonify({'error': str(e)}), 404


@app.errorhandler(RemoteOperationError)
def handle_remote_error(e):
    logger.warning("[api] store failure: %s", e)
    return jsonify({'error': 'Service temporarily unavailable. Please try again later.'}), 503


@app.route('/login', methods=['POST'])
def login():
    """Start a session for an existing user (identity is verified upstream)."""
    data = request.get_json() or {}
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400
    user_id = data.get('user_id')
    if not isinstance(user_id, str) or not user_id.strip():
        return jsonify({'error': 'user_id is required'}), 400
    user_id = user_id.strip()

    ProfileService().get_profile(user_id)
    session['user_id'] = user_id
    session.permanent = True
    return jsonify({'success': True})


@app.route('/logout', methods=['POST'])
def logout():
    session.pop('user_id', None)
    return jsonify({'success': True})


@app.route('/api/profile', methods=['POST'])
def register_profile():
    """Create the profile for a newly registered user and sign them in."""
    data = request.get_json() or {}
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400
    profile = ProfileService().create_profile(
        data.get('user_id'),
        data.get('displayName', ''),
        bio=data.get('bio', ''),
        interests=data.get('interests') or [],
        preferred_destinations=data.get('preferredDestinations') or [],
        location=data.get('location', ''),
    )
    session['user_id'] = profile.id
    return jsonify({'success': True, 'profile': profile.to_dict()}), 201


@app.route('/api/profile', methods=['GET'])
@login_required
def get_own_profile():
    profile = ProfileService().get_profile(current_user_id())
    return jsonify({'profile': profile.to_dict()})


@app.route('/api/profile', methods=['PUT'])
@login_required
def update_own_profile():
    data = request.get_json() or {}
    try:
        profile = ProfileService().update_profile(current_user_id(), data)
    except RemoteOperationError:
        return jsonify({'error': 'Failed to update profile'}), 503
    return jsonify({'success': True, 'profile': profile.to_dict()})


@app.route('/api/profile/<user_id>', methods=['GET'])
@login_required
def get_profile(user_id):
    profile = ProfileService().get_profile(user_id)
    return jsonify({'profile': profile.to_dict()})


@app.route('/api/explore', methods=['GET'])
@login_required
def explore():
    """Compatibility-ranked travelers, paginated."""
    page = request.args.get('page', 1, type=int)
    try:
        result = MatchingService().explore(current_user_id(), page=page)
    except RemoteOperationError:
        return jsonify({'error': 'Failed to load users. Please try again later.'}), 503
    return jsonify(result.to_dict())


@app.route('/api/potential-matches', methods=['GET'])
@login_required
def potential_matches():
    try:
        ranked = MatchingService().potential_matches(current_user_id())
    except RemoteOperationError:
        return jsonify({'error': 'Failed to load potential matches'}), 503
    return jsonify({'matches': [r.to_dict() for r in ranked]})


@app.route('/api/like/<user_id>', methods=['POST'])
@login_required
def like_user(user_id):
    try:
        result = MatchingService().apply_like(current_user_id(), user_id)
    except RemoteOperationError:
        return jsonify({'error': 'Failed to like user'}), 503
    return jsonify(result.to_dict())


@app.route('/api/dislike/<user_id>', methods=['POST'])
@login_required
def dislike_user(user_id):
    try:
        MatchingService().apply_dislike(current_user_id(), user_id)
    except RemoteOperationError:
        return jsonify({'error': 'Failed to dislike user'}), 503
    return jsonify({'success': True})


@app.route('/api/matches', methods=['GET'])
@login_required
def user_matches():
    try:
        profiles = MatchingService().get_user_matches(current_user_id())
    except RemoteOperationError:
        return jsonify({'error': 'Failed to load matches'}), 503
    return jsonify({'matches': [dict(p.to_dict(), id=p.id) for p in profiles]})


@app.route('/api/users/search', methods=['GET'])
@login_required
def search_users():
    term = request.args.get('q', '')
    profiles = ProfileService().search_users(term)
    return jsonify({'users': [dict(p.to_dict(), id=p.id) for p in profiles]})


@app.route('/api/recommendations', methods=['GET'])
@login_required
def recommendations():
    """Destinations boosted by the user's interests and filtered by ?q= prompt."""
    prompt = request.args.get('q', '')
    try:
        viewer = ProfileService().get_profile(current_user_id())
        items = RecommendationService().recommend(viewer, prompt=prompt)
    except RemoteOperationError:
        return jsonify({'error': 'Failed to load recommendations. Please try again later.'}), 503
    return jsonify({'destinations': [i.to_dict() for i in items]})


@app.route('/api/map', methods=['GET'])
@login_required
def map_markers():
    try:
        destinations = RecommendationService().map_markers()
    except RemoteOperationError:
        return jsonify({'error': 'Failed to load map data. Please try again later.'}), 503
    return jsonify({
        'markers': [
            {'id': d.id, 'name': d.name, 'country': d.country, **d.coordinates.to_dict()}
            for d in destinations
        ]
    })


@app.route('/api/destinations', methods=['POST'])
@login_required
def add_destination():
    data = request.get_json() or {}
    destination = RecommendationService().add_destination(data)
    return jsonify({'success': True, 'id': destination.id}), 201


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    port = int(os.environ.get('PORT', 5000))
    app.run(debug=False, host='0.0.0.0', port=port)

"""Catalog routes: categories, genres, movies and copies."""
from flask import Blueprint, jsonify, request

from extensions import broadcast
from models.category import Category, Genre
from models.movie import Movie
from models.movie_copy import Copy
from services.errors import NotFoundError, ValidationError
from utils.decorators import login_required
from utils.http import arg_int, json_body, require_int

# Create catalog blueprint
catalog_bp = Blueprint('catalog', __name__)


# ==================== Categories & Genres ====================

@catalog_bp.route('/categories', methods=['GET'])
@login_required
def list_categories():
    return jsonify({
        'success': True,
        'categories': [category.to_dict() for category in Category.get_all()]
    })


@catalog_bp.route('/categories', methods=['PUT'])
@login_required
def save_categories():
    """Create or update categories in bulk.

    JSON body:
        categories: List of {id?, name, daily_price, description}.

    Price changes apply to new rentals only.
    """
    items = json_body().get('categories')
    if not isinstance(items, list):
        raise ValidationError('categories must be a list')
    categories = Category.upsert_many(items)
    return jsonify({'success': True, 'categories': [c.to_dict() for c in categories]})


@catalog_bp.route('/genres', methods=['GET'])
@login_required
def list_genres():
    return jsonify({'success': True, 'genres': [g.to_dict() for g in Genre.get_all()]})


# ==================== Movies ====================

@catalog_bp.route('/movies', methods=['GET'])
@login_required
def list_movies():
    return jsonify({'success': True, 'movies': [m.to_dict() for m in Movie.get_all()]})


@catalog_bp.route('/movies/<int:movie_id>', methods=['GET'])
@login_required
def get_movie(movie_id: int):
    movie = Movie.get_by_id(movie_id)
    if not movie:
        raise NotFoundError(f'Movie not found: {movie_id}')
    payload = movie.to_dict()
    payload['copies'] = [copy.to_dict() for copy in Copy.get_all(movie_id)]
    return jsonify({'success': True, 'movie': payload})


@catalog_bp.route('/movies', methods=['POST'])
@login_required
def create_movie():
    movie = Movie.create(json_body())
    return jsonify({'success': True, 'movie': movie.to_dict()}), 201


@catalog_bp.route('/movies/<int:movie_id>', methods=['PUT'])
@login_required
def update_movie(movie_id: int):
    movie = Movie.update(movie_id, json_body())
    return jsonify({'success': True, 'movie': movie.to_dict()})


# ==================== Copies ====================

@catalog_bp.route('/copies', methods=['GET'])
@login_required
def list_copies():
    """List copies.

    Query params:
        movie_id: Only copies of this movie.
    """
    copies = Copy.get_all(arg_int('movie_id'))
    return jsonify({'success': True, 'copies': [copy.to_dict() for copy in copies]})


@catalog_bp.route('/copies', methods=['POST'])
@login_required
def create_copy():
    """Add a copy.

    JSON body:
        movie_id, barcode, format (DVD, Blu-ray, 4K), notes.
    """
    data = json_body()
    copy = Copy.create(
        require_int(data, 'movie_id'),
        data.get('barcode', ''),
        data.get('format', 'DVD'),
        data.get('notes')
    )
    broadcast('inventory_changed', {'copy_ids': [copy.id], 'state': copy.state})
    return jsonify({'success': True, 'copy': copy.to_dict()}), 201


@catalog_bp.route('/copies/<int:copy_id>/state', methods=['PUT'])
@login_required
def set_copy_state(copy_id: int):
    """Flag a copy as damaged or lost, or put it back as available."""
    data = json_body()
    copy = Copy.set_state(copy_id, data.get('state', ''), data.get('notes'))
    broadcast('inventory_changed', {'copy_ids': [copy.id], 'state': copy.state})
    return jsonify({'success': True, 'copy': copy.to_dict()})

# bakumania/catalog/routes.py

import logging

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from bakumania import db
from bakumania.models import Bakugan, PriceHistory, SIZES, newest_first
from bakumania.catalog.search import InvalidQuery, search_catalog

bp = Blueprint('catalog', __name__)

logger = logging.getLogger(__name__)


def _error(message, status, details=None):
    body = {'error': message}
    if details:
        body['details'] = details
    return jsonify(body), status


def _load_item(item_id):
    """Return ``(item, None)`` or ``(None, error_response)``."""
    if not item_id.isdigit():
        return None, _error('Invalid Bakugan ID', 400)
    item = db.session.get(Bakugan, int(item_id))
    if item is None:
        return None, _error('Bakugan not found', 404)
    return item, None


def _parse_price(value):
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@bp.route('', methods=['GET'])
def list_bakugan():
    """
    Paginated, filtered catalog search.
    Returns { items: [...], pagination: {total, page, limit, pages} }.
    """
    try:
        result = search_catalog(
            request.args,
            default_limit=current_app.config['CATALOG_DEFAULT_LIMIT'],
            max_limit=current_app.config['CATALOG_MAX_LIMIT'],
        )
    except InvalidQuery as e:
        return _error('Invalid search parameters', 400, str(e))
    except SQLAlchemyError as e:
        logger.exception('catalog search failed: %s', e)
        return _error('Failed to fetch Bakugan items', 500, str(e))
    logger.info(
        'search args=%s total=%s page=%s',
        dict(request.args), result['pagination']['total'], result['pagination']['page'],
    )
    return jsonify(result)


@bp.route('', methods=['POST'])
def create_bakugan():
    """Create an item, or record a new price for an existing one.

    An item with the same primary name, size and element is treated as the
    same collectible: its current price is updated and a history point is
    appended instead of creating a duplicate.
    """
    data = request.get_json(silent=True) or {}
    names = data.get('names')
    size = data.get('size')
    element = data.get('element')
    price = _parse_price(data.get('currentPrice'))
    date = data.get('date')

    if not names or not size or not element or price is None:
        return _error('Missing required fields', 400)
    if isinstance(names, str):
        names = [names]
    if size not in SIZES:
        return _error('Invalid size', 400, f"size must be one of {', '.join(SIZES)}")

    reference_uri = data.get('referenceUri') or ''
    try:
        existing = next(
            (b for b in Bakugan.query.filter_by(size=size, element=element).all()
             if b.primary_name == names[0]),
            None,
        )
        if existing:
            existing.current_price = price
            if reference_uri:
                existing.reference_uri = reference_uri
            if date:
                existing.date = date
            db.session.add(PriceHistory(
                bakugan_id=existing.id,
                price=price,
                timestamp=date or existing.date,
                notes='Price updated via Add form',
                reference_uri=reference_uri,
            ))
            db.session.commit()
            logger.info('price recorded for existing bakugan id=%s price=%s', existing.id, price)
            return jsonify(message='Bakugan price updated successfully',
                           bakugan=existing.to_dict())

        if not date:
            return _error('Date is required', 400)

        item = Bakugan(
            names=list(names),
            size=size,
            element=element,
            special_properties=data.get('specialProperties') or 'Normal',
            series=data.get('series') or '',
            image_url=data.get('imageUrl') or '',
            current_price=price,
            reference_uri=reference_uri,
            date=date,
        )
        db.session.add(item)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception('create bakugan failed: %s', e)
        return _error('Failed to create Bakugan item', 500, str(e))

    logger.info('bakugan created id=%s name=%s', item.id, item.primary_name)
    return jsonify(item.to_dict()), 201


@bp.route('/<item_id>', methods=['GET'])
def get_bakugan(item_id):
    """Return one item together with its most recent price points."""
    item, err = _load_item(item_id)
    if err:
        return err
    history = (
        newest_first(PriceHistory.query.filter_by(bakugan_id=item.id))
        .limit(current_app.config['PRICE_HISTORY_DETAIL_LIMIT'])
        .all()
    )
    body = item.to_dict()
    body['priceHistory'] = [p.to_dict() for p in history]
    return jsonify(body)


@bp.route('/<item_id>', methods=['PATCH'])
def update_price(item_id):
    data = request.get_json(silent=True) or {}
    price = _parse_price(data.get('price'))
    timestamp = data.get('timestamp')

    item, err = _load_item(item_id)
    if err:
        return err
    if price is None or price <= 0:
        return _error('Valid price is required', 400)
    if not timestamp:
        logger.warning('price update for id=%s is missing a timestamp', item_id)
        return _error('Timestamp is required', 400)

    reference_uri = data.get('referenceUri') or ''
    item.current_price = price
    item.date = timestamp
    if reference_uri:
        item.reference_uri = reference_uri
    entry = PriceHistory(
        bakugan_id=item.id,
        price=price,
        timestamp=timestamp,
        notes=data.get('notes') or '',
        reference_uri=reference_uri,
    )
    db.session.add(entry)
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception('price update failed for id=%s: %s', item_id, e)
        return _error('Failed to update Bakugan price', 500, str(e))

    logger.info('price updated id=%s price=%s timestamp=%s', item.id, price, timestamp)
    return jsonify(bakugan=item.to_dict(), priceHistory=entry.to_dict())


@bp.route('/<item_id>', methods=['PUT'])
def update_details(item_id):
    data = request.get_json(silent=True) or {}
    names = data.get('names')
    size = data.get('size')
    element = data.get('element')

    item, err = _load_item(item_id)
    if err:
        return err
    if not names or not size or not element:
        return _error('Missing required fields', 400)
    if size not in SIZES:
        return _error('Invalid size', 400, f"size must be one of {', '.join(SIZES)}")

    item.names = [names] if isinstance(names, str) else list(names)
    item.size = size
    item.element = element
    item.special_properties = data.get('specialProperties') or ''
    if 'series' in data:
        item.series = data.get('series') or ''
    if data.get('imageUrl'):
        item.image_url = data['imageUrl']
    if data.get('referenceUri'):
        item.reference_uri = data['referenceUri']
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception('details update failed for id=%s: %s', item_id, e)
        return _error('Failed to update Bakugan details', 500, str(e))
    return jsonify(item.to_dict())


@bp.route('/<item_id>', methods=['DELETE'])
def delete_bakugan(item_id):
    item, err = _load_item(item_id)
    if err:
        return err

    # history rows go with the item (delete-orphan cascade)
    db.session.delete(item)
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception('delete failed for id=%s: %s', item_id, e)
        return _error('Failed to delete Bakugan item', 500, str(e))

    logger.info('bakugan deleted id=%s', item_id)
    return jsonify(message='Bakugan deleted successfully')

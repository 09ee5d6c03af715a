# bakumania/price_history/routes.py

import logging

from flask import Blueprint, jsonify
from sqlalchemy.exc import SQLAlchemyError

from bakumania import db
from bakumania.models import Bakugan, PriceHistory, newest_first

bp = Blueprint('price_history', __name__)

logger = logging.getLogger(__name__)


@bp.route('/<entry_id>', methods=['DELETE'])
def delete_price_history(entry_id):
    """
    Delete a single price point.
    The owning item's current price and date fall back to the newest
    remaining point.  Returns { message, priceHistory: [...] }.
    """
    if not entry_id.isdigit():
        return jsonify(error='Invalid Price History ID'), 400

    entry = db.session.get(PriceHistory, int(entry_id))
    if entry is None:
        return jsonify(error='Price history entry not found'), 404

    bakugan_id = entry.bakugan_id
    try:
        db.session.delete(entry)
        db.session.flush()

        remaining = newest_first(PriceHistory.query.filter_by(bakugan_id=bakugan_id)).all()
        if remaining:
            item = db.session.get(Bakugan, bakugan_id)
            item.current_price = remaining[0].price
            item.date = remaining[0].timestamp
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception('failed to delete price history id=%s: %s', entry_id, e)
        return jsonify(error='Failed to delete price history entry', details=str(e)), 500

    logger.info(
        'price history deleted id=%s bakugan=%s remaining=%s',
        entry_id, bakugan_id, len(remaining),
    )
    return jsonify(
        message='Price history entry deleted successfully',
        priceHistory=[p.to_dict() for p in remaining],
    )

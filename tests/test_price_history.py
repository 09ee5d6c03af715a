import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from bakumania import create_app, db
from bakumania.cli import seed_items
from bakumania.models import Bakugan, PriceHistory


def setup_app():
    app = create_app('testing')
    with app.app_context():
        db.drop_all()
        db.create_all()
        seed_items([{
            'names': ['Skyress'], 'size': 'B2', 'element': 'Ventus',
            'currentPrice': 800, 'date': '2024-03-01',
            'priceHistory': [
                {'price': 500, 'timestamp': '2024-01-01'},
                {'price': 650, 'timestamp': '2024-02-01', 'notes': 'auction'},
                {'price': 800, 'timestamp': '2024-03-01'},
            ],
        }])
    return app


def history_ids(app):
    with app.app_context():
        rows = PriceHistory.query.order_by(PriceHistory.timestamp).all()
        return [str(r.id) for r in rows]


def test_delete_newest_point_rolls_price_back():
    app = setup_app()
    client = app.test_client()
    oldest, middle, newest = history_ids(app)

    resp = client.delete(f'/api/price-history/{newest}')
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['message'] == 'Price history entry deleted successfully'
    assert [p['price'] for p in body['priceHistory']] == [650, 500]

    with app.app_context():
        item = Bakugan.query.one()
        assert item.current_price == 650
        assert item.date == '2024-02-01'


def test_delete_older_point_keeps_current_price():
    app = setup_app()
    client = app.test_client()
    oldest, _, _ = history_ids(app)
    body = client.delete(f'/api/price-history/{oldest}').get_json()
    assert [p['price'] for p in body['priceHistory']] == [800, 650]
    with app.app_context():
        assert Bakugan.query.one().current_price == 800


def test_delete_last_point_leaves_item_untouched():
    app = setup_app()
    client = app.test_client()
    for entry in history_ids(app):
        client.delete(f'/api/price-history/{entry}')
    with app.app_context():
        item = Bakugan.query.one()
        assert item.current_price == 800
        assert PriceHistory.query.count() == 0


def test_delete_bad_ids():
    client = setup_app().test_client()
    assert client.delete('/api/price-history/xyz').status_code == 400
    resp = client.delete('/api/price-history/4242')
    assert resp.status_code == 404
    assert resp.get_json()['error'] == 'Price history entry not found'

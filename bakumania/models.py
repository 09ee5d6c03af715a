from datetime import datetime

from sqlalchemy import event

from bakumania import db

SIZES = ('B1', 'B2', 'B3')
BAKUTECH_SIZE = 'B3'


def _iso(value):
    return value.isoformat() + 'Z' if value else None


class Bakugan(db.Model):
    __tablename__ = 'bakugan'
    id                 = db.Column(db.Integer, primary_key=True)
    names              = db.Column(db.JSON, nullable=False)
    names_text         = db.Column(db.Text, nullable=False, default='', index=True)  # lowercased aliases
    size               = db.Column(db.String(8), nullable=False, index=True)
    element            = db.Column(db.String(64), nullable=False, index=True)
    special_properties = db.Column(db.String(64), nullable=False, default='Normal')
    series             = db.Column(db.String(128), nullable=False, default='')
    image_url          = db.Column(db.String(500), nullable=False, default='')
    current_price      = db.Column(db.Float, nullable=False, default=0.0)
    reference_uri      = db.Column(db.String(500), nullable=False, default='')
    date               = db.Column(db.String(64), nullable=False)
    created_at         = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at         = db.Column(db.DateTime, default=datetime.utcnow,
                                   onupdate=datetime.utcnow, index=True)

    price_history = db.relationship(
        'PriceHistory',
        backref='bakugan',
        lazy=True,
        cascade='all, delete-orphan'
    )

    @property
    def primary_name(self):
        return self.names[0] if self.names else ''

    def to_dict(self):
        return {
            '_id': str(self.id),
            'names': list(self.names or []),
            'size': self.size,
            'element': self.element,
            'specialProperties': self.special_properties,
            'series': self.series,
            'imageUrl': self.image_url,
            'currentPrice': self.current_price,
            'referenceUri': self.reference_uri,
            'date': self.date,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }


class PriceHistory(db.Model):
    __tablename__ = 'price_history'
    __table_args__ = (
        db.Index('ix_price_history_item_timestamp', 'bakugan_id', 'timestamp'),
    )
    id            = db.Column(db.Integer, primary_key=True)
    bakugan_id    = db.Column(db.Integer, db.ForeignKey('bakugan.id'), nullable=False, index=True)
    price         = db.Column(db.Float, nullable=False)
    timestamp     = db.Column(db.String(64), nullable=False)  # stored as given by the client
    notes         = db.Column(db.Text, nullable=False, default='')
    reference_uri = db.Column(db.String(500), nullable=False, default='')
    created_at    = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            '_id': str(self.id),
            'bakuganId': str(self.bakugan_id),
            'price': self.price,
            'timestamp': self.timestamp,
            'notes': self.notes,
            'referenceUri': self.reference_uri,
        }


def newest_first(query):
    """Order a PriceHistory query newest first; later inserts win on equal dates."""
    return query.order_by(PriceHistory.timestamp.desc(), PriceHistory.id.desc())


@event.listens_for(Bakugan, 'before_insert')
@event.listens_for(Bakugan, 'before_update')
def _sync_names_text(mapper, connection, target):
    target.names_text = '\n'.join(str(n).lower() for n in (target.names or []))

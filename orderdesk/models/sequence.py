from orderdesk.extensions import db
from orderdesk.utils import utcnow


class SequenceCounter(db.Model):
    """Last issued number per (kind, period). Only touched by SequenceAllocator."""
    __tablename__ = 'sequence_counters'
    __table_args__ = (
        db.UniqueConstraint('kind', 'period_key', name='uq_sequence_counters_kind_period'),
    )

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(20), nullable=False)
    period_key = db.Column(db.String(10), nullable=False)
    prefix = db.Column(db.String(10), nullable=False)
    last_number = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

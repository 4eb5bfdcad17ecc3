from datetime import datetime

from . import db


# one row per finished verification (success or failure)
class PaymentAttempt(db.Model):
    __tablename__ = "payment_attempt"

    id = db.Column(db.Integer, primary_key=True)
    reference = db.Column(db.String(128), nullable=False, index=True)
    service = db.Column(db.String(32), nullable=False)
    entity_id = db.Column(db.String(64), nullable=True)
    outcome = db.Column(db.String(16), nullable=False)
    reason = db.Column(db.String(32), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    @classmethod
    def confirmed(cls, service: str, reference: str):
        return (
            cls.query.filter_by(service=service, reference=reference, outcome="succeeded")
            .order_by(cls.created_at.desc())
            .first()
        )

    def __repr__(self):
        return f"<PaymentAttempt {self.service}:{self.reference} {self.outcome}>"

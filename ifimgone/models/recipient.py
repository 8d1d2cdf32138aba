from datetime import datetime

from ifimgone.extensions import db


class Recipient(db.Model):
    """Person a message is addressed to"""
    __tablename__ = 'recipients'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False, index=True)

    name = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    relationship = db.Column(db.String(50))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship('Profile', back_populates='recipients')
    message_links = db.relationship('MessageRecipient', back_populates='recipient', lazy='dynamic')

    def __repr__(self):
        return f'<Recipient {self.id}: {self.email}>'

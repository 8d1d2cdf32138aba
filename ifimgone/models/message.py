from datetime import datetime

from ifimgone.extensions import db


class Message(db.Model):
    """Legacy message waiting for its trigger"""
    __tablename__ = 'messages'

    TRIGGER_INACTIVITY = 'inactivity'
    TRIGGER_DATE = 'date'
    TRIGGER_MANUAL = 'manual'

    STATUS_DRAFT = 'draft'
    STATUS_DELIVERED = 'delivered'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False, index=True)

    # Content
    title = db.Column(db.String(255), nullable=False)
    content = db.Column(db.Text)
    format = db.Column(db.String(10), default='text')  # text, audio, video, mixed

    # Trigger configuration
    trigger_type = db.Column(db.String(20), nullable=False, default=TRIGGER_INACTIVITY, index=True)
    trigger_date = db.Column(db.DateTime, index=True)

    # Delivery state - only the delivery dispatcher writes this
    status = db.Column(db.String(20), nullable=False, default=STATUS_DRAFT, index=True)
    delivered_at = db.Column(db.DateTime)

    # Viewing protection
    pin_hash = db.Column(db.String(255))

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = db.relationship('Profile', back_populates='messages')
    message_recipients = db.relationship(
        'MessageRecipient',
        back_populates='message',
        cascade='all, delete-orphan',
        order_by='MessageRecipient.id'
    )

    __table_args__ = (
        db.CheckConstraint("trigger_type IN ('inactivity', 'date', 'manual')", name='ck_messages_trigger_type'),
        db.CheckConstraint("status IN ('draft', 'delivered')", name='ck_messages_status'),
    )

    @property
    def recipients(self):
        return [link.recipient for link in self.message_recipients]

    @property
    def has_pin(self) -> bool:
        return bool(self.pin_hash)

    @property
    def is_deliverable(self) -> bool:
        return self.status == self.STATUS_DRAFT

    def __repr__(self):
        return f'<Message {self.id}: {self.trigger_type}/{self.status}>'


class MessageRecipient(db.Model):
    """Link between a message and one of its recipients"""
    __tablename__ = 'message_recipients'

    id = db.Column(db.Integer, primary_key=True)
    message_id = db.Column(db.Integer, db.ForeignKey('messages.id'), nullable=False, index=True)
    recipient_id = db.Column(db.Integer, db.ForeignKey('recipients.id'), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    message = db.relationship('Message', back_populates='message_recipients')
    recipient = db.relationship('Recipient', back_populates='message_links')

    __table_args__ = (
        db.UniqueConstraint('message_id', 'recipient_id', name='uq_message_recipient'),
    )

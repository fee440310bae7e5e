from __future__ import annotations

import uuid

from sqlalchemy.orm import validates

from .app import db
from .shared.time import now_utc


def new_id() -> str:
    return str(uuid.uuid4())


class Event(db.Model):
    __tablename__ = "events"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=now_utc)
    created_by = db.Column(db.String(36), nullable=False)


class Participant(db.Model):
    __tablename__ = "participants"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    email = db.Column(db.String(255), nullable=False, unique=True)
    full_name = db.Column(db.String(255), nullable=False)
    organization = db.Column(db.String(255))
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=now_utc)

    @validates("email")
    def lower_email(self, key, value):
        return (value or "").strip().lower()


class Certificate(db.Model):
    __tablename__ = "certificates"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    participant_id = db.Column(
        db.String(36),
        db.ForeignKey("participants.id", ondelete="CASCADE"),
        nullable=False,
    )
    event_id = db.Column(
        db.String(36),
        db.ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
    )
    # not unique: collisions between generated numbers are not detected
    certificate_number = db.Column(db.String(64), nullable=False, index=True)
    issue_date = db.Column(db.Date, nullable=False)
    template_data = db.Column(db.JSON)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=now_utc)

    participant = db.relationship("Participant")
    event = db.relationship("Event")


class AuthUser(db.Model):
    __tablename__ = "auth_users"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    email = db.Column(db.String(255), nullable=False, unique=True)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=now_utc)

    @validates("email")
    def lower_email(self, key, value):
        return (value or "").strip().lower()

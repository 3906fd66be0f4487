# models.py
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow():
    return datetime.now(timezone.utc)


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    uid = db.Column(db.String(64), unique=True, nullable=False, index=True)
    is_anonymous = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    last_seen_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)


class Document(db.Model):
    __tablename__ = 'documents'

    id = db.Column(db.Integer, primary_key=True)
    collection = db.Column(db.String(200), nullable=False, index=True)  # e.g. "artifacts/<app>/public/data/searches"
    body = db.Column(db.JSON, nullable=False)
    owner_uid = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

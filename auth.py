import uuid
from dataclasses import dataclass
from datetime import datetime

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from errors import AuthError
from models import User


@dataclass(frozen=True)
class Session:
    uid: str
    created_at: datetime = None
    is_anonymous: bool = True


class AnonymousAuth:
    """Anonymous identities for one browser, backed by the ``users`` table.

    ``uid`` is the identity remembered from an earlier visit; signing in with it
    resumes that user instead of creating a new one.
    """

    def __init__(self, db, uid=None):
        self.db = db
        self._uid = uid
        self.current_session = None
        self._listeners = []

    def sign_in_anonymously(self):
        try:
            user = None
            if self._uid:
                user = User.query.filter_by(uid=self._uid).first()
            if user is None:
                user = User(uid=uuid.uuid4().hex, is_anonymous=True)
                self.db.session.add(user)
            self.db.session.commit()
        except SQLAlchemyError as e:
            self.db.session.rollback()
            raise AuthError(f"Anonymous sign-in failed: {e}") from e

        self._uid = user.uid
        self._set_session(Session(uid=user.uid, created_at=user.created_at, is_anonymous=user.is_anonymous))
        return self.current_session

    def resume(self):
        """Restore the remembered identity without creating one. Returns None when unknown."""
        if not self._uid:
            return None
        try:
            user = User.query.filter_by(uid=self._uid).first()
        except SQLAlchemyError as e:
            raise AuthError(f"Session restore failed: {e}") from e
        if user is None:
            return None
        self._set_session(Session(uid=user.uid, created_at=user.created_at, is_anonymous=user.is_anonymous))
        return self.current_session

    def on_session_change(self, callback):
        """Call ``callback`` now and on every later change. Returns the unsubscribe callable."""
        self._listeners.append(callback)
        callback(self.current_session)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _set_session(self, session):
        self.current_session = session
        for listener in list(self._listeners):
            listener(session)


class SessionBootstrap:

    def __init__(self, auth):
        self.auth = auth
        self.session = None
        self._unsubscribe = None
        self._started = False

    def start(self, create=True):
        """Sign in once; failures are logged and leave the session empty.

        With ``create=False`` only a remembered identity is restored.
        """
        if self._started or self.auth is None:
            return self.session
        self._started = True
        self._unsubscribe = self.auth.on_session_change(self._on_change)
        try:
            if create:
                self.auth.sign_in_anonymously()
            else:
                self.auth.resume()
        except AuthError as e:
            logger.error(f"Kimlik doğrulama hatası: {e}")
        return self.session

    def stop(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_change(self, session):
        self.session = session

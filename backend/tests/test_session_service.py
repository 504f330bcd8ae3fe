# Overview: Pytest coverage for bearer session tokens.

from datetime import timedelta

import pytest

from bazar.models import SessionToken
from bazar.services.session_service import (
    create_session,
    hash_token,
    revoke_session,
    validate_session,
)
from bazar.time_utils import set_clock, utcnow


class TestSessions:
    def test_only_hash_is_stored(self, db_session, user):
        session, token = create_session(user.id)

        assert len(token) == 64
        assert session.token_hash == hash_token(token)
        assert db_session.query(SessionToken).filter_by(token_hash=token).count() == 0

    def test_validate_returns_user(self, db_session, user):
        _, token = create_session(user.id)

        context = validate_session(token)

        assert context is not None
        assert context.user.id == user.id

    def test_revoked_token_is_rejected(self, db_session, user):
        _, token = create_session(user.id)

        assert revoke_session(token) is True
        assert validate_session(token) is None
        assert revoke_session(token) is False

    def test_expired_token_is_rejected(self, db_session, user):
        _, token = create_session(user.id)
        later = utcnow() + timedelta(hours=25)
        set_clock(lambda: later)
        try:
            assert validate_session(token) is None
        finally:
            set_clock(None)

    def test_inactive_user_is_rejected(self, db_session, user):
        _, token = create_session(user.id)
        user.is_active = False
        db_session.commit()

        assert validate_session(token) is None

    def test_unknown_user(self, db_session):
        with pytest.raises(ValueError):
            create_session(404)

"""
Unit tests for owner portal authentication.

Tests credential checks, JWT issue/verify and session-backed revocation.
"""

from datetime import datetime, timedelta

import jwt

from vetcore.config import get_settings
from vetcore.middleware.owner_auth import (
    authenticate_owner,
    issue_owner_token,
    revoke_owner_token,
    verify_owner_token,
)
from vetcore.models import OwnerSession

from tests.fixtures.factories import DEFAULT_PASSWORD, create_owner_user


class TestAuthenticateOwner:
    """Test username/email and password matching."""

    def test_by_username(self, owner_db):
        owner = create_owner_user(owner_db, username="owner")
        assert authenticate_owner(owner_db, "owner", DEFAULT_PASSWORD) is owner

    def test_by_email_case_insensitive(self, owner_db):
        owner = create_owner_user(owner_db, username="owner", email="owner@vetcore.test")
        assert authenticate_owner(owner_db, "Owner@VetCore.test", DEFAULT_PASSWORD) is owner

    def test_wrong_password(self, owner_db):
        create_owner_user(owner_db, username="owner")
        assert authenticate_owner(owner_db, "owner", "not-the-password") is None

    def test_unknown_user(self, owner_db):
        assert authenticate_owner(owner_db, "nobody", DEFAULT_PASSWORD) is None


class TestOwnerTokens:
    """Test token lifecycle."""

    def test_issue_and_verify(self, owner_db):
        owner = create_owner_user(owner_db)

        token, expires_in = issue_owner_token(owner_db, owner)

        assert expires_in == get_settings().owner_token_ttl_hours * 3600
        assert verify_owner_token(token, owner_db) is owner
        assert owner_db.query(OwnerSession).count() == 1

    def test_revoke_invalidates_token(self, owner_db):
        owner = create_owner_user(owner_db)
        token, _ = issue_owner_token(owner_db, owner)

        assert revoke_owner_token(token, owner_db) is True
        assert verify_owner_token(token, owner_db) is None
        assert revoke_owner_token(token, owner_db) is False

    def test_expired_session_rejected(self, owner_db):
        owner = create_owner_user(owner_db)
        token, _ = issue_owner_token(owner_db, owner)
        session = owner_db.query(OwnerSession).one()
        session.expires_at = datetime.utcnow() - timedelta(minutes=1)
        owner_db.commit()

        assert verify_owner_token(token, owner_db) is None

    def test_wrong_token_type_rejected(self, owner_db):
        owner = create_owner_user(owner_db)
        issue_owner_token(owner_db, owner)
        session = owner_db.query(OwnerSession).one()
        token = jwt.encode(
            {"sub": owner.username, "jti": session.id, "type": "practice"},
            get_settings().secret_key,
            algorithm="HS256",
        )

        assert verify_owner_token(token, owner_db) is None

    def test_bad_signature_rejected(self, owner_db):
        owner = create_owner_user(owner_db)
        issue_owner_token(owner_db, owner)
        session = owner_db.query(OwnerSession).one()
        token = jwt.encode(
            {"sub": owner.username, "jti": session.id, "type": "owner"},
            "some-other-secret-key-of-enough-length",
            algorithm="HS256",
        )

        assert verify_owner_token(token, owner_db) is None

    def test_garbage_token_rejected(self, owner_db):
        assert verify_owner_token("not-a-jwt", owner_db) is None

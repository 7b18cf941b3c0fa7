import pytest

from itsdangerous import URLSafeTimedSerializer
from gearshare.core import auth
from gearshare.core.models import Role


@pytest.fixture(autouse=True)
def serializer():
    auth.SERIALIZER = URLSafeTimedSerializer(b"123", salt="auth-cookie")
    yield auth.SERIALIZER
    auth.SERIALIZER = None

def test_cookie_basic_functionality():
    """Round trip of a session token"""
    cookie = auth.create_session_cookie("alice")
    assert auth.verify_session_cookie(cookie) == "alice"

def test_tampered_cookie_is_rejected():
    cookie = auth.create_session_cookie("alice")
    assert auth.verify_session_cookie(cookie[:-2] + "xx") is None
    assert auth.verify_session_cookie("") is None
    assert auth.verify_session_cookie(None) is None

def test_cookie_from_another_seed_is_rejected():
    other = URLSafeTimedSerializer(b"456", salt="auth-cookie")
    assert auth.verify_session_cookie(other.dumps({"user_id": "alice"})) is None

def test_expired_cookie(monkeypatch):
    cookie = auth.create_session_cookie("alice")
    monkeypatch.setattr(auth, "COOKIE_TTL", -1)
    assert auth.verify_session_cookie(cookie) is None

def test_non_dict_payload():
    assert auth.verify_session_cookie(auth.SERIALIZER.dumps("alice")) is None

def test_resolve_actor(session_factory, actors):
    with session_factory() as db:
        actor = auth.resolve_actor(db, auth.create_session_cookie("admin"))
        assert actor.id == "admin"
        assert actor.role == Role.ADMIN
        assert actor.is_admin
        assert not auth.resolve_actor(db, auth.create_session_cookie("alice")).is_admin

def test_resolve_unknown_user(session_factory, actors):
    with session_factory() as db:
        assert auth.resolve_actor(db, auth.create_session_cookie("mallory")) is None
        assert auth.resolve_actor(db, "garbage") is None

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from exercise_api.auth import (
    Claims,
    TokenIssuer,
    require_elevated,
    require_self_or_elevated,
    require_user_id_or_elevated,
)
from exercise_api.errors import ForbiddenError, UnauthenticatedError
from exercise_api.schemas import UserOut


def _user(username="alice", is_admin=False):
    return UserOut(id=1, username=username, first_name="A", last_name="B", email="a@example.com", is_admin=is_admin)


def test_issue_embeds_only_minimal_claims():
    token = TokenIssuer("s1", expire_hours=0).issue(_user())
    payload = jwt.decode(token, "s1", algorithms=["HS256"])
    assert payload == {"username": "alice", "is_admin": False}


def test_issue_adds_expiry_when_configured():
    token = TokenIssuer("s1", expire_hours=2).issue(_user(is_admin=True))
    payload = jwt.decode(token, "s1", algorithms=["HS256"])
    assert set(payload) == {"username", "is_admin", "exp"}
    assert payload["is_admin"] is True


def test_verify_round_trip():
    issuer = TokenIssuer("s1")
    assert issuer.verify(issuer.issue(_user("bob", True))) == Claims("bob", True)


def test_token_from_other_secret_is_rejected():
    token = TokenIssuer("one").issue(_user())
    with pytest.raises(UnauthenticatedError):
        TokenIssuer("two").verify(token)


def test_tampered_token_is_rejected():
    issuer = TokenIssuer("s1")
    header, payload, sig = issuer.issue(_user()).split(".")
    forged = jwt.encode({"username": "alice", "is_admin": True}, "guess", algorithm="HS256").split(".")[1]
    with pytest.raises(UnauthenticatedError):
        issuer.verify(".".join([header, forged, sig]))


def test_expired_token_is_rejected():
    past = int((datetime.now(timezone.utc) - timedelta(hours=1)).timestamp())
    token = jwt.encode({"username": "alice", "is_admin": False, "exp": past}, "s1", algorithm="HS256")
    with pytest.raises(UnauthenticatedError, match="expired"):
        TokenIssuer("s1").verify(token)


def test_payload_without_username_is_rejected():
    token = jwt.encode({"is_admin": True}, "s1", algorithm="HS256")
    with pytest.raises(UnauthenticatedError):
        TokenIssuer("s1").verify(token)


def test_empty_secret_refused():
    with pytest.raises(ValueError):
        TokenIssuer("")


def test_require_elevated():
    require_elevated(Claims("root", True))
    with pytest.raises(ForbiddenError):
        require_elevated(Claims("alice", False))


@pytest.mark.parametrize("is_admin", [True, False])
def test_self_passes_regardless_of_flag(is_admin):
    require_self_or_elevated(Claims("alice", is_admin), "alice")


@pytest.mark.parametrize("target", ["alice", "bob", "nobody-at-all"])
def test_admin_passes_for_any_target(target):
    require_self_or_elevated(Claims("root", True), target)


def test_other_user_is_forbidden():
    with pytest.raises(ForbiddenError):
        require_self_or_elevated(Claims("alice", False), "bob")


def test_user_id_guard():
    require_user_id_or_elevated(Claims("alice"), 3, 3)
    require_user_id_or_elevated(Claims("root", True), None, 99)
    with pytest.raises(ForbiddenError):
        require_user_id_or_elevated(Claims("alice"), 3, 4)
    with pytest.raises(UnauthenticatedError):
        require_user_id_or_elevated(Claims("ghost"), None, 4)

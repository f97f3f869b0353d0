import pytest
from sqlmodel import select
from sqlalchemy.exc import IntegrityError, OperationalError

from exercise_api import models, repositories, services
from exercise_api.errors import BadRequestError, NotFoundError, StorageError, UnauthorizedError
from exercise_api.schemas import UserRegisterIn


def _profile(username="alice", password="secret123"):
    return UserRegisterIn(username=username, password=password, first_name="Alice",
                          last_name="Liddell", email=f"{username}@example.com")


def test_register_then_authenticate(session):
    svc = services.UserService(session)
    created = svc.register(_profile())
    assert created.username == "alice"
    assert created.is_admin is False
    user = svc.authenticate("alice", "secret123")
    assert user.username == "alice"
    assert "password" not in user.model_dump()
    assert "password_hash" not in user.model_dump()


def test_password_is_stored_hashed(session):
    services.UserService(session).register(_profile())
    row = session.exec(select(models.User).where(models.User.username == "alice")).first()
    assert row.password_hash != "secret123"
    assert row.password_hash.startswith("$pbkdf2-sha256$")


def test_duplicate_register_is_bad_request(session):
    svc = services.UserService(session)
    svc.register(_profile())
    with pytest.raises(BadRequestError, match="Duplicate username"):
        svc.register(_profile(password="another1"))


def test_duplicate_caught_by_unique_constraint(session, monkeypatch):
    svc = services.UserService(session)
    svc.register(_profile())
    # simulate losing the race: only the pre-check misses the existing user
    real_lookup = svc.user_repo.get_by_username
    calls = []

    def racing_lookup(username):
        calls.append(username)
        return None if len(calls) == 1 else real_lookup(username)

    monkeypatch.setattr(svc.user_repo, "get_by_username", racing_lookup)
    with pytest.raises(BadRequestError, match="Duplicate username"):
        svc.register(_profile())
    monkeypatch.undo()
    assert len(svc.get_all()) == 1


def test_wrong_password_and_unknown_user_fail_identically(session):
    svc = services.UserService(session)
    svc.register(_profile())
    with pytest.raises(UnauthorizedError) as wrong_pw:
        svc.authenticate("alice", "wrong")
    with pytest.raises(UnauthorizedError) as no_user:
        svc.authenticate("nobody", "secret123")
    assert type(wrong_pw.value) is type(no_user.value)
    assert wrong_pw.value.message == no_user.value.message


def test_get_and_get_all(session, make_user):
    make_user("carol")
    make_user("bob")
    svc = services.UserService(session)
    assert svc.get("bob").email == "bob@example.com"
    assert [u.username for u in svc.get_all()] == ["bob", "carol"]
    with pytest.raises(NotFoundError):
        svc.get("zed")


def test_get_all_empty(session):
    assert services.UserService(session).get_all() == []


def test_update_email_only_touches_email(session, make_user):
    make_user("alice")
    svc = services.UserService(session)
    before = svc.get("alice")
    hash_before = repositories.UserRepository(session).get_by_username("alice").password_hash
    after = svc.update("alice", {"email": "x@y.com"})
    assert after.email == "x@y.com"
    assert after.model_dump(exclude={"email"}) == before.model_dump(exclude={"email"})
    session.expire_all()
    assert repositories.UserRepository(session).get_by_username("alice").password_hash == hash_before


def test_update_password_is_rehashed(session, make_user):
    make_user("alice")
    svc = services.UserService(session)
    svc.update("alice", {"password": "newpass99"})
    assert svc.authenticate("alice", "newpass99").username == "alice"
    with pytest.raises(UnauthorizedError):
        svc.authenticate("alice", "secret123")


def test_update_cannot_escalate_privilege(session, make_user):
    make_user("alice")
    svc = services.UserService(session)
    user = svc.update("alice", {"first_name": "Al", "is_admin": True})
    assert user.first_name == "Al"
    assert user.is_admin is False


def test_update_rejects_empty_and_unknown_user(session, make_user):
    make_user("alice")
    svc = services.UserService(session)
    with pytest.raises(BadRequestError):
        svc.update("alice", {})
    with pytest.raises(NotFoundError):
        svc.update("nobody", {"email": "x@y.com"})


def test_remove(session, make_user, make_exercise):
    alice = make_user("alice")
    ex = make_exercise()
    services.FavoriteService(session).toggle(alice.id, ex.id)
    svc = services.UserService(session)
    svc.remove("alice")
    with pytest.raises(NotFoundError):
        svc.get("alice")
    assert session.exec(select(models.UserFavorite)).all() == []
    with pytest.raises(NotFoundError):
        svc.remove("alice")


def test_storage_failure_is_wrapped(session, monkeypatch):
    svc = services.UserService(session)

    def boom(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("disk I/O error"))

    monkeypatch.setattr(svc.user_repo, "list_all", boom)
    with pytest.raises(StorageError):
        svc.get_all()


def test_other_constraint_failures_are_not_duplicates(session, monkeypatch):
    svc = services.UserService(session)

    def not_null_failure(user):
        raise IntegrityError("INSERT INTO users", {}, Exception("NOT NULL constraint failed: users.email"))

    monkeypatch.setattr(svc.user_repo, "create", not_null_failure)
    with pytest.raises(StorageError):
        svc.register(_profile())


@pytest.mark.parametrize("password", ["", None])
def test_update_rejects_blank_password(session, make_user, password):
    make_user("alice")
    svc = services.UserService(session)
    with pytest.raises(BadRequestError):
        svc.update("alice", {"password": password})
    session.expire_all()
    row = repositories.UserRepository(session).get_by_username("alice")
    assert row.password_hash.startswith("$pbkdf2-sha256$")
    assert svc.authenticate("alice", "secret123").username == "alice"


def test_get_id(session, make_user):
    alice = make_user("alice")
    svc = services.UserService(session)
    assert svc.get_id("alice") == alice.id
    assert svc.get_id("nobody") is None

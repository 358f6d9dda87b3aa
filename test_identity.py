import pytest

from errors import Forbidden, InvalidCredentials, InvalidInput, MissingInput, Unauthenticated
from identity import Identity, Session
from roles import ROLE_CAPABILITIES, Capability, Role, has_capability
from storage import CURRENT_USER_KEY, LOGGED_IN_KEY


def test_admin_login_yields_chief_role(identity, store):
    session = identity.authenticate("admin", "admin123")
    assert session.role is Role.KETUA_MEDIA
    assert session.full_name == "Ahmad Ketua"
    assert identity.is_logged_in
    # password never reaches storage
    assert "password" not in store.load(CURRENT_USER_KEY)
    assert store.load(LOGGED_IN_KEY) == "true"


def test_wrong_password_is_invalid_credentials(identity, store):
    with pytest.raises(InvalidCredentials):
        identity.authenticate("admin", "wrong")
    assert identity.session is None
    assert store.load(CURRENT_USER_KEY) is None


def test_unknown_user_is_invalid_credentials(identity):
    with pytest.raises(InvalidCredentials):
        identity.authenticate("ghost", "password123")


@pytest.mark.parametrize("username,password", [("", ""), ("admin", ""), ("", "admin123"), ("   ", "x")])
def test_empty_fields_are_missing_input(identity, username, password):
    with pytest.raises(MissingInput):
        identity.authenticate(username, password)


@pytest.mark.parametrize("username,password", [(123, "x"), ("admin", 123), (["admin"], "admin123")])
def test_non_text_fields_are_invalid_input(identity, store, username, password):
    with pytest.raises(InvalidInput):
        identity.authenticate(username, password)
    assert not identity.is_logged_in
    assert store.load(LOGGED_IN_KEY) is None


def test_username_is_trimmed(identity):
    assert identity.authenticate("  user3 ", "password123").username == "user3"


def test_restore_session_from_storage(identity, store):
    original = identity.authenticate("user4", "password123")
    restored = Identity(store).restore_session()
    assert restored == original


def test_restore_requires_logged_in_flag(identity, store):
    identity.authenticate("user4", "password123")
    store.remove(LOGGED_IN_KEY)
    assert Identity(store).restore_session() is None


def test_restore_discards_malformed_session(store):
    store.save(CURRENT_USER_KEY, {"username": "x", "fullName": "X", "role": "emperor"})
    store.save(LOGGED_IN_KEY, "true")
    fresh = Identity(store)
    assert fresh.restore_session() is None
    assert not fresh.can_view_all_submissions()


def test_end_session_fails_closed(identity, store):
    identity.authenticate("admin", "admin123")
    identity.end_session()
    assert store.load(CURRENT_USER_KEY) is None
    assert store.load(LOGGED_IN_KEY) is None
    assert not any(identity.capabilities().values())
    assert not identity.can_approve_submission()
    assert not identity.has_admin_role()
    with pytest.raises(Unauthenticated):
        identity.require_session()
    with pytest.raises(Unauthenticated):
        identity.require(Capability.APPROVE_SUBMISSION)


def test_require_forbidden_for_member(login, identity):
    login("user1")
    with pytest.raises(Forbidden):
        identity.require(Capability.APPROVE_LEAVE)


EXPECTED = {
    # username: (view_all, approve, support, view_video, view_poster, admin)
    "admin": (True, True, False, True, True, True),
    "user1": (False, False, False, False, False, False),
    "user2": (True, False, True, True, True, True),
    "user3": (True, False, True, True, True, True),
    "user4": (False, False, True, True, False, False),
    "user5": (False, False, True, False, True, False),
}


@pytest.mark.parametrize("username", sorted(EXPECTED))
def test_capability_predicates(login, identity, username):
    login(username)
    view_all, approve, support, video, poster, admin = EXPECTED[username]
    assert identity.can_view_all_submissions() is view_all
    assert identity.can_approve_submission() is approve
    assert identity.can_approve_leave() is approve
    assert identity.can_support_approval() is support
    assert identity.can_support_leave_approval() is support
    assert identity.can_view_video_submissions() is video
    assert identity.can_view_poster_submissions() is poster
    assert identity.has_admin_role() is admin


def test_only_chief_can_final_approve():
    approvers = {role for role, caps in ROLE_CAPABILITIES.items() if Capability.APPROVE_SUBMISSION in caps}
    assert approvers == {Role.KETUA_MEDIA}


def test_has_capability_accepts_strings_and_rejects_unknown():
    assert has_capability("jqc", Capability.SUPPORT_LEAVE)
    assert not has_capability("nobody", Capability.SUPPORT_LEAVE)
    assert not has_capability(None, Capability.ADMIN)


def test_session_from_user_strips_password():
    session = Session.from_user({
        "username": "u", "password": "secret", "fullName": "U",
        "role": "member", "roleName": "Member", "profilePic": "p.png",
    })
    assert "password" not in session.to_dict()

'''
Module: users_data.py

The fixed user table. Loaded once at import and never written back.

Each user is a dict with keys:
    - username (str): unique login name
    - password (str): plaintext, compared on login only
    - fullName (str): display name
    - role (str): one of roles.Role
    - roleName (str): display label for the role
    - profilePic (str): path to the avatar image
'''

from typing import Any, Dict


def _user(username: str, password: str, full_name: str, role: str, role_name: str) -> Dict[str, Any]:
    return {
        "username": username,
        "password": password,
        "fullName": full_name,
        "role": role,
        "roleName": role_name,
        "profilePic": f"assets/profile/{username}.png",
    }


USERS: Dict[str, Dict[str, Any]] = {
    u["username"]: u
    for u in (
        _user("admin", "admin123", "Ahmad Ketua", "ketua_media", "Ketua Media"),
        _user("user1", "password123", "Siti Member", "member", "Member"),
        _user("user2", "password123", "Budi Setiausaha", "setiausaha", "Setiausaha"),
        _user("user3", "password123", "Maya JQC", "jqc", "JQC"),
        _user("user4", "password123", "Rudi Video", "ketua_video", "Ketua Unit Video"),
        _user("user5", "password123", "Linda Poster", "ketua_poster", "Ketua Unit Poster"),
    )
}

# Username of the chief used to stamp seeded approvals
CHIEF_USERNAME = "admin"

"""In-memory user accounts and login tokens.

``AuthManager`` keeps users and active login tokens in process memory
behind one lock. Passwords are stored as argon2id hashes. The
``auth()``/``require_user()`` middleware in ``smallapi.middleware.auth``
look up the session's ``auth_token`` here.
"""

import secrets
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from smallapi.errors import AuthError
from smallapi.security.passwords import hash_password, verify_password

AUTH_TOKEN_KEY = "auth_token"


def _generate_id() -> str:
    return secrets.token_urlsafe(16)


@dataclass(slots=True)
class User:
    """A registered account. ``password_hash`` never leaves the server."""

    id: str
    username: str
    email: str
    password_hash: str = field(repr=False)
    data: dict[str, Any] = field(default_factory=dict)
    created: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready view without the password hash."""
        result: dict[str, Any] = {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "created": self.created.isoformat(),
        }
        if self.data:
            result["data"] = dict(self.data)
        return result


class AuthManager:
    """Users keyed by id, plus login tokens keyed by token.

    Usage::

        auth = AuthManager()
        user = auth.register("ada", "ada@example.com", "hunter22")
        token, user = auth.login("ada", "hunter22")
        assert auth.get_user(token) is user
    """

    __slots__ = ("_lock", "_tokens", "_users")

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._tokens: dict[str, User] = {}
        self._lock = threading.Lock()

    def register(self, username: str, email: str, password: str) -> User:
        """Create an account.

        Raises:
            AuthError: If the username or email is already taken.
        """
        with self._lock:
            for user in self._users.values():
                if user.username == username or user.email == email:
                    msg = "user already exists"
                    raise AuthError(msg)
            user = User(
                id=_generate_id(),
                username=username,
                email=email,
                password_hash=hash_password(password),
            )
            self._users[user.id] = user
            return user

    def login(self, username_or_email: str, password: str) -> tuple[str, User]:
        """Check credentials and issue a login token.

        Raises:
            AuthError: ``"user not found"`` or ``"invalid password"``.
        """
        with self._lock:
            user = next(
                (
                    u
                    for u in self._users.values()
                    if username_or_email in (u.username, u.email)
                ),
                None,
            )
        if user is None:
            msg = "user not found"
            raise AuthError(msg)
        if not verify_password(password, user.password_hash):
            msg = "invalid password"
            raise AuthError(msg)
        token = _generate_id()
        with self._lock:
            self._tokens[token] = user
        return token, user

    def logout(self, token: str) -> None:
        with self._lock:
            self._tokens.pop(token, None)

    def get_user(self, token: str) -> User | None:
        with self._lock:
            return self._tokens.get(token)

    def get_user_by_id(self, user_id: str) -> User | None:
        with self._lock:
            return self._users.get(user_id)

    def change_password(self, user_id: str, old_password: str, new_password: str) -> None:
        """Replace the password after checking the old one.

        Raises:
            AuthError: ``"user not found"`` or ``"invalid old password"``.
        """
        user = self._require(user_id)
        if not verify_password(old_password, user.password_hash):
            msg = "invalid old password"
            raise AuthError(msg)
        new_hash = hash_password(new_password)
        with self._lock:
            user.password_hash = new_hash

    def update_user(self, user_id: str, updates: dict[str, Any]) -> User:
        """Apply ``email`` and merge ``data`` from *updates*; other keys are ignored."""
        user = self._require(user_id)
        with self._lock:
            email = updates.get("email")
            if isinstance(email, str):
                user.email = email
            data = updates.get("data")
            if isinstance(data, dict):
                user.data.update(data)
        return user

    def delete_user(self, user_id: str) -> None:
        """Remove the account and every login token issued to it."""
        with self._lock:
            if user_id not in self._users:
                msg = "user not found"
                raise AuthError(msg)
            del self._users[user_id]
            for token in [t for t, u in self._tokens.items() if u.id == user_id]:
                del self._tokens[token]

    def list_users(self) -> list[User]:
        with self._lock:
            return list(self._users.values())

    def _require(self, user_id: str) -> User:
        with self._lock:
            user = self._users.get(user_id)
        if user is None:
            msg = "user not found"
            raise AuthError(msg)
        return user

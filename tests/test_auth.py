"""Tests for smallapi.auth and the auth middleware."""

import pytest

from smallapi import App, AuthManager
from smallapi.auth import AUTH_TOKEN_KEY
from smallapi.errors import AuthError
from smallapi.middleware import auth, require_user
from smallapi.testing import TestClient


@pytest.fixture
def manager() -> AuthManager:
    return AuthManager()


class TestRegister:
    def test_register(self, manager: AuthManager) -> None:
        user = manager.register("ada", "ada@example.com", "hunter22")
        assert user.username == "ada"
        assert user.password_hash.startswith("$argon2id$")
        assert manager.get_user_by_id(user.id) is user

    def test_duplicate_username(self, manager: AuthManager) -> None:
        manager.register("ada", "ada@example.com", "hunter22")
        with pytest.raises(AuthError, match="user already exists"):
            manager.register("ada", "other@example.com", "pw")

    def test_duplicate_email(self, manager: AuthManager) -> None:
        manager.register("ada", "ada@example.com", "hunter22")
        with pytest.raises(AuthError, match="user already exists"):
            manager.register("grace", "ada@example.com", "pw")

    def test_to_dict_hides_hash(self, manager: AuthManager) -> None:
        user = manager.register("ada", "ada@example.com", "hunter22")
        data = user.to_dict()
        assert "password_hash" not in data
        assert data["username"] == "ada"
        assert data["email"] == "ada@example.com"


class TestLogin:
    def test_login_by_username_or_email(self, manager: AuthManager) -> None:
        user = manager.register("ada", "ada@example.com", "hunter22")
        token, logged_in = manager.login("ada", "hunter22")
        assert logged_in is user
        assert manager.get_user(token) is user

        token2, _ = manager.login("ada@example.com", "hunter22")
        assert token2 != token

    def test_unknown_user(self, manager: AuthManager) -> None:
        with pytest.raises(AuthError, match="user not found"):
            manager.login("nobody", "pw")

    def test_wrong_password(self, manager: AuthManager) -> None:
        manager.register("ada", "ada@example.com", "hunter22")
        with pytest.raises(AuthError, match="invalid password"):
            manager.login("ada", "wrong")

    def test_logout(self, manager: AuthManager) -> None:
        manager.register("ada", "ada@example.com", "hunter22")
        token, _ = manager.login("ada", "hunter22")
        manager.logout(token)
        assert manager.get_user(token) is None
        manager.logout(token)


class TestAccountChanges:
    def test_change_password(self, manager: AuthManager) -> None:
        user = manager.register("ada", "ada@example.com", "old-pw")
        manager.change_password(user.id, "old-pw", "new-pw")
        manager.login("ada", "new-pw")
        with pytest.raises(AuthError):
            manager.login("ada", "old-pw")

    def test_change_password_wrong_old(self, manager: AuthManager) -> None:
        user = manager.register("ada", "ada@example.com", "old-pw")
        with pytest.raises(AuthError, match="invalid old password"):
            manager.change_password(user.id, "nope", "new-pw")

    def test_update_user(self, manager: AuthManager) -> None:
        user = manager.register("ada", "ada@example.com", "pw")
        manager.update_user(user.id, {"email": "new@example.com", "data": {"role": "admin"}, "id": "x"})
        assert user.email == "new@example.com"
        assert user.data == {"role": "admin"}
        assert user.id != "x"

    def test_update_unknown(self, manager: AuthManager) -> None:
        with pytest.raises(AuthError, match="user not found"):
            manager.update_user("missing", {})

    def test_delete_user_revokes_tokens(self, manager: AuthManager) -> None:
        user = manager.register("ada", "ada@example.com", "pw")
        token, _ = manager.login("ada", "pw")
        manager.delete_user(user.id)
        assert manager.get_user(token) is None
        assert manager.list_users() == []
        with pytest.raises(AuthError):
            manager.delete_user(user.id)

    def test_list_users(self, manager: AuthManager) -> None:
        manager.register("ada", "ada@example.com", "pw")
        manager.register("grace", "grace@example.com", "pw")
        assert sorted(u.username for u in manager.list_users()) == ["ada", "grace"]


def _auth_app(manager: AuthManager) -> App:
    app = App()

    @app.post("/login")
    async def login(ctx) -> None:
        token, user = manager.login(ctx.form("username"), ctx.form("password"))
        ctx.session.set(AUTH_TOKEN_KEY, token)
        ctx.json(user.to_dict())

    @app.post("/logout")
    def logout(ctx) -> None:
        manager.logout(ctx.session.get_str(AUTH_TOKEN_KEY))
        ctx.text("bye")

    private = app.group("/me")

    @private.get("")
    def me(ctx) -> None:
        user = ctx.get("user")
        ctx.json({"user": user.username if user else None})

    return app


class TestAuthMiddleware:
    async def test_anonymous_continues(self, manager: AuthManager) -> None:
        app = _auth_app(manager)
        app.use(auth(manager))

        async with TestClient(app) as client:
            response = await client.get("/me")

        assert response.json == {"user": None}

    async def test_logged_in_user_attached(self, manager: AuthManager) -> None:
        manager.register("ada", "ada@example.com", "hunter22")
        app = _auth_app(manager)
        app.use(auth(manager))

        async with TestClient(app) as client:
            await client.post("/login", form={"username": "ada", "password": "hunter22"})
            response = await client.get("/me")

        assert response.json == {"user": "ada"}


class TestRequireUser:
    async def test_no_token(self, manager: AuthManager) -> None:
        app = App()
        app.use(require_user(manager))
        app.get("/secret", lambda ctx: ctx.text("s"))

        async with TestClient(app) as client:
            response = await client.get("/secret")

        assert response.status == 401
        assert response.json == {"error": "Authentication required"}

    async def test_revoked_token(self, manager: AuthManager) -> None:
        manager.register("ada", "ada@example.com", "hunter22")
        app = _auth_app(manager)

        def guard(ctx) -> bool:
            if ctx.path == "/me":
                return require_user(manager)(ctx)
            return True

        app.use(guard)

        async with TestClient(app) as client:
            await client.post("/login", form={"username": "ada", "password": "hunter22"})
            assert (await client.get("/me")).json == {"user": "ada"}
            await client.post("/logout")
            response = await client.get("/me")

        assert response.status == 401
        assert response.json == {"error": "Invalid session"}

"""Auth — registration, login, sessions, and protected routes.

``AuthManager`` keeps users and login tokens in memory. The token lives in
the session, and the ``auth`` middleware puts the logged-in user on the
context for every request.

Run:
    cd examples/auth && python app.py
"""

from dataclasses import dataclass

from smallapi import App, AppConfig, AuthManager, constraint
from smallapi.auth import AUTH_TOKEN_KEY
from smallapi.errors import AuthError, Unauthorized
from smallapi.middleware.auth import auth
from smallapi.middleware.builtin import logger, recovery


@dataclass(slots=True)
class RegisterRequest:
    username: str = constraint("required,min=3,alphanum")
    email: str = constraint("required,email")
    password: str = constraint("required,min=6")
    name: str = constraint("required,min=2")


@dataclass(slots=True)
class LoginRequest:
    username: str = constraint("required,min=3")
    password: str = constraint("required,min=6")


@dataclass(slots=True)
class PasswordChange:
    old_password: str = constraint("required")
    new_password: str = constraint("required,min=6")


manager = AuthManager()
admin = manager.register("admin", "admin@example.com", "admin123")
manager.update_user(admin.id, {"data": {"name": "Administrator", "role": "admin"}})

app = App(AppConfig(secret_key="change-me"))
app.use(logger(), recovery(), auth(manager))


def current_user(ctx):
    user = ctx.get("user")
    if user is None:
        msg = "Authentication required"
        raise Unauthorized(msg)
    return user


@app.post("/register")
async def register(ctx):
    req = await ctx.bind(RegisterRequest)
    ctx.validate(req).raise_for_errors()
    try:
        user = manager.register(req.username, req.email, req.password)
    except AuthError as exc:
        ctx.status(409).json({"error": str(exc)})
        return
    manager.update_user(user.id, {"data": {"name": req.name, "role": "user"}})
    token, _ = manager.login(req.username, req.password)
    ctx.session.set(AUTH_TOKEN_KEY, token)
    ctx.status(201).json({"message": "Registration successful", "user": user.to_dict()})


@app.post("/login")
async def login(ctx):
    req = await ctx.bind(LoginRequest)
    ctx.validate(req).raise_for_errors()
    try:
        token, user = manager.login(req.username, req.password)
    except AuthError as exc:
        raise Unauthorized(str(exc)) from None
    ctx.session.set(AUTH_TOKEN_KEY, token)
    ctx.json({"message": "Login successful", "user": user.to_dict()})


@app.post("/logout")
def logout(ctx):
    token = ctx.session.get(AUTH_TOKEN_KEY)
    if token is not None:
        manager.logout(token)
    ctx.session.clear()
    ctx.json({"message": "Logged out"})


@app.get("/profile")
def profile(ctx):
    ctx.json(current_user(ctx).to_dict())


@app.put("/profile/password")
async def change_password(ctx):
    user = current_user(ctx)
    req = await ctx.bind(PasswordChange)
    ctx.validate(req).raise_for_errors()
    try:
        manager.change_password(user.id, req.old_password, req.new_password)
    except AuthError as exc:
        ctx.status(400).json({"error": str(exc)})
        return
    ctx.json({"message": "Password changed"})


@app.get("/admin/users")
def list_users(ctx):
    user = current_user(ctx)
    if user.data.get("role") != "admin":
        ctx.status(403).json({"error": "Admin access required"})
        return
    ctx.json({"users": [u.to_dict() for u in manager.list_users()]})


if __name__ == "__main__":
    app.run()

"""OpenAPI document and Swagger UI page for the registered routes.

``App.enable_docs()`` adds two routes: ``GET /docs`` serves the Swagger
UI page and ``GET /docs.json`` serves an OpenAPI 3.0.0 document built
from the route table at request time.
"""

from __future__ import annotations

import html
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from smallapi.routing.route import Param, Route

if TYPE_CHECKING:
    from smallapi.context import Context

OPENAPI_VERSION = "3.0.0"
DOCS_PATH = "/docs"
SPEC_PATH = "/docs.json"
SWAGGER_UI_CDN = "https://unpkg.com/swagger-ui-dist@5"


@dataclass(frozen=True, slots=True)
class DocsConfig:
    """Info block of the generated document."""

    title: str = "SmallAPI Documentation"
    version: str = "1.0.0"
    description: str = "API documentation powered by SmallAPI"
    contact: dict[str, str] = field(default_factory=dict)
    credits: tuple[str, ...] = ("Powered by SmallAPI Framework",)


def openapi_path(route: Route) -> str:
    """Route template in OpenAPI form: ``/users/:id`` -> ``/users/{id}``."""
    parts = [
        f"{{{seg.name}}}" if isinstance(seg, Param) else seg.value
        for seg in route.pattern.segments
    ]
    return "/" + "/".join(parts)


def _parameters(route: Route) -> list[dict[str, Any]]:
    return [
        {
            "name": name,
            "in": "path",
            "required": True,
            "description": f"Path parameter: {name}",
            "schema": {"type": "string"},
        }
        for name in route.pattern.param_names
    ]


def build_openapi(routes: Iterable[Route], config: DocsConfig | None = None) -> dict[str, Any]:
    """Build the OpenAPI document for *routes*, skipping the docs routes."""
    config = config or DocsConfig()
    info: dict[str, Any] = {
        "title": config.title,
        "version": config.version,
        "description": config.description,
    }
    if config.contact:
        info["contact"] = dict(config.contact)
    if config.credits:
        info["x-credits"] = list(config.credits)

    paths: dict[str, dict[str, Any]] = {}
    for route in routes:
        if route.path in (DOCS_PATH, SPEC_PATH):
            continue
        operation: dict[str, Any] = {
            "summary": route.name or f"{route.method} {route.path}",
            "responses": {"200": {"description": "Successful operation"}},
        }
        parameters = _parameters(route)
        if parameters:
            operation["parameters"] = parameters
        paths.setdefault(openapi_path(route), {})[route.method.lower()] = operation

    return {"openapi": OPENAPI_VERSION, "info": info, "paths": paths}


def docs_page(config: DocsConfig | None = None) -> str:
    """Swagger UI page pointing at ``/docs.json``."""
    title = html.escape((config or DocsConfig()).title)
    return f"""<!DOCTYPE html>
<html>
<head>
    <title>{title}</title>
    <link rel="stylesheet" href="{SWAGGER_UI_CDN}/swagger-ui.css">
    <style>.topbar {{ display: none }}</style>
</head>
<body>
    <div id="swagger-ui"></div>
    <script src="{SWAGGER_UI_CDN}/swagger-ui-bundle.js"></script>
    <script>
        window.onload = () => {{
            SwaggerUIBundle({{url: "{SPEC_PATH}", dom_id: "#swagger-ui", deepLinking: true}});
        }};
    </script>
</body>
</html>"""


class DocsHandlers:
    """The two docs route handlers, bound to a route source."""

    __slots__ = ("_config", "_routes")

    def __init__(
        self, routes: Callable[[], Iterable[Route]], config: DocsConfig | None = None
    ) -> None:
        # Called on every request for the current route list
        self._routes = routes
        self._config = config or DocsConfig()

    def page(self, ctx: Context) -> None:
        ctx.html(docs_page(self._config))

    def spec(self, ctx: Context) -> None:
        ctx.set_header("X-Powered-By", "SmallAPI")
        ctx.json(build_openapi(self._routes(), self._config))

"""Linear-scan router.

Routes are appended during setup through ``Router`` and compiled into an
immutable ``RouteTable`` when the app freezes. Matching walks the table
in registration order and returns the first route whose method and
segments fit.
"""

from dataclasses import dataclass

from smallapi._internal.types import Handler
from smallapi.errors import ConfigurationError
from smallapi.routing.route import Literal, Param, Route, RouteMatch, RoutePattern, Segment


def split_path(path: str) -> list[str]:
    """Split a path into segments after trimming surrounding slashes.

    ``"/"`` and ``""`` both give ``[""]``, so the root template and the
    root request line up as one empty segment.
    """
    return path.strip("/").split("/")


def compile_pattern(path: str) -> RoutePattern:
    """Compile a path template into a ``RoutePattern``.

    Examples::

        "/"              -> (Literal(""),)
        "/users"         -> (Literal("users"),)
        "/users/:id"     -> (Literal("users"), Param("id"))
        "/a/:x/b/:y"     -> (Literal("a"), Param("x"), Literal("b"), Param("y"))

    Raises:
        ConfigurationError: If a segment is a bare ``:``.
    """
    segments: list[Segment] = []
    for part in split_path(path):
        if part.startswith(":"):
            name = part[1:]
            if not name:
                msg = f"Route {path!r} has a parameter segment with no name."
                raise ConfigurationError(msg)
            segments.append(Param(name))
        else:
            segments.append(Literal(part))
    return RoutePattern(tuple(segments))


def match_pattern(pattern: RoutePattern, path: str) -> dict[str, str] | None:
    """Bind *path* against *pattern*; return params or None on mismatch.

    Param values are the raw segment text, not percent-decoded.
    """
    parts = split_path(path)
    if len(parts) != len(pattern.segments):
        return None
    params: dict[str, str] = {}
    for segment, part in zip(pattern.segments, parts, strict=True):
        if isinstance(segment, Param):
            params[segment.name] = part
        elif segment.value != part:
            return None
    return params


@dataclass(frozen=True, slots=True)
class RouteTable:
    """Immutable, ordered route list used while serving."""

    routes: tuple[Route, ...] = ()

    def match(self, method: str, path: str) -> RouteMatch | None:
        """Find the first route matching *method* and *path*.

        Method comparison is exact. ``None`` means no route fits and the
        caller answers 404.
        """
        for route in self.routes:
            if route.method != method:
                continue
            params = match_pattern(route.pattern, path)
            if params is not None:
                return RouteMatch(route=route, params=params)
        return None

    def describe(self) -> list[tuple[str, str, str | None]]:
        """Return ``(method, path, name)`` rows in registration order."""
        return [(route.method, route.path, route.name) for route in self.routes]

    def __len__(self) -> int:
        return len(self.routes)


class Router:
    """Append-only route builder.

    Usage::

        router = Router()
        router.add("GET", "/users/:id", show_user)
        table = router.compile()
        match = table.match("GET", "/users/42")
    """

    __slots__ = ("_compiled", "_routes")

    def __init__(self) -> None:
        self._routes: list[Route] = []
        self._compiled = False

    def add(
        self,
        method: str,
        path: str,
        handler: Handler,
        *,
        name: str | None = None,
    ) -> Route:
        """Append a route. Duplicates are kept; the earlier one wins at match time."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)
        route = Route(
            method=method,
            path=path,
            pattern=compile_pattern(path),
            handler=handler,
            name=name,
        )
        self._routes.append(route)
        return route

    @property
    def routes(self) -> tuple[Route, ...]:
        return tuple(self._routes)

    def compile(self) -> RouteTable:
        """Freeze the builder and return the serving table."""
        self._compiled = True
        return RouteTable(tuple(self._routes))

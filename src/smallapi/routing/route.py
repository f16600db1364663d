"""Route pattern segments, Route, and RouteMatch frozen dataclasses."""

from dataclasses import dataclass

from smallapi._internal.types import Handler


@dataclass(frozen=True, slots=True)
class Literal:
    """A segment that must equal the request segment exactly."""

    value: str


@dataclass(frozen=True, slots=True)
class Param:
    """A segment that binds whatever text the request has there."""

    name: str


type Segment = Literal | Param


@dataclass(frozen=True, slots=True)
class RoutePattern:
    """An ordered sequence of segments compiled from a path template.

    ``/users/:id`` -> ``(Literal("users"), Param("id"))``
    """

    segments: tuple[Segment, ...]

    @property
    def param_names(self) -> tuple[str, ...]:
        return tuple(seg.name for seg in self.segments if isinstance(seg, Param))


@dataclass(frozen=True, slots=True)
class Route:
    """A registered route. Owned by the router, never mutated."""

    method: str
    path: str
    pattern: RoutePattern
    handler: Handler
    name: str | None = None


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    params: dict[str, str]

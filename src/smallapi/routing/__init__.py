"""Route pattern compiler and linear-scan router."""

from smallapi.routing.route import Literal, Param, Route, RouteMatch, RoutePattern
from smallapi.routing.router import Router, RouteTable, compile_pattern

__all__ = [
    "Literal",
    "Param",
    "Route",
    "RouteMatch",
    "RoutePattern",
    "RouteTable",
    "Router",
    "compile_pattern",
]

"""Kida environment setup for ``Context.render``.

The environment is created once during ``App._freeze()`` when a template
directory is configured. ``kida`` is an optional dependency
(``pip install smallapi[templates]``).
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from smallapi.errors import ConfigurationError

if TYPE_CHECKING:
    from kida import Environment


def _div(a: float, b: float) -> float:
    if b == 0:
        return 0
    return a / b


# Arithmetic and string helpers available in every template
DEFAULT_FILTERS: dict[str, Callable[..., Any]] = {
    "add": lambda a, b: a + b,
    "sub": lambda a, b: a - b,
    "mul": lambda a, b: a * b,
    "div": _div,
    "join": lambda items, sep=", ": sep.join(str(i) for i in items),
    "split": lambda s, sep=",": s.split(sep),
}


def create_environment(
    directory: str | Path,
    filters: Mapping[str, Callable[..., Any]] | None = None,
    *,
    debug: bool = False,
) -> Environment:
    """Create a kida Environment loading templates from *directory*.

    User *filters* override the defaults of the same name. Every filter
    is also registered as a global so templates can call ``add(a, b)``.

    Raises:
        ConfigurationError: If kida is not installed or *directory* is missing.
    """
    try:
        from kida import Environment, FileSystemLoader
    except ImportError:
        msg = (
            "Template rendering requires the 'kida' package. "
            "Install it with: pip install smallapi[templates]"
        )
        raise ConfigurationError(msg) from None

    path = Path(directory)
    if not path.is_dir():
        msg = f"Template directory does not exist: {path}"
        raise ConfigurationError(msg)

    env = Environment(
        loader=FileSystemLoader(str(path)),
        autoescape=True,
        auto_reload=debug,
    )
    merged = {**DEFAULT_FILTERS, **(filters or {})}
    env.update_filters(merged)
    for name, func in merged.items():
        env.add_global(name, func)
    return env


def render_template(env: Environment, name: str, context: Mapping[str, Any]) -> str:
    """Render template *name* to a string."""
    template = env.get_template(name)
    return template.render(dict(context))

"""Static file mounts.

``App.static(prefix, directory)`` registers a ``StaticFiles`` mount. The
request pipeline asks every mount, in registration order, before any
middleware runs. A path that names no existing regular file falls
through to the middleware and router.
"""

import mimetypes
from pathlib import Path

from smallapi.http.request import Request
from smallapi.http.response import Response


class StaticFiles:
    """Serve regular files from *directory* under a URL *prefix*.

    Security: resolves symlinks and verifies the final path is within
    the directory, so ``..`` segments cannot escape it.
    """

    __slots__ = ("_cache_control", "_directory", "_prefix")

    def __init__(
        self,
        directory: str | Path,
        prefix: str = "/static",
        *,
        cache_control: str = "public, max-age=3600",
    ) -> None:
        self._directory = Path(directory).resolve()
        self._cache_control = cache_control
        stripped = "/" + prefix.strip("/")
        self._prefix = stripped if stripped != "/" else ""

    @property
    def prefix(self) -> str:
        return self._prefix or "/"

    @property
    def directory(self) -> Path:
        return self._directory

    def try_serve(self, request: Request) -> Response | None:
        """Return a file response, or None to let the request continue."""
        if request.method not in ("GET", "HEAD"):
            return None

        path = request.path
        if self._prefix:
            if not path.startswith(self._prefix + "/"):
                return None
            relative = path[len(self._prefix) :].lstrip("/")
        else:
            relative = path.lstrip("/")
        if not relative:
            return None

        file_path = (self._directory / relative).resolve()
        if not file_path.is_relative_to(self._directory) or not file_path.is_file():
            return None

        return serve_file(file_path).with_header("Cache-Control", self._cache_control)


def serve_file(file_path: Path, *, status: int = 200) -> Response:
    """Read *file_path* into a response with a guessed content type."""
    content_type, _ = mimetypes.guess_type(str(file_path))
    body = file_path.read_bytes()
    return Response(
        body=body,
        status=status,
        content_type=content_type or "application/octet-stream",
    )

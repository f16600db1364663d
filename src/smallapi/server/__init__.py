"""Request pipeline and servers."""

from smallapi.server.handler import handle_request
from smallapi.server.raw import Server
from smallapi.server.sender import send_response

__all__ = ["Server", "handle_request", "send_response"]

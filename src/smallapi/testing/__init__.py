"""Test utilities for smallapi applications::

    from smallapi.testing import TestClient
"""

from smallapi.testing.client import TestClient, WebSocketSession

__all__ = ["TestClient", "WebSocketSession"]

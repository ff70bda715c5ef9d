"""Operating system utility functions for ergosim."""

import os
import socket
import uuid


def default_node_id() -> str:
    """Build a node identifier unique across hosts, processes and restarts.

    :return: ``<hostname>-<pid>-<8 hex digits>``
    :rtype: str

    Example:
        >>> default_node_id()
        'compute-17-4242-1f3a9c0e'
    """
    return f"{socket.gethostname()}-{os.getpid()}-{uuid.uuid4().hex[:8]}"

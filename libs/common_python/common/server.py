"""Process entrypoint helpers: bind, serve, and map fatal errors to exit codes."""

import logging
import socket

import uvicorn
from fastapi import FastAPI

logger = logging.getLogger(__name__)


def open_listener(bind: str, port: int) -> socket.socket:
    """Bind a listening TCP socket on `bind:port`.

    Raises:
        OSError: If the address is in use, not permitted, or not resolvable.
    """
    family = socket.AF_INET6 if ":" in bind else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((bind, port))
        sock.listen(socket.SOMAXCONN)
    except OSError:
        sock.close()
        raise
    return sock


def serve(app: FastAPI, bind: str, port: int) -> int:
    """Run `app` on `bind:port` until shutdown.

    Returns:
        int: 0 after a normal shutdown, 1 if the port could not be bound.
    """
    try:
        sock = open_listener(bind, port)
    except OSError as exc:
        logger.error("server error: %s", exc)
        return 1

    logger.info("listening on http://%s:%s", bind, port)
    server = uvicorn.Server(uvicorn.Config(app, log_config=None))
    try:
        server.run(sockets=[sock])
    finally:
        sock.close()
    return 0

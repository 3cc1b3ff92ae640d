"""Local receiver for the OAuth redirect.

The provider redirects the browser to ``http://127.0.0.1:<port>/auth/callback``
with a one-time ``code``.  A FastAPI app served by uvicorn, running on the
TUI's own event loop, hands that code to the controller and answers the
browser with a short page.  The server shuts itself down after one
callback.
"""

from __future__ import annotations

import asyncio
import contextlib
import html
import socket
from collections.abc import Awaitable, Callable

import uvicorn
from fastapi import FastAPI
from fastapi.responses import HTMLResponse

from .log import logger
from .models import OpResult

CALLBACK_PATH = "/auth/callback"

CodeHandler = Callable[[str], Awaitable[OpResult]]

_PAGE = """<!doctype html>
<html><head><meta charset="utf-8"><title>Bookmark TUI</title></head>
<body style="font-family: sans-serif; margin: 4em auto; max-width: 32em;">
<h2>{heading}</h2><p>{body}</p></body></html>
"""


def render_page(ok: bool, detail: str = "") -> str:
    if ok:
        return _PAGE.format(
            heading="Signed in",
            body="You can close this tab and return to the terminal.",
        )
    return _PAGE.format(
        heading="Sign-in failed",
        body=html.escape(detail or "No authorization code was received."),
    )


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the host app."""

    def install_signal_handlers(self) -> None:  # older uvicorn
        pass

    @contextlib.contextmanager
    def capture_signals(self):  # newer uvicorn
        yield


class AuthCallbackServer:
    def __init__(
        self, port: int, on_code: CodeHandler, *, host: str = "127.0.0.1"
    ) -> None:
        self.host = host
        self.port = port
        self._on_code = on_code
        self._server: _EmbeddedServer | None = None
        self._task: asyncio.Task | None = None
        self.received = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def create_app(self) -> FastAPI:
        app = FastAPI(title="Bookmark TUI auth callback", docs_url=None, redoc_url=None)

        @app.get(CALLBACK_PATH, response_class=HTMLResponse)
        async def callback(
            code: str = "", error: str = "", error_description: str = ""
        ) -> HTMLResponse:
            if error or not code:
                logger.warning("OAuth redirect without code: %s", error or "empty")
                return HTMLResponse(
                    render_page(False, error_description or error), status_code=400
                )
            self.received = True
            result = await self._on_code(code)
            self._request_shutdown()
            if not result.ok:
                return HTMLResponse(render_page(False, result.error), status_code=502)
            return HTMLResponse(render_page(True))

        return app

    async def start(self) -> None:
        """Bind the port and serve in a background task.

        Raises OSError if the port is unavailable; binding happens here so
        uvicorn never gets the chance to ``sys.exit`` on failure.
        """
        if self.running:
            return
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self.host, self.port))
        except OSError:
            sock.close()
            raise
        # log_config=None keeps uvicorn from installing stderr handlers under the TUI
        config = uvicorn.Config(
            self.create_app(),
            log_config=None,
            log_level="warning",
            lifespan="off",
            access_log=False,
        )
        self._server = _EmbeddedServer(config)
        self.received = False
        self._task = asyncio.get_running_loop().create_task(
            self._server.serve(sockets=[sock])
        )
        logger.debug("OAuth callback listening on %s:%d", self.host, self.port)

    def _request_shutdown(self) -> None:
        if self._server is not None:
            self._server.should_exit = True

    async def stop(self) -> None:
        self._request_shutdown()
        task, self._task = self._task, None
        if task is not None:
            try:
                await asyncio.wait_for(task, timeout=5)
            except asyncio.TimeoutError:
                logger.debug("OAuth callback server did not stop in time")
        self._server = None

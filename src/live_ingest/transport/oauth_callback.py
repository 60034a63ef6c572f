"""
Loopback HTTP listener that captures the OAuth redirect.
"""

from __future__ import annotations

import asyncio
import html
import secrets
import threading
import time
import webbrowser
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Dict, Optional

import uvicorn
from fastapi import APIRouter, FastAPI
from loguru import logger
from starlette.responses import HTMLResponse

from ..errors import AuthenticationError
from .oauth import OAuthManager, TokenSet


_OAUTH_STATE_TTL = 600  # 10 minutes


class OAuthCallbackServer:
    """
    Serves the redirect path on localhost until one authorization code (or
    error) arrives, then hands it to the waiting thread.
    """

    def __init__(self, host: str = "localhost", port: int = 8585, path: str = "/oauth/callback"):
        self.host = host
        self.port = port
        self.path = path
        self._states: Dict[str, float] = {}
        self._result: Future = Future()
        self._server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None
        self.app = FastAPI()
        self.app.include_router(self._build_router())

    def new_state(self) -> str:
        """Create a CSRF state token to embed in the authorization URL."""
        self._cleanup_expired_states()
        state = secrets.token_urlsafe(32)
        self._states[state] = time.time()
        return state

    def _cleanup_expired_states(self) -> None:
        now = time.time()
        expired = [s for s, ts in self._states.items() if now - ts > _OAUTH_STATE_TTL]
        for s in expired:
            del self._states[s]

    def _resolve(self, code: Optional[str] = None, error: Optional[Exception] = None) -> None:
        if self._result.done():
            return
        if error is not None:
            self._result.set_exception(error)
        else:
            self._result.set_result(code)

    def _build_router(self) -> APIRouter:
        router = APIRouter()

        @router.get(self.path, response_class=HTMLResponse)
        async def oauth_callback(
            code: Optional[str] = None,
            error: Optional[str] = None,
            state: Optional[str] = None,
        ):
            self._cleanup_expired_states()
            if not state or state not in self._states:
                logger.warning("[YouTube] OAuth callback with invalid or expired state")
                return HTMLResponse(
                    content="<h1>Error</h1><p>Invalid or expired state. Please retry.</p>",
                    status_code=400,
                )
            del self._states[state]

            if error:
                logger.error(f"[YouTube] Authorization denied: {error}")
                self._resolve(error=AuthenticationError(f"Authorization denied: {error}"))
                return HTMLResponse(
                    content=f"<h1>Authorization failed</h1><p>{html.escape(error)}</p>",
                    status_code=400,
                )
            if not code:
                return HTMLResponse(
                    content="<h1>Error</h1><p>Missing authorization code.</p>",
                    status_code=400,
                )

            self._resolve(code=code)
            logger.info("[YouTube] Authorization code received")
            return HTMLResponse(
                content="<h1>Authorization complete</h1>"
                "<p>You can close this window and return to the application.</p>"
            )

        return router

    def start(self) -> None:
        config = uvicorn.Config(self.app, host=self.host, port=self.port, log_level="warning")
        self._server = uvicorn.Server(config)
        self._thread = threading.Thread(
            target=self._server.run, name="oauth-callback", daemon=True
        )
        self._thread.start()
        logger.info(f"[YouTube] Waiting for OAuth redirect on http://{self.host}:{self.port}{self.path}")

    def wait_for_code(self, timeout: float = 300.0) -> str:
        """
        Block until the redirect arrives.

        Raises:
            AuthenticationError: On a denied consent or timeout
        """
        try:
            return self._result.result(timeout=timeout)
        except FutureTimeoutError as e:
            raise AuthenticationError(
                f"No authorization received within {timeout:.0f}s"
            ) from e

    def stop(self) -> None:
        if self._server is not None:
            self._server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout=5)
        self._server = None
        self._thread = None

    def __enter__(self) -> "OAuthCallbackServer":
        self.start()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.stop()


def authorize_interactively(
    oauth: OAuthManager,
    server: OAuthCallbackServer,
    open_browser: bool = True,
    timeout: float = 300.0,
) -> TokenSet:
    """
    Run the full consent flow: open the consent page, wait for the redirect,
    exchange the code.

    Raises:
        AuthenticationError: If consent is denied, times out, or the code is rejected
    """
    with server:
        auth_url = oauth.generate_auth_url(server.new_state())
        logger.info(f"[YouTube] Open this URL to authorize access:\n{auth_url}")
        if open_browser:
            webbrowser.open(auth_url)
        code = server.wait_for_code(timeout=timeout)
    return asyncio.run(oauth.exchange_code(code))

"""Session management for the remote client.

One ``SessionManager`` is created per process. It connects lazily, at most once,
and hands the same ``Session`` to every caller.
"""

import asyncio
import logging
from dataclasses import dataclass

from alexa_media_controller.credential_store import COOKIE_KEY, CSRF_KEY, CredentialStore
from alexa_media_controller.errors import ConnectionFailed, ControllerError, NotAuthenticated
from alexa_media_controller.remote_client import Connector, Credentials, RemoteClient


@dataclass
class Session:
    """Authenticated handle shared by all commands of one process.

    Attributes:
        client: Logged in remote client.
        store: Credential store the session was built from.
    """

    client: RemoteClient
    store: CredentialStore


class SessionManager:
    """Create and cache the process session.

    Attributes:
        store: Credential store holding the cookie and csrf token.
        connector: Async callable that logs in with stored credentials.
        logger: Logger instance.
    """

    def __init__(self, store: CredentialStore, connector: Connector, logger: logging.Logger) -> None:
        self.store = store
        self.connector = connector
        self.logger = logger
        self._session: Session | None = None
        self._pending: asyncio.Task[Session] | None = None

    @property
    def session(self) -> Session | None:
        """The established session, None before the first successful connect."""
        return self._session

    async def get_session(self) -> Session:
        """Return the process session, connecting on first use.

        Concurrent callers during the first connect all await the same attempt.

        Returns:
            The shared Session.

        Raises:
            NotAuthenticated: No cookie is stored.
            ConnectionFailed: The stored credentials could not be used.
        """
        if self._session is not None:
            return self._session
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._connect())
        pending = self._pending
        try:
            return await asyncio.shield(pending)
        finally:
            # AIDEV-NOTE: failed attempts are not cached so a later call can try again
            if pending.done() and self._pending is pending and self._session is None:
                self._pending = None

    async def _connect(self) -> Session:
        cookie = self.store.get(COOKIE_KEY)
        if not cookie:
            raise NotAuthenticated()
        credentials = Credentials(cookie=cookie, csrf=self.store.get(CSRF_KEY))

        try:
            result = await self.connector(credentials)
        except ControllerError:
            raise
        except Exception as e:
            self.logger.error("Connection failed: %s", e)
            raise ConnectionFailed(e) from e

        if result.refreshed_cookie and result.refreshed_cookie != cookie:
            self.store.set(COOKIE_KEY, result.refreshed_cookie)
            self.logger.info("Saved refreshed session cookie")

        self._session = Session(client=result.client, store=self.store)
        self.logger.info("Session established")
        return self._session

    async def close(self) -> None:
        """Release the remote client of the established session, if any."""
        if self._session is not None:
            await self._session.client.close()

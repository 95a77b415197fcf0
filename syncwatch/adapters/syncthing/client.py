"""
Syncthing REST client.

Thin async wrapper over the handful of endpoints the watcher needs. Every
non-200 answer is mapped onto the infra error taxonomy so callers can tell
"retry later" (connection, 5xx) from "give up" (auth, bad request).
"""

import asyncio
from typing import Any, List, Optional, Sequence

import httpx

from infra.config import Syncthing, Timeouts
from infra.exceptions import RETRYABLE_ERRORS
from infra.health import HealthFlag
from infra.httpx_handler import map_httpx_error_to_exception, raise_for_status
from infra.logger import get_logger
from infra.reconnect import retry_forever
from syncwatch.core.models import FolderConfiguration, RemoteEvent, SUBSCRIBED_EVENTS

log = get_logger("syncwatch.syncthing")

ERROR_PREFIX = "[syncwatch] "


class SyncthingClient:

    def __init__(
        self,
        target: str,
        *,
        api_key: str = "",
        user: str = "",
        password: str = "",
        csrf_token: str = "",
        timeout: float = Timeouts.STANDARD,
        scan_timeout: float = Timeouts.SCAN,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if "://" not in target:
            target = "http://" + target
        self.base_url = target.rstrip("/")
        self.scan_timeout = scan_timeout
        self.health = HealthFlag()

        headers = {}
        if api_key:
            headers["X-API-Key"] = api_key
        if csrf_token:
            headers["X-CSRF-Token"] = csrf_token

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            auth=httpx.BasicAuth(user, password) if user else None,
            # the GUI ships a self-signed certificate
            verify=False,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config, gui, transport: Optional[httpx.AsyncBaseTransport] = None) -> "SyncthingClient":
        return cls(
            config.resolve_target(gui),
            api_key=config.resolve_api_key(gui),
            user=config.resolve_user(gui),
            password=config.PASSWORD.get_secret_value(),
            csrf_token=config.csrf_token(),
            timeout=config.REQUEST_TIMEOUT_S,
            scan_timeout=config.SCAN_TIMEOUT_S,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "SyncthingClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # === Transport ===

    async def _request(
        self,
        method: str,
        path: str,
        context: str,
        *,
        params: Any = None,
        content: Optional[str] = None,
        headers: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        try:
            response = await self.client.request(
                method,
                path,
                params=params,
                content=content,
                headers=headers,
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.HTTPError as e:
            raise map_httpx_error_to_exception(e, context) from e
        raise_for_status(response, context)
        return response

    # === Endpoints ===

    async def ping(self) -> None:
        try:
            await self._request("GET", Syncthing.PING, "GET /rest/system/ping")
        except RETRYABLE_ERRORS:
            self.health.set_not_ready()
            raise
        self.health.set_ready()

    async def wait_until_ready(self, max_delay: float = 30.0) -> None:
        """Retry ``ping`` with exponential backoff until Syncthing answers."""
        log.info("syncthing.waiting", target=self.base_url)
        await retry_forever(
            self.ping,
            base_delay=1.0,
            max_delay=max_delay,
            retryable_exceptions=list(RETRYABLE_ERRORS),
            name="syncthing.ping",
        )
        log.info("syncthing.ready", target=self.base_url)

    async def get_folders(self) -> List[FolderConfiguration]:
        response = await self._request("GET", Syncthing.CONFIG, "GET /rest/system/config")
        folders = response.json().get("folders") or []
        return [FolderConfiguration.from_api(f) for f in folders]

    async def get_ignore_patterns(self, folder_id: str) -> List[str]:
        response = await self._request(
            "GET",
            Syncthing.IGNORES,
            f"GET /rest/db/ignores ({folder_id})",
            params={"folder": folder_id},
        )
        return list(response.json().get("patterns") or [])

    async def scan(
        self,
        folder_id: str,
        subs: Sequence[str],
        next_s: Optional[int] = None,
    ) -> None:
        """Request a rescan; returns once Syncthing has finished it."""
        params = [("folder", folder_id)]
        params += [("sub", sub) for sub in subs]
        if next_s:
            params.append(("next", str(next_s)))
        await self._request(
            "POST",
            Syncthing.SCAN,
            f"POST /rest/db/scan ({folder_id})",
            params=params,
            timeout=self.scan_timeout,
        )

    async def get_events(self, since: int, timeout: float = Timeouts.EVENTS_LONG_POLL) -> List[RemoteEvent]:
        response = await self._request(
            "GET",
            Syncthing.EVENTS,
            "GET /rest/events",
            params={"since": since, "events": SUBSCRIBED_EVENTS},
            timeout=timeout,
        )
        return [RemoteEvent.from_api(e) for e in response.json() or []]

    async def config_in_sync(self) -> bool:
        response = await self._request("GET", Syncthing.CONFIG_INSYNC, "GET /rest/system/config/insync")
        return bool(response.json().get("configInSync"))

    async def wait_for_config_sync(self, interval: float = Timeouts.CONFIG_SYNC) -> None:
        while True:
            try:
                if await self.config_in_sync():
                    return
            except RETRYABLE_ERRORS as e:
                log.warning("syncthing.insync.failed", error=str(e))
            await asyncio.sleep(interval)

    async def report_error(self, message: str) -> bool:
        """Show ``message`` in the Syncthing GUI; never raises."""
        log.info("syncthing.report_error", message=message)
        try:
            await self._request(
                "POST",
                Syncthing.ERROR,
                "POST /rest/system/error",
                content=ERROR_PREFIX + message,
                headers={"Content-Type": "text/plain"},
            )
        except (ConnectionError, RuntimeError) as e:
            log.warning("syncthing.report_error.failed", message=message, error=str(e))
            return False
        return True

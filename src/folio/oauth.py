"""LinkedIn timeline import over an OAuth authorization-code flow.

The provider's client secret never reaches this process: a small proxy
backend builds the authorization URL and exchanges the code.

Proxy routes
------------
GET  {proxy}/api/linkedin/auth-url?redirectUri=...&state=...[&scope=...]
     -> ``{authUrl, scope, redirectUri}`` or ``{error, details, setup[]}``
POST {proxy}/api/linkedin/sync   ``{code, redirectUri, fallbackProfileUrl}``
     -> ``{payload, warnings[], message}`` or ``{error}``

Flow
----
``IDLE -> AUTHORIZING -> AWAITING_CALLBACK`` (browser leaves for the provider)
then, on the next load, ``EXCHANGING -> COMPLETED | FAILED``.

The anti-forgery ``state`` lives in the session store and is consumed by the
first callback attempt whatever its outcome, so a reload or back-navigation
can never replay a code.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

import httpx

from folio.config import LinkedInSyncConfig
from folio.errors import ConfigurationError
from folio.timeline import get_editable_timeline, normalize_payload, save_timeline_payload

if TYPE_CHECKING:
    from folio.flat import SessionStore
    from folio.store import DualStore

STATE_KEY = "portfolio.linkedin.oauthState"
RETURN_ROUTE_KEY = "portfolio.linkedin.returnRoute"
DEFAULT_RETURN_ROUTE = "#/experience"


class OAuthPhase(str, Enum):
    IDLE = "idle"
    AUTHORIZING = "authorizing"
    AWAITING_CALLBACK = "awaiting_callback"
    EXCHANGING = "exchanging"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class CallbackResult:
    ok: bool
    message: str
    warnings: list[str] = field(default_factory=list)


class Location:
    """The page URL as the OAuth flow sees it.

    ``replace`` rewrites the visible URL in place (no navigation);
    ``assign`` navigates away, handing the URL to *on_assign*.
    """

    def __init__(self, url: str, *, on_assign: Callable[[str], None] | None = None) -> None:
        self._url = httpx.URL(url)
        self._on_assign = on_assign
        self.assigned: str | None = None

    @property
    def href(self) -> str:
        return str(self._url)

    @property
    def origin(self) -> str:
        port = f":{self._url.port}" if self._url.port else ""
        return f"{self._url.scheme}://{self._url.host}{port}"

    @property
    def pathname(self) -> str:
        return self._url.path or "/"

    @property
    def hash(self) -> str:
        return f"#{self._url.fragment}" if self._url.fragment else ""

    def param(self, name: str) -> str | None:
        return self._url.params.get(name)

    def replace(self, url: str) -> None:
        self._url = httpx.URL(url)

    def assign(self, url: str) -> None:
        self.assigned = url
        if self._on_assign is not None:
            self._on_assign(url)


def random_state() -> str:
    return f"st_{secrets.token_urlsafe(24)}"


def _json_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


class LinkedInOAuth:
    """Drives one authorization-code round trip through the proxy backend."""

    def __init__(
        self,
        store: "DualStore",
        session: "SessionStore",
        location: Location,
        config: LinkedInSyncConfig,
        *,
        fallback_profile_url: str = "",
        client: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ) -> None:
        self.store = store
        self.session = session
        self.location = location
        self.config = config
        self.fallback_profile_url = fallback_profile_url
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self.phase = OAuthPhase.IDLE

    @property
    def redirect_uri(self) -> str:
        return f"{self.location.origin}{self.location.pathname}"

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    async def start_authorization(self) -> str:
        """Ask the proxy for an authorization URL and navigate to it.

        Raises :class:`ConfigurationError` when the integration is not set up
        or the proxy refuses; its message is meant for display as-is.
        """
        if not self.config.ready:
            raise ConfigurationError(
                "LinkedIn sync is not configured. Enable linkedin_sync in the site config first."
            )

        self.phase = OAuthPhase.AUTHORIZING
        state = random_state()
        params = {"redirectUri": self.redirect_uri, "state": state}
        if self.config.scope:
            params["scope"] = self.config.scope

        try:
            r = await self._client.get(f"{self.config.backend_base_url}/api/linkedin/auth-url", params=params)
        except httpx.HTTPError as exc:
            self.phase = OAuthPhase.FAILED
            raise ConfigurationError(f"Unable to reach the LinkedIn sync backend: {exc}") from exc

        body = _json_body(r)
        auth_url = body.get("authUrl")
        if not r.is_success or not auth_url:
            self.phase = OAuthPhase.FAILED
            details = " - ".join(str(part) for part in (body.get("error"), body.get("details")) if part)
            setup = body.get("setup")
            message = details or "Unable to start LinkedIn OAuth"
            if isinstance(setup, list) and setup:
                message += "\n" + "\n".join(str(step) for step in setup)
            raise ConfigurationError(message)

        self.session.set(STATE_KEY, state)
        self.session.set(RETURN_ROUTE_KEY, self.location.hash or DEFAULT_RETURN_ROUTE)
        self.phase = OAuthPhase.AWAITING_CALLBACK
        self.location.assign(str(auth_url))
        return str(auth_url)

    # ------------------------------------------------------------------
    # Callback
    # ------------------------------------------------------------------

    def _fail(self, message: str) -> CallbackResult:
        self.phase = OAuthPhase.FAILED
        return CallbackResult(ok=False, message=message)

    async def handle_callback(self) -> CallbackResult | None:
        """Finish a pending authorization, if the current URL carries one.

        Returns ``None`` when there is nothing to handle.
        """
        if not self.config.ready:
            return None

        code = self.location.param("code")
        returned_state = self.location.param("state")
        error = self.location.param("error")
        error_description = self.location.param("error_description")

        if not code and not error:
            return None

        stored_state = self.session.pop(STATE_KEY)
        return_route = self.session.pop(RETURN_ROUTE_KEY) or DEFAULT_RETURN_ROUTE
        self.location.replace(f"{self.redirect_uri}{return_route}")

        if error:
            return self._fail(f"LinkedIn authorization failed: {error_description or error}")
        if not stored_state or returned_state != stored_state:
            return self._fail("LinkedIn OAuth state mismatch. Please retry sync.")

        self.phase = OAuthPhase.EXCHANGING
        existing = get_editable_timeline(self.store, self.fallback_profile_url)
        try:
            r = await self._client.post(
                f"{self.config.backend_base_url}/api/linkedin/sync",
                json={
                    "code": code,
                    "redirectUri": self.redirect_uri,
                    "fallbackProfileUrl": existing["profileUrl"] or self.fallback_profile_url,
                },
            )
        except httpx.HTTPError as exc:
            return self._fail(f"LinkedIn sync failed: {exc}")

        body = _json_body(r)
        payload = body.get("payload")
        if not r.is_success or not isinstance(payload, dict):
            return self._fail(str(body.get("error") or "LinkedIn sync failed"))

        save_timeline_payload(self.store, normalize_payload(payload))
        self.phase = OAuthPhase.COMPLETED
        warnings = body.get("warnings")
        return CallbackResult(
            ok=True,
            message=str(body.get("message") or "LinkedIn sync completed."),
            warnings=[str(w) for w in warnings] if isinstance(warnings, list) else [],
        )

    async def aclose(self) -> None:
        await self._client.aclose()

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Stateful session client for the NEMIS web portal.

The portal is a server-rendered postback application. Every response carries
hidden state that must be replayed on the next request, in order, or the
server silently answers with an error or login page. SessionClient owns one
such conversation: the cookie jar, the latest SessionState and the listing
page-size context.

The conversation is strictly sequential. A client refuses a second operation
while one is in flight, and a submission must carry the state captured from
the immediately preceding response.

Example:
    async with SessionClient(settings.portal) as session:
        await session.authenticate(PortalCredentials("12345678", "secret"))
        page = await session.ensure_page_size(Paths.ADMITTED_JOINERS)
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

import httpx

from nemis_bridge.core.config.settings import PortalSettings
from nemis_bridge.services.portal import selectors as sel
from nemis_bridge.services.portal.delta import DeltaSegment, parse_delta, redirect_target
from nemis_bridge.services.portal.exceptions import (
    AuthenticationError,
    ProtocolError,
    SessionExpiredError,
    TransportError,
)
from nemis_bridge.services.portal.extractor import RecordExtractor
from nemis_bridge.services.portal.selectors import Controls, Elements, Markers, Paths
from nemis_bridge.services.portal.state import SessionState

logger = logging.getLogger(__name__)

_GATEWAY_FAILURES = {
    502: "bad_gateway",
    503: "service_unavailable",
    504: "gateway_timeout",
}


@dataclass(frozen=True)
class PortalCredentials:
    """Login identity for one institution."""

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class ListingCategory:
    """A listing filter choice: the option label shown and the value posted."""

    label: str
    value: str


@dataclass(frozen=True)
class Page:
    """One portal response together with the state it produced.

    Attributes:
        path: Path of the final URL, after redirects were followed.
        status_code: HTTP status.
        text: Response body.
        state: State captured from this response, None for terminal pages.
        segments: Delta segments when the response was a partial render.
        redirect: Decoded pageRedirect target of a delta response.
    """

    path: str
    status_code: int
    text: str
    state: SessionState | None
    segments: tuple[DeltaSegment, ...] = ()
    redirect: str | None = None

    @property
    def is_delta(self) -> bool:
        return bool(self.segments)

    @property
    def is_terminal(self) -> bool:
        """A redirect page ends the current form; the next step navigates."""
        return self.redirect is not None

    def landed_on(self, path: str) -> bool:
        """Check whether the response ended on ``path``."""
        return self.path.lower() == path.lower()


class SessionClient:
    """One authenticated, sequential conversation with the portal.

    Attributes:
        settings: Portal connection settings.
        extractor: Record extractor used for page checks.
    """

    def __init__(
        self,
        settings: PortalSettings,
        transport: httpx.AsyncBaseTransport | None = None,
        extractor: RecordExtractor | None = None,
    ):
        """Initialize the session client.

        Args:
            settings: Portal connection settings.
            transport: Optional httpx transport, used to substitute the portal.
            extractor: Optional record extractor.
        """
        self.settings = settings
        self.extractor = extractor or RecordExtractor()
        self._client = httpx.AsyncClient(
            base_url=settings.base_url,
            headers={
                "User-Agent": settings.user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "DNT": "1",
            },
            timeout=settings.timeout,
            follow_redirects=True,
            transport=transport,
        )
        self._state: SessionState | None = None
        self._in_flight = False
        self._authenticated = False

    async def __aenter__(self) -> "SessionClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    @property
    def state(self) -> SessionState | None:
        """State captured from the latest response, None if there is none."""
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._authenticated

    @property
    def cookie(self) -> str:
        """Session cookie header value."""
        return "; ".join(f"{name}={value}" for name, value in self._client.cookies.items())

    # =========================================================================
    # Authentication
    # =========================================================================

    async def authenticate(self, credentials: PortalCredentials) -> str:
        """Log in to the portal.

        The portal answers 200 for both outcomes; success is recognized only
        by the redirect to the default page in the response body.

        Args:
            credentials: Institution login identity.

        Returns:
            The session cookie.

        Raises:
            AuthenticationError: If credentials are missing or rejected, or
                the success redirect is absent.
            TransportError: If the portal cannot be reached.
        """
        if not credentials.username or not credentials.password:
            raise AuthenticationError("Username or password not provided")

        await self.navigate(Paths.HOME)
        page = await self.submit(
            Paths.HOME,
            {
                Controls.LOGIN_BUTTON: "Log In",
                Controls.LOGIN_USERNAME: credentials.username,
                Controls.LOGIN_PASSWORD: credentials.password,
            },
        )

        if Markers.INVALID_CREDENTIALS.search(page.text):
            raise AuthenticationError(
                "Invalid username or password",
                details={"username": credentials.username},
            )
        if not Markers.LOGIN_SUCCESS.search(page.text):
            raise AuthenticationError(
                "Login failed, no redirect to the default page",
                details={"username": credentials.username},
            )

        self._authenticated = True
        logger.info("Authenticated with portal: username=%s", credentials.username)
        return self.cookie

    # =========================================================================
    # Request primitives
    # =========================================================================

    async def navigate(self, path: str) -> Page:
        """Load a page and capture its state.

        Raises:
            TransportError: On network failures.
            SessionExpiredError: If the portal redirected to the login page.
            ProtocolError: If the page carries no state and is not terminal.
        """
        return await self._send("GET", path)

    async def submit(
        self,
        path: str,
        fields: Mapping[str, object],
        *,
        state: SessionState | None = None,
        event_target: str | None = None,
        event_argument: str | None = None,
        async_post: bool = True,
        multipart: bool = False,
    ) -> Page:
        """Post a form with the current hidden state replayed.

        Args:
            path: Portal path to post to.
            fields: Form fields besides the hidden state. None values are
                posted as empty strings.
            state: State to replay. Defaults to the state of the previous
                response; anything else is rejected.
            event_target: Control that fired the postback.
            event_argument: Argument of the postback.
            async_post: Post as a partial-render request, as the portal's own
                scripts do. False posts a plain full-page form.
            multipart: Encode the body as multipart/form-data.

        Returns:
            The response page with its captured state.

        Raises:
            ProtocolError: If there is no state to replay, or ``state`` is not
                the state of the previous response.
            TransportError: On network failures.
            SessionExpiredError: If the portal redirected to the login page.
        """
        current = self._state
        if current is None:
            raise ProtocolError(
                "No session state to replay; navigate first",
                details={"path": path},
            )
        if state is not None and state != current:
            raise ProtocolError(
                "Stale session state; submissions must replay the previous response's state",
                details={"path": path},
            )

        form = current.as_form(event_target=event_target, event_argument=event_argument)
        if async_post:
            form[sel.ASYNC_POST] = "true"
        for name, value in fields.items():
            form[name] = "" if value is None else str(value)

        headers = {}
        if async_post:
            headers = {
                "X-Requested-With": "XMLHttpRequest",
                "X-MicrosoftAjax": "Delta=true",
                "Cache-Control": "no-cache",
            }
        if multipart:
            return await self._send(
                "POST",
                path,
                headers=headers,
                files={name: (None, value) for name, value in form.items()},
            )
        return await self._send("POST", path, headers=headers, data=form)

    async def ensure_page_size(
        self,
        path: str,
        desired_size: str | None = None,
        desired_category: ListingCategory | None = None,
    ) -> Page:
        """Make a listing show every row, for the wanted category, and return it.

        The portal remembers the page size and category per listing, so the
        listing is first loaded and inspected. Only when rows are paged or the
        selected category differs is the filter changed and the listing
        reloaded.

        Args:
            path: Listing path.
            desired_size: Rows per page. Defaults to the configured size.
            desired_category: Category filter the listing must show.

        Returns:
            The listing page showing the desired selection.

        Raises:
            ProtocolError: If the listing still does not match after the change.
        """
        size = desired_size or self.settings.records_per_page
        page = await self.navigate(path)
        if self._listing_matches(page, desired_category):
            logger.debug("Listing parameters already set: path=%s", path)
            return page

        fields: dict[str, object] = {Controls.SELECT_RECORDS: size}
        if desired_category is not None:
            fields[sel.SCRIPT_MANAGER] = sel.update_panel_trigger("SelectCat")
            fields[Controls.SELECT_CATEGORY] = desired_category.value
            fields.update(sel.CATEGORY_FILTER_DEFAULTS)

        logger.debug(
            "Changing listing parameters: path=%s, size=%s, category=%s",
            path,
            size,
            desired_category.label if desired_category else None,
        )
        await self.submit(path, fields, event_target=Controls.SELECT_RECORDS)

        page = await self.navigate(path)
        if not self._listing_matches(page, desired_category):
            raise ProtocolError(
                "failed to set page parameters",
                details={"path": path, "size": size},
            )
        return page

    def _listing_matches(self, page: Page, category: ListingCategory | None) -> bool:
        if self.extractor.has_pager(page.text, Elements.LEARNER_GRID):
            return False
        if category is None:
            return True
        selected = self.extractor.selected_option_text(page.text, Elements.CATEGORY_SELECT)
        return selected is not None and selected.strip().lower() == category.label.strip().lower()

    # =========================================================================
    # Response handling
    # =========================================================================

    async def _send(self, method: str, path: str, **kwargs: object) -> Page:
        if self._in_flight:
            raise ProtocolError(
                "Session already has an operation in flight",
                details={"path": path},
            )
        self._in_flight = True
        try:
            try:
                response = await self._client.request(method, path, **kwargs)
            except httpx.TimeoutException as e:
                raise TransportError("Request has timed out", path, "timeout") from e
            except httpx.ConnectError as e:
                cause = "address_not_found" if _is_dns_failure(e) else "connection_failed"
                raise TransportError(f"Could not connect: {e}", path, cause) from e
            except (httpx.ReadError, httpx.WriteError, httpx.RemoteProtocolError) as e:
                raise TransportError(f"Connection was reset: {e}", path, "connection_reset") from e
            except httpx.TransportError as e:
                raise TransportError(str(e) or "Transport failure", path, "transport") from e
            return self._receive(path, response)
        finally:
            self._in_flight = False

    def _receive(self, path: str, response: httpx.Response) -> Page:
        text = response.text
        final_path = response.url.path or path
        segments = parse_delta(text)
        redirect = redirect_target(segments)

        if (
            final_path.lower() == Paths.LOGIN.lower()
            or (redirect is not None and redirect.lower().endswith(Paths.LOGIN.lower()))
            or (
                len(text) < Markers.MAX_EXPIRED_REDIRECT_BODY
                and Markers.LOGIN_REDIRECT.search(text)
            )
        ):
            self._state = None
            self._authenticated = False
            raise SessionExpiredError(
                "Session expired, redirected to the login page",
                details={"path": path},
            )

        if response.status_code in _GATEWAY_FAILURES:
            raise TransportError(
                f"Portal answered {response.status_code}",
                path,
                _GATEWAY_FAILURES[response.status_code],
            )
        if response.is_error:
            self._state = None
            raise ProtocolError(
                f"Unexpected status {response.status_code}",
                details={"path": path, "status_code": response.status_code},
            )

        state: SessionState | None = None
        if len(text) >= Markers.MIN_STATEFUL_BODY:
            if segments:
                state = SessionState.from_delta(segments)
            else:
                state = SessionState.from_html(self.extractor.parse(text))

        page = Page(
            path=final_path,
            status_code=response.status_code,
            text=text,
            state=state,
            segments=tuple(segments),
            redirect=redirect,
        )

        self._state = state
        if state is None and not page.is_terminal:
            raise ProtocolError("state lost", details={"path": path})
        return page


def _is_dns_failure(error: httpx.ConnectError) -> bool:
    message = str(error).lower()
    return any(
        marker in message
        for marker in ("name or service not known", "nodename nor servname", "getaddrinfo")
    )

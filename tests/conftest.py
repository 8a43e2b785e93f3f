# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- A scripted fake of the NEMIS portal served through httpx.MockTransport
- Builders for full pages, partial-render (delta) bodies and listing grids
- Portal, lookup API and application settings pointing at the fakes
"""

import asyncio
import base64
from collections.abc import AsyncGenerator, Callable
from datetime import date
from urllib.parse import parse_qsl

import httpx
import pytest
import pytest_asyncio

from nemis_bridge.core.config.settings import LookupApiSettings, PortalSettings
from nemis_bridge.domains.learner.models import Contact, LocalLearner
from nemis_bridge.services.portal.session import PortalCredentials, SessionClient

PORTAL_URL = "http://nemis.test"
LOOKUP_URL = "http://api.nemis.test"

Responder = Callable[[httpx.Request], httpx.Response]


# =============================================================================
# Fake Portal
# =============================================================================


class FakePortal:
    """Scripted portal answering by method and path.

    Each route holds a queue of responses. Responses are consumed in order and
    the last one keeps answering once the queue is down to it. Every request
    is recorded for assertions.
    """

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], list[str | Responder]] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, *responses: str | Responder) -> "FakePortal":
        """Queue responses for a route. Strings are served as 200 bodies."""
        self._routes.setdefault((method.upper(), path.lower()), []).extend(responses)
        return self

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        # Yield once so concurrent callers interleave as they would on a socket.
        await asyncio.sleep(0)
        self.requests.append(request)
        queue = self._routes.get((request.method, request.url.path.lower()))
        if not queue:
            return httpx.Response(404, text=f"No route for {request.method} {request.url.path}")
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(response):
            return response(request)
        return httpx.Response(200, text=response)

    # -------------------------------------------------------------------------
    # Assertions
    # -------------------------------------------------------------------------

    def posts(self, path: str | None = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == "POST" and (path is None or r.url.path.lower() == path.lower())
        ]

    def gets(self, path: str | None = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == "GET" and (path is None or r.url.path.lower() == path.lower())
        ]

    @staticmethod
    def form(request: httpx.Request) -> dict[str, str]:
        """Decode an urlencoded postback body."""
        return dict(parse_qsl(request.content.decode(), keep_blank_values=True))

    # -------------------------------------------------------------------------
    # Login
    # -------------------------------------------------------------------------

    def with_login(self) -> "FakePortal":
        """Serve a login page and a successful login redirect for any number of logins."""
        return self.on(
            "GET",
            "/",
            lambda request: httpx.Response(
                200,
                text=html_page("<input name='ctl00$ContentPlaceHolder1$Login1$UserName' />", "VS-LOGIN"),
                headers={"Set-Cookie": "ASP.NET_SessionId=abc123; path=/"},
            ),
        ).on("POST", "/", delta(("pageRedirect", "", "%2fDefault.aspx")))


# =============================================================================
# Page Builders
# =============================================================================


def html_page(body: str = "", view_state: str = "VS-1", validation: str = "EV-1") -> str:
    """Build a full page carrying hidden postback state."""
    return (
        "<html><body><form method='post' id='aspnetForm'>"
        f"<input type='hidden' name='__VIEWSTATE' id='__VIEWSTATE' value='{view_state}' />"
        "<input type='hidden' name='__VIEWSTATEGENERATOR' id='__VIEWSTATEGENERATOR' value='GEN-1' />"
        f"<input type='hidden' name='__EVENTVALIDATION' id='__EVENTVALIDATION' value='{validation}' />"
        f"{body}</form></body></html>"
    )


def delta(*segments: tuple[str, str, str]) -> str:
    """Build a partial-render body from ``(type, id, content)`` segments."""
    return "".join(f"{len(content)}|{kind}|{id_}|{content}|" for kind, id_, content in segments)


def delta_page(*segments: tuple[str, str, str], view_state: str = "VS-2") -> str:
    """Build a partial-render body that carries hidden state."""
    return delta(
        *segments,
        ("asyncPostBackControlIDs", "", "ctl00$ContentPlaceHolder1$SelectRecs,ctl00$ContentPlaceHolder1$BtnAdmit"),
        ("hiddenField", "__VIEWSTATE", view_state),
        ("hiddenField", "__VIEWSTATEGENERATOR", "GEN-2"),
        ("hiddenField", "__EVENTVALIDATION", "EV-2"),
    )


def update_panel(content: str) -> tuple[str, str, str]:
    """Segment re-rendering the content update panel."""
    return ("updatePanel", "ctl00_ContentPlaceHolder1_UpdatePanel1", content)


def error_message(text: str) -> str:
    return f"<span id='ctl00_ContentPlaceHolder1_ErrorMessage'>{text}</span>"


def grid(
    headers: list[str],
    rows: list[list[str]],
    pager: bool = False,
    row_class: str = "GridRow",
) -> str:
    """Build the learner grid with optional pager row."""
    head = "".join(f"<th>{h}</th>" for h in headers)
    body = "".join(
        f"<tr class='{row_class}'>" + "".join(f"<td>{cell}</td>" for cell in row) + "</tr>"
        for row in rows
    )
    if pager:
        body += (
            f"<tr><td colspan='{len(headers)}'><a href=\"javascript:__doPostBack("
            "'ctl00$ContentPlaceHolder1$grdLearners','Page$2')\">2</a></td></tr>"
        )
    return f"<table id='ctl00_ContentPlaceHolder1_grdLearners'><tr>{head}</tr>{body}</table>"


LEARNER_HEADERS = [
    "Learner UPI",
    "Learner Name",
    "Gender",
    "Date of Birth",
    "AGE",
    "Birth Cert No",
    "Disability",
    "Medical Condition",
    "Home Phone",
    "NHIF No",
    "",
    "",
    "",
]


def learner_row(upi: str, name: str, bc: str, control: str, nhif_no: str = "") -> list[str]:
    """Row of the learners-by-grade grid whose view button has row id ``control``."""
    return [
        upi,
        name,
        "M",
        "3/5/2010",
        "15",
        bc,
        "",
        "",
        "",
        nhif_no,
        "Edit",
        "Photo",
        f"<a id='ctl00_ContentPlaceHolder1_grdLearners_{control}_BtnView' href='#'>View</a>",
    ]


def category_select(selected: str) -> str:
    return (
        "<select name='ctl00$ContentPlaceHolder1$SelectCat' id='SelectCat'>"
        "<option value='18'>Grade 1</option>"
        f"<option value='99' selected='selected'>{selected}</option>"
        "</select>"
    )


def encoded_view_state(text: str) -> str:
    """View state blob whose decoded form contains ``text``."""
    return base64.b64encode(f"\x0f\x16\x02{text}\x1e".encode()).decode()


def redirect_to(path: str) -> Responder:
    return lambda request: httpx.Response(302, headers={"Location": path})


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def portal_settings() -> PortalSettings:
    """Portal settings pointing at the fake portal."""
    return PortalSettings(base_url=PORTAL_URL, timeout=5.0, records_per_page="10000")


@pytest.fixture
def lookup_settings() -> LookupApiSettings:
    """Lookup API settings with an authorization value."""
    return LookupApiSettings(base_url=LOOKUP_URL, auth="Basic dGVzdDp0ZXN0", timeout=5.0)


@pytest.fixture
def credentials() -> PortalCredentials:
    return PortalCredentials(username="12345678", password="secret")


# =============================================================================
# Portal Fixtures
# =============================================================================


@pytest.fixture
def portal() -> FakePortal:
    """Create an empty scripted portal."""
    return FakePortal()


@pytest_asyncio.fixture
async def session(
    portal: FakePortal, portal_settings: PortalSettings
) -> AsyncGenerator[SessionClient, None]:
    """Session client talking to the fake portal."""
    async with SessionClient(portal_settings, transport=portal.transport()) as client:
        yield client


# =============================================================================
# Learner Fixtures
# =============================================================================


@pytest.fixture
def joiner() -> LocalLearner:
    """A form one joiner with everything the forms ask for."""
    return LocalLearner(
        id="42",
        name="Otieno John Kamau",
        grade="form 1",
        gender="male",
        dob=date(2010, 3, 5),
        birth_certificate_no="BC-123456",
        index_no="12345678001",
        adm_no="ADM-7",
        marks="389",
        kcpe_year=2023,
        father=Contact(name="Peter Otieno", tel="0712345678", id="22334455"),
        county="Nairobi",
        sub_county="Westlands",
        nationality="Kenyan",
    )


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires the live portal)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )

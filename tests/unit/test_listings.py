# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for LearnerListings."""

import pytest

from conftest import LEARNER_HEADERS, FakePortal, category_select, grid, html_page, learner_row
from nemis_bridge.domains.learner.listings import LearnerListings
from nemis_bridge.services.portal.selectors import Controls, Paths
from nemis_bridge.services.portal.session import SessionClient


@pytest.fixture
def listings(session: SessionClient) -> LearnerListings:
    return LearnerListings(session)


class TestLearners:
    """Tests for the learners-by-grade listing."""

    @pytest.mark.asyncio
    async def test_rows_with_view_postbacks(self, portal: FakePortal, listings: LearnerListings) -> None:
        """Test view controls are numbered from the first row's control."""
        portal.on(
            "GET",
            Paths.LEARNERS,
            html_page(
                category_select("Grade 7")
                + grid(
                    LEARNER_HEADERS,
                    [
                        learner_row("ABC1234", "OTIENO JOHN KAMAU", "BC-1", "ctl02"),
                        learner_row("DEF5678", "WANJIKU MARY", "", "ctl03"),
                    ],
                )
            ),
        )

        rows = await listings.learners("grade 7")

        assert [r.upi for r in rows] == ["ABC1234", "DEF5678"]
        assert rows[0].birth_certificate_no == "BC-1"
        assert rows[1].birth_certificate_no is None
        assert rows[0].postback == "ctl00$ContentPlaceHolder1$grdLearners$ctl02$BtnView"
        assert rows[1].postback == "ctl00$ContentPlaceHolder1$grdLearners$ctl03$BtnView"
        assert portal.posts() == []

    @pytest.mark.asyncio
    async def test_grade_is_selected_first(self, portal: FakePortal, listings: LearnerListings) -> None:
        portal.on(
            "GET",
            Paths.LEARNERS,
            html_page(category_select("Grade 1")),
            html_page(category_select("Grade 7") + grid(LEARNER_HEADERS, [])),
        ).on("POST", Paths.LEARNERS, html_page())

        rows = await listings.learners("Grade 7")

        assert rows == []
        form = FakePortal.form(portal.posts(Paths.LEARNERS)[0])
        assert form[Controls.SELECT_CATEGORY] == "24"


class TestJoinerListings:
    """Tests for the joiner listings."""

    @pytest.mark.asyncio
    async def test_admitted_joiners_carry_row_positions(
        self, portal: FakePortal, listings: LearnerListings
    ) -> None:
        portal.on(
            "GET",
            Paths.ADMITTED_JOINERS,
            html_page(
                grid(
                    ["Index", "Name", "Gender", "Marks", "UPI"],
                    [
                        ["12345678001", "OTIENO JOHN", "M", "389", ""],
                        ["12345678002", "WANJIKU MARY", "F", "401", "XYZ"],
                    ],
                )
            ),
        )

        rows = await listings.admitted_joiners()

        assert [(r.row, r.index_no) for r in rows] == [(0, "12345678001"), (1, "12345678002")]
        assert rows[0].upi is None
        assert rows[1].marks == "401"

    @pytest.mark.asyncio
    async def test_requested_joiners(self, portal: FakePortal, listings: LearnerListings) -> None:
        portal.on(
            "GET",
            Paths.REQUESTED_JOINERS,
            html_page(
                grid(
                    ["No.", "Index No", "Student Name", "Parent's IDNo", "Status"],
                    [["1", "12345678001", "OTIENO JOHN", "22334455", "Pending"]],
                )
            ),
        )

        (row,) = await listings.requested_joiners()

        assert row.index_no == "12345678001"
        assert row.parent_id == "22334455"
        assert row.status == "Pending"


class TestContinuingListings:
    """Tests for the continuing learner listings."""

    @pytest.mark.asyncio
    async def test_pending_rows_carry_capture_controls(
        self, portal: FakePortal, listings: LearnerListings
    ) -> None:
        portal.on(
            "GET",
            Paths.CONTINUING_PENDING,
            html_page(
                grid(
                    ["Adm No", "Surname", "Firstname", "Birth Certificate", ""],
                    [
                        [
                            "ADM-7",
                            "OTIENO",
                            "JOHN",
                            "BC-1",
                            "<input type='submit' name='ctl00$ContentPlaceHolder1$grdLearners$ctl02$BtnCapture' />",
                        ],
                        ["ADM-8", "WANJIKU", "MARY", "BC-2", ""],
                    ],
                )
            ),
        )

        rows = await listings.continuing_pending()

        assert rows[0].postback == "ctl00$ContentPlaceHolder1$grdLearners$ctl02$BtnCapture"
        assert rows[0].name == "OTIENO JOHN"
        assert rows[1].postback is None


class TestInstitution:
    """Tests for the institution page."""

    @pytest.mark.asyncio
    async def test_institution(self, portal: FakePortal, listings: LearnerListings) -> None:
        portal.on(
            "GET",
            Paths.INSTITUTION,
            html_page(
                "<input id='ctl00_ContentPlaceHolder1_Institution_Name' value='MOI GIRLS' />"
                "<input id='ctl00_ContentPlaceHolder1_Institution_Code' value='X1234' />"
                "<select id='ctl00_ContentPlaceHolder1_Institution_Level_Code'>"
                "<option value='2'>Primary</option>"
                "<option value='3' selected='selected'>Secondary</option></select>"
                "<select id='ctl00_ContentPlaceHolder1_County_Code'>"
                "<option value='146'>Nandi</option>"
                "<option value='147' selected='selected'>Nairobi</option></select>"
                "<span id='ctl00_ContentPlaceHolder1_Email_Address'>info@moi.test</span>"
            ),
        )

        institution = await listings.institution()

        assert institution.name == "MOI GIRLS"
        assert institution.code == "X1234"
        assert institution.education_level == "Secondary"
        assert institution.education_level_code == "3"
        assert institution.county == "Nairobi"
        assert institution.email == "info@moi.test"
        assert institution.knec_code is None

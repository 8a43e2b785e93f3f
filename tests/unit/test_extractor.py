# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for RecordExtractor."""

import pytest

from conftest import grid, html_page
from nemis_bridge.services.portal.exceptions import ProtocolError
from nemis_bridge.services.portal.extractor import RecordExtractor
from nemis_bridge.services.portal.selectors import Elements


@pytest.fixture
def extractor() -> RecordExtractor:
    return RecordExtractor()


class TestExtractTable:
    """Tests for extract_table."""

    def test_rows_keyed_by_header(self, extractor: RecordExtractor) -> None:
        """Test every data row becomes a field map in page order."""
        markup = html_page(
            grid(
                ["Learner UPI", "Learner Name", "Birth Cert No"],
                [["ABC123", "OTIENO&nbsp;JOHN", "BC-1"], ["", "WANJIKU  MARY", "BC-2"]],
            )
        )

        rows = extractor.extract_table(markup, Elements.LEARNER_GRID)

        assert rows == [
            {"Learner UPI": "ABC123", "Learner Name": "OTIENO JOHN", "Birth Cert No": "BC-1"},
            {"Learner UPI": "", "Learner Name": "WANJIKU MARY", "Birth Cert No": "BC-2"},
        ]

    def test_pager_row_is_skipped(self, extractor: RecordExtractor) -> None:
        markup = html_page(grid(["Index", "Name"], [["001", "A B"]], pager=True))

        rows = extractor.extract_table(markup, Elements.LEARNER_GRID)

        assert len(rows) == 1
        assert rows[0]["Index"] == "001"

    def test_missing_grid_is_empty(self, extractor: RecordExtractor) -> None:
        """Test an absent grid is an empty listing, not an error."""
        assert extractor.extract_table(html_page("<p>No records</p>"), Elements.LEARNER_GRID) == []

    def test_blank_header_keyed_by_position(self, extractor: RecordExtractor) -> None:
        markup = html_page(grid(["Index", ""], [["001", "<a href='#'>View</a>"]]))

        rows = extractor.extract_table(markup, Elements.LEARNER_GRID)

        assert rows == [{"Index": "001", "1": "View"}]

    def test_nested_table_rows_are_ignored(self, extractor: RecordExtractor) -> None:
        nested = "<table><tr><td>inner</td><td>x</td></tr></table>"
        markup = html_page(grid(["Index", "Name"], [["001", nested]]))

        rows = extractor.extract_table(markup, Elements.LEARNER_GRID)

        assert len(rows) == 1
        assert rows[0]["Index"] == "001"


class TestRowControls:
    """Tests for row-level control lookups."""

    def test_row_controls_align_with_rows(self, extractor: RecordExtractor) -> None:
        markup = html_page(
            grid(
                ["Adm No", "Action"],
                [
                    ["7", "<input type='submit' name='ctl00$grd$ctl02$BtnCapture' value='BIO-BC' />"],
                    ["8", ""],
                ],
            )
        )

        controls = extractor.row_controls(markup, Elements.LEARNER_GRID, "input", attribute="name")

        assert controls == ["ctl00$grd$ctl02$BtnCapture", None]

    def test_first_row_control(self, extractor: RecordExtractor) -> None:
        markup = html_page(
            grid(
                ["Name", "Action"],
                [
                    ["A B", "<a id='ctl00_ContentPlaceHolder1_grdLearners_ctl02_BtnView'>View</a>"],
                    ["C D", "<a id='ctl00_ContentPlaceHolder1_grdLearners_ctl03_BtnView'>View</a>"],
                ],
            )
        )

        control = extractor.first_row_control(markup, Elements.LEARNER_GRID, "tr.GridRow a")

        assert control == "ctl00_ContentPlaceHolder1_grdLearners_ctl02_BtnView"

    def test_sequential_postbacks(self) -> None:
        """Test postback names continue from the first observed row number."""
        names = RecordExtractor.sequential_postbacks(
            "ctl00_ContentPlaceHolder1_grdLearners_ctl09_BtnView", 3
        )

        assert names == [
            "ctl00$ContentPlaceHolder1$grdLearners$ctl09$BtnView",
            "ctl00$ContentPlaceHolder1$grdLearners$ctl10$BtnView",
            "ctl00$ContentPlaceHolder1$grdLearners$ctl11$BtnView",
        ]

    def test_sequential_postbacks_without_row_number(self) -> None:
        with pytest.raises(ProtocolError):
            RecordExtractor.sequential_postbacks("BtnView", 2)

    def test_has_pager(self, extractor: RecordExtractor) -> None:
        assert extractor.has_pager(html_page(grid(["A"], [["1"]], pager=True)), Elements.LEARNER_GRID)
        assert not extractor.has_pager(html_page(grid(["A"], [["1"]])), Elements.LEARNER_GRID)
        assert not extractor.has_pager(html_page(), Elements.LEARNER_GRID)


class TestSingleRecord:
    """Tests for single-record reads."""

    def test_extract_single_record(self, extractor: RecordExtractor) -> None:
        """Test inputs, selects and text elements are read, missing ones blank."""
        markup = html_page(
            "<input id='code' value=' 12345 ' />"
            "<select id='level'><option>Primary</option>"
            "<option selected='selected'>Secondary</option></select>"
            "<span id='name'>Moi  Girls</span>"
        )

        record = extractor.extract_single_record(
            markup,
            {"code": "#code", "level": "#level", "name": "#name", "email": "#email"},
        )

        assert record == {"code": "12345", "level": "Secondary", "name": "Moi Girls", "email": ""}

    def test_text_and_value_of(self, extractor: RecordExtractor) -> None:
        markup = html_page("<div class='alert'>Saved</div><input id='UPI' value='ABC' />")

        assert extractor.text_of(markup, ".alert") == "Saved"
        assert extractor.value_of(markup, "#UPI") == "ABC"
        assert extractor.text_of(markup, "#missing") is None
        assert extractor.value_of(markup, "#missing") is None

    def test_selected_option_text(self, extractor: RecordExtractor) -> None:
        markup = html_page(
            "<select id='SelectCat'><option value='1'>Grade 1</option>"
            "<option value='2' selected='selected'>Grade 2</option></select>"
        )

        assert extractor.selected_option_text(markup, "#SelectCat") == "Grade 2"
        assert extractor.selected_option_text(html_page(), "#SelectCat") is None

    def test_selected_option_value(self, extractor: RecordExtractor) -> None:
        """Test the code is read from the option value, not its label."""
        markup = html_page(
            "<select id='level'><option value='2'>Primary</option>"
            "<option value='3' selected='selected'>Secondary</option></select>"
            "<select id='none'><option value='1'>One</option></select>"
            "<input id='code' value=' 7 ' />"
        )

        assert extractor.selected_option_value(markup, "#level") == "3"
        assert extractor.selected_option_value(markup, "#none") is None
        assert extractor.selected_option_value(markup, "#code") == "7"
        assert extractor.selected_option_value(markup, "#missing") is None


class TestFormValues:
    """Tests for form_values."""

    def test_posted_values(self, extractor: RecordExtractor) -> None:
        """Test each control yields what a browser would post."""
        markup = html_page(
            "<input name='first' value='JOHN' />"
            "<select name='county'><option value='101'>Mombasa</option>"
            "<option value='147' selected='selected'>Nairobi</option></select>"
            "<input type='radio' name='needs' value='optspecialneed' />"
            "<input type='radio' name='needs' value='optneedsno' checked='checked' />"
            "<textarea name='address'>P.O. Box 1</textarea>"
            "<select name='unset'><option value='0'>--</option></select>"
        )

        values = extractor.form_values(
            markup, ["first", "county", "needs", "address", "unset", "missing"]
        )

        assert values == {
            "first": "JOHN",
            "county": "147",
            "needs": "optneedsno",
            "address": "P.O. Box 1",
            "unset": "",
            "missing": "",
        }

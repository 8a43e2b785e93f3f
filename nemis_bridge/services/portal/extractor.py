# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Record extraction from rendered portal pages.

RecordExtractor turns a page's grid or detail markup into loosely-typed field
maps of raw text. It performs no coercion: callers map the field maps into
their own typed structures.

Example:
    extractor = RecordExtractor()
    rows = extractor.extract_table(page.text, Elements.LEARNER_GRID)
    for row in rows:
        print(row["Learner UPI"], row["Learner Name"])
"""

import logging
from collections.abc import Iterable, Iterator, Mapping

from bs4 import BeautifulSoup, Tag

from nemis_bridge.services.portal.exceptions import ProtocolError
from nemis_bridge.services.portal.selectors import Markers

logger = logging.getLogger(__name__)

FieldMap = dict[str, str]


def _clean(text: str) -> str:
    return " ".join(text.replace("\xa0", " ").split())


def _option_value(option: Tag) -> str:
    value = option.get("value")
    return value.strip() if value is not None else _clean(option.get_text(" "))


class RecordExtractor:
    """Extract field maps from portal markup.

    Attributes:
        parser: BeautifulSoup tree builder name.
    """

    def __init__(self, parser: str = "html.parser"):
        self.parser = parser

    def parse(self, markup: str) -> BeautifulSoup:
        """Parse markup into a document tree."""
        return BeautifulSoup(markup or "", self.parser)

    # =========================================================================
    # Tables
    # =========================================================================

    def extract_table(self, markup: str, anchor_selector: str) -> list[FieldMap]:
        """Extract one field map per visible data row of a grid.

        An absent grid is an empty listing, not an error.

        Args:
            markup: Page markup.
            anchor_selector: CSS selector of the grid table.

        Returns:
            Field maps keyed by column header, in on-page order. Columns with
            an empty header are keyed by their position.
        """
        table = self.parse(markup).select_one(anchor_selector)
        if table is None:
            return []
        headers, rows = self._grid(table)
        return [
            {header: _clean(cell.get_text(" ")) for header, cell in zip(headers, cells)}
            for _, cells in rows
        ]

    def row_controls(
        self,
        markup: str,
        anchor_selector: str,
        control_selector: str,
        attribute: str = "id",
    ) -> list[str | None]:
        """Read one attribute of a control inside each data row.

        The result is aligned with extract_table for the same markup.

        Args:
            markup: Page markup.
            anchor_selector: CSS selector of the grid table.
            control_selector: CSS selector of the control, relative to the row.
            attribute: Attribute to read from the control.

        Returns:
            Attribute values, None for rows without the control.
        """
        table = self.parse(markup).select_one(anchor_selector)
        if table is None:
            return []
        _, rows = self._grid(table)
        controls: list[str | None] = []
        for row, _ in rows:
            node = row.select_one(control_selector)
            controls.append(node.get(attribute) if node is not None else None)
        return controls

    def first_row_control(self, markup: str, anchor_selector: str, control_selector: str) -> str | None:
        """Return the id of the first control matching ``control_selector`` in a grid.

        ``control_selector`` is resolved against the whole grid, so it may
        name the row class itself.
        """
        table = self.parse(markup).select_one(anchor_selector)
        if table is None:
            return None
        node = table.select_one(control_selector)
        return node.get("id") if node is not None else None

    @staticmethod
    def sequential_postbacks(first_control_id: str, count: int) -> list[str]:
        """Compute postback names for ``count`` consecutive row controls.

        Row control numbering does not follow the display position, so names
        are derived from the first observed control id plus a running offset.

        Args:
            first_control_id: Client id of the first row's control, for
                example ``ctl00_ContentPlaceHolder1_grdLearners_ctl02_BtnView``.
            count: Number of rows.

        Returns:
            Posted control names such as
            ``ctl00$ContentPlaceHolder1$grdLearners$ctl02$BtnView``.

        Raises:
            ProtocolError: If the id carries no row number.
        """
        match = Markers.ROW_CONTROL_NUMBER.search(first_control_id)
        if match is None:
            raise ProtocolError(
                "Row control id has no row number",
                details={"control_id": first_control_id},
            )
        width = len(match.group(1))
        first = int(match.group(1))
        head = first_control_id[: match.start()]
        tail = first_control_id[match.end() :]
        return [
            f"{head}_ctl{str(first + offset).zfill(width)}_{tail}".replace("_", "$")
            for offset in range(count)
        ]

    def has_pager(self, markup: str, anchor_selector: str) -> bool:
        """Check whether a grid renders page links, i.e. it is not showing every row."""
        table = self.parse(markup).select_one(anchor_selector)
        if table is None:
            return False
        return Markers.PAGER_LINK.search(str(table)) is not None

    def _grid(self, table: Tag) -> tuple[list[str], list[tuple[Tag, list[Tag]]]]:
        rows = list(self._own_rows(table))
        if not rows:
            return [], []
        header_index = next(
            (i for i, row in enumerate(rows) if row.find("th", recursive=False)),
            0,
        )
        headers = [
            _clean(cell.get_text(" ")) or str(position)
            for position, cell in enumerate(self._cells(rows[header_index]))
        ]
        data: list[tuple[Tag, list[Tag]]] = []
        for row in rows[header_index + 1 :]:
            cells = self._cells(row)
            # Pager and footer rows span the grid in a single cell.
            if len(cells) != len(headers):
                continue
            if not any(_clean(cell.get_text(" ")) for cell in cells) and not row.select(
                "input, a"
            ):
                continue
            data.append((row, cells))
        return headers, data

    @staticmethod
    def _own_rows(table: Tag) -> Iterator[Tag]:
        for row in table.find_all("tr"):
            if row.find_parent("table") is table:
                yield row

    @staticmethod
    def _cells(row: Tag) -> list[Tag]:
        return row.find_all(["td", "th"], recursive=False)

    # =========================================================================
    # Single records
    # =========================================================================

    def extract_single_record(self, markup: str, field_selectors: Mapping[str, str]) -> FieldMap:
        """Extract named fields from a detail or confirmation page.

        Inputs yield their value, selects their selected option's text and
        any other element its text. Missing elements yield an empty string.

        Args:
            markup: Page markup.
            field_selectors: Field name to CSS selector.

        Returns:
            Field name to raw text.
        """
        soup = self.parse(markup)
        record: FieldMap = {}
        for name, selector in field_selectors.items():
            node = soup.select_one(selector)
            record[name] = self._node_value(node) if node is not None else ""
        return record

    def _node_value(self, node: Tag) -> str:
        if node.name == "input":
            return (node.get("value") or "").strip()
        if node.name == "select":
            option = self._selected_option(node)
            return _clean(option.get_text(" ")) if option is not None else ""
        return _clean(node.get_text(" "))

    @staticmethod
    def _selected_option(select: Tag) -> Tag | None:
        return select.find("option", selected=True)

    def text_of(self, markup: str, selector: str) -> str | None:
        """Return the cleaned text of the first element matching ``selector``."""
        node = self.parse(markup).select_one(selector)
        if node is None:
            return None
        return _clean(node.get_text(" "))

    def value_of(self, markup: str, selector: str) -> str | None:
        """Return the value attribute of the first element matching ``selector``."""
        node = self.parse(markup).select_one(selector)
        if node is None:
            return None
        return node.get("value") or ""

    def selected_option_text(self, markup: str, selector: str) -> str | None:
        """Return the text of the selected option of a select element."""
        node = self.parse(markup).select_one(selector)
        if node is None:
            return None
        option = self._selected_option(node)
        return _clean(option.get_text(" ")) if option is not None else None

    def selected_option_value(self, markup: str, selector: str) -> str | None:
        """Return the posted value of a select element, or of an input.

        Codes such as the institution level are only carried by the option
        value; the option text is a label.
        """
        node = self.parse(markup).select_one(selector)
        if node is None:
            return None
        if node.name != "select":
            return (node.get("value") or "").strip() or None
        option = self._selected_option(node)
        if option is None:
            return None
        return _option_value(option) or None

    # =========================================================================
    # Forms
    # =========================================================================

    def form_values(self, markup: str, names: Iterable[str]) -> FieldMap:
        """Read the values a browser would post for the named form controls.

        Text inputs yield their value, selects their selected option's value
        and radio groups their checked member's value. Controls missing from
        the page, and groups with nothing selected, yield an empty string.

        Args:
            markup: Page markup.
            names: Posted control names.

        Returns:
            Control name to value, in the order of ``names``.
        """
        soup = self.parse(markup)
        values: FieldMap = {}
        for name in names:
            nodes = soup.find_all(["input", "select", "textarea"], attrs={"name": name})
            values[name] = self._posted_value(nodes)
        return values

    @staticmethod
    def _posted_value(nodes: list[Tag]) -> str:
        for node in nodes:
            if node.name == "select":
                option = node.find("option", selected=True)
                return _option_value(option) if option is not None else ""
            if node.name == "textarea":
                return node.get_text()
            if (node.get("type") or "").lower() in ("radio", "checkbox"):
                if node.has_attr("checked"):
                    return node.get("value") or "on"
                continue
            return node.get("value") or ""
        return ""

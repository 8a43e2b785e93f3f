# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Read-only learner listings and the institution page.

Every listing first goes through SessionClient.ensure_page_size, so a listing
already showing every row for the wanted grade costs a single request.
"""

import logging

from nemis_bridge.domains.learner.codes import grade_code
from nemis_bridge.domains.learner.models import (
    AdmittedJoinerRow,
    ContinuingLearnerRow,
    Institution,
    LearnerRow,
    RequestedJoinerRow,
    SelectedJoinerRow,
)
from nemis_bridge.services.portal.extractor import RecordExtractor
from nemis_bridge.services.portal.selectors import (
    INSTITUTION_CODE_FIELDS,
    INSTITUTION_FIELDS,
    Elements,
    Paths,
)
from nemis_bridge.services.portal.session import ListingCategory, Page, SessionClient

logger = logging.getLogger(__name__)


def grade_category(grade: str) -> ListingCategory:
    """Return the learner listing category for a grade name."""
    return ListingCategory(label=" ".join(grade.split()), value=str(grade_code(grade)))


class LearnerListings:
    """Typed reads of the portal's learner listings.

    Attributes:
        session: Authenticated session to read through.
        extractor: Record extractor for grid markup.
    """

    def __init__(self, session: SessionClient, extractor: RecordExtractor | None = None):
        self.session = session
        self.extractor = extractor or session.extractor

    async def learners(self, grade: str) -> list[LearnerRow]:
        """List the learners of a grade.

        Each row carries the posted name of its view control, computed from
        the first row's control id plus the row offset.
        """
        page = await self.session.ensure_page_size(
            Paths.LEARNERS, desired_category=grade_category(grade)
        )
        rows = self.extractor.extract_table(page.text, Elements.LEARNER_GRID)
        first_control = self.extractor.first_row_control(
            page.text, Elements.LEARNER_GRID, Elements.VIEW_BUTTON
        )
        postbacks: list[str | None] = [None] * len(rows)
        if first_control and rows:
            postbacks = list(self.extractor.sequential_postbacks(first_control, len(rows)))
        learners = [
            LearnerRow.model_validate({**row, "postback": postback})
            for row, postback in zip(rows, postbacks)
        ]
        logger.debug("Listed learners: grade=%s, count=%d", grade, len(learners))
        return learners

    async def admitted_joiners(self) -> list[AdmittedJoinerRow]:
        """List joiners admitted but awaiting biodata capture."""
        page = await self.session.ensure_page_size(Paths.ADMITTED_JOINERS)
        return [
            AdmittedJoinerRow.model_validate({**row, "row": position})
            for position, row in enumerate(self._rows(page))
        ]

    async def selected_joiners(self) -> list[SelectedJoinerRow]:
        """List joiners selected to this institution."""
        page = await self.session.ensure_page_size(Paths.SELECTED_JOINERS)
        return [SelectedJoinerRow.model_validate(row) for row in self._rows(page)]

    async def requested_joiners(self) -> list[RequestedJoinerRow]:
        """List joiners this institution requested."""
        page = await self.session.ensure_page_size(Paths.REQUESTED_JOINERS)
        return [RequestedJoinerRow.model_validate(row) for row in self._rows(page)]

    async def approved_joiners(self) -> list[RequestedJoinerRow]:
        """List joiner requests that were approved."""
        page = await self.session.ensure_page_size(Paths.APPROVED_JOINERS)
        return [RequestedJoinerRow.model_validate(row) for row in self._rows(page)]

    async def continuing_requests(self) -> list[ContinuingLearnerRow]:
        """List continuing learners this institution requested."""
        page = await self.session.ensure_page_size(Paths.CONTINUING_REQUESTS)
        return [ContinuingLearnerRow.model_validate(row) for row in self._rows(page)]

    async def continuing_pending(self) -> list[ContinuingLearnerRow]:
        """List approved continuing learners pending biodata capture.

        Each row carries the posted name of its capture control.
        """
        page = await self.session.ensure_page_size(Paths.CONTINUING_PENDING)
        rows = self._rows(page)
        controls = self.extractor.row_controls(
            page.text, Elements.LEARNER_GRID, Elements.ROW_SUBMIT, attribute="name"
        )
        return [
            ContinuingLearnerRow.model_validate({**row, "postback": control})
            for row, control in zip(rows, controls)
        ]

    async def institution(self) -> Institution:
        """Read the institution detail page.

        Select fields carry their label; the level is also read as its code.
        """
        page = await self.session.navigate(Paths.INSTITUTION)
        record = self.extractor.extract_single_record(page.text, INSTITUTION_FIELDS)
        for name, selector in INSTITUTION_CODE_FIELDS.items():
            record[name] = self.extractor.selected_option_value(page.text, selector) or ""
        return Institution.model_validate(record)

    def _rows(self, page: Page) -> list[dict[str, str]]:
        return self.extractor.extract_table(page.text, Elements.LEARNER_GRID)

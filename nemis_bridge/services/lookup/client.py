# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Async client for the read-only NEMIS lookup API.

The lookup API is a cheaper alternative to full listing pages when deciding
what a learner's birth certificate or UPI already refers to remotely.

Example:
    async with LookupApiClient(settings.lookup_api) as api:
        learner = await api.search_learner("BC-123456")
        print(learner.category, learner.institution.code)
"""

import asyncio
import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from nemis_bridge.core.config.settings import LookupApiSettings
from nemis_bridge.services.lookup.exceptions import LookupApiError, LookupNotFoundError
from nemis_bridge.services.lookup.models import (
    AdmissionPlacement,
    AdmissionResults,
    JoinerStatus,
    LookupLearner,
    ReportedCaptured,
    ReportedJoiner,
)

logger = logging.getLogger(__name__)

INDEX_NUMBER_LENGTH = 11


def _normalize(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k).lower(): _normalize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_normalize(v) for v in value]
    if isinstance(value, str):
        return value.strip().lower() or None
    if value is None:
        return None
    return str(value)


class LookupApiClient:
    """Client for the NEMIS lookup API.

    Attributes:
        settings: Lookup API settings.
    """

    def __init__(
        self,
        settings: LookupApiSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the lookup API client.

        Args:
            settings: Lookup API settings, including the authorization value.
            transport: Optional httpx transport, used to substitute the API.

        Raises:
            LookupApiError: If no authorization value is configured.
        """
        if not settings.is_configured:
            raise LookupApiError("Lookup API authorization is not configured (NEMIS_API_AUTH)")
        self.settings = settings
        self._client = httpx.AsyncClient(
            base_url=settings.base_url,
            headers={
                "Authorization": settings.auth.get_secret_value(),
                "User-Agent": settings.user_agent,
                "Accept": "application/json",
            },
            timeout=settings.timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "LookupApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def search_learner(self, upi_or_birth_certificate: str) -> LookupLearner:
        """Look up a learner by UPI or birth certificate number.

        Args:
            upi_or_birth_certificate: Learner identifier.

        Returns:
            The learner record.

        Raises:
            LookupNotFoundError: If the API has no record.
            LookupApiError: If the identifier is empty or the API fails.
        """
        identifier = (upi_or_birth_certificate or "").strip()
        if not identifier:
            raise LookupApiError("Invalid UPI or birth certificate number")

        data = await self._get_object(f"/Learner/StudUpi/{quote(identifier, safe='')}")
        learner = _validate(LookupLearner, data)
        logger.debug(
            "Looked up learner: identifier=%s, category=%s, institution=%s",
            identifier,
            learner.category,
            learner.institution.code,
        )
        return learner

    async def admission_results(self, index_no: str) -> AdmissionResults:
        """Fetch placement results for a candidate index number.

        Raises:
            LookupApiError: If the index number is malformed or the API fails.
        """
        index_no = _index_number(index_no)
        data = await self._get_object(f"/FormOne/Results/{quote(index_no, safe='')}")
        return _validate(AdmissionResults, data)

    async def admission(self, index_no: str) -> AdmissionPlacement:
        """Fetch the institution a joiner is placed at for admission."""
        index_no = _index_number(index_no)
        data = await self._get_object(f"/FormOne/Admission/{quote(index_no, safe='')}")
        return _validate(AdmissionPlacement, data)

    async def reported(self, index_no: str, institution_code: str) -> ReportedJoiner:
        """Fetch a joiner's reporting record as seen from an institution.

        Raises:
            LookupApiError: If an argument is missing or the API fails.
            LookupNotFoundError: If the joiner has not reported.
        """
        index_no = _index_number(index_no)
        institution_code = (institution_code or "").strip()
        if not institution_code:
            raise LookupApiError("Institution code is required", details={"index_no": index_no})
        data = await self._get_object(
            f"/FormOne/Reported/{quote(institution_code, safe='')}/{quote(index_no, safe='')}"
        )
        return _validate(ReportedJoiner, data)

    async def reported_captured(self, index_no: str) -> ReportedCaptured:
        """Fetch the institution a joiner reported to and was captured at."""
        index_no = _index_number(index_no)
        data = await self._get_object(f"/FormOne/ReportedCaptured/{quote(index_no, safe='')}")
        return _validate(ReportedCaptured, data)

    async def joiner_status(self, index_no: str, institution_code: str) -> JoinerStatus:
        """Query admission, reporting and capture of a joiner concurrently.

        A part the API has no record of is left as None.

        Args:
            index_no: Joiner index number.
            institution_code: Institution to check the reporting record against.

        Returns:
            The combined status.

        Raises:
            LookupApiError: If every query failed for a reason other than a
                missing record.
        """
        index_no = _index_number(index_no)
        parts = ("admission", "reported", "captured")
        settled = await asyncio.gather(
            self.admission(index_no),
            self.reported(index_no, institution_code),
            self.reported_captured(index_no),
            return_exceptions=True,
        )

        found: dict[str, Any] = {}
        failures: list[LookupApiError] = []
        for part, value in zip(parts, settled):
            if isinstance(value, LookupNotFoundError):
                continue
            if isinstance(value, LookupApiError):
                logger.warning("Joiner %s lookup failed: index=%s, error=%s", part, index_no, value)
                failures.append(value)
                continue
            if isinstance(value, BaseException):
                raise value
            found[part] = value

        if len(failures) == len(parts):
            raise LookupApiError(
                "No response was received from the lookup API",
                details={"index_no": index_no, "errors": [str(e) for e in failures]},
            ) from failures[0]
        return JoinerStatus(index_no=index_no, **found)

    async def _get_object(self, path: str) -> dict:
        try:
            response = await self._client.get(path)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error("Lookup API request failed: path=%s, status=%d", path, status)
            if status == 404 or (status == 400 and e.response.text.startswith("No ")):
                raise LookupNotFoundError(
                    "Learner not found",
                    status_code=status,
                    response_body=e.response.text,
                ) from e
            raise LookupApiError(
                f"Lookup API request failed: {path}",
                status_code=status,
                response_body=e.response.text,
            ) from e
        except httpx.HTTPError as e:
            raise LookupApiError(f"Lookup API unreachable: {e}", details={"path": path}) from e

        try:
            data = response.json()
        except ValueError as e:
            raise LookupApiError(
                "Lookup API returned invalid JSON",
                status_code=response.status_code,
                response_body=response.text,
            ) from e
        if not isinstance(data, dict):
            raise LookupApiError(
                "Lookup API did not return a record",
                status_code=response.status_code,
                response_body=response.text,
            )
        return data


def _validate(model: type[BaseModel], data: dict) -> Any:
    try:
        return model.model_validate(_normalize(data))
    except ValidationError as e:
        raise LookupApiError(
            f"Lookup API returned an unexpected {model.__name__} record",
            details={"errors": e.error_count()},
        ) from e


def _index_number(index_no: str | None) -> str:
    index_no = (index_no or "").strip()
    if len(index_no) != INDEX_NUMBER_LENGTH:
        raise LookupApiError(
            "Invalid index number",
            details={"index_no": index_no, "expected_length": INDEX_NUMBER_LENGTH},
        )
    return index_no

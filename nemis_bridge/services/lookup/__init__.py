# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""NEMIS lookup API client.

Usage:
    from nemis_bridge.services.lookup import LookupApiClient

    async with LookupApiClient(settings.lookup_api) as api:
        learner = await api.search_learner("BC-123456")
"""

from nemis_bridge.services.lookup.client import LookupApiClient
from nemis_bridge.services.lookup.exceptions import LookupApiError, LookupNotFoundError
from nemis_bridge.services.lookup.models import (
    AdmissionResults,
    CurrentInstitution,
    LearnerCategory,
    LookupContact,
    LookupLearner,
)

__all__ = [
    "LookupApiClient",
    "LookupApiError",
    "LookupNotFoundError",
    "LookupLearner",
    "LookupContact",
    "CurrentInstitution",
    "LearnerCategory",
    "AdmissionResults",
]

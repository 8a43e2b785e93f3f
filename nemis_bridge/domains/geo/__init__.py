# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Administrative region codes.

This package provides:
- GeoCodeResolver: County and sub-county names to portal codes
- COUNTY_RULES: The ordered county and sub-county pattern table
"""

from nemis_bridge.domains.geo.regions import COUNTY_RULES, CountyRule
from nemis_bridge.domains.geo.resolver import GeoCodeResolver, RegionCode

__all__ = [
    "GeoCodeResolver",
    "RegionCode",
    "COUNTY_RULES",
    "CountyRule",
]

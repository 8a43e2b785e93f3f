# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Free-text county and sub-county names to portal region codes.

Example:
    >>> resolver = GeoCodeResolver()
    >>> resolver.resolve("Nairobi", "Westlands")
    RegionCode(county=147, sub_county=1222)
"""

import logging
import re
from dataclasses import dataclass

from nemis_bridge.domains.geo.regions import COUNTY_RULES, CountyRule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegionCode:
    """County and sub-county codes the biodata form expects."""

    county: int
    sub_county: int


@dataclass(frozen=True)
class _CompiledCounty:
    rule: CountyRule
    pattern: re.Pattern[str]
    sub_counties: tuple[tuple[re.Pattern[str], int], ...]


class GeoCodeResolver:
    """Resolve administrative region names with ordered pattern rules.

    Resolution is pure: the same names always give the same codes. A county
    that matches no rule resolves to None; a known county whose sub-county
    matches no rule resolves to that county's default sub-county.
    """

    def __init__(self, rules: tuple[CountyRule, ...] = COUNTY_RULES):
        self._counties = tuple(
            _CompiledCounty(
                rule=rule,
                pattern=re.compile(rule.pattern, re.IGNORECASE),
                sub_counties=tuple(
                    (re.compile(pattern, re.IGNORECASE), code)
                    for pattern, code in rule.sub_counties
                ),
            )
            for rule in rules
        )

    def county_code(self, county: str | None) -> int | None:
        """Return the county code for a county name, None if unknown."""
        compiled = self._match_county(county)
        return compiled.rule.code if compiled else None

    def resolve(self, county: str | None, sub_county: str | None = None) -> RegionCode | None:
        """Resolve county and sub-county names to codes.

        Args:
            county: County name as entered locally.
            sub_county: Sub-county name as entered locally.

        Returns:
            The codes, or None when the county is not recognized.
        """
        compiled = self._match_county(county)
        if compiled is None:
            logger.debug("County not recognized: county=%s", county)
            return None

        name = (sub_county or "").strip()
        for pattern, code in compiled.sub_counties:
            if name and pattern.match(name):
                return RegionCode(county=compiled.rule.code, sub_county=code)
        return RegionCode(county=compiled.rule.code, sub_county=compiled.rule.default_sub_county)

    def _match_county(self, county: str | None) -> _CompiledCounty | None:
        name = (county or "").strip()
        if not name:
            return None
        return next((c for c in self._counties if c.pattern.match(name)), None)

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for NemisBridge.

Example:
    >>> from nemis_bridge.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.portal.base_url)
    'http://nemis.education.go.ke'
"""

from nemis_bridge.core.config.settings import (
    LookupApiSettings,
    PortalSettings,
    Settings,
    SyncSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "PortalSettings",
    "LookupApiSettings",
    "SyncSettings",
]

"""NemisBridge.

Automation layer for the NEMIS learner-management portal: a stateful session
client for the portal's postback forms, record extraction from rendered pages,
the learner admission lifecycle, and reconciliation of local learner records
against the remote system.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Livetrain - live-training marketplace backend.

The core covers course/session moderation, capacity-constrained session
enrollment and per-recipient in-app notifications.
"""

__version__ = "1.0.0"

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for the profile service.

This package contains domain services that encapsulate business logic.

Domains:
    profile: Student and teacher provisioning across the profile store and
        the identity service.
"""

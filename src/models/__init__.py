# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pydantic request/response models.

Modules:
    common: Response envelope shared by all operations.
    profile: Student and teacher profile payloads.
"""

# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Identity service integration.

Provides the provisioning client for the external identity service and the
rules for generated usernames and temporary passwords.
"""

from src.infrastructure.identity.client import IdentityHandle, IdentityProvisioningClient
from src.infrastructure.identity.credentials import (
    generate_temporary_password,
    generate_username,
)

__all__ = [
    "IdentityHandle",
    "IdentityProvisioningClient",
    "generate_temporary_password",
    "generate_username",
]

"""School profile provisioning service.

Creates, approves, updates and deletes student and teacher profiles while
keeping the profile database consistent with the external identity service.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"

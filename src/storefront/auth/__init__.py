# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication helpers.

This package provides:
- Password hashing/verification (argon2)
- The account store (data/accounts.yml)
- Signed session, remember-me and CSRF cookies (itsdangerous)
- Post-login landing decisions
"""

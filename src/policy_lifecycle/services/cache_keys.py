# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Centralized cache key management for consistent caching patterns."""

from uuid import UUID

from beartype import beartype


class CacheKeys:
    """Centralized cache key management."""

    PREFIX = "lifecycle:"

    PACKAGE = f"{PREFIX}package:"

    @staticmethod
    @beartype
    def package_by_id(package_id: UUID) -> str:
        """Cache key for an insurance package by ID."""
        return f"{CacheKeys.PACKAGE}{package_id}"

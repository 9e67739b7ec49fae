# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Read access to insurance package records."""

from typing import Any
from uuid import UUID

from beartype import beartype

from ..core.cache import Cache
from ..core.config import get_settings
from ..core.database import TRANSIENT_DB_ERRORS, Database
from ..core.errors import LifecycleError, NotFound
from ..core.result_types import Err, Ok, Result
from ..models.package import InsurancePackage
from .cache_keys import CacheKeys
from .transaction_helpers import transient_error


class PackageCatalog:
    """Insurance packages with rates and issuer codes, cached in Redis."""

    def __init__(self, db: Database, cache: Cache) -> None:
        """Initialize catalog with dependencies."""
        self._db = db
        self._cache = cache
        self._cache_ttl = get_settings().package_cache_ttl_seconds

    @beartype
    async def get(
        self, package_id: UUID, conn: Any = None
    ) -> Result[InsurancePackage, LifecycleError]:
        """Get package by ID.

        Pass ``conn`` when the caller already holds a connection (and row
        locks) so the lookup does not wait on a second pool connection.
        """
        cache_key = CacheKeys.package_by_id(package_id)
        cached = await self._cache.get(cache_key)
        if cached:
            return Ok(InsurancePackage.model_validate(cached))

        executor = conn if conn is not None else self._db
        try:
            row = await executor.fetchrow(
                """
                SELECT id, name, category_id, vat_rate_percent,
                       discount_rate_percent, partner_code,
                       insurance_company_code, channel, unit_size, rate_per_unit
                FROM insurance_packages
                WHERE id = $1
                """,
                package_id,
            )
        except TRANSIENT_DB_ERRORS as exc:
            return Err(transient_error("get_package", exc))
        if not row:
            return Err(NotFound(f"Insurance package {package_id} not found"))

        package = self._row_to_package(row)
        await self._cache.set(
            cache_key, package.model_dump(mode="json"), self._cache_ttl
        )
        return Ok(package)

    @beartype
    async def invalidate(self, package_id: UUID) -> None:
        """Drop a cached package after its rates change."""
        await self._cache.delete(CacheKeys.package_by_id(package_id))

    def _row_to_package(self, row: Any) -> InsurancePackage:
        """Convert database row to InsurancePackage model."""
        return InsurancePackage(
            id=row["id"],
            name=row["name"],
            category_id=row["category_id"],
            vat_rate_percent=row["vat_rate_percent"],
            discount_rate_percent=row["discount_rate_percent"],
            partner_code=row["partner_code"],
            insurance_company_code=row["insurance_company_code"],
            channel=row["channel"],
            unit_size=row["unit_size"],
            rate_per_unit=row["rate_per_unit"],
        )

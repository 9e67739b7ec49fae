"""Test configuration and fixtures.

Provides AsyncMock-based database and cache doubles for narrow unit tests,
and the in-memory ``FakeDatabase`` for tests that walk several lifecycle
stages.
"""

import contextlib
from collections.abc import AsyncIterator, Generator
from datetime import date, time
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest

from policy_lifecycle.core.config import clear_settings_cache
from policy_lifecycle.models.context import RequestContext
from policy_lifecycle.models.package import InsurancePackage, SalesChannel
from policy_lifecycle.services.claim_service import ClaimService
from policy_lifecycle.services.collaborators import ClaimDocuments
from policy_lifecycle.services.order_service import OrderService
from policy_lifecycle.services.package_catalog import PackageCatalog
from policy_lifecycle.services.payment_reconciler import PaymentReconciler
from policy_lifecycle.services.quotation_service import QuotationService

from fakes import FakeDatabase, FakeDocumentStore, RecordingNotifier


@pytest.fixture(autouse=True)
def reset_settings() -> Generator[None, None, None]:
    """Reset cached settings between tests."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_db() -> MagicMock:
    """Create mock database whose transaction yields ``mock_db.conn``."""
    db = MagicMock()
    db.fetchval = AsyncMock(return_value=None)
    db.fetchrow = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.execute = AsyncMock(return_value=None)

    conn = MagicMock()
    conn.fetchval = AsyncMock(return_value=None)
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetch = AsyncMock(return_value=[])
    conn.execute = AsyncMock(return_value=None)

    @contextlib.asynccontextmanager
    async def savepoint() -> AsyncIterator[None]:
        yield None

    @contextlib.asynccontextmanager
    async def transaction() -> AsyncIterator[Any]:
        yield conn

    conn.transaction = MagicMock(side_effect=savepoint)
    db.transaction = MagicMock(side_effect=transaction)
    db.conn = conn
    return db


@pytest.fixture
def mock_cache() -> MagicMock:
    """Create mock cache for testing."""
    cache = MagicMock()
    cache.get = AsyncMock(return_value=None)
    cache.set = AsyncMock(return_value=True)
    cache.delete = AsyncMock(return_value=True)
    return cache


@pytest.fixture
def package() -> InsurancePackage:
    """Consumer package with 5% discount and 15% VAT."""
    return InsurancePackage(
        id=uuid4(),
        name="Home Shield",
        category_id=3,
        vat_rate_percent=Decimal("15"),
        discount_rate_percent=Decimal("5"),
        channel=SalesChannel.CONSUMER,
    )


@pytest.fixture
def fake_db(package: InsurancePackage) -> FakeDatabase:
    """In-memory database seeded with ``package``."""
    db = FakeDatabase()
    db.add_package(package)
    return db


@pytest.fixture
def document_store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def owner(owner_id: UUID) -> RequestContext:
    """Authenticated caller owning the test entities."""
    return RequestContext(user_id=owner_id, brand="Instasure")


@pytest.fixture
def intruder() -> RequestContext:
    """Authenticated caller who owns nothing."""
    return RequestContext(user_id=uuid4(), brand="Instasure")


@pytest.fixture
def anonymous() -> RequestContext:
    return RequestContext()


@pytest.fixture
def catalog(fake_db: FakeDatabase, mock_cache: MagicMock) -> PackageCatalog:
    return PackageCatalog(fake_db, mock_cache)


@pytest.fixture
def quotation_service(
    fake_db: FakeDatabase,
    catalog: PackageCatalog,
    document_store: FakeDocumentStore,
) -> QuotationService:
    return QuotationService(fake_db, catalog, document_store)


@pytest.fixture
def order_service(
    fake_db: FakeDatabase,
    catalog: PackageCatalog,
    quotation_service: QuotationService,
    document_store: FakeDocumentStore,
) -> OrderService:
    return OrderService(fake_db, catalog, quotation_service, document_store)


@pytest.fixture
def reconciler(
    fake_db: FakeDatabase, catalog: PackageCatalog, notifier: RecordingNotifier
) -> PaymentReconciler:
    return PaymentReconciler(fake_db, catalog, notifier)


@pytest.fixture
def claim_service(
    fake_db: FakeDatabase,
    document_store: FakeDocumentStore,
    notifier: RecordingNotifier,
) -> ClaimService:
    return ClaimService(fake_db, document_store, notifier)


@pytest.fixture
def quotation_data(package: InsurancePackage) -> dict[str, Any]:
    """Raw quotation form values."""
    return {
        "package_id": str(package.id),
        "property_name": "Riverside Apartment",
        "property_type": "home",
        "email": "owner@example.com",
        "phone": "01711000000",
        "address": {
            "address_line": "12 Lake Road",
            "city": "Dhaka",
            "state": "Dhaka",
            "postal_code": "1212",
        },
        "coverage_amount": "200000",
    }


@pytest.fixture
def claim_data() -> dict[str, Any]:
    """Raw claim form values."""
    return {
        "incident_date": date(2025, 3, 2),
        "incident_time": time(22, 15),
        "incident_location": "Kitchen",
        "incident_description": "Electrical fire behind the stove",
        "authorities_notified": "yes",
        "police_report_filed": "no",
        "damage_type": "fire",
        "damage_description": "Cabinets and wiring burnt",
        "claimed_amount": "5000",
        "is_habitable": "yes",
        "emergency_measures_taken": "no",
        "terms_accepted": True,
    }


@pytest.fixture
def claim_documents() -> ClaimDocuments:
    return ClaimDocuments(
        claim_forms=["form.pdf"],
        damage_photos=["kitchen.jpg"],
        supporting_documents=[],
    )

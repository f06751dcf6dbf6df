"""
Shared fixtures for the trackage test suite
"""
from typing import Callable, Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

import trackage.models  # noqa: F401
from trackage.core.settings import CarrierIntegrationSettings
from trackage.database import Base
from trackage.repository.package_repository import PackageRepository
from tests.factories.package_factory import create_new_package


# ============================================================================
# Database Test Setup
# ============================================================================

# In-memory SQLite shared by every connection
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

test_engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Isolated database session; tables are dropped after each test"""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    try:
        yield session
        session.rollback()
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def package_repository(db_session: Session) -> PackageRepository:
    return PackageRepository(db_session, busy_retries=0)


@pytest.fixture
def make_package(package_repository: PackageRepository) -> Callable[..., int]:
    """Insert a package and return its id"""
    counter = {"uid": 0}

    def _make(tracking_number: str, courier: str = "ups", service: str = "UPS Ground") -> int:
        counter["uid"] += 1
        package_repository.insert_package(create_new_package(
            tracking_number=tracking_number,
            courier=courier,
            service=service,
            source_email_uid=counter["uid"],
        ))
        return next(
            package.id for package in package_repository.get_all_packages_with_status()
            if package.tracking_number == tracking_number
        )

    return _make


# ============================================================================
# Carrier settings
# ============================================================================

@pytest.fixture
def carrier_settings() -> CarrierIntegrationSettings:
    """Credentials for every carrier, no HTTP retries"""
    return CarrierIntegrationSettings(
        _env_file=None,
        fedex_client_id="fedex-id",
        fedex_client_secret="fedex-secret",
        fedex_use_sandbox=True,
        ups_client_id="ups-id",
        ups_client_secret="ups-secret",
        usps_client_id="usps-id",
        usps_client_secret="usps-secret",
        ups_web_enabled=False,
        http_max_retries=0,
        http_retry_base_delay=0.0,
    )

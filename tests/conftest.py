import pytest
from decimal import Decimal

from wallet_tracker.app import Services, build_services
from wallet_tracker.database.connection import DatabaseConfig, DatabaseManager, initialize_database
from wallet_tracker.domain.enums import CategoryType
from wallet_tracker.domain.models import Category, Wallet
from wallet_tracker.repositories.memory_repositories import InMemoryUnitOfWork
from wallet_tracker.repositories.sqlite_unit_of_work import SQLiteUnitOfWork


@pytest.fixture
def test_db(tmp_path):
    """
    Create a real test database.

    Use pytest's tmp_path fixture to create a temporary directory.
    Database is automatically cleaned up after each test.
    """
    config = DatabaseConfig(tmp_path / "test.db")
    db_manager = DatabaseManager(config)
    initialize_database(db_manager)

    yield db_manager

    db_manager.close()


@pytest.fixture
def sqlite_uow(test_db) -> SQLiteUnitOfWork:
    return SQLiteUnitOfWork(test_db)


@pytest.fixture
def memory_uow() -> InMemoryUnitOfWork:
    return InMemoryUnitOfWork()


@pytest.fixture
def services(memory_uow) -> Services:
    """Service graph over the in-memory backend"""
    return build_services(memory_uow)


@pytest.fixture
def sqlite_services(sqlite_uow) -> Services:
    """Service graph over a temporary SQLite database"""
    return build_services(sqlite_uow)


@pytest.fixture
def food_category(services) -> Category:
    return services.categories.create(name="Food", type=CategoryType.EXPENSE)


@pytest.fixture
def wallet(services) -> Wallet:
    """Cash wallet holding 1,000,000"""
    return services.wallets.create(name="Cash", initial_balance=Decimal("1000000"))

import pytest
from decimal import Decimal

from wallet_tracker.app import Services
from wallet_tracker.domain.enums import WalletType
from wallet_tracker.domain.errors import (
    InactiveWalletError,
    InsufficientBalanceError,
    SameWalletTransferError,
    ValidationError,
)
from wallet_tracker.repositories.base import RecordNotFoundError, StorageError


@pytest.fixture
def wallets(services: Services):
    source = services.wallets.create(name="Wallet A", initial_balance=Decimal("500000"))
    destination = services.wallets.create(name="Wallet B", type=WalletType.EWALLET)
    return source, destination


def balances(services: Services, *wallets):
    return [services.wallets.get(w.id).balance for w in wallets]


@pytest.mark.unit
class TestCreateTransfer:

    def test_moves_amount_and_burns_fee(self, services: Services, wallets):
        # Arrange
        source, destination = wallets
        before = services.wallets.get_total_balance()

        # Act
        transfer = services.transfers.create(
            source.id, destination.id, Decimal("100000"), fee=Decimal("2000"), note="top up"
        )

        # Assert
        assert balances(services, source, destination) == [Decimal("398000"), Decimal("100000")]
        assert services.wallets.get_total_balance() == before - transfer.fee
        assert services.transfers.get(transfer.id).note == "top up"

    def test_amount_plus_fee_equal_to_balance_is_allowed(self, services: Services, wallets):
        source, destination = wallets

        services.transfers.create(source.id, destination.id, Decimal("495000"), fee=Decimal("5000"))

        assert balances(services, source, destination) == [Decimal("0"), Decimal("495000")]

    def test_fee_counts_towards_the_balance_check(self, services: Services, wallets):
        # Arrange
        source, destination = wallets

        # Act & Assert
        with pytest.raises(InsufficientBalanceError) as exc_info:
            services.transfers.create(source.id, destination.id, Decimal("499000"), fee=Decimal("2000"))

        assert exc_info.value.required == Decimal("501000")
        assert balances(services, source, destination) == [Decimal("500000"), Decimal("0")]
        assert services.transfers.list() == []

    def test_same_wallet_is_rejected_before_storage(self, services: Services, wallets, mocker):
        source, _ = wallets
        run_atomic = mocker.spy(services.uow, "run_atomic")

        with pytest.raises(SameWalletTransferError):
            services.transfers.create(source.id, source.id, Decimal("1"))

        run_atomic.assert_not_called()

    @pytest.mark.parametrize("amount, fee", [(Decimal("0"), Decimal("0")), (Decimal("10"), Decimal("-1"))])
    def test_invalid_amounts(self, services: Services, wallets, amount, fee):
        source, destination = wallets

        with pytest.raises(ValidationError):
            services.transfers.create(source.id, destination.id, amount, fee=fee)

    def test_inactive_destination(self, services: Services, wallets):
        # Arrange
        source, destination = wallets
        services.wallets.delete(destination.id)

        # Act & Assert
        with pytest.raises(InactiveWalletError) as exc_info:
            services.transfers.create(source.id, destination.id, Decimal("1000"))

        assert exc_info.value.role == "destination wallet"
        assert balances(services, source) == [Decimal("500000")]

    def test_inactive_source(self, services: Services, wallets):
        source, destination = wallets
        services.wallets.delete(source.id)

        with pytest.raises(InactiveWalletError) as exc_info:
            services.transfers.create(source.id, destination.id, Decimal("1000"))

        assert exc_info.value.role == "source wallet"

    def test_unknown_wallet(self, services: Services, wallets):
        source, _ = wallets

        with pytest.raises(RecordNotFoundError):
            services.transfers.create(source.id, "missing", Decimal("1000"))

    def test_second_balance_update_failure_rolls_back_everything(self, services: Services, wallets, mocker):
        # Arrange
        source, destination = wallets
        wallet_repo = services.uow.repositories.wallets
        original = wallet_repo.update_balance
        calls = []

        def fail_on_credit(wallet_id, new_balance):
            calls.append(wallet_id)
            if wallet_id == destination.id:
                raise StorageError("connection lost")
            original(wallet_id, new_balance)

        mocker.patch.object(wallet_repo, "update_balance", side_effect=fail_on_credit)

        # Act
        with pytest.raises(StorageError):
            services.transfers.create(source.id, destination.id, Decimal("100000"), fee=Decimal("2000"))

        # Assert
        assert calls == [source.id, destination.id]
        assert balances(services, source, destination) == [Decimal("500000"), Decimal("0")]
        assert services.transfers.list() == []


@pytest.mark.unit
class TestTransferQueries:

    def test_get_by_wallet_matches_either_side(self, services: Services, wallets):
        # Arrange
        source, destination = wallets
        other = services.wallets.create(name="Savings", initial_balance=Decimal("10000"))
        first = services.transfers.create(source.id, destination.id, Decimal("1000"))
        second = services.transfers.create(other.id, source.id, Decimal("500"))
        services.transfers.create(other.id, destination.id, Decimal("500"))

        # Act
        result = services.transfers.get_by_wallet(source.id)

        # Assert
        assert [t.id for t in result] == [second.id, first.id]

    def test_get_unknown_transfer(self, services: Services):
        with pytest.raises(RecordNotFoundError):
            services.transfers.get("missing")

import logging
from decimal import Decimal
from typing import List, Optional

from wallet_tracker.domain.enums import WalletType
from wallet_tracker.domain.models import Wallet
from wallet_tracker.repositories.base import WalletFilter
from wallet_tracker.repositories.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class WalletService:

    def __init__(self, uow: UnitOfWork, default_currency: str = "IDR"):
        self.uow = uow
        self.default_currency = default_currency

    @property
    def repository(self):
        return self.uow.repositories.wallets

    def create(
        self,
        name: str,
        type: WalletType = WalletType.CASH,
        initial_balance: Decimal = Decimal("0"),
        currency: Optional[str] = None,
        color: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> Wallet:
        """
        Create a wallet holding an initial deposit.

        Args:
            name: Display name, 1-100 characters
            type: Kind of account
            initial_balance: Opening balance, zero or more
            currency: 3-letter code, defaults to the configured currency

        Raises:
            ValidationError: If any field is invalid
        """
        wallet = Wallet(
            name=name,
            type=type,
            balance=initial_balance,
            currency=currency or self.default_currency,
            color=color,
            icon=icon,
        )
        wallet.validate()

        self.repository.create(wallet)
        logger.info("Created wallet %s (%s) with balance %s", wallet.id, wallet.name, wallet.balance)
        return wallet

    def get(self, wallet_id: str) -> Wallet:
        return self.repository.get_by_id(wallet_id)

    def list(self, filter: Optional[WalletFilter] = None) -> List[Wallet]:
        return self.repository.list(filter)

    def list_active(self) -> List[Wallet]:
        return self.repository.list(WalletFilter(is_active=True))

    def update(
        self,
        wallet_id: str,
        name: Optional[str] = None,
        type: Optional[WalletType] = None,
        currency: Optional[str] = None,
        color: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> Wallet:
        """Update descriptive fields only. The balance moves through transactions and transfers."""
        wallet = self.repository.get_by_id(wallet_id)

        if name is not None:
            wallet.name = name
        if type is not None:
            wallet.type = type
        if currency is not None:
            wallet.currency = currency
        if color is not None:
            wallet.color = color
        if icon is not None:
            wallet.icon = icon
        wallet.validate()

        return self.repository.update(wallet)

    def delete(self, wallet_id: str) -> None:
        """Soft delete: the wallet stays referenced by its history."""
        self.repository.delete(wallet_id)
        logger.info("Deactivated wallet %s", wallet_id)

    def get_total_balance(self) -> Decimal:
        return self.repository.get_total_balance()

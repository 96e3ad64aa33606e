import logging
from decimal import Decimal
from typing import List, Optional

from wallet_tracker.domain.errors import InactiveWalletError, InsufficientBalanceError
from wallet_tracker.domain.models import Transfer
from wallet_tracker.repositories.base import ListParams, TransferFilter
from wallet_tracker.repositories.unit_of_work import RepositorySet, UnitOfWork

logger = logging.getLogger(__name__)


class TransferService:

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    @property
    def repository(self):
        return self.uow.repositories.transfers

    def create(
        self,
        from_wallet_id: str,
        to_wallet_id: str,
        amount: Decimal,
        fee: Decimal = Decimal("0"),
        note: str = "",
    ) -> Transfer:
        """
        Move money between two wallets.

        The source loses amount + fee, the destination gains amount. The fee
        is not credited anywhere. The transfer row and both balance updates
        are committed together or not at all.

        Raises:
            SameWalletTransferError: If source and destination are the same wallet
            ValidationError: If amount or fee is out of range
            RecordNotFoundError: If either wallet does not exist
            InactiveWalletError: If either wallet was soft deleted
            InsufficientBalanceError: If the source cannot cover amount + fee
        """
        transfer = Transfer(
            from_wallet_id=from_wallet_id,
            to_wallet_id=to_wallet_id,
            amount=amount,
            fee=fee,
            note=note,
        )
        transfer.validate()

        def move(repos: RepositorySet) -> Transfer:
            source = repos.wallets.get_by_id(transfer.from_wallet_id)
            destination = repos.wallets.get_by_id(transfer.to_wallet_id)

            if not source.is_active:
                raise InactiveWalletError(source.id, role="source wallet")
            if not destination.is_active:
                raise InactiveWalletError(destination.id, role="destination wallet")

            total = transfer.total_deducted
            if source.balance < total:
                raise InsufficientBalanceError(source.id, source.balance, total)

            repos.transfers.create(transfer)
            repos.wallets.update_balance(source.id, source.balance - total)
            repos.wallets.update_balance(destination.id, destination.balance + transfer.amount)
            return transfer

        self.uow.run_atomic(move)
        logger.info(
            "Transferred %s (fee %s) from %s to %s",
            transfer.amount, transfer.fee, transfer.from_wallet_id, transfer.to_wallet_id,
        )
        return transfer

    def get(self, transfer_id: str) -> Transfer:
        return self.repository.get_by_id(transfer_id)

    def list(
        self,
        filter: Optional[TransferFilter] = None,
        params: Optional[ListParams] = None,
    ) -> List[Transfer]:
        return self.repository.list(filter, params)

    def get_by_wallet(self, wallet_id: str, params: Optional[ListParams] = None) -> List[Transfer]:
        """Transfers in or out of a wallet, newest first"""
        return self.repository.list(TransferFilter(wallet_id=wallet_id), params)

from decimal import Decimal
import logging

from sqlalchemy.exc import SQLAlchemyError

from vendorvault.enums import TransactionType
from vendorvault.exceptions import InsufficientFundsError, NotFoundError
from vendorvault.extensions import db
from vendorvault.models.wallet import Wallet, WalletTransaction
from vendorvault.utils.helpers import to_money

logger = logging.getLogger(__name__)

CREDIT_TYPES = (
    TransactionType.DEPOSIT_CREDIT,
    TransactionType.REFUND_CREDIT,
    TransactionType.ADJUSTMENT,
)


class WalletService:
    @staticmethod
    def get_wallet_by_user_id(user_id: str) -> Wallet:
        wallet = Wallet.query.filter_by(user_id=user_id).first()
        if not wallet:
            raise NotFoundError("Wallet not found")
        return wallet

    @staticmethod
    def _lock_wallet(user_id: str) -> Wallet:
        wallet = (
            db.session.query(Wallet)
            .filter_by(user_id=user_id)
            .with_for_update()
            .populate_existing()
            .first()
        )  # lock row
        if not wallet:
            raise NotFoundError("Wallet not found")
        return wallet

    @staticmethod
    def credit_wallet(
        user_id: str,
        amount: Decimal,
        type: TransactionType,
        description: str = None,
        order_id: str = None,
        refund_id: str = None,
        commit: bool = True,
    ) -> WalletTransaction:
        amount = to_money(amount)
        if amount <= 0:
            raise ValueError("Amount must be greater than zero")
        if type not in CREDIT_TYPES:
            raise ValueError(f"{type.value} is not a credit transaction type")

        try:
            wallet = WalletService._lock_wallet(user_id)

            balance_before = wallet.balance
            wallet.balance = balance_before + amount

            transaction = WalletTransaction(
                wallet_id=wallet.id,
                order_id=order_id,
                refund_id=refund_id,
                type=type,
                amount=amount,
                balance_before=balance_before,
                balance_after=wallet.balance,
                description=description or "Credit",
            )
            db.session.add(transaction)

            if commit is True:
                db.session.commit()

            logger.info(f"Credited {amount} to wallet {wallet.id} ({type.value})")
            return transaction

        except SQLAlchemyError:
            db.session.rollback()
            raise

    @staticmethod
    def debit_wallet(
        user_id: str,
        amount: Decimal,
        description: str = None,
        order_id: str = None,
        commit: bool = True,
    ) -> WalletTransaction:
        amount = to_money(amount)
        if amount <= 0:
            raise ValueError("Amount must be greater than zero")

        try:
            wallet = WalletService._lock_wallet(user_id)

            if not wallet.can_deduct(amount):
                raise InsufficientFundsError("Insufficient balance")

            balance_before = wallet.balance
            wallet.balance = balance_before - amount

            transaction = WalletTransaction(
                wallet_id=wallet.id,
                order_id=order_id,
                type=TransactionType.PURCHASE_DEBIT,
                amount=amount,
                balance_before=balance_before,
                balance_after=wallet.balance,
                description=description or "Payment",
            )
            db.session.add(transaction)

            if commit is True:
                db.session.commit()

            logger.info(f"Debited {amount} from wallet {wallet.id}")
            return transaction

        except SQLAlchemyError:
            db.session.rollback()
            raise

    @staticmethod
    def get_transactions(wallet_id: str, page: int = 1, per_page: int = 20):
        """Get wallet transactions with pagination"""
        return (
            WalletTransaction.query.filter_by(wallet_id=wallet_id)
            .order_by(WalletTransaction.created_at.desc())
            .paginate(page=page, per_page=per_page, error_out=False)
        )

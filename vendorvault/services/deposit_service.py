from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional
import logging

from flask import current_app

from vendorvault.enums import DepositStatus, NotificationType, PaymentMethod, TransactionType
from vendorvault.exceptions import DepositPendingError, NotFoundError
from vendorvault.extensions import db
from vendorvault.models.withdrawal import WalletDeposit
from vendorvault.payments import get_provider
from vendorvault.services.notification_service import NotificationService
from vendorvault.services.wallet_service import WalletService
from vendorvault.utils.helpers import generate_memo_code, to_money, utcnow

logger = logging.getLogger(__name__)


class DepositService:
    """
    Wallet top-ups over the direct deposit rail. The buyer sends coins with a
    memo code; polling the deposit history credits the wallet once the memo and
    amount match.
    """

    @staticmethod
    def create_deposit(user_id: str, amount: Decimal, now: Optional[datetime] = None) -> WalletDeposit:
        now = now or utcnow()
        config = current_app.config

        pending = WalletDeposit.query.filter(
            WalletDeposit.user_id == user_id,
            WalletDeposit.status == DepositStatus.PENDING,
            WalletDeposit.expires_at > now,
        ).first()
        if pending:
            raise DepositPendingError("A deposit is already pending. Complete it or wait for it to expire.")

        try:
            deposit = WalletDeposit(
                user_id=user_id,
                amount=to_money(amount),
                memo_code=generate_memo_code(),
                coin=config["DEPOSIT_COIN"],
                network=config["DEPOSIT_NETWORK"],
                address=config["DEPOSIT_ADDRESS"],
                expires_at=now + timedelta(minutes=config["DEPOSIT_EXPIRY_MINUTES"]),
            )
            db.session.add(deposit)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        logger.info(f"Deposit {deposit.id} opened for user {user_id}: {deposit.amount} {deposit.coin}")
        return deposit

    @staticmethod
    def check_deposit(deposit_id: str, user_id: str, now: Optional[datetime] = None) -> dict:
        """Current state of a deposit, crediting the wallet if it has just arrived"""
        now = now or utcnow()
        deposit = WalletDeposit.query.filter_by(id=deposit_id, user_id=user_id).first()
        if not deposit:
            raise NotFoundError("Deposit not found")

        if deposit.status == DepositStatus.COMPLETED:
            return {"status": "completed", "amount": float(deposit.credited_amount)}
        if deposit.expires_at < now:
            return {"status": "expired"}

        result = get_provider(PaymentMethod.DIRECT_DEPOSIT.value).check_status(deposit)
        if not result.confirmed:
            return {"status": "pending"}

        credited = DepositService.complete_deposit(deposit, result.reference, result.amount, now)
        if not credited:
            # Another poll got there first
            deposit = db.session.get(WalletDeposit, deposit_id, populate_existing=True)
        return {"status": "completed", "amount": float(deposit.credited_amount)}

    @staticmethod
    def complete_deposit(deposit: WalletDeposit, tx_id: str, amount: Optional[Decimal], now: datetime) -> bool:
        """PENDING -> COMPLETED and credit the wallet. Returns False if already completed."""
        credited_amount = to_money(amount if amount is not None else deposit.amount)

        try:
            rows = (
                db.session.query(WalletDeposit)
                .filter(
                    WalletDeposit.id == deposit.id,
                    WalletDeposit.status == DepositStatus.PENDING,
                )
                .update(
                    {
                        WalletDeposit.status: DepositStatus.COMPLETED,
                        WalletDeposit.tx_id: tx_id,
                        WalletDeposit.credited_amount: credited_amount,
                        WalletDeposit.completed_at: now,
                    },
                    synchronize_session=False,
                )
            )
            if rows != 1:
                db.session.rollback()
                return False

            WalletService.credit_wallet(
                deposit.user_id,
                credited_amount,
                TransactionType.DEPOSIT_CREDIT,
                description=f"Deposit ({deposit.coin}) memo {deposit.memo_code}",
                commit=False,
            )
            db.session.commit()

        except Exception:
            db.session.rollback()
            raise

        db.session.refresh(deposit)
        logger.info(f"Deposit {deposit.id} credited {credited_amount} (tx {tx_id})")
        NotificationService.notify(
            deposit.user_id,
            NotificationType.WALLET_CREDITED,
            "Wallet credited",
            f"${credited_amount} was added to your wallet.",
            "/buyer/wallet",
        )
        return True

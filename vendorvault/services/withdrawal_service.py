from decimal import Decimal
from typing import Optional
import logging

from sqlalchemy import func

from vendorvault.enums import NotificationType, WithdrawalMethod, WithdrawalStatus
from vendorvault.exceptions import DomainError, InsufficientFundsError, NotFoundError
from vendorvault.extensions import db
from vendorvault.models.accounting import AuditLog
from vendorvault.models.user import SellerProfile
from vendorvault.models.withdrawal import WithdrawalRequest
from vendorvault.services.notification_service import NotificationService
from vendorvault.utils.helpers import to_money, utcnow

logger = logging.getLogger(__name__)

REQUIRED_ACCOUNT_FIELDS = {
    WithdrawalMethod.BANK_TRANSFER: ("bank_name", "account_number", "account_holder"),
    WithdrawalMethod.PEER_TRANSFER: ("pay_id",),
    WithdrawalMethod.QR_TRANSFER: ("phone_number", "bank_name"),
}


class WithdrawalService:
    """
    Seller payouts.

    The requested amount is taken out of available_balance up front with a
    guarded decrement, so two requests racing for the same balance cannot
    both succeed. A rejection puts it back; approval and completion only move
    the request along PENDING -> APPROVED -> COMPLETED.
    """

    @staticmethod
    def _audit(user_id: str, action: str, withdrawal: WithdrawalRequest, **details):
        db.session.add(
            AuditLog(
                user_id=user_id,
                action=action,
                entity_type="withdrawal",
                entity_id=withdrawal.id,
                details={"amount": str(withdrawal.amount), "method": withdrawal.method.value, **details},
            )
        )

    @staticmethod
    def missing_account_fields(method: WithdrawalMethod, account_info: dict) -> list:
        return [
            name
            for name in REQUIRED_ACCOUNT_FIELDS[method]
            if not str(account_info.get(name) or "").strip()
        ]

    @staticmethod
    def create(seller_id: str, amount: Decimal, method: str, account_info: dict) -> WithdrawalRequest:
        amount = to_money(amount)
        if amount <= 0:
            raise DomainError("Amount must be greater than zero")

        method = WithdrawalMethod(method)
        missing = WithdrawalService.missing_account_fields(method, account_info or {})
        if missing:
            raise DomainError(f"Missing account fields: {', '.join(missing)}")

        try:
            rows = (
                db.session.query(SellerProfile)
                .filter(
                    SellerProfile.user_id == seller_id,
                    SellerProfile.available_balance >= amount,
                )
                .update(
                    {SellerProfile.available_balance: SellerProfile.available_balance - amount},
                    synchronize_session=False,
                )
            )
            if rows != 1:
                if not SellerProfile.query.filter_by(user_id=seller_id).first():
                    raise NotFoundError("Seller profile not found")
                raise InsufficientFundsError("Insufficient balance")

            withdrawal = WithdrawalRequest(
                seller_id=seller_id,
                amount=amount,
                method=method,
                account_info=account_info,
            )
            db.session.add(withdrawal)
            db.session.flush()
            WithdrawalService._audit(seller_id, "withdrawal_requested", withdrawal)

            db.session.commit()

        except Exception:
            db.session.rollback()
            raise

        logger.info(f"Withdrawal {withdrawal.id} requested by seller {seller_id}: {amount}")
        return withdrawal

    @staticmethod
    def get_for_seller(seller_id: str, page: int = 1, per_page: int = 20):
        return (
            WithdrawalRequest.query.filter_by(seller_id=seller_id)
            .order_by(WithdrawalRequest.created_at.desc())
            .paginate(page=page, per_page=per_page, error_out=False)
        )

    @staticmethod
    def get_all(status: Optional[WithdrawalStatus] = None, page: int = 1, per_page: int = 20):
        query = WithdrawalRequest.query
        if status:
            query = query.filter_by(status=status)
        return query.order_by(WithdrawalRequest.created_at.desc()).paginate(
            page=page, per_page=per_page, error_out=False
        )

    @staticmethod
    def get_stats() -> dict:
        """Count and total amount per status"""
        rows = (
            db.session.query(
                WithdrawalRequest.status,
                func.count(WithdrawalRequest.id),
                func.coalesce(func.sum(WithdrawalRequest.amount), 0),
            )
            .group_by(WithdrawalRequest.status)
            .all()
        )
        stats = {status.value: {"count": 0, "amount": 0.0} for status in WithdrawalStatus}
        for status, count, amount in rows:
            stats[status.value] = {"count": count, "amount": float(amount)}
        return stats

    @staticmethod
    def _transition(
        withdrawal_id: str,
        expected: WithdrawalStatus,
        values: dict,
        error: str,
    ) -> WithdrawalRequest:
        """Conditional status flip. Exactly one admin action wins a race."""
        rows = (
            db.session.query(WithdrawalRequest)
            .filter(
                WithdrawalRequest.id == withdrawal_id,
                WithdrawalRequest.status == expected,
            )
            .update(values, synchronize_session=False)
        )
        if rows != 1:
            if not db.session.get(WithdrawalRequest, withdrawal_id):
                raise NotFoundError("Withdrawal not found")
            raise DomainError(error)
        return db.session.get(WithdrawalRequest, withdrawal_id, populate_existing=True)

    @staticmethod
    def approve(withdrawal_id: str, admin_id: str, note: str = None) -> WithdrawalRequest:
        try:
            withdrawal = WithdrawalService._transition(
                withdrawal_id,
                WithdrawalStatus.PENDING,
                {
                    WithdrawalRequest.status: WithdrawalStatus.APPROVED,
                    WithdrawalRequest.reviewed_by: admin_id,
                    WithdrawalRequest.review_note: note,
                },
                "Only pending withdrawals can be approved",
            )
            WithdrawalService._audit(admin_id, "withdrawal_approved", withdrawal, note=note)
            db.session.commit()

        except Exception:
            db.session.rollback()
            raise

        logger.info(f"Withdrawal {withdrawal_id} approved by {admin_id}")
        NotificationService.notify(
            withdrawal.seller_id,
            NotificationType.WITHDRAWAL_APPROVED,
            "Withdrawal approved",
            f"Your withdrawal of ${withdrawal.amount} was approved and will be paid out soon.",
            "/seller/earnings",
        )
        return withdrawal

    @staticmethod
    def reject(withdrawal_id: str, admin_id: str, note: str = None) -> WithdrawalRequest:
        try:
            withdrawal = WithdrawalService._transition(
                withdrawal_id,
                WithdrawalStatus.PENDING,
                {
                    WithdrawalRequest.status: WithdrawalStatus.REJECTED,
                    WithdrawalRequest.reviewed_by: admin_id,
                    WithdrawalRequest.review_note: note,
                },
                "Only pending withdrawals can be rejected",
            )
            db.session.query(SellerProfile).filter(
                SellerProfile.user_id == withdrawal.seller_id
            ).update(
                {SellerProfile.available_balance: SellerProfile.available_balance + withdrawal.amount},
                synchronize_session=False,
            )
            WithdrawalService._audit(admin_id, "withdrawal_rejected", withdrawal, note=note)
            db.session.commit()

        except Exception:
            db.session.rollback()
            raise

        logger.info(f"Withdrawal {withdrawal_id} rejected by {admin_id}, {withdrawal.amount} returned")
        NotificationService.notify(
            withdrawal.seller_id,
            NotificationType.WITHDRAWAL_REJECTED,
            "Withdrawal rejected",
            f"Your withdrawal was rejected: {note}" if note else
            "Your withdrawal was rejected. The amount is back in your available balance.",
            "/seller/earnings",
        )
        return withdrawal

    @staticmethod
    def complete(withdrawal_id: str, admin_id: str) -> WithdrawalRequest:
        try:
            withdrawal = WithdrawalService._transition(
                withdrawal_id,
                WithdrawalStatus.APPROVED,
                {
                    WithdrawalRequest.status: WithdrawalStatus.COMPLETED,
                    WithdrawalRequest.completed_at: utcnow(),
                },
                "Only approved withdrawals can be completed",
            )
            WithdrawalService._audit(admin_id, "withdrawal_completed", withdrawal)
            db.session.commit()

        except Exception:
            db.session.rollback()
            raise

        logger.info(f"Withdrawal {withdrawal_id} paid out")
        return withdrawal

from datetime import datetime
from typing import List
import logging

from vendorvault.enums import AccountStatus, CodeStatus, ProfileStatus
from vendorvault.exceptions import OutOfStockError
from vendorvault.extensions import db
from vendorvault.models.inventory import GiftCardCode, StreamingAccount, StreamingProfile
from vendorvault.models.order import OrderItem
from vendorvault.utils.crypto import encrypt

logger = logging.getLogger(__name__)

CLAIM_RETRY_LIMIT = 5


class InventoryService:
    """
    Inventory claims. Every claim is a conditional UPDATE on the row's
    current state, so two transactions can never take the same unit. None of
    these methods commit; they run inside the caller's fulfillment transaction.
    """

    @staticmethod
    def claim_gift_code(product_id: str, order_item_id: str, buyer_id: str, now: datetime) -> GiftCardCode:
        for attempt in range(CLAIM_RETRY_LIMIT):
            candidate = (
                db.session.query(GiftCardCode.id)
                .filter(
                    GiftCardCode.product_id == product_id,
                    GiftCardCode.status == CodeStatus.AVAILABLE,
                )
                .order_by(GiftCardCode.created_at.asc(), GiftCardCode.id.asc())
                .first()
            )
            if not candidate:
                raise OutOfStockError(f"No codes available for product {product_id}")

            rows = (
                db.session.query(GiftCardCode)
                .filter(
                    GiftCardCode.id == candidate.id,
                    GiftCardCode.status == CodeStatus.AVAILABLE,
                )
                .update(
                    {
                        GiftCardCode.status: CodeStatus.SOLD,
                        GiftCardCode.sold_at: now,
                        GiftCardCode.buyer_id: buyer_id,
                        GiftCardCode.order_item_id: order_item_id,
                    },
                    synchronize_session=False,
                )
            )

            if rows == 1:
                return db.session.get(GiftCardCode, candidate.id, populate_existing=True)

            # Taken by a concurrent claim, try the next one
            logger.info(f"Code {candidate.id} claimed concurrently (attempt {attempt + 1})")

        raise OutOfStockError(f"Could not claim a code for product {product_id}")

    @staticmethod
    def claim_streaming_profile(
        product_id: str, order_item_id: str, buyer_id: str, now: datetime
    ) -> StreamingProfile:
        for attempt in range(CLAIM_RETRY_LIMIT):
            candidate = (
                db.session.query(StreamingAccount.id)
                .filter(
                    StreamingAccount.product_id == product_id,
                    StreamingAccount.status == AccountStatus.ACTIVE,
                    StreamingAccount.used_profiles < StreamingAccount.max_profiles,
                )
                .order_by(StreamingAccount.created_at.asc(), StreamingAccount.id.asc())
                .first()
            )
            if not candidate:
                raise OutOfStockError(f"No streaming profiles available for product {product_id}")

            rows = (
                db.session.query(StreamingAccount)
                .filter(
                    StreamingAccount.id == candidate.id,
                    StreamingAccount.status == AccountStatus.ACTIVE,
                    StreamingAccount.used_profiles < StreamingAccount.max_profiles,
                )
                .update(
                    {StreamingAccount.used_profiles: StreamingAccount.used_profiles + 1},
                    synchronize_session=False,
                )
            )

            if rows == 1:
                # Row stays locked until commit, so the counter we read back is ours
                account = db.session.get(StreamingAccount, candidate.id, populate_existing=True)
                profile = StreamingProfile(
                    account_id=account.id,
                    profile_number=account.used_profiles,
                    order_item_id=order_item_id,
                    buyer_id=buyer_id,
                    status=ProfileStatus.SOLD,
                    sold_at=now,
                )
                db.session.add(profile)
                db.session.flush()
                return profile

            logger.info(f"Account {candidate.id} filled concurrently (attempt {attempt + 1})")

        raise OutOfStockError(f"Could not claim a streaming profile for product {product_id}")

    @staticmethod
    def release_gift_codes(order_item_ids: List[str]) -> int:
        """Return sold codes to stock when an order is rejected before the buyer saw them"""
        if not order_item_ids:
            return 0
        return (
            db.session.query(GiftCardCode)
            .filter(
                GiftCardCode.order_item_id.in_(order_item_ids),
                GiftCardCode.status == CodeStatus.SOLD,
            )
            .update(
                {
                    GiftCardCode.status: CodeStatus.AVAILABLE,
                    GiftCardCode.sold_at: None,
                    GiftCardCode.buyer_id: None,
                    GiftCardCode.order_item_id: None,
                },
                synchronize_session=False,
            )
        )

    @staticmethod
    def expire_profiles(order_item_ids: List[str]) -> int:
        if not order_item_ids:
            return 0
        return (
            db.session.query(StreamingProfile)
            .filter(
                StreamingProfile.order_item_id.in_(order_item_ids),
                StreamingProfile.status == ProfileStatus.SOLD,
            )
            .update({StreamingProfile.status: ProfileStatus.EXPIRED}, synchronize_session=False)
        )

    @staticmethod
    def add_gift_codes(product_id: str, codes: List[str], pin: str = None) -> List[GiftCardCode]:
        try:
            rows = [
                GiftCardCode(product_id=product_id, code_encrypted=encrypt(code), pin=pin)
                for code in codes
            ]
            db.session.add_all(rows)
            db.session.commit()
            return rows
        except Exception:
            db.session.rollback()
            raise

    @staticmethod
    def add_streaming_account(product_id: str, email: str, password: str, max_profiles: int = 1) -> StreamingAccount:
        try:
            account = StreamingAccount(
                product_id=product_id,
                email_encrypted=encrypt(email),
                password_encrypted=encrypt(password),
                max_profiles=max_profiles,
            )
            db.session.add(account)
            db.session.commit()
            return account
        except Exception:
            db.session.rollback()
            raise

    @staticmethod
    def mark_item_delivered(order_item_id: str, now: datetime) -> bool:
        rows = (
            db.session.query(OrderItem)
            .filter(OrderItem.id == order_item_id, OrderItem.is_delivered.is_(False))
            .update(
                {OrderItem.is_delivered: True, OrderItem.delivered_at: now},
                synchronize_session=False,
            )
        )
        return rows == 1

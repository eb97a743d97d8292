from collections import OrderedDict
from datetime import timedelta
from decimal import Decimal
import logging

from flask import current_app

from vendorvault.enums import OrderStatus, PaymentMethod, PaymentStatus
from vendorvault.exceptions import NotFoundError
from vendorvault.extensions import db
from vendorvault.models.order import Order, OrderItem
from vendorvault.models.payment import Payment
from vendorvault.models.product import Product
from vendorvault.models.user import SellerProfile
from vendorvault.services.payment_service import PaymentService
from vendorvault.services.risk_service import RiskService
from vendorvault.services.scheduler_service import DeliveryScheduler
from vendorvault.services.settings_service import SettingsService
from vendorvault.services.wallet_service import WalletService
from vendorvault.utils.helpers import (
    generate_memo_code,
    generate_merchant_reference,
    generate_order_number,
    generate_qr_reference,
    to_money,
    utcnow,
)

logger = logging.getLogger(__name__)


def _load_products(items_data):
    product_ids = list({item["product_id"] for item in items_data})
    products = Product.query.filter(
        Product.id.in_(product_ids), Product.deleted_at.is_(None)
    ).all()
    products_map = {p.id: p for p in products}

    for item in items_data:
        product = products_map.get(item["product_id"])
        if not product:
            raise NotFoundError(f"Product {item['product_id']} not found")
        if not product.is_active:
            raise ValueError(f"Product {product.name} is not available")
        if int(item.get("quantity", 0)) < 1:
            raise ValueError("Quantity must be at least 1")

    return products_map


def _group_by_seller(items_data, products_map):
    groups = OrderedDict()
    for item in items_data:
        product = products_map[item["product_id"]]
        groups.setdefault(product.seller_id, []).append((product, int(item["quantity"])))
    return groups


class CheckoutService:
    @staticmethod
    def _create_order(buyer_id, seller_id, lines, payment_method, settings, now) -> Order:
        profile = SellerProfile.query.filter_by(user_id=seller_id).first()
        if not profile:
            raise NotFoundError(f"Seller {seller_id} has no seller profile")

        subtotal = to_money(sum(product.price * quantity for product, quantity in lines))
        commission_amount = to_money(subtotal * profile.commission_rate / Decimal("100"))
        item_count = sum(quantity for _, quantity in lines)

        assessment = RiskService.assess(
            buyer_id, subtotal, payment_method, item_count, settings=settings, now=now
        )

        order = Order(
            order_number=generate_order_number(),
            buyer_id=buyer_id,
            seller_id=seller_id,
            subtotal=subtotal,
            total_amount=subtotal,
            commission_rate=profile.commission_rate,
            commission_amount=commission_amount,
            seller_earnings=subtotal - commission_amount,
            payment_method=payment_method,
            status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            risk_score=assessment.score,
            risk_reasons=list(assessment.reasons),
            is_high_value=assessment.is_high_value,
            requires_manual_review=assessment.requires_manual_review,
        )
        DeliveryScheduler.schedule(order, assessment, now)
        db.session.add(order)
        db.session.flush()

        for product, quantity in lines:
            db.session.add(
                OrderItem(
                    order_id=order.id,
                    product_id=product.id,
                    product_name=product.name,
                    product_type=product.product_type,
                    unit_price=product.price,
                    quantity=quantity,
                    total_price=to_money(product.price * quantity),
                )
            )

        logger.info(
            f"Created order {order.order_number} for buyer {buyer_id}: "
            f"total={subtotal}, risk={assessment.score}, review={assessment.requires_manual_review}"
        )
        return order

    @staticmethod
    def _payment_instructions(payment_method, orders, total, now) -> dict:
        """Provider-tagged details shared by every order in one checkout"""
        config = current_app.config
        details = {"provider": payment_method, "order_ids": [order.id for order in orders]}
        external_id = None
        expires_at = None

        if payment_method == PaymentMethod.QR_TRANSFER.value:
            external_id = generate_qr_reference()
            expires_at = now + timedelta(minutes=config["QR_EXPIRY_MINUTES"])
            details["reference"] = external_id
        elif payment_method == PaymentMethod.CRYPTO_INVOICE.value:
            external_id = generate_merchant_reference(orders[0].id)
            details["merchant_order_id"] = external_id
        elif payment_method == PaymentMethod.PEER_TRANSFER.value:
            external_id = generate_merchant_reference(orders[0].id)
            details["merchant_trade_no"] = external_id
        elif payment_method == PaymentMethod.DIRECT_DEPOSIT.value:
            external_id = generate_memo_code()
            expires_at = now + timedelta(minutes=config["DEPOSIT_EXPIRY_MINUTES"])
            details.update(
                memo_code=external_id,
                expected_amount=str(total),
                coin=config["DEPOSIT_COIN"],
                network=config["DEPOSIT_NETWORK"],
                address=config["DEPOSIT_ADDRESS"],
            )

        if expires_at:
            details["expires_at"] = expires_at.isoformat()
        return {"external_payment_id": external_id, "expires_at": expires_at, "details": details}

    @staticmethod
    def create_orders(buyer_id: str, items_data: list, payment_method: str) -> dict:
        if not items_data:
            raise ValueError("Order must have at least one item")
        if payment_method not in {method.value for method in PaymentMethod}:
            raise ValueError(f"Unsupported payment method: {payment_method}")

        now = utcnow()
        settings = SettingsService.get()

        try:
            products_map = _load_products(items_data)
            orders = [
                CheckoutService._create_order(buyer_id, seller_id, lines, payment_method, settings, now)
                for seller_id, lines in _group_by_seller(items_data, products_map).items()
            ]
            total = to_money(sum(order.total_amount for order in orders))
            instructions = CheckoutService._payment_instructions(payment_method, orders, total, now)

            for order in orders:
                db.session.add(
                    Payment(
                        order_id=order.id,
                        provider=payment_method,
                        amount=order.total_amount,
                        external_payment_id=instructions["external_payment_id"],
                        payment_details=instructions["details"],
                        expires_at=instructions["expires_at"],
                    )
                )

            if payment_method == PaymentMethod.WALLET.value:
                for order in orders:
                    WalletService.debit_wallet(
                        buyer_id,
                        order.total_amount,
                        description=f"Payment for order {order.order_number}",
                        order_id=order.id,
                        commit=False,  # ensure only 1 commit
                    )

            db.session.commit()

        except Exception as e:
            db.session.rollback()
            logger.error(f"Failed to create orders for buyer {buyer_id}: {e}")
            raise

        order_ids = [order.id for order in orders]
        results = None
        if payment_method == PaymentMethod.WALLET.value:
            results = PaymentService.confirm_orders(orders, f"wallet_{order_ids[0]}")

        orders = Order.query.filter(Order.id.in_(order_ids)).all()
        return {
            "orders": orders,
            "total": total,
            "payment": {
                "provider": payment_method,
                "external_payment_id": instructions["external_payment_id"],
                "details": instructions["details"],
            },
            "results": results,
        }

from vendorvault.enums import UserRole
from vendorvault.exceptions import NotFoundError
from vendorvault.extensions import db
from vendorvault.models.order import Order


class OrderService:
    @staticmethod
    def get_order_by_id(order_id: str, user_id: str = None, role: UserRole = None) -> Order:
        order = db.session.get(Order, order_id)
        if not order:
            raise NotFoundError("Order not found")

        # Access control
        if role == UserRole.BUYER and order.buyer_id != user_id:
            raise NotFoundError("Order not found")
        elif role == UserRole.SELLER and order.seller_id != user_id:
            raise NotFoundError("Order not found")

        return order

    @staticmethod
    def get_orders(user_id: str = None, role: UserRole = None, status: str = None, page: int = 1, per_page: int = 20):
        query = Order.query

        if role == UserRole.BUYER:
            query = query.filter_by(buyer_id=user_id)
        elif role == UserRole.SELLER:
            query = query.filter_by(seller_id=user_id)

        if status:
            query = query.filter_by(status=status)

        return query.order_by(Order.created_at.desc()).paginate(
            page=page, per_page=per_page, error_out=False
        )

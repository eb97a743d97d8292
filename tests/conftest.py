import hashlib
import hmac
import time
import pytest
from decimal import Decimal
from vendorvault import create_app, db
from vendorvault.config import TestConfig
from vendorvault.enums import PaymentMethod, ProductType, UserRole
from vendorvault.models.product import Product
from vendorvault.models.user import SellerProfile, User
from vendorvault.models.wallet import Wallet
from vendorvault.services.checkout_service import CheckoutService
from vendorvault.services.inventory_service import InventoryService


@pytest.fixture(scope="function")
def app():
    """Create application for testing"""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Test client"""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Test CLI runner"""
    return app.test_cli_runner()


def _make_user(username, role, balance="0.00"):
    user = User(
        email=f"{username}@test.com",
        username=username,
        full_name=f"Test {username.title()}",
        role=role,
        is_active=True,
    )
    user.set_password("password123")
    db.session.add(user)
    db.session.flush()  # Flush to get user.id

    db.session.add(Wallet(user_id=user.id, balance=Decimal(balance)))
    return user


# User fixtures
@pytest.fixture
def buyer_user(app):
    """Create a buyer with $100 in the wallet"""
    user = _make_user("buyer", UserRole.BUYER, "100.00")
    db.session.commit()
    return user


@pytest.fixture
def seller_user(app):
    """Create a seller with a 10% commission profile"""
    user = _make_user("seller", UserRole.SELLER)
    db.session.add(
        SellerProfile(user_id=user.id, store_name="Code Shop", commission_rate=Decimal("10.00"))
    )
    db.session.commit()
    return user


@pytest.fixture
def admin_user(app):
    """Create an admin user"""
    user = _make_user("admin", UserRole.ADMIN)
    db.session.commit()
    return user


# Auth token fixtures
def _login(client, username):
    response = client.post(
        "/api/auth/login", json={"username": username, "password": "password123"}
    )
    assert response.status_code == 200, f"Login failed: {response.json}"
    return response.json["access_token"]


@pytest.fixture
def buyer_headers(client, buyer_user):
    """Buyer authentication headers"""
    return {"Authorization": f"Bearer {_login(client, 'buyer')}"}


@pytest.fixture
def seller_headers(client, seller_user):
    """Seller authentication headers"""
    return {"Authorization": f"Bearer {_login(client, 'seller')}"}


@pytest.fixture
def admin_headers(client, admin_user):
    """Admin authentication headers"""
    return {"Authorization": f"Bearer {_login(client, 'admin')}"}


# Data fixtures
@pytest.fixture
def gift_card_product(app, seller_user):
    """A $20 gift card with three codes in stock"""
    product = Product(
        seller_id=seller_user.id,
        name="Steam Wallet $20",
        product_type=ProductType.GIFT_CARD,
        price=Decimal("20.00"),
        is_active=True,
    )
    db.session.add(product)
    db.session.commit()

    InventoryService.add_gift_codes(product.id, ["STEAM-AAAA-1111", "STEAM-BBBB-2222", "STEAM-CCCC-3333"])
    return product


@pytest.fixture
def streaming_product(app, seller_user):
    """A $20 / 30 day streaming plan backed by one account with two profiles"""
    product = Product(
        seller_id=seller_user.id,
        name="Netflix Premium 1 Month",
        product_type=ProductType.STREAMING,
        price=Decimal("20.00"),
        duration_days=30,
        is_active=True,
    )
    db.session.add(product)
    db.session.commit()

    InventoryService.add_streaming_account(product.id, "shared@stream.test", "hunter2", max_profiles=2)
    return product


@pytest.fixture
def supplier_product(app, seller_user):
    """A top-up provisioned by the external supplier"""
    product = Product(
        seller_id=seller_user.id,
        name="Mobile Top-up $10",
        product_type=ProductType.TOP_UP,
        price=Decimal("10.00"),
        supplier_product_id="SUP-TOPUP-10",
        is_active=True,
    )
    db.session.add(product)
    db.session.commit()
    return product


@pytest.fixture
def place_order(app, buyer_user):
    """Factory: check out products for the buyer and return the first order"""

    def _place(product, quantity=1, method=PaymentMethod.QR_TRANSFER.value):
        result = CheckoutService.create_orders(
            buyer_user.id, [{"product_id": product.id, "quantity": quantity}], method
        )
        return result["orders"][0]

    return _place


@pytest.fixture
def stripe_signature():
    """Build a Stripe-Signature header for a payload, timestamped now"""

    def _sign(payload: bytes, secret: str) -> str:
        timestamp = int(time.time())
        signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
        digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
        return f"t={timestamp},v1={digest}"

    return _sign

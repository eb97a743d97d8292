import os
from decimal import Decimal
from urllib.parse import quote_plus

from cryptography.fernet import Fernet

BASEDIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


def _database_uri():
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    db_user = os.getenv("DB_USER")
    db_password = quote_plus(os.getenv("DB_PASSWORD", ""))
    db_host = os.getenv("DB_HOST")
    db_port = os.getenv("DB_PORT")
    db_name = os.getenv("DB_NAME")
    return f"postgresql+psycopg2://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "secret")

    SQLALCHEMY_DATABASE_URI = _database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    JWT_SECRET_KEY = os.getenv("JWT_SECRET", "jwt-secret")

    # Protects the cron sweep endpoint; localhost only when unset
    CRON_SECRET = os.getenv("CRON_SECRET")

    # Fernet key for code payloads and streaming credentials
    ENCRYPTION_KEY = os.getenv("ENCRYPTION_KEY")

    # Risk defaults, used until an admin saves the platform settings row
    HIGH_VALUE_THRESHOLD = Decimal(os.getenv("HIGH_VALUE_THRESHOLD", "100"))
    MANUAL_REVIEW_THRESHOLD = Decimal(os.getenv("MANUAL_REVIEW_THRESHOLD", "500"))
    DELIVERY_DELAY_MINUTES = int(os.getenv("DELIVERY_DELAY_MINUTES", "0"))

    # Payment providers
    STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")

    QR_API_URL = os.getenv("QR_API_URL")
    QR_API_KEY = os.getenv("QR_API_KEY")
    QR_WEBHOOK_SECRET = os.getenv("QR_WEBHOOK_SECRET")
    QR_EXPIRY_MINUTES = int(os.getenv("QR_EXPIRY_MINUTES", "15"))

    CRYPTO_INVOICE_API_KEY = os.getenv("CRYPTO_INVOICE_API_KEY")

    PEER_TRANSFER_SECRET = os.getenv("PEER_TRANSFER_SECRET")

    DEPOSIT_API_URL = os.getenv("DEPOSIT_API_URL", "https://api.binance.com")
    DEPOSIT_API_KEY = os.getenv("DEPOSIT_API_KEY")
    DEPOSIT_API_SECRET = os.getenv("DEPOSIT_API_SECRET")
    DEPOSIT_ADDRESS = os.getenv("DEPOSIT_ADDRESS", "")
    DEPOSIT_COIN = os.getenv("DEPOSIT_COIN", "USDT")
    DEPOSIT_NETWORK = os.getenv("DEPOSIT_NETWORK", "TRC20")
    DEPOSIT_EXPIRY_MINUTES = int(os.getenv("DEPOSIT_EXPIRY_MINUTES", "30"))

    PROVIDER_TIMEOUT_SECONDS = int(os.getenv("PROVIDER_TIMEOUT_SECONDS", "15"))

    # Third-party code supplier
    SUPPLIER_API_URL = os.getenv("SUPPLIER_API_URL")
    SUPPLIER_API_KEY = os.getenv("SUPPLIER_API_KEY")
    SUPPLIER_WEBHOOK_SECRET = os.getenv("SUPPLIER_WEBHOOK_SECRET")

    KAFKA_ENABLED = os.getenv("KAFKA_ENABLED", "False") == "True"
    KAFKA_BOOTSTRAP_SERVERS = os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SECRET_KEY = "test-secret-key"
    JWT_SECRET_KEY = "test-jwt-secret-with-enough-length-for-hs256"
    ENCRYPTION_KEY = Fernet.generate_key().decode()
    CRON_SECRET = "test-cron-secret"

    HIGH_VALUE_THRESHOLD = Decimal("100")
    MANUAL_REVIEW_THRESHOLD = Decimal("500")
    DELIVERY_DELAY_MINUTES = 0

    STRIPE_WEBHOOK_SECRET = "whsec_test"
    QR_API_URL = "https://qr.test"
    QR_API_KEY = "qr-key"
    QR_WEBHOOK_SECRET = "qr-secret"
    CRYPTO_INVOICE_API_KEY = "crypto-key"
    PEER_TRANSFER_SECRET = "peer-secret"
    DEPOSIT_API_URL = "https://deposit.test"
    DEPOSIT_API_KEY = "deposit-key"
    DEPOSIT_API_SECRET = "deposit-secret"
    DEPOSIT_ADDRESS = "TTestAddress"
    SUPPLIER_API_URL = "https://supplier.test"
    SUPPLIER_API_KEY = "supplier-key"
    SUPPLIER_WEBHOOK_SECRET = "supplier-secret"

    KAFKA_ENABLED = False

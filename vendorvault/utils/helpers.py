import random
import secrets
import string
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")

# No 0/O/1/I so buyers can type the memo without confusion
MEMO_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the DateTime columns store"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_money(value) -> Decimal:
    """Round to currency precision"""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def generate_order_number() -> str:
    """Generate unique order number"""
    timestamp = datetime.now().strftime('%Y%m%d%H%M%S')
    random_str = ''.join(random.choices(string.digits, k=4))
    return f'ORD{timestamp}{random_str}'


def generate_memo_code() -> str:
    """Memo a buyer attaches to a direct deposit, e.g. VM-7KQ2MZ4C"""
    return "VM-" + "".join(secrets.choice(MEMO_ALPHABET) for _ in range(8))


def generate_qr_reference() -> str:
    timestamp = int(datetime.now().timestamp() * 1000)
    suffix = ''.join(random.choices(string.ascii_uppercase + string.digits, k=6))
    return f"QR-{timestamp}-{suffix}"


def generate_merchant_reference(order_id: str) -> str:
    timestamp = int(datetime.now().timestamp() * 1000)
    return f"VM-{timestamp}-{order_id[:8]}"

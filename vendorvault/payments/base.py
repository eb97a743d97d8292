from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Mapping, Optional
import json


@dataclass(frozen=True)
class Confirmation:
    """Provider signal reduced to what fulfillment needs"""

    provider: str
    is_final_success: bool
    order_ids: List[str] = field(default_factory=list)
    external_order_id: Optional[str] = None
    external_reference: Optional[str] = None


@dataclass(frozen=True)
class PollResult:
    confirmed: bool
    reference: Optional[str] = None
    amount: Optional[Decimal] = None


class PaymentProvider(ABC):
    """
    One payment rail.

    verify_signature must fail closed: a missing secret, header or
    signature is a rejection. Replays are absorbed by fulfillment, not here.
    """

    name = ""
    supports_polling = False

    @abstractmethod
    def verify_signature(self, raw_body: bytes, headers: Mapping[str, str]) -> bool:
        ...

    @abstractmethod
    def extract_confirmation(self, payload: dict) -> Confirmation:
        ...

    def parse(self, raw_body: bytes) -> dict:
        return json.loads(raw_body)

    def check_status(self, payment) -> PollResult:
        raise NotImplementedError(f"{self.name} does not support polling")

    @staticmethod
    def header(headers: Mapping[str, str], name: str) -> Optional[str]:
        wanted = name.lower()
        for key, value in headers.items():
            if key.lower() == wanted:
                return value
        return None

    def not_final(self) -> Confirmation:
        return Confirmation(provider=self.name, is_final_success=False)

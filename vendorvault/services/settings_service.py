from dataclasses import dataclass
from decimal import Decimal
import logging

from flask import current_app

from vendorvault.extensions import db
from vendorvault.models.settings import PlatformSettings
from vendorvault.utils.helpers import to_money

logger = logging.getLogger(__name__)

_EXTENSION_KEY = "risk_settings"


@dataclass(frozen=True)
class RiskSettings:
    high_value_threshold: Decimal
    manual_review_threshold: Decimal
    delivery_delay_minutes: int

    def to_dict(self):
        return {
            "high_value_threshold": float(self.high_value_threshold),
            "require_manual_review_above": float(self.manual_review_threshold),
            "delivery_delay_minutes": self.delivery_delay_minutes,
        }


class SettingsService:
    """
    Risk settings snapshot, cached per process.

    Each get() reads only the row's version number and reloads the snapshot
    when it differs from the cached one, so a change saved by any process
    applies to the next assessment everywhere without a restart.
    """

    @staticmethod
    def _from_config() -> RiskSettings:
        config = current_app.config
        return RiskSettings(
            high_value_threshold=to_money(config["HIGH_VALUE_THRESHOLD"]),
            manual_review_threshold=to_money(config["MANUAL_REVIEW_THRESHOLD"]),
            delivery_delay_minutes=int(config["DELIVERY_DELAY_MINUTES"]),
        )

    @staticmethod
    def _current_version() -> int:
        version = (
            db.session.query(PlatformSettings.version)
            .filter(PlatformSettings.id == PlatformSettings.DEFAULT_ID)
            .scalar()
        )
        return version or 0

    @staticmethod
    def load() -> RiskSettings:
        row = db.session.get(PlatformSettings, PlatformSettings.DEFAULT_ID, populate_existing=True)
        if not row:
            return SettingsService._from_config()
        return RiskSettings(
            high_value_threshold=to_money(row.high_value_threshold),
            manual_review_threshold=to_money(row.require_manual_review_above),
            delivery_delay_minutes=row.delivery_delay_minutes,
        )

    @staticmethod
    def get() -> RiskSettings:
        cached = current_app.extensions.get(_EXTENSION_KEY)
        if cached is None or cached[0] != SettingsService._current_version():
            return SettingsService.reload()
        return cached[1]

    @staticmethod
    def reload() -> RiskSettings:
        version = SettingsService._current_version()
        snapshot = SettingsService.load()
        current_app.extensions[_EXTENSION_KEY] = (version, snapshot)
        return snapshot

    @staticmethod
    def update(**fields) -> RiskSettings:
        try:
            row = db.session.get(PlatformSettings, PlatformSettings.DEFAULT_ID)
            if not row:
                defaults = SettingsService._from_config()
                row = PlatformSettings(
                    id=PlatformSettings.DEFAULT_ID,
                    high_value_threshold=defaults.high_value_threshold,
                    require_manual_review_above=defaults.manual_review_threshold,
                    delivery_delay_minutes=defaults.delivery_delay_minutes,
                    version=1,
                )
                db.session.add(row)
            else:
                row.version = PlatformSettings.version + 1

            if fields.get("high_value_threshold") is not None:
                row.high_value_threshold = to_money(fields["high_value_threshold"])
            if fields.get("require_manual_review_above") is not None:
                row.require_manual_review_above = to_money(fields["require_manual_review_above"])
            if fields.get("delivery_delay_minutes") is not None:
                row.delivery_delay_minutes = int(fields["delivery_delay_minutes"])

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        snapshot = SettingsService.reload()
        logger.info(f"Risk settings updated: {snapshot}")
        return snapshot

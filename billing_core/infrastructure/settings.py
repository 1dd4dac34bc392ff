"""Settings helpers for infrastructure adapters."""

from dataclasses import dataclass
from decimal import Decimal
import os

import dotenv

from billing_core.domain.constants import (
    DEFAULT_LEDGER_MAX_RETRIES,
    DEFAULT_SELLER_STATE,
    DEFAULT_SEQUENCE_MAX_RETRIES,
    DEFAULT_SHIPPING_FLAT_FEE,
    DEFAULT_SHIPPING_FREE_THRESHOLD,
)
from billing_core.domain.errors import InvalidAmount
from billing_core.domain.models import Money, RoundingConvention, ShippingRule
from billing_core.infrastructure.logging.logger import get_app_logger

STORAGE_BACKENDS = ("sqlalchemy", "memory")


@dataclass(frozen=True)
class BillingSettings:
    """Settings for pricing and storage.

    Attributes:
        storage: Repository backend (sqlalchemy or memory).
        seller_state: State code the store ships from.
        shipping_free_threshold: Taxable amount at which shipping is free.
        shipping_flat_fee: Shipping charged below the threshold.
        rounding: Round-off convention for payable amounts.
        ledger_max_retries: Attempts for version-conflicted wallet writes.
        sequence_max_retries: Attempts for conflicted counter increments.
    """

    storage: str = "sqlalchemy"
    seller_state: str = DEFAULT_SELLER_STATE
    shipping_free_threshold: Money = Money.from_decimal(
        DEFAULT_SHIPPING_FREE_THRESHOLD
    )
    shipping_flat_fee: Money = Money.from_decimal(DEFAULT_SHIPPING_FLAT_FEE)
    rounding: RoundingConvention = RoundingConvention.NONE
    ledger_max_retries: int = DEFAULT_LEDGER_MAX_RETRIES
    sequence_max_retries: int = DEFAULT_SEQUENCE_MAX_RETRIES

    @property
    def shipping_rule(self) -> ShippingRule:
        return ShippingRule(
            flat_fee=self.shipping_flat_fee,
            free_above=self.shipping_free_threshold,
        )

    @classmethod
    def from_env(cls) -> "BillingSettings":
        """Build settings from environment variables.

        Invalid values are reported as warnings and replaced by defaults.

        Returns:
            BillingSettings: Settings sourced from environment variables.
        """
        dotenv.load_dotenv()
        logger = get_app_logger()
        defaults = cls()

        storage = os.getenv("BILLING_STORAGE", defaults.storage).strip().lower()
        if storage not in STORAGE_BACKENDS:
            logger.warning(
                f"Unknown BILLING_STORAGE {storage!r}; using {defaults.storage}"
            )
            storage = defaults.storage

        seller_state = (
            os.getenv("SELLER_STATE_CODE", "").strip().upper()
            or defaults.seller_state
        )

        raw_rounding = os.getenv("ROUNDING_CONVENTION", defaults.rounding.value)
        try:
            rounding = RoundingConvention(raw_rounding.strip().lower())
        except ValueError:
            logger.warning(
                f"Unknown ROUNDING_CONVENTION {raw_rounding!r}; "
                f"using {defaults.rounding.value}"
            )
            rounding = defaults.rounding

        return cls(
            storage=storage,
            seller_state=seller_state,
            shipping_free_threshold=cls._money_var(
                "SHIPPING_FREE_THRESHOLD",
                defaults.shipping_free_threshold,
                logger,
            ),
            shipping_flat_fee=cls._money_var(
                "SHIPPING_FLAT_FEE",
                defaults.shipping_flat_fee,
                logger,
            ),
            rounding=rounding,
            ledger_max_retries=cls._positive_int_var(
                "LEDGER_MAX_RETRIES",
                defaults.ledger_max_retries,
                logger,
            ),
            sequence_max_retries=cls._positive_int_var(
                "SEQUENCE_MAX_RETRIES",
                defaults.sequence_max_retries,
                logger,
            ),
        )

    @staticmethod
    def _money_var(name: str, default: Money, logger) -> Money:
        """Parse a rupee amount variable.

        Args:
            name: Environment variable name.
            default: Value used when unset or invalid.
            logger: Logger used for warnings.

        Returns:
            Money: Parsed non-negative amount.
        """
        raw = os.getenv(name)
        if raw is None or not raw.strip():
            return default
        try:
            value = Money.parse(raw)
        except InvalidAmount:
            value = None
        if value is None or value.is_negative():
            logger.warning(f"Invalid {name} {raw!r}; using {default}")
            return default
        return value

    @staticmethod
    def _positive_int_var(name: str, default: int, logger) -> int:
        raw = os.getenv(name)
        if raw is None or not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError:
            value = 0
        if value < 1:
            logger.warning(f"Invalid {name} {raw!r}; using {default}")
            return default
        return value


__all__ = ["STORAGE_BACKENDS", "BillingSettings"]

"""Port for coupon definitions and their global and per-user usage counters."""

from typing import Protocol

from billing_core.domain.models import Coupon


class CouponRepositoryPort(Protocol):
    """Port exposing coupons."""

    def get_by_code(self, code: str) -> Coupon | None:
        """Return the coupon with the normalized ``code``, if any."""

    def add(self, coupon: Coupon) -> None:
        """Insert or replace a coupon definition."""

    def record_usage(self, code: str) -> None:
        """Increment the usage counter while it is below the usage limit.

        Raises:
            CouponInapplicable: If the usage limit has been reached.
        """

    def record_user_usage(self, user_id: str, code: str, limit: int) -> None:
        """Count one use by ``user_id`` while it is below ``limit``.

        Raises:
            CouponInapplicable: If the user has reached the limit.
        """


__all__ = ["CouponRepositoryPort"]

"""SQLAlchemy-backed coupon repository."""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from billing_core.application.ports.coupon_repository import CouponRepositoryPort
from billing_core.domain.errors import ConcurrencyConflict, CouponInapplicable
from billing_core.domain.models import Coupon, DiscountType, Money
from billing_core.infrastructure.sql_codecs import (
    datetime_to_text,
    dump_json,
    load_json,
    text_to_datetime,
)

COUPON_COLUMNS = """
    code, discount_type, discount_value, valid_from, valid_until,
    minimum_order_amount, maximum_discount_amount, usage_limit, used_count,
    user_usage_limit, applicable_products, is_active
"""

SELECT_COUPON_SQL = text(f"SELECT {COUPON_COLUMNS} FROM coupons WHERE code = :code")

DELETE_COUPON_SQL = text("DELETE FROM coupons WHERE code = :code")

INSERT_COUPON_SQL = text(
    f"""
    INSERT INTO coupons ({COUPON_COLUMNS})
    VALUES (
        :code, :discount_type, :discount_value, :valid_from, :valid_until,
        :minimum_order_amount, :maximum_discount_amount, :usage_limit,
        :used_count, :user_usage_limit, :applicable_products, :is_active
    )
    """
)

RECORD_USAGE_SQL = text(
    """
    UPDATE coupons
    SET used_count = used_count + 1
    WHERE code = :code
      AND (usage_limit IS NULL OR used_count < usage_limit)
    """
)

RECORD_USER_USAGE_SQL = text(
    """
    UPDATE coupon_redemptions
    SET used_count = used_count + 1
    WHERE user_id = :user_id AND code = :code AND used_count < :limit
    """
)

SELECT_USER_USAGE_SQL = text(
    "SELECT used_count FROM coupon_redemptions "
    "WHERE user_id = :user_id AND code = :code"
)

INSERT_USER_USAGE_SQL = text(
    """
    INSERT INTO coupon_redemptions (user_id, code, used_count)
    VALUES (:user_id, :code, 1)
    """
)


class SqlAlchemyCouponRepository(CouponRepositoryPort):
    """Coupon repository bound to a unit-of-work connection."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def get_by_code(self, code: str) -> Coupon | None:
        row = self._conn.execute(SELECT_COUPON_SQL, {"code": code}).first()
        if row is None:
            return None
        maximum = row.maximum_discount_amount
        return Coupon(
            code=row.code,
            discount_type=DiscountType(row.discount_type),
            discount_value=Decimal(row.discount_value),
            valid_from=text_to_datetime(row.valid_from),
            valid_until=text_to_datetime(row.valid_until),
            minimum_order_amount=Money(int(row.minimum_order_amount)),
            maximum_discount_amount=(
                Money(int(maximum)) if maximum is not None else None
            ),
            usage_limit=int(row.usage_limit) if row.usage_limit is not None else None,
            used_count=int(row.used_count),
            user_usage_limit=int(row.user_usage_limit),
            applicable_products=frozenset(load_json(row.applicable_products, [])),
            is_active=bool(row.is_active),
        )

    def add(self, coupon: Coupon) -> None:
        maximum = coupon.maximum_discount_amount
        self._conn.execute(DELETE_COUPON_SQL, {"code": coupon.code})
        self._conn.execute(
            INSERT_COUPON_SQL,
            {
                "code": coupon.code,
                "discount_type": coupon.discount_type.value,
                "discount_value": str(coupon.discount_value),
                "valid_from": datetime_to_text(coupon.valid_from),
                "valid_until": datetime_to_text(coupon.valid_until),
                "minimum_order_amount": coupon.minimum_order_amount.minor,
                "maximum_discount_amount": (
                    maximum.minor if maximum is not None else None
                ),
                "usage_limit": coupon.usage_limit,
                "used_count": coupon.used_count,
                "user_usage_limit": coupon.user_usage_limit,
                "applicable_products": dump_json(sorted(coupon.applicable_products)),
                "is_active": coupon.is_active,
            },
        )

    def record_usage(self, code: str) -> None:
        """Count one use, guarded by the usage limit in the same statement."""
        if self._conn.execute(RECORD_USAGE_SQL, {"code": code}).rowcount == 0:
            raise CouponInapplicable(code, "usage_limit_reached")

    def record_user_usage(self, user_id: str, code: str, limit: int) -> None:
        """Count one use by a buyer; the first use inserts the counter row.

        Raises:
            CouponInapplicable: If the buyer has reached ``limit``.
            ConcurrencyConflict: If another transaction inserted the first
                use for the same buyer at the same time.
        """
        params = {"user_id": user_id, "code": code, "limit": limit}
        if self._conn.execute(RECORD_USER_USAGE_SQL, params).rowcount == 1:
            return
        existing = self._conn.execute(SELECT_USER_USAGE_SQL, params).first()
        if existing is not None or limit < 1:
            raise CouponInapplicable(code, "user_limit_reached")
        try:
            self._conn.execute(INSERT_USER_USAGE_SQL, params)
        except IntegrityError as exc:
            raise ConcurrencyConflict(
                f"Coupon {code} was redeemed concurrently by user {user_id}"
            ) from exc


__all__ = ["SqlAlchemyCouponRepository"]

"""Domain policies package."""

from .coupons import check_coupon, compute_coupon_discount, normalize_coupon_code

__all__ = ["check_coupon", "compute_coupon_discount", "normalize_coupon_code"]

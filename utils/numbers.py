from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, float, Decimal]


def to_decimal(value: Number) -> Decimal:
    # float는 repr 문자열을 거쳐야 0.1 같은 값이 이진 오차 없이 변환됨
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def round_half_up(value: Number) -> int:
    """사사오입(half-up) 정수 반올림. 파이썬 round()는 은행가 반올림이라 사용하지 않음"""
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def clamp(value: int, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, value))


def percentage(part: Number, whole: Number) -> int:
    """part / whole * 100 을 반올림 후 0~100으로 제한. whole이 0 이하이면 0"""
    if not whole or whole <= 0:
        return 0
    return clamp(round_half_up(to_decimal(part) * 100 / to_decimal(whole)))

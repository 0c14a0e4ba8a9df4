"""Indonesian number-to-words ("terbilang")

Printed invoices carry the total spelled out in Indonesian, e.g.
1.500.000 -> "Satu juta lima ratus ribu Rupiah". The phrasing follows the
conventions of Indonesian legal documents: "seratus" and "seribu" instead of
"satu ratus"/"satu ribu", and a teens table for 10-19.
"""

from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import Any
import logging

from tka_invoice.calculations.currency import format_idr
from tka_invoice.models.decimal_wire import wire_to_decimal
from tka_invoice.models.invoice import ValidationResult

logger = logging.getLogger(__name__)

MAX_CONVERTIBLE = Decimal("999999999999999")

ONES = [
    "", "satu", "dua", "tiga", "empat", "lima", "enam", "tujuh", "delapan", "sembilan",
]

TEENS = [
    "sepuluh", "sebelas", "dua belas", "tiga belas", "empat belas",
    "lima belas", "enam belas", "tujuh belas", "delapan belas", "sembilan belas",
]

TENS = [
    "", "", "dua puluh", "tiga puluh", "empat puluh", "lima puluh",
    "enam puluh", "tujuh puluh", "delapan puluh", "sembilan puluh",
]

SCALE = ["", "ribu", "juta", "miliar", "triliun", "kuadriliun"]

ROMAN_NUMERALS = [
    (1000, "M"), (900, "CM"), (500, "D"), (400, "CD"),
    (100, "C"), (90, "XC"), (50, "L"), (40, "XL"),
    (10, "X"), (9, "IX"), (5, "V"), (4, "IV"), (1, "I"),
]


def validate_number(num: Any) -> ValidationResult:
    """Check that a value can be spelled out"""
    value = wire_to_decimal(num)
    if value is None or value.is_nan():
        return ValidationResult.from_errors(["Not a valid number"])
    if not value.is_finite():
        return ValidationResult.from_errors(["Number must be finite"])
    if abs(value) > MAX_CONVERTIBLE:
        return ValidationResult.from_errors(["Number too large (max: 999 trillion)"])
    return ValidationResult(is_valid=True)


def _convert_hundreds(num: int) -> str:
    """Spell out 0-999"""
    words = []

    if num >= 100:
        hundreds = num // 100
        words.append("seratus" if hundreds == 1 else f"{ONES[hundreds]} ratus")
        num %= 100

    if num >= 20:
        words.append(TENS[num // 10])
        if num % 10:
            words.append(ONES[num % 10])
    elif num >= 10:
        words.append(TEENS[num - 10])
    elif num > 0:
        words.append(ONES[num])

    return " ".join(words)


def _convert_group(num: int, scale_index: int) -> str:
    if scale_index == 1 and num == 1:
        return "seribu"
    words = _convert_hundreds(num)
    if scale_index > 0:
        words += " " + SCALE[scale_index]
    return words


def _integer_to_words(num: int) -> str:
    groups = []
    while num > 0:
        groups.append(num % 1000)
        num //= 1000

    parts = [
        _convert_group(value, index)
        for index, value in reversed(list(enumerate(groups)))
        if value > 0
    ]
    return " ".join(parts)


def _split(value: Decimal) -> tuple:
    """Split a non-negative value into (integer part, 2-digit fraction)"""
    integer_part = value.to_integral_value(rounding=ROUND_FLOOR)
    fraction = ((value - integer_part) * 100).to_integral_value(rounding=ROUND_HALF_UP)
    return int(integer_part), int(fraction)


def _to_words(value: Decimal) -> str:
    if value == 0:
        return "nol"
    if value < 0:
        return "minus " + _to_words(-value)

    if value != value.to_integral_value():
        integer_part, fraction = _split(value)
        words = _to_words(Decimal(integer_part))
        if fraction > 0:
            words += " koma " + _to_words(Decimal(fraction))
        return words

    return _integer_to_words(int(value))


def number_to_words(num: Any) -> str:
    """
    Spell out a number in Indonesian.

    Returns an empty string when the value fails validate_number.

    Examples:
        >>> number_to_words(1000)
        'seribu'
        >>> number_to_words(2.5)
        'dua koma lima puluh'
    """
    check = validate_number(num)
    if not check.is_valid:
        logger.warning(f"Cannot convert {num!r} to words: {check.errors}")
        return ""
    return _to_words(wire_to_decimal(num))


def _capitalize(words: str) -> str:
    return words[:1].upper() + words[1:]


def amount_to_words(amount: Any) -> str:
    """Terbilang line for a Rupiah amount; the fraction is dropped"""
    check = validate_number(amount)
    if not check.is_valid:
        logger.warning(f"Cannot convert amount {amount!r} to words: {check.errors}")
        return ""
    integer_part = wire_to_decimal(amount).to_integral_value(rounding=ROUND_FLOOR)
    return _capitalize(_to_words(integer_part)) + " Rupiah"


def amount_to_words_with_sen(amount: Any) -> str:
    """Like amount_to_words, followed by the cents as '<words> sen'"""
    words = amount_to_words(amount)
    if not words:
        return ""
    value = wire_to_decimal(amount)
    integer_part = value.to_integral_value(rounding=ROUND_FLOOR)
    sen = int(((value - integer_part) * 100).to_integral_value(rounding=ROUND_HALF_UP))
    if sen > 0:
        words += " " + _to_words(Decimal(sen)) + " sen"
    return words


def number_to_ordinal(num: int) -> str:
    """3 -> 'ketiga'"""
    if num <= 0:
        return ""
    return "ke" + number_to_words(num)


def number_to_roman(num: int) -> str:
    """Roman numerals for 1-3999, empty otherwise"""
    if num <= 0 or num > 3999:
        return ""

    result = []
    for value, symbol in ROMAN_NUMERALS:
        count, num = divmod(num, value)
        result.append(symbol * count)
    return "".join(result)


def format_number_for_document(
    num: Any,
    include_words: bool = False,
    include_currency: bool = True,
) -> str:
    """'Rp 1.500.000 (Satu juta lima ratus ribu Rupiah)' style rendering"""
    if include_currency:
        formatted = format_idr(num)
    else:
        formatted = format_idr(num).replace("Rp ", "")

    if include_words:
        words = amount_to_words(num) if include_currency else number_to_words(num)
        formatted += f" ({words})"

    return formatted

"""Line item totaling and validation"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Mapping, Optional, Union
import logging

from tka_invoice.models.decimal_wire import wire_to_decimal
from tka_invoice.models.invoice import LineItem, ValidationResult

logger = logging.getLogger(__name__)

MAX_QUANTITY = 9999
MAX_PRICE = Decimal("999999999.99")
CENT = Decimal("0.01")

LineLike = Union[LineItem, Mapping[str, Any]]


def line_field(line: LineLike, name: str) -> Any:
    """Read a pricing field from a LineItem model or a plain mapping"""
    if isinstance(line, Mapping):
        return line.get(name)
    return getattr(line, name, None)


def calculate_line_total(
    quantity: Any,
    unit_price: Any,
    custom_price: Optional[Any] = None,
) -> Decimal:
    """
    Calculate the total of a single line.

    The custom price overrides the unit price whenever it is given, even when
    it is zero. The product is rounded half-up to whole cents.

    Args:
        quantity: Number of units
        unit_price: Catalogue price per unit
        custom_price: Negotiated price per unit, if any

    Returns:
        Line total as Decimal with two decimal places
    """
    price = wire_to_decimal(custom_price) if custom_price is not None else wire_to_decimal(unit_price)
    qty = wire_to_decimal(quantity)
    if price is None or qty is None:
        raise ValueError(f"Cannot total line with quantity={quantity!r}, price={unit_price!r}/{custom_price!r}")

    return (price * qty).quantize(CENT, rounding=ROUND_HALF_UP)


def _check_price(value: Any, label: str, errors: list) -> None:
    price = wire_to_decimal(value)
    if price is None or not price.is_finite():
        errors.append(f"{label} must be a number")
        return
    if price < 0:
        errors.append(f"{label} cannot be negative")
    if price > MAX_PRICE:
        errors.append(f"{label} is too large")


def validate_line_item(item: LineLike) -> ValidationResult:
    """
    Validate quantity and price bounds of a line.

    Every violated rule is reported; nothing is raised.
    """
    errors = []

    quantity = wire_to_decimal(line_field(item, "quantity"))
    if quantity is None or not quantity.is_finite():
        errors.append("Quantity must be a number")
    else:
        if quantity <= 0:
            errors.append("Quantity must be greater than 0")
        if quantity > MAX_QUANTITY:
            errors.append(f"Quantity cannot exceed {MAX_QUANTITY}")
        if quantity != quantity.to_integral_value():
            errors.append("Quantity must be a whole number")

    _check_price(line_field(item, "unit_price"), "Unit price", errors)

    custom_price = line_field(item, "custom_price")
    if custom_price is not None:
        _check_price(custom_price, "Custom price", errors)

    if errors:
        logger.debug(f"Line item rejected: {errors}")

    return ValidationResult.from_errors(errors)

"""Line and invoice money arithmetic.

Every path that needs a line total or invoice totals (create, replace,
display) goes through `calculate_line` and `aggregate_totals`, so the numbers
never drift between them. All arithmetic is Decimal; values are quantized to
2 places only when they are persisted.
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, List, Mapping, Optional

from shopbill.core.exceptions import ValidationError
from shopbill.models.invoice import TaxType

CENT = Decimal("0.01")
QUANTITY_STEP = Decimal("0.001")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Largest values the storage columns hold: Numeric(12,2), Numeric(12,3), Numeric(5,2)
MAX_MONEY = Decimal("9999999999.99")
MAX_QUANTITY = Decimal("999999999.999")
MAX_RATE = Decimal("999.99")


@dataclass(frozen=True)
class LineInput:
    """Validated snapshot of one requested invoice item."""
    description: str
    quantity: Decimal
    unit_price: Decimal
    discount: Decimal = ZERO
    tax_rate: Decimal = ZERO
    tax_type: TaxType = TaxType.GST
    product_id: Optional[int] = None


@dataclass(frozen=True)
class LineResult:
    line_base: Decimal
    discount: Decimal
    taxable_amount: Decimal
    line_tax: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class InvoiceTotals:
    sub_total: Decimal
    discount_total: Decimal
    tax_total: Decimal
    grand_total: Decimal


def round_money(value: Decimal) -> Decimal:
    """Quantize to 2 decimal places, half up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value: Any, field: str) -> Decimal:
    """Convert an int, str, float or Decimal to a finite Decimal.

    Floats go through str() so 0.1 stays 0.1 rather than its binary expansion.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return result


def check_limit(value: Decimal, field: str, limit: Decimal = MAX_MONEY) -> Decimal:
    if abs(value) > limit:
        raise ValidationError(f"{field} cannot exceed {limit}")
    return value


def _tax_type(value: Any) -> TaxType:
    if isinstance(value, TaxType):
        return value
    try:
        return TaxType(str(value).upper())
    except ValueError:
        raise ValidationError(f"tax_type must be one of GST, VAT, NONE (got {value!r})")


def calculate_line(
    description: Any,
    quantity: Any,
    unit_price: Any,
    discount: Any = ZERO,
    tax_rate: Any = ZERO,
    tax_type: Any = TaxType.GST,
) -> LineResult:
    """
    Compute one line.

    line_base = quantity * unit_price
    taxable   = max(line_base - discount, 0)
    line_tax  = 0 for NONE, else taxable * tax_rate / 100
    total     = taxable + line_tax

    Raises:
        ValidationError: blank description, quantity <= 0, negative or
            non-finite price/discount/rate, unknown tax type.
    """
    if description is None or not str(description).strip():
        raise ValidationError("Each item requires a description")
    qty = to_decimal(quantity, "quantity")
    if qty <= ZERO:
        raise ValidationError("quantity must be greater than 0")
    price = to_decimal(unit_price, "unit_price")
    if price < ZERO:
        raise ValidationError("unit_price cannot be negative")
    disc = to_decimal(discount if discount is not None else ZERO, "discount")
    if disc < ZERO:
        raise ValidationError("discount cannot be negative")
    rate = to_decimal(tax_rate if tax_rate is not None else ZERO, "tax_rate")
    if rate < ZERO:
        raise ValidationError("tax_rate cannot be negative")
    kind = _tax_type(tax_type if tax_type is not None else TaxType.GST)

    line_base = qty * price
    taxable = max(line_base - disc, ZERO)
    line_tax = ZERO if kind is TaxType.NONE else taxable * rate / HUNDRED
    return LineResult(
        line_base=line_base,
        discount=disc,
        taxable_amount=taxable,
        line_tax=line_tax,
        line_total=taxable + line_tax,
    )


def calculate_input(line: LineInput) -> LineResult:
    return calculate_line(
        line.description, line.quantity, line.unit_price,
        line.discount, line.tax_rate, line.tax_type,
    )


def aggregate_totals(lines: Iterable[LineResult]) -> InvoiceTotals:
    """
    Sum line results into invoice totals.

    The three sums are quantized first and grand_total is derived from the
    quantized values, so grand_total == sub_total - discount_total + tax_total
    holds exactly on the stored row.

    Raises:
        ValidationError: if `lines` is empty.
    """
    lines = list(lines)
    if not lines:
        raise ValidationError("items must be a non-empty array")

    sub_total = round_money(sum((l.line_base for l in lines), ZERO))
    discount_total = round_money(sum((l.discount for l in lines), ZERO))
    tax_total = round_money(sum((l.line_tax for l in lines), ZERO))
    return InvoiceTotals(
        sub_total=sub_total,
        discount_total=discount_total,
        tax_total=tax_total,
        grand_total=sub_total - discount_total + tax_total,
    )


def _field(item: Any, name: str, default: Any = None) -> Any:
    if isinstance(item, Mapping):
        return item.get(name, default)
    return getattr(item, name, default)


def normalize_item(item: Any) -> LineInput:
    """
    Turn a request item (pydantic model or dict) into a validated LineInput.

    Missing quantity defaults to 1, missing price/discount/rate to 0 and
    missing tax type to GST. Quantity is rounded to 3 places and the other
    numbers to 2, the precision they are stored with, so the totals are
    computed from exactly the values on the saved item. The rounded values
    are then checked by calculate_line.
    """
    quantity = _field(item, "quantity")
    unit_price = _field(item, "unit_price")
    discount = _field(item, "discount")
    tax_rate = _field(item, "tax_rate")
    tax_type = _field(item, "tax_type")
    description = _field(item, "description")

    line = LineInput(
        description=str(description or "").strip(),
        quantity=_stored(quantity, 1, "quantity", QUANTITY_STEP, MAX_QUANTITY),
        unit_price=_stored(unit_price, 0, "unit_price", CENT, MAX_MONEY),
        discount=_stored(discount, 0, "discount", CENT, MAX_MONEY),
        tax_rate=_stored(tax_rate, 0, "tax_rate", CENT, MAX_RATE),
        tax_type=_tax_type(TaxType.GST if tax_type is None else tax_type),
        product_id=_field(item, "product_id"),
    )
    calculate_input(line)
    return line


def _stored(value: Any, default: Any, field: str, step: Decimal, limit: Decimal) -> Decimal:
    amount = to_decimal(default if value is None else value, field)
    check_limit(amount, field, limit)
    # rounding up can still cross the limit (999.995 -> 1000.00)
    return check_limit(amount.quantize(step, rounding=ROUND_HALF_UP), field, limit)


def price_items(items: Optional[Iterable[Any]]) -> tuple:
    """Validate request items and compute their totals.

    Returns:
        (lines, results, totals) with lines and results in request order.
    """
    if items is None:
        raise ValidationError("items must be a non-empty array")
    lines: List[LineInput] = [normalize_item(item) for item in items]
    if not lines:
        raise ValidationError("items must be a non-empty array")
    results = [calculate_input(line) for line in lines]
    for result in results:
        check_limit(result.line_total, "line_total")
    totals = aggregate_totals(results)
    for field in ("sub_total", "discount_total", "tax_total", "grand_total"):
        check_limit(getattr(totals, field), field)
    return lines, results, totals

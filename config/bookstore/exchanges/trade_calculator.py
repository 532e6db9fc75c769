"""
Calculadora de valor de troca (politica Luar Sebo e Livraria)

- Base: 20% del valor estimado de venta
- +10% por cada R$ 10 completos por encima de R$ 30
- +10% si el libro es de 2024 en adelante, +5% si es de 2022 o 2023
- Serie completa: 50% directo
- Tope de 50%; el valor final se redondea hacia arriba al multiplo de R$ 5
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal

from ..core.exceptions import ValidationError

BASE_PERCENTAGE = 20
MAX_PERCENTAGE = 50
VALUE_BONUS_THRESHOLD = Decimal("30")
VALUE_BONUS_STEP = Decimal("10")
VALUE_BONUS_PER_STEP = 10
ROUNDING_MULTIPLE = Decimal("5")


@dataclass(frozen=True)
class TradeCalculation:
    base_percentage: int
    value_bonus: int
    year_bonus: int
    final_percentage: int
    calculated_trade_value: Decimal
    final_trade_value: Decimal

    def as_dict(self) -> dict:
        return asdict(self)


def _year_bonus(publish_year: int | None) -> int:
    if not publish_year:
        return 0
    if publish_year >= 2024:
        return 10
    if publish_year >= 2022:
        return 5
    return 0


def calculate_trade_value(
    estimated_sale_value,
    publish_year: int | None = None,
    is_complete_series: bool = False,
) -> TradeCalculation:
    try:
        value = Decimal(str(estimated_sale_value))
    except ArithmeticError:
        raise ValidationError("Valor estimado de venta invalido")
    if not value.is_finite() or value < 0:
        raise ValidationError("El valor estimado de venta no puede ser negativo")

    value_bonus = 0
    if value > VALUE_BONUS_THRESHOLD:
        steps = ((value - VALUE_BONUS_THRESHOLD) / VALUE_BONUS_STEP).to_integral_value(rounding=ROUND_FLOOR)
        value_bonus = int(steps) * VALUE_BONUS_PER_STEP

    year_bonus = _year_bonus(publish_year)

    total_percentage = BASE_PERCENTAGE + value_bonus + year_bonus
    if is_complete_series:
        total_percentage = MAX_PERCENTAGE
    final_percentage = min(total_percentage, MAX_PERCENTAGE)

    # El redondeo a R$ 5 se aplica sobre el valor sin truncar a centavos
    raw_value = value * final_percentage / 100
    final = (raw_value / ROUNDING_MULTIPLE).to_integral_value(rounding=ROUND_CEILING) * ROUNDING_MULTIPLE

    return TradeCalculation(
        base_percentage=BASE_PERCENTAGE,
        value_bonus=value_bonus,
        year_bonus=year_bonus,
        final_percentage=final_percentage,
        calculated_trade_value=raw_value.quantize(Decimal("0.01")),
        final_trade_value=final.quantize(Decimal("0.01")),
    )

from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal
from typing import NewType

# Montos en la moneda base (MXN): lo único que se persiste y con lo que se opera
BaseMoney = NewType("BaseMoney", Decimal)
# Montos en la moneda del país: sólo para comparar contra umbrales y para mostrar
LocalMoney = NewType("LocalMoney", Decimal)

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


def D(x) -> Decimal:
    return x if isinstance(x, Decimal) else Decimal(str(x or "0"))


def money(v) -> Decimal:
    return D(v).quantize(CENT, rounding=ROUND_HALF_UP)


def money_up(v) -> Decimal:
    return D(v).quantize(CENT, rounding=ROUND_CEILING)

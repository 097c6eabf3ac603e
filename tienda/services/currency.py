from decimal import Decimal
from typing import Dict, Optional

from ..core.config import settings
from ..utils.money import BaseMoney, LocalMoney, money, money_up
from .countries import COUNTRIES, get_country_config

# Unidades de cada moneda por 1 MXN (precio base en la BD)
EXCHANGE_RATES: Dict[str, Decimal] = {
    "MXN": Decimal("1"),
    "USD": Decimal("0.058"),
    "EUR": Decimal("0.053"),
    "COP": Decimal("230"),
    "ARS": Decimal("52"),
    "CLP": Decimal("52"),
    "CAD": Decimal("0.079"),
    "BRL": Decimal("0.28"),
    "PEN": Decimal("0.22"),
    "GTQ": Decimal("0.45"),
}

CURRENCY_SYMBOLS: Dict[str, str] = {
    "MXN": "$",
    "USD": "$",
    "EUR": "€",
    "COP": "$",
    "ARS": "$",
    "CLP": "$",
    "CAD": "$",
    "BRL": "R$",
    "PEN": "S/",
    "GTQ": "Q",
}


def _check_tables():
    if EXCHANGE_RATES.get(settings.base_currency) != Decimal("1"):
        raise RuntimeError(f"La moneda base {settings.base_currency} debe tener tasa 1")
    for c in COUNTRIES.values():
        if c.currency_code not in EXCHANGE_RATES or c.currency_code not in CURRENCY_SYMBOLS:
            raise RuntimeError(f"Moneda {c.currency_code} de {c.code} sin tasa o símbolo")


_check_tables()


def normalize_currency_code(code: Optional[str]) -> str:
    c = (code or "").strip().upper()
    if c in EXCHANGE_RATES:
        return c
    if c in COUNTRIES:
        return COUNTRIES[c].currency_code
    return settings.base_currency


def _rate(currency: str) -> Decimal:
    rate = EXCHANGE_RATES[normalize_currency_code(currency)]
    if rate <= 0:
        raise ValueError(f"Tasa inválida para {currency}: {rate}")
    return rate


def convert(amount_in_base: BaseMoney, target_currency: str) -> LocalMoney:
    """MXN -> moneda local."""
    return LocalMoney(money(Decimal(amount_in_base) * _rate(target_currency)))


def convert_to_base(amount_in_local: LocalMoney, source_currency: str, round_up: bool = False) -> BaseMoney:
    """Moneda local -> MXN. Con ``round_up`` el centavo se redondea hacia arriba."""
    amount = Decimal(amount_in_local) / _rate(source_currency)
    return BaseMoney(money_up(amount) if round_up else money(amount))


def currency_symbol(code: Optional[str]) -> str:
    return CURRENCY_SYMBOLS.get(normalize_currency_code(code), "$")


def format_amount(amount: Decimal, symbol: str, currency: str) -> str:
    return f"{symbol}{money(amount):,.2f} {currency}"


def format_price(amount_in_base: BaseMoney, country_code: str) -> dict:
    config = get_country_config(country_code)
    currency = config.currency_code
    symbol = currency_symbol(currency)
    converted = convert(amount_in_base, currency)
    return {
        "original": float(amount_in_base),
        "converted": float(converted),
        "symbol": symbol,
        "currency": currency,
        "formatted": format_amount(converted, symbol, currency),
    }


def get_currency_info(country_code: str) -> dict:
    config = get_country_config(country_code)
    currency = config.currency_code
    return {
        "currency": currency,
        "symbol": currency_symbol(currency),
        "exchange_rate": float(EXCHANGE_RATES[currency]),
        "all_rates": {k: float(v) for k, v in EXCHANGE_RATES.items()},
        "all_symbols": dict(CURRENCY_SYMBOLS),
    }

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Dict, List, Optional

from ..core.config import settings


@dataclass(frozen=True)
class CountryConfig:
    code: str
    name: str
    currency_code: str
    tax_rate: Decimal
    tax_name: str
    # Envíos y umbral en moneda LOCAL
    shipping_standard: Decimal
    shipping_express: Decimal
    free_shipping_threshold: Decimal

    def as_api(self) -> dict:
        data = asdict(self)
        for k in ("tax_rate", "shipping_standard", "shipping_express", "free_shipping_threshold"):
            data[k] = float(data[k])
        return data


def _country(code, name, currency, tax_rate, tax_name, standard, express, free_threshold):
    return CountryConfig(
        code=code,
        name=name,
        currency_code=currency,
        tax_rate=Decimal(tax_rate),
        tax_name=tax_name,
        shipping_standard=Decimal(standard),
        shipping_express=Decimal(express),
        free_shipping_threshold=Decimal(free_threshold),
    )


COUNTRIES: Dict[str, CountryConfig] = {
    c.code: c
    for c in (
        _country("MX", "México", "MXN", "0.16", "IVA", "99", "199", "1500"),
        _country("US", "Estados Unidos", "USD", "0.0825", "Sales Tax", "15", "35", "100"),
        _country("ES", "España", "EUR", "0.21", "IVA", "12", "25", "80"),
        _country("CO", "Colombia", "COP", "0.19", "IVA", "25000", "45000", "300000"),
        _country("AR", "Argentina", "ARS", "0.21", "IVA", "2500", "5000", "50000"),
        _country("CL", "Chile", "CLP", "0.19", "IVA", "5000", "10000", "80000"),
        _country("CA", "Canadá", "CAD", "0.13", "HST", "18", "40", "120"),
        _country("BR", "Brasil", "BRL", "0.17", "ICMS", "35", "70", "400"),
        _country("PE", "Perú", "PEN", "0.18", "IGV", "25", "50", "350"),
        _country("GT", "Guatemala", "GTQ", "0.12", "IVA", "50", "100", "800"),
    )
}

# Compatibilidad: clientes viejos mandan la moneda en lugar del país
CURRENCY_TO_COUNTRY: Dict[str, str] = {c.currency_code: c.code for c in COUNTRIES.values()}


def _norm(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def find_country(code: Optional[str]) -> Optional[CountryConfig]:
    """Búsqueda estricta por país o moneda; ``None`` si no existe."""
    c = _norm(code)
    return COUNTRIES.get(CURRENCY_TO_COUNTRY.get(c, c))


def get_country_config(code: Optional[str]) -> CountryConfig:
    """
    Configuración del país (acepta código de país o de moneda).

    Un código desconocido cae al país por defecto en lugar de fallar: la
    tienda debe poder cotizar aunque el cliente mande basura.
    """
    return find_country(code) or COUNTRIES[settings.default_country]


def get_countries() -> List[dict]:
    return [{"code": c.code, "name": c.name, "currency": c.currency_code} for c in COUNTRIES.values()]

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.coupon import FREE_SHIPPING
from ..utils.money import ZERO, BaseMoney, LocalMoney, money
from .countries import get_country_config
from .coupons import CouponValidation, validate_coupon
from .currency import convert, convert_to_base

STANDARD = "standard"
EXPRESS = "express"


@dataclass(frozen=True)
class TaxInfo:
    rate: Decimal
    name: str
    amount: BaseMoney

    def as_api(self):
        return {"rate": float(self.rate), "name": self.name, "amount": float(self.amount)}


@dataclass(frozen=True)
class ShippingInfo:
    cost: BaseMoney
    tier: str
    is_free: bool
    free_threshold: LocalMoney
    currency: str
    amount_needed_for_free: Optional[BaseMoney] = None

    def as_api(self):
        return {
            "cost": float(self.cost),
            "tier": self.tier,
            "is_free": self.is_free,
            "free_threshold": float(self.free_threshold),
            "amount_needed_for_free": (
                float(self.amount_needed_for_free) if self.amount_needed_for_free is not None else None
            ),
            "currency": self.currency,
        }


@dataclass(frozen=True)
class TotalsResult:
    subtotal: BaseMoney
    tax: TaxInfo
    shipping: ShippingInfo
    gift_wrap: BaseMoney
    discount: BaseMoney
    total: BaseMoney
    currency: str

    def as_api(self):
        return {
            "subtotal": float(self.subtotal),
            "tax": self.tax.as_api(),
            "shipping": self.shipping.as_api(),
            "gift_wrap": float(self.gift_wrap),
            "discount": float(self.discount),
            "total": float(self.total),
            "currency": self.currency,
        }


def calculate_tax(subtotal: BaseMoney, country_code: str) -> TaxInfo:
    config = get_country_config(country_code)
    return TaxInfo(
        rate=config.tax_rate,
        name=config.tax_name,
        amount=BaseMoney(money(Decimal(subtotal) * config.tax_rate)),
    )


def calculate_shipping(subtotal: BaseMoney, country_code: str, tier: str = STANDARD) -> ShippingInfo:
    """
    Costo de envío en MXN.

    Los umbrales y tarifas están en moneda local: el subtotal se convierte
    MXN -> local para comparar contra el umbral, y la tarifa local se
    convierte de vuelta local -> MXN para sumarla al total.
    """
    config = get_country_config(country_code)
    tier = EXPRESS if tier == EXPRESS else STANDARD
    currency = config.currency_code
    threshold = LocalMoney(config.free_shipping_threshold)

    local_subtotal = convert(subtotal, currency)
    if local_subtotal >= threshold:
        return ShippingInfo(
            cost=BaseMoney(ZERO), tier=tier, is_free=True, free_threshold=threshold, currency=currency
        )

    local_cost = config.shipping_express if tier == EXPRESS else config.shipping_standard
    # Hacia arriba: sumar lo que falta debe alcanzar el umbral
    needed = convert_to_base(LocalMoney(threshold - local_subtotal), currency, round_up=True)
    return ShippingInfo(
        cost=convert_to_base(LocalMoney(local_cost), currency),
        tier=tier,
        is_free=False,
        free_threshold=threshold,
        currency=currency,
        amount_needed_for_free=BaseMoney(max(ZERO, needed)),
    )


def apply_free_shipping(shipping: ShippingInfo) -> ShippingInfo:
    """Cupón de envío gratis: anula el costo aunque no se haya llegado al umbral."""
    return replace(shipping, cost=BaseMoney(ZERO), is_free=True, amount_needed_for_free=None)


def calculate_totals(
    subtotal,
    country_code: str,
    tier: str = STANDARD,
    discount=ZERO,
    gift_wrap: bool = False,
    discount_type: Optional[str] = None,
) -> TotalsResult:
    subtotal = BaseMoney(money(subtotal))
    tax = calculate_tax(subtotal, country_code)
    shipping = calculate_shipping(subtotal, country_code, tier)
    if discount_type == FREE_SHIPPING:
        shipping = apply_free_shipping(shipping)

    gift_wrap_fee = money(settings.gift_wrap_fee) if gift_wrap else ZERO
    # Un descuento fijo nunca deja la mercancía en negativo
    discount = BaseMoney(min(max(money(discount), ZERO), subtotal))

    total = money(subtotal + tax.amount + shipping.cost + gift_wrap_fee - discount)
    return TotalsResult(
        subtotal=subtotal,
        tax=tax,
        shipping=shipping,
        gift_wrap=BaseMoney(gift_wrap_fee),
        discount=discount,
        total=BaseMoney(total),
        currency=get_country_config(country_code).currency_code,
    )


def quote_totals(
    db: Session,
    subtotal,
    country_code: str,
    tier: str = STANDARD,
    coupon_code: Optional[str] = None,
    gift_wrap: bool = False,
    user_id: Optional[int] = None,
    user_email: Optional[str] = None,
) -> Tuple[TotalsResult, Optional[CouponValidation]]:
    """Cotización completa; un cupón inválido no bloquea, sólo no descuenta."""
    validation = None
    discount = ZERO
    discount_type = None
    if coupon_code:
        validation = validate_coupon(db, coupon_code, subtotal, user_id=user_id, user_email=user_email)
        if validation.valid:
            discount = validation.discount
            discount_type = validation.coupon.discount_type

    totals = calculate_totals(subtotal, country_code, tier, discount, gift_wrap, discount_type)
    return totals, validation

from collections import OrderedDict
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import ConflictError, ValidationError
from ..core.logger import get_logger
from ..models.order import Order, OrderLine
from ..utils.money import CENT, ZERO, BaseMoney, D, money
from .cart import clear_cart, get_cart
from .catalog import decrement_stock, get_product, register_sale
from .countries import find_country
from .coupon_usage import register_coupon_usage
from .coupons import validate_coupon
from .currency import currency_symbol
from .notifications import Notifier, build_invoice, get_notifier
from .orders import initial_status
from .pricing import STANDARD, calculate_totals
from .users import find_user

log = get_logger("checkout")


def _get(obj, key, default=None):
    if isinstance(obj, dict):
        return obj.get(key, default)
    return getattr(obj, key, default)


def _merge_items(items: Optional[Iterable]) -> "OrderedDict[int, int]":
    merged: "OrderedDict[int, int]" = OrderedDict()
    for it in items or []:
        pid = int(_get(it, "product_id"))
        qty = int(_get(it, "quantity") or 0)
        if qty <= 0:
            raise ValidationError(f"Cantidad inválida para el producto {pid}", "ITEM_QTY_INVALID")
        merged[pid] = merged.get(pid, 0) + qty
    return merged


def _snapshot_lines(db: Session, requested) -> List[OrderLine]:
    """Revalida existencia y stock de todo antes de tocar nada; sin órdenes parciales."""
    lines = []
    for pid, qty in requested.items():
        product = get_product(db, pid)
        if product is None:
            raise ValidationError(f"El producto {pid} ya no está disponible", "PRODUCT_UNAVAILABLE")
        if (product.stock or 0) < qty:
            raise ValidationError(
                f"Stock insuficiente para {product.name}. Disponible: {product.stock}",
                "STOCK_INSUFFICIENT",
            )
        price = money(product.price)
        lines.append(
            OrderLine(
                product_id=product.id,
                name=product.name,
                image=product.image,
                unit_price=price,
                quantity=qty,
                line_total=money(price * qty),
            )
        )
    return lines


def process_order(
    db: Session,
    user_id: int,
    items,
    payment_method: str,
    shipping_info: Optional[dict] = None,
    precomputed_totals: Optional[dict] = None,
    notifier: Optional[Notifier] = None,
) -> dict:
    """
    Checkout completo como una sola unidad de trabajo sobre ``db``.

    Orden, líneas, descuento de stock, ventas, uso de cupón y vaciado del
    carrito se confirman juntos o no se confirma nada. La nota de compra se
    envía después del commit y sus fallas no revierten la orden.
    """
    if not payment_method:
        raise ValidationError("Método de pago requerido", "PAYMENT_METHOD_REQUIRED")
    status = initial_status(payment_method)

    user = find_user(db, user_id)
    if user is None:
        raise ValidationError("Usuario no encontrado", "USER_NOT_FOUND")

    shipping_info = shipping_info or {}
    pre = precomputed_totals or {}
    country = find_country(_get(pre, "country") or settings.default_country)
    if country is None:
        raise ValidationError("País no encontrado", "COUNTRY_NOT_FOUND")
    tier = _get(pre, "shipping_type") or STANDARD
    gift_wrap = bool(_get(pre, "gift_wrap"))
    coupon_code = (_get(pre, "coupon_code") or "").strip().upper() or None

    try:
        requested = _merge_items(items)
        if not requested:
            requested = _merge_items(
                {"product_id": it.product_id, "quantity": it.quantity} for it in get_cart(db, user.id)
            )
        if not requested:
            raise ValidationError("El carrito está vacío", "CART_EMPTY")

        lines = _snapshot_lines(db, requested)
        subtotal = BaseMoney(money(sum((l.line_total for l in lines), ZERO)))

        coupon = None
        discount: Decimal = ZERO
        discount_type = None
        if coupon_code:
            validation = validate_coupon(db, coupon_code, subtotal, user_id=user.id, user_email=user.email)
            if not validation.valid:
                raise ValidationError(validation.message, f"COUPON_{validation.reason.upper()}")
            coupon = validation.coupon
            discount = validation.discount
            discount_type = coupon.discount_type

        totals = calculate_totals(subtotal, country.code, tier, discount, gift_wrap, discount_type)
        client_total = _get(pre, "total")
        if client_total is not None and abs(D(client_total) - totals.total) > CENT:
            log.warning(
                "Total del cliente %s difiere del calculado %s (usuario %s); se usa el calculado",
                client_total,
                totals.total,
                user.id,
            )

        order = Order(
            user_id=user.id,
            status=status,
            subtotal=totals.subtotal,
            tax_amount=totals.tax.amount,
            tax_name=totals.tax.name,
            shipping_cost=totals.shipping.cost,
            shipping_type=totals.shipping.tier,
            discount=totals.discount,
            coupon_code=coupon.code if coupon else None,
            gift_wrap=gift_wrap,
            gift_wrap_cost=totals.gift_wrap,
            total=totals.total,
            currency_code=country.currency_code,
            currency_symbol=currency_symbol(country.currency_code),
            shipping_name=_get(shipping_info, "name") or user.name,
            shipping_address=_get(shipping_info, "address") or "Por definir",
            shipping_city=_get(shipping_info, "city") or "Por definir",
            shipping_postal_code=_get(shipping_info, "postal_code") or "00000",
            shipping_phone=_get(shipping_info, "phone") or user.phone or "Sin teléfono",
            shipping_country=country.code,
            payment_method=payment_method,
            payment_details=_get(pre, "payment_details"),
            notes=_get(shipping_info, "notes"),
            lines=lines,
        )
        db.add(order)
        db.flush()

        for line in lines:
            # Otra compra pudo llevarse el stock entre la revalidación y aquí
            if not decrement_stock(db, line.product_id, line.quantity):
                log.warning("Stock perdido en carrera: producto %s, orden en curso de usuario %s", line.product_id, user.id)
                raise ConflictError(
                    f"El stock de {line.name} cambió mientras se procesaba tu compra, intenta de nuevo",
                    "STOCK_RACE_LOST",
                )
            register_sale(db, line.product_id, line.quantity, user.id)

        if coupon is not None:
            register_coupon_usage(db, coupon, user.id, order.id)

        clear_cart(db, user.id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    order_id, total = order.id, totals.total
    log.info("Orden %s creada (%s, %s MXN, %s)", order_id, status, total, payment_method)

    _send_confirmation(db, order, user, notifier or get_notifier())

    return {
        "order_id": order_id,
        "status": status,
        "total": float(total),
        "currency": country.currency_code,
        "currency_symbol": currency_symbol(country.currency_code),
        "totals": totals.as_api(),
    }


def _send_confirmation(db: Session, order: Order, user, notifier: Notifier) -> None:
    # La orden ya está confirmada: aquí todo error se registra y se traga
    order_id = order.id
    try:
        path = notifier.send_order_confirmation(build_invoice(order, user))
        if path:
            order.invoice_path = path
            db.commit()
    except Exception:
        db.rollback()
        log.exception("No se pudo enviar la confirmación de la orden %s", order_id)

import os
from datetime import datetime
from typing import Optional, Protocol

from ..core.config import settings
from ..core.errors import TransientError
from ..core.logger import get_logger
from ..models.order import Order
from ..models.user import User
from ..utils.atomic_file import write_json_atomic
from .currency import convert, format_amount
from .orders import payment_method_name

log = get_logger("notifications")


class Notifier(Protocol):
    def send_order_confirmation(self, invoice: dict) -> Optional[str]:
        """Entrega la nota de compra; devuelve la ruta del archivo generado, si hay."""


def build_invoice(order: Order, user: User) -> dict:
    """
    Nota de compra en la moneda del cliente. La conversión se hace aquí, al
    presentar; la orden guarda sólo MXN.
    """
    currency = order.currency_code or settings.base_currency
    symbol = order.currency_symbol or "$"

    def fmt(amount_in_base):
        return format_amount(convert(amount_in_base or 0, currency), symbol, currency)

    lines = [
        {
            "name": l.name,
            "quantity": l.quantity,
            "unit_price": fmt(l.unit_price),
            "line_total": fmt(l.line_total),
        }
        for l in order.lines
    ]
    totals = {
        "subtotal": fmt(order.subtotal),
        "tax": fmt(order.tax_amount),
        "shipping": "Gratis" if not order.shipping_cost else fmt(order.shipping_cost),
        "total": fmt(order.total),
    }
    if order.gift_wrap:
        totals["gift_wrap"] = fmt(order.gift_wrap_cost)
    if order.discount:
        totals["discount"] = "-" + fmt(order.discount)

    return {
        "order_id": order.id,
        "store": settings.store_name,
        "date": (order.created_at or datetime.utcnow()).isoformat(timespec="minutes"),
        "payment_method": payment_method_name(order.payment_method),
        "status": order.status,
        "customer": {"name": user.name, "email": user.email},
        "shipping": {
            "name": order.shipping_name,
            "address": order.shipping_address,
            "city": order.shipping_city,
            "postal_code": order.shipping_postal_code,
            "phone": order.shipping_phone,
            "country": order.shipping_country,
        },
        "currency": currency,
        "lines": lines,
        "totals": totals,
    }


class InvoiceFileNotifier:
    """Guarda la nota como JSON y deja constancia del correo al cliente."""

    def __init__(self, invoice_dir: Optional[str] = None):
        self.invoice_dir = invoice_dir or settings.invoice_dir

    def send_order_confirmation(self, invoice: dict) -> Optional[str]:
        path = os.path.join(self.invoice_dir, f"invoice_{invoice['order_id']}.json")
        try:
            write_json_atomic(path, invoice)
        except OSError as e:
            raise TransientError(f"No se pudo escribir la nota {path}: {e}")
        log.info(
            "Confirmación de orden #%s para %s <%s> (total %s)",
            invoice["order_id"],
            invoice["customer"]["name"],
            invoice["customer"]["email"],
            invoice["totals"]["total"],
        )
        return path


def get_notifier() -> Notifier:
    # Dependencia FastAPI (se sobreescribe en tests)
    return InvoiceFileNotifier()

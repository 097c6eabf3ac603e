from decimal import Decimal

from sqlalchemy.orm import Session

from .db import Base, SessionLocal, engine
from .models import cart as _cart_models  # noqa: F401
from .models import order as _order_models  # noqa: F401
from .models.coupon import FIXED, FREE_SHIPPING, PERCENTAGE, Coupon
from .models.product import Product
from .models.user import User


def get_or_create(session: Session, model, defaults=None, **kwargs):
    inst = session.query(model).filter_by(**kwargs).first()
    if inst:
        return inst, False
    params = dict(kwargs)
    if defaults:
        params.update(defaults)
    inst = model(**params)
    session.add(inst)
    session.commit()
    session.refresh(inst)
    return inst, True


def main():
    Base.metadata.create_all(bind=engine)
    db: Session = SessionLocal()
    try:
        # Catálogo demo (precios en MXN)
        guitar, _ = get_or_create(
            db,
            Product,
            name="Guitarra Acústica",
            defaults={"category": "Cuerdas", "price": Decimal("3499.00"), "stock": 10},
        )
        get_or_create(
            db,
            Product,
            name="Juego de Cuerdas",
            defaults={"category": "Accesorios", "price": Decimal("189.00"), "stock": 100},
        )
        get_or_create(
            db,
            Product,
            name="Afinador Digital",
            defaults={"category": "Accesorios", "price": Decimal("349.00"), "stock": 25},
        )

        user, _ = get_or_create(
            db, User, email="demo@rythmo.com", defaults={"name": "Cliente Demo", "phone": "5550000000"}
        )

        get_or_create(
            db,
            Coupon,
            code="SAVE10",
            defaults={
                "name": "10% de descuento",
                "discount_type": PERCENTAGE,
                "discount_value": Decimal("10"),
                "max_discount": Decimal("50"),
            },
        )
        get_or_create(
            db,
            Coupon,
            code="ENVIOGRATIS",
            defaults={"name": "Envío gratis", "discount_type": FREE_SHIPPING, "discount_value": Decimal("0")},
        )
        get_or_create(
            db,
            Coupon,
            code="BIENVENIDA100",
            defaults={
                "name": "Bienvenida",
                "discount_type": FIXED,
                "discount_value": Decimal("100"),
                "min_purchase": Decimal("500"),
                "one_per_user": True,
            },
        )

        print(f"Seed OK | user_id={user.id} product_id={guitar.id} cupones=SAVE10,ENVIOGRATIS,BIENVENIDA100")
    finally:
        db.close()


if __name__ == "__main__":
    main()

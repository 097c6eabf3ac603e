from fastapi import FastAPI

from .core.config import settings
from .core.errors import install_error_handlers
from .db import Base, engine
from .middleware.idempotency import install_idempotency
from .routers import cart, checkout, coupons, health, orders, products, users

# IMPORTA MODELOS antes de create_all
from .models import cart as _cart_models
from .models import coupon as _coupon_models
from .models import order as _order_models
from .models import product as _product_models
from .models import user as _user_models

# Crea tablas faltantes (desarrollo)
Base.metadata.create_all(bind=engine)

app = FastAPI(title=settings.app_name, version=settings.app_version)

install_error_handlers(app)
install_idempotency(app)

app.include_router(health.router)
app.include_router(checkout.router)
app.include_router(orders.router)
app.include_router(coupons.router)
app.include_router(products.router)
app.include_router(cart.router)
app.include_router(users.router)

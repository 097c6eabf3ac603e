import asyncio
import json
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ..core.config import settings
from ..core.logger import get_logger

log = get_logger("idempotency")

# Endpoints protegidos y la clave que debe traer una respuesta exitosa
ALLOW = {
    "/orders": "order_id",
}


class _Cache:
    """Respuestas por clave con TTL; FIFO al llenarse."""

    def __init__(self, ttl=3600, max_entries=2048):
        self.ttl = ttl
        self.max_entries = max_entries
        self._store = {}
        self._lock = asyncio.Lock()

    async def get(self, key):
        async with self._lock:
            item = self._store.get(key)
            if not item:
                return None
            if item["exp"] < time.time():
                self._store.pop(key, None)
                return None
            return item

    async def set(self, key, val):
        async with self._lock:
            if len(self._store) >= self.max_entries:
                self._store.pop(next(iter(self._store)))
            val["exp"] = time.time() + self.ttl
            self._store[key] = val

    async def clear(self):
        async with self._lock:
            self._store.clear()


class _KeyedLocks:
    """Un candado por clave; se descarta cuando nadie lo tiene ni lo espera."""

    def __init__(self):
        self._locks = {}  # clave -> [lock, usuarios]
        self._guard = asyncio.Lock()

    def __len__(self):
        return len(self._locks)

    async def acquire(self, key):
        async with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [asyncio.Lock(), 0]
            entry[1] += 1
        try:
            await entry[0].acquire()
        except BaseException:
            self._forget(key)
            raise
        return entry[0]

    def release(self, key):
        self._locks[key][0].release()
        self._forget(key)

    def _forget(self, key):
        entry = self._locks.get(key)
        if entry is None:
            return
        entry[1] -= 1
        if entry[1] <= 0:
            self._locks.pop(key, None)


def _drop_content_length(headers: dict) -> dict:
    return {k: v for k, v in headers.items() if k.lower() != "content-length"}


def _replay(cached) -> Response:
    body_bytes = cached["body"]
    try:
        js = json.loads(body_bytes.decode("utf-8"))
        if isinstance(js, dict):
            js["replay"] = True
            body_bytes = json.dumps(js).encode("utf-8")
    except ValueError:
        pass
    headers = _drop_content_length(dict(cached["headers"]))
    headers["Idempotent-Replay"] = "true"
    return Response(
        content=body_bytes,
        status_code=cached["status"],
        media_type=cached["media_type"],
        headers=headers,
    )


idem_cache = _Cache(ttl=settings.idempotency_ttl)
idem_locks = _KeyedLocks()


class CheckoutIdempotency(BaseHTTPMiddleware):
    """
    Un doble clic en "pagar" con la misma Idempotency-Key devuelve la misma
    orden en lugar de crear otra.
    """

    async def dispatch(self, request, call_next):
        if request.method != "POST":
            return await call_next(request)

        path = request.url.path.rstrip("/") or "/"
        success_key = ALLOW.get(path)
        if not success_key:
            return await call_next(request)

        idem_key = request.headers.get("Idempotency-Key")
        if not idem_key:
            return await call_next(request)

        # La clave es por usuario: dos clientes no comparten respuesta
        cache_key = f"{request.method}:{path}:{request.headers.get('X-User-Id', '')}:{idem_key}"

        cached = await idem_cache.get(cache_key)
        if cached:
            return _replay(cached)

        await idem_locks.acquire(cache_key)
        try:
            cached = await idem_cache.get(cache_key)
            if cached:
                return _replay(cached)

            response = await call_next(request)
            body_bytes = b""
            async for chunk in response.body_iterator:
                body_bytes += chunk

            headers = _drop_content_length(dict(response.headers))
            new_resp = Response(
                content=body_bytes,
                status_code=response.status_code,
                media_type=response.media_type,
                headers=headers,
            )

            # Sólo se cachea un 200 que trae la clave de éxito; los errores se pueden reintentar
            should_cache = response.status_code == 200
            if should_cache:
                try:
                    js = json.loads(body_bytes.decode("utf-8"))
                    should_cache = isinstance(js, dict) and (success_key in js)
                except ValueError:
                    should_cache = False

            if should_cache:
                await idem_cache.set(
                    cache_key,
                    {
                        "status": new_resp.status_code,
                        "headers": dict(new_resp.headers),
                        "media_type": new_resp.media_type,
                        "body": body_bytes,
                    },
                )
                log.info("Respuesta de %s cacheada para replay (%s)", path, idem_key)

            return new_resp
        finally:
            idem_locks.release(cache_key)


def install_idempotency(app):
    app.add_middleware(CheckoutIdempotency)

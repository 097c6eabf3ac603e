from __future__ import annotations

import io
import json
import os
import tempfile

__all__ = ["atomic_write_text", "write_json_atomic"]


def atomic_write_text(path: str, text: str, encoding: str = "utf-8") -> None:
    """
    Escribe a un temporal en el mismo directorio y lo renombra con os.replace():
    quien lea la factura nunca ve un archivo a medias.
    """
    d = os.path.dirname(path) or "."
    os.makedirs(d, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".tmp-", dir=d)
    try:
        with io.open(fd, "w", encoding=encoding, newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    finally:
        if os.path.exists(tmp):
            os.remove(tmp)


def write_json_atomic(path: str, obj, ensure_ascii: bool = False, indent: int | None = 2) -> None:
    atomic_write_text(path, json.dumps(obj, ensure_ascii=ensure_ascii, indent=indent, default=str))

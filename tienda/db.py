from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from .core.config import settings

# Base para modelos (lo importa tienda.main)
Base = declarative_base()

SQLALCHEMY_DATABASE_URL = settings.database_url
_IS_SQLITE = SQLALCHEMY_DATABASE_URL.startswith("sqlite")

# Engine con timeout alto (contención ligera en SQLite)
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False, "timeout": 60} if _IS_SQLITE else {},
    pool_pre_ping=True,
)

if _IS_SQLITE:
    # PRAGMAs por conexión; foreign_keys es lo que protege el historial de ventas
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _):
        cur = dbapi_conn.cursor()
        try:
            cur.execute("PRAGMA journal_mode=WAL;")
            cur.execute("PRAGMA busy_timeout=60000;")
            cur.execute("PRAGMA foreign_keys=ON;")
            cur.execute("PRAGMA synchronous=NORMAL;")
        finally:
            cur.close()


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependencia FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

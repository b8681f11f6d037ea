import uvicorn
import os

from app.core.config import settings


def run_migrations():
    """Run Alembic migrations."""
    try:
        from alembic.config import Config
        from alembic import command

        alembic_cfg = Config("alembic.ini")
        print("[STARTUP] Running database migrations...")
        command.upgrade(alembic_cfg, "head")
        print("[STARTUP] Migrations complete!")
        return True
    except Exception as e:
        print(f"[WARN] Migration failed: {e}")
        return False


def init_database():
    """Initialize database tables directly (fallback)."""
    from app.database import init_db
    print("[STARTUP] Initializing database tables...")
    init_db()
    print("[STARTUP] Database initialization complete!")


def prepare_media_root():
    """Make sure the temp upload folder exists before the first request."""
    temp_dir = os.path.join(settings.MEDIA_ROOT, settings.media_temp_url.strip("/"))
    os.makedirs(temp_dir, exist_ok=True)
    print(f"[STARTUP] Media root ready: {os.path.abspath(settings.MEDIA_ROOT)}")


if __name__ == "__main__":
    if os.getenv("RUN_MIGRATIONS") == "true":
        if not run_migrations():
            print("[WARN] Falling back to direct table creation...")
            init_database()
    prepare_media_root()

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", 8000))

    # Disable reload in production
    reload = os.getenv("ENV") == "development"

    uvicorn.run(
        "app.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.LOG_LEVEL.lower(),
        workers=1,  # view dedup cache is per process
    )

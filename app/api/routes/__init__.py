from app.api.routes.properties import router as properties_router

__all__ = [
    "properties_router",
]

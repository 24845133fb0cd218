from fastapi import Depends, FastAPI

from grant_directory.api.routes.agencies import router as agencies_router
from grant_directory.api.routes.listings import router as listings_router
from grant_directory.api.routes.search import router as search_router
from grant_directory.context import AppContext, get_context


def health(ctx: AppContext):
    backend = ctx.backend
    return {
        "status": "ok",
        "backend": getattr(backend, "name", None),
        "configured": backend is not None,
    }


app = FastAPI(title="grant_directory")

app.include_router(search_router, prefix="/api")
app.include_router(agencies_router, prefix="/api")
app.include_router(listings_router)


@app.get("/health")
def health_route(ctx: AppContext = Depends(get_context)):
    return health(ctx)

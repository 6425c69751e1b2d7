import os

import uvicorn
from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from adapters.config import load_env

# Load environment before project modules read their settings at import time
load_env()

from api.catalog.models import FeedResponse  # noqa: E402
from api.catalog.wrappers import catalog_wrapper  # noqa: E402
from feed_api.auth import require_api_key  # noqa: E402

app = FastAPI(
    title="Catalog Feed API",
    description="Product catalog feed with resolved media references",
    version="1.0.0",
)

# CORS - the feed is read by LLM tooling and browser clients alike
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)


def _respond(response: FeedResponse) -> JSONResponse:
    return JSONResponse(content=response.to_dict(mode="json"), status_code=response.status_code)


@app.get("/api/products", dependencies=[Depends(require_api_key)])
async def products_endpoint(refresh: bool = Query(False)):
    return _respond(await catalog_wrapper.get_products(force_refresh=refresh))


@app.get("/api/products/search", dependencies=[Depends(require_api_key)])
async def search_endpoint(q: str = Query("")):
    return _respond(await catalog_wrapper.search_products(q))


@app.get("/api/products/{identifier}", dependencies=[Depends(require_api_key)])
async def product_endpoint(identifier: str):
    return _respond(await catalog_wrapper.get_product(identifier))


@app.get("/api/files", dependencies=[Depends(require_api_key)])
async def files_endpoint(refresh: bool = Query(False)):
    return _respond(await catalog_wrapper.get_files(force_refresh=refresh))


@app.get("/api/pages", dependencies=[Depends(require_api_key)])
async def pages_endpoint(refresh: bool = Query(False)):
    return _respond(await catalog_wrapper.get_pages(force_refresh=refresh))


@app.get("/api/collections", dependencies=[Depends(require_api_key)])
async def collections_endpoint(refresh: bool = Query(False)):
    return _respond(await catalog_wrapper.get_collections(force_refresh=refresh))


@app.get("/api/metaobjects", dependencies=[Depends(require_api_key)])
async def metaobjects_endpoint(type: str | None = Query(None)):
    return _respond(await catalog_wrapper.get_metaobjects(type))


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    port = int(os.getenv("PORT", "8080"))
    uvicorn.run("feed_api.main:app", host="0.0.0.0", port=port)

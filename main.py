import os
import logging
import traceback
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import List

from database import db, StorageError
from repository import CatalogRepository, NotFoundError
from schemas import Product, ProductIn, ProductUpdate, Review, ReviewIn, ReviewUpdate

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger("catalog-store")


@asynccontextmanager
async def lifespan(app: FastAPI):
    db.initialize()
    yield


app = FastAPI(title="Catalog Store API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------- Dependencies ----------

def get_repository() -> CatalogRepository:
    return CatalogRepository(db)


def not_found(e: NotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(e))


# ---------- Basic Routes ----------

@app.get("/")
def read_root():
    return {"message": "Catalog Store Running"}

@app.get("/api/health")
def health():
    return {"ok": True}


# ---------- Product Routes ----------

@app.get("/api/products", response_model=List[Product])
def list_products(repo: CatalogRepository = Depends(get_repository)):
    return repo.list_products()

@app.get("/api/products/{product_id}", response_model=Product)
def get_product(product_id: str, repo: CatalogRepository = Depends(get_repository)):
    try:
        return repo.get_product(product_id)
    except NotFoundError as e:
        raise not_found(e)

@app.post("/api/products", response_model=Product, status_code=201)
def create_product(product: ProductIn, repo: CatalogRepository = Depends(get_repository)):
    created = repo.create_product(product)
    logger.info("Created product %s", created.id)
    return created

@app.put("/api/products/{product_id}", response_model=Product)
def update_product(product_id: str, product: ProductUpdate, repo: CatalogRepository = Depends(get_repository)):
    try:
        return repo.update_product(product_id, product)
    except NotFoundError as e:
        raise not_found(e)

@app.delete("/api/products/{product_id}")
def delete_product(product_id: str, repo: CatalogRepository = Depends(get_repository)):
    return repo.delete_product(product_id)


# ---------- Review Routes ----------

@app.get("/api/products/{product_id}/reviews", response_model=List[Review])
def list_reviews(product_id: str, repo: CatalogRepository = Depends(get_repository)):
    try:
        return repo.list_reviews(product_id)
    except NotFoundError as e:
        raise not_found(e)

@app.post("/api/products/{product_id}/reviews", response_model=Review, status_code=201)
def add_review(product_id: str, review: ReviewIn, repo: CatalogRepository = Depends(get_repository)):
    try:
        return repo.add_review(product_id, review)
    except NotFoundError as e:
        raise not_found(e)

@app.put("/api/products/{product_id}/reviews/{review_id}", response_model=Review)
def update_review(product_id: str, review_id: str, review: ReviewUpdate, repo: CatalogRepository = Depends(get_repository)):
    try:
        return repo.update_review(product_id, review_id, review)
    except NotFoundError as e:
        raise not_found(e)

@app.delete("/api/products/{product_id}/reviews/{review_id}")
def delete_review(product_id: str, review_id: str, repo: CatalogRepository = Depends(get_repository)):
    try:
        return repo.delete_review(product_id, review_id)
    except NotFoundError as e:
        raise not_found(e)


# ---------- Diagnostics ----------

@app.get("/test")
def test_database(repo: CatalogRepository = Depends(get_repository)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_path": None,
        "products": None,
    }
    try:
        info = repo.store.describe()
        response["database_path"] = info["path"]
        response["products"] = info["products"]
        response["database"] = "✅ Connected & Working" if info["exists"] else "⚠️  Not initialized"
    except (OSError, StorageError) as e:
        response["database"] = f"❌ Error: {str(e)[:50]}"
    return response


# Storage failures are server errors, never "not found"
@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(f"Unhandled exception for request {request.url}:\n{tb}")
    return JSONResponse(
        status_code=500,
        content={"error": "internal_server_error", "detail": str(exc)},
    )


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 4000))
    uvicorn.run(app, host="0.0.0.0", port=port)

"""
Food Ordering API

Run with ``python main.py`` or ``uvicorn main:create_app --factory``.
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson.errors import InvalidId
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pymongo.errors import DuplicateKeyError, PyMongoError

from auth import ensure_owner_or_admin, get_current_claims, get_settings, is_admin, issue_token, require_admin
from config import Settings, load_settings, setup_logging
from database import Store, connect, get_store
from schemas import DeleteResult, Food, Order, TokenRequest, TokenResponse, User, UserCreate

logger = logging.getLogger(__name__)

router = APIRouter()


def _not_found(what: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{what} not found")


# ===================== Public Endpoints =====================
@router.get("/", response_class=PlainTextResponse)
def root():
    return "Food Server with JWT is ready!"


# ===================== Auth =====================
@router.post("/jwt", response_model=TokenResponse)
def create_token(payload: TokenRequest, settings: Settings = Depends(get_settings)):
    token = issue_token(payload.model_dump(), settings)
    logger.info("Issued token for %s", payload.email)
    return TokenResponse(token=token)


# ===================== Users =====================
@router.post("/users")
def create_user(payload: UserCreate, store: Store = Depends(get_store)):
    if store.find_one("users", {"email": payload.email}):
        logger.info("User %s already registered", payload.email)
        return {"message": "user already exists", "insertedId": None}
    # Roles are assigned out-of-band; whatever the client sends is ignored
    user = User(**{**payload.model_dump(), "role": "user"})
    try:
        user_id = store.create_document("users", user)
    except DuplicateKeyError:
        logger.info("User %s registered concurrently", payload.email)
        return {"message": "user already exists", "insertedId": None}
    logger.info("Registered user %s", payload.email)
    return {"insertedId": user_id}


@router.get("/users")
def list_users(store: Store = Depends(get_store), claims: Dict[str, Any] = Depends(require_admin)):
    return store.get_documents("users")


@router.get("/users/admin/{email}")
def check_admin(email: str, store: Store = Depends(get_store), claims: Dict[str, Any] = Depends(get_current_claims)):
    if email != claims["email"]:
        raise HTTPException(status_code=403, detail="Forbidden access")
    return {"admin": is_admin(store, email)}


@router.get("/users/{email}")
def get_user(email: str, store: Store = Depends(get_store)):
    user = store.find_one("users", {"email": email})
    if not user:
        raise _not_found("User")
    return user


# ===================== Foods =====================
@router.get("/foods")
def list_foods(category: Optional[str] = None, store: Store = Depends(get_store)):
    filter_q = {}
    if category and category.strip().lower() != "all":
        filter_q["category"] = category.strip().lower()
    return store.get_documents("foods", filter_q)


@router.get("/foods/{food_id}")
def get_food(food_id: str, store: Store = Depends(get_store)):
    food = store.get_document_by_id("foods", food_id)
    if not food:
        raise _not_found("Food")
    return food


@router.post("/foods")
def create_food(payload: Food, store: Store = Depends(get_store), claims: Dict[str, Any] = Depends(require_admin)):
    food_id = store.create_document("foods", payload)
    logger.info("%s added food %s (%s)", claims["email"], payload.name, food_id)
    return {"insertedId": food_id}


@router.delete("/foods/{food_id}", response_model=DeleteResult)
def delete_food(food_id: str, store: Store = Depends(get_store), claims: Dict[str, Any] = Depends(require_admin)):
    deleted = store.delete_document("foods", food_id)
    if not deleted:
        raise _not_found("Food")
    logger.info("%s deleted food %s", claims["email"], food_id)
    return DeleteResult(deletedCount=deleted)


# ===================== Orders =====================
@router.post("/orders")
def create_order(payload: Order, store: Store = Depends(get_store), claims: Dict[str, Any] = Depends(get_current_claims)):
    order = payload.model_dump()
    order["buyerEmail"] = order.get("buyerEmail") or claims["email"]
    ensure_owner_or_admin(store, claims, order["buyerEmail"])
    order["createdAt"] = datetime.now(timezone.utc)
    order_id = store.create_document("orders", order)
    return {"insertedId": order_id}


@router.get("/orders")
def list_orders(email: Optional[str] = None, store: Store = Depends(get_store), claims: Dict[str, Any] = Depends(get_current_claims)):
    email = email or claims["email"]
    ensure_owner_or_admin(store, claims, email)
    return store.get_documents("orders", {"buyerEmail": email}, sort=[("createdAt", -1)])


@router.get("/orders/{order_id}")
def get_order(order_id: str, store: Store = Depends(get_store), claims: Dict[str, Any] = Depends(get_current_claims)):
    order = store.get_document_by_id("orders", order_id)
    if not order:
        raise _not_found("Order")
    ensure_owner_or_admin(store, claims, order.get("buyerEmail"))
    return order


@router.delete("/orders/{order_id}", response_model=DeleteResult)
def delete_order(order_id: str, store: Store = Depends(get_store), claims: Dict[str, Any] = Depends(get_current_claims)):
    order = store.get_document_by_id("orders", order_id)
    if not order:
        raise _not_found("Order")
    ensure_owner_or_admin(store, claims, order.get("buyerEmail"))
    return DeleteResult(deletedCount=store.delete_document("orders", order_id))


# ===================== Error Handlers =====================
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
    detail = "Missing or invalid fields: " + ", ".join(fields) if fields else "Invalid request body"
    return JSONResponse(status_code=400, content={"detail": detail})


async def invalid_id_handler(request: Request, exc: InvalidId):
    return JSONResponse(status_code=400, content={"detail": "Invalid id"})


async def store_error_handler(request: Request, exc: PyMongoError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# ===================== App =====================
@asynccontextmanager
async def lifespan(app: FastAPI):
    if app.state.store is None:
        app.state.store = connect(app.state.settings)
    yield


def create_app(store: Optional[Store] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings.log_level)
    if not settings.access_token_secret:
        raise RuntimeError("ACCESS_TOKEN_SECRET is not set")

    app = FastAPI(title="Food Ordering API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(InvalidId, invalid_id_handler)
    app.add_exception_handler(PyMongoError, store_error_handler)
    app.include_router(router)
    return app


if __name__ == "__main__":
    import uvicorn
    settings = load_settings()
    uvicorn.run(create_app(settings=settings), host="0.0.0.0", port=settings.port)

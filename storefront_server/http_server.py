"""HTTP server for the Storefront cart."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .cart import StorefrontCart
from .config import StorefrontSettings
from .errors import AuthRequired, CartError, RemoteRejection, TransportFailure, ValidationError
from .models import AuthCredentials, CartStatus

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("storefront-http-server")

# Global state
cart: StorefrontCart


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    global cart

    # Startup
    logger.info("Starting Storefront HTTP Server...")
    cart = StorefrontCart.from_settings(StorefrontSettings.from_env())
    if await cart.validate_session():
        logger.info("Stored session is valid")

    yield

    # Shutdown
    logger.info("Shutting down Storefront HTTP Server...")
    await cart.close()


app = FastAPI(
    title="Storefront MCP Server",
    description="HTTP API for the storefront shopping cart",
    version="0.1.0",
    lifespan=lifespan,
)


# Request/Response Models
class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    success: bool
    message: str


class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = 1
    variant_id: Optional[str] = None


class UpdateQuantityRequest(BaseModel):
    quantity: int = Field(description="New quantity, clamped to at least 1 by the client")


def http_error(e: CartError) -> HTTPException:
    """Map a cart error onto an HTTP status."""
    if isinstance(e, AuthRequired):
        return HTTPException(status_code=401, detail=e.message)
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=e.message)
    if isinstance(e, TransportFailure):
        return HTTPException(status_code=503, detail=e.message)
    if isinstance(e, RemoteRejection) and e.status_code and 400 <= e.status_code < 500:
        return HTTPException(status_code=e.status_code, detail=e.message)
    return HTTPException(status_code=422, detail=e.message)


async def cart_state() -> dict:
    """Current store contents plus totals, priced against a fresh catalog."""
    await cart.refresh_catalog()
    summary = cart.summary()
    return {
        "status": cart.status.value,
        "error": str(cart.store.error) if cart.store.error else None,
        "items": [item.model_dump(mode="json") for item in cart.items],
        "summary": summary.model_dump(mode="json"),
    }


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Storefront MCP Server",
        "version": "0.1.0",
        "description": "HTTP API for the storefront shopping cart",
        "endpoints": {
            "docs": "/docs",
            "health": "/health",
            "auth": {"login": "POST /auth/login", "logout": "POST /auth/logout", "status": "GET /auth/status"},
            "products": {"list": "GET /products"},
            "cart": {
                "get": "GET /cart",
                "add": "POST /cart",
                "update": "PUT /cart/{item_id}",
                "remove": "DELETE /cart/{item_id}",
                "clear": "POST /cart/clear",
            },
        },
        "authenticated": cart.auth_manager.is_authenticated(),
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "authenticated": cart.auth_manager.is_authenticated(),
    }


# Authentication endpoints
@app.post("/auth/login", response_model=LoginResponse)
async def login(request: LoginRequest):
    """Login to the storefront."""
    try:
        credentials = AuthCredentials(email=request.email, password=request.password)
        if await cart.login(credentials):
            return LoginResponse(success=True, message=f"Successfully logged in as {request.email}")
        return LoginResponse(success=False, message="Login failed. Check your credentials.")
    except CartError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Login error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/auth/logout")
async def logout():
    """Logout and forget the local cart."""
    await cart.logout()
    return {"success": True, "message": "Successfully logged out"}


@app.get("/auth/status")
async def auth_status():
    """Get authentication status."""
    session = cart.auth_manager.get_session()
    return {
        "authenticated": cart.auth_manager.is_authenticated(),
        "email": session.user_email if cart.auth_manager.is_authenticated() else None,
    }


# Product endpoints
@app.get("/products")
async def list_products():
    """List catalog products."""
    try:
        catalog = await cart.refresh_catalog()
        products = catalog.products()
        return {
            "count": len(products),
            "products": [product.model_dump(mode="json") for product in products],
        }
    except CartError as e:
        raise http_error(e)


# Cart endpoints
@app.get("/cart")
async def get_cart():
    """Reload and return the shopping cart."""
    try:
        if not cart.auth_manager.is_authenticated():
            raise AuthRequired()

        await cart.refresh()
        if cart.status == CartStatus.ERROR and isinstance(cart.store.error, CartError):
            raise cart.store.error
        return await cart_state()
    except CartError as e:
        raise http_error(e)


@app.post("/cart", status_code=201)
async def add_to_cart(request: AddToCartRequest):
    """Add a product to the cart."""
    try:
        item = await cart.add_to_cart(request.product_id, request.quantity, request.variant_id)
        return {"item": item.model_dump(mode="json"), "cart": await cart_state()}
    except CartError as e:
        raise http_error(e)


@app.put("/cart/{item_id}")
async def update_quantity(item_id: str, request: UpdateQuantityRequest):
    """Set a cart item's quantity."""
    try:
        item = await cart.update_quantity(item_id, request.quantity)
        return {"item": item.model_dump(mode="json"), "cart": await cart_state()}
    except CartError as e:
        raise http_error(e)


@app.delete("/cart/{item_id}")
async def remove_from_cart(item_id: str):
    """Remove a cart item."""
    try:
        await cart.remove_from_cart(item_id)
        return {"success": True, "cart": await cart_state()}
    except CartError as e:
        raise http_error(e)


@app.post("/cart/clear")
async def clear_cart():
    """Forget the local cart; server-side items are kept."""
    await cart.clear_cart()
    try:
        return {"success": True, "cart": await cart_state()}
    except CartError as e:
        raise http_error(e)


def run_http_server(host: str = "0.0.0.0", port: int = 8000, reload: bool = False):
    """Run the HTTP server."""
    import uvicorn

    if reload:
        uvicorn.run("storefront_server.http_server:app", host=host, port=port, log_level="info", reload=True)
    else:
        uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    run_http_server()

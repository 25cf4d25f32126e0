"""MCP Server for the storefront cart."""

import asyncio
import logging
from typing import Any, Optional

from mcp.server import Server
from mcp.types import Resource, Tool, TextContent
from pydantic import AnyUrl

from .cart import StorefrontCart
from .config import StorefrontSettings
from .errors import CartError
from .models import AuthCredentials, CartStatus, OrderSummary, Product
from .pricing import resolve_unit_price
from .synchronizer import clamp_quantity

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("storefront-mcp-server")

# Initialize server
app = Server("storefront-mcp-server")

# Global state
cart: StorefrontCart
credentials: Optional[AuthCredentials] = None

NOT_AUTHENTICATED = (
    "Error: Not authenticated. Please configure STOREFRONT_EMAIL and STOREFRONT_PASSWORD "
    "or STOREFRONT_TOKEN, or use storefront_login first."
)


def text(message: str) -> list[TextContent]:
    return [TextContent(type="text", text=message)]


async def ensure_authenticated() -> bool:
    """Ensure the session is authenticated, auto-login if credentials are available."""
    if cart.auth_manager.is_authenticated():
        return True

    if credentials:
        logger.info("Auto-logging in with configured credentials...")
        if await cart.login(credentials):
            logger.info("Auto-login successful")
            return True
        logger.warning("Auto-login failed")

    return False


def format_price(product: Product) -> str:
    """One-line price description, marking sale prices."""
    try:
        unit_price = resolve_unit_price(product)
    except CartError:
        return "price unavailable"
    if product.price is not None and unit_price < product.price:
        return f"{unit_price} (was {product.price})"
    return str(unit_price)


def format_products(products: list[Product]) -> str:
    result_lines = [f"Found {len(products)} product(s):\n"]
    for i, product in enumerate(products, 1):
        result_lines.append(f"\n{i}. {product.name}")
        result_lines.append(f"   ID: {product.id}")
        result_lines.append(f"   Price: {format_price(product)}")
        for variant in product.variants:
            if not variant.is_active:
                continue
            try:
                variant_price = str(resolve_unit_price(product, variant))
            except CartError:
                variant_price = "price unavailable"
            result_lines.append(f"   - Variant {variant.id}: {variant.label} @ {variant_price}")
    return "\n".join(result_lines)


def format_summary(summary: OrderSummary) -> str:
    if not summary.lines and not summary.stale:
        return "Your cart is empty"

    result_lines = [f"Shopping Cart ({summary.item_count} items):\n"]
    for line in summary.lines:
        result_lines.append(
            f"  - [{line.item_id}] {line.name} x{line.quantity} @ {line.unit_price} = {line.line_total}"
        )
    for line in summary.stale:
        result_lines.append(f"  - [{line.item_id}] unavailable x{line.quantity}: {line.reason}")

    result_lines.append(f"\nSubtotal: {summary.subtotal}")
    result_lines.append(f"Shipping: {'FREE' if summary.free_shipping else summary.shipping}")
    if summary.tax:
        result_lines.append(f"Tax: {summary.tax}")
    result_lines.append(f"Total: {summary.total}")
    if not summary.free_shipping:
        result_lines.append(f"Add {summary.amount_to_free_shipping} more for free shipping!")
    if summary.stale:
        result_lines.append(f"\n⚠ {len(summary.stale)} item(s) are no longer available and were not counted.")
    return "\n".join(result_lines)


async def current_summary() -> OrderSummary:
    """Reload cart and catalog, then summarize."""
    await cart.refresh_catalog()
    await cart.refresh()
    if cart.status == CartStatus.ERROR and cart.store.error is not None:
        raise cart.store.error
    return cart.summary()


@app.list_resources()
async def list_resources() -> list[Resource]:
    """List available resources."""
    resources = []

    if cart.auth_manager.is_authenticated():
        resources.append(
            Resource(
                uri=AnyUrl("storefront://cart"),
                name="Shopping Cart",
                mimeType="application/json",
                description="Current shopping cart contents with totals",
            )
        )

    return resources


@app.read_resource()
async def read_resource(uri: AnyUrl) -> str:
    """Read a resource by URI."""
    uri_str = str(uri)

    if uri_str == "storefront://cart":
        if not cart.auth_manager.is_authenticated():
            return "Error: Not authenticated. Please login first."

        summary = await current_summary()
        return summary.model_dump_json(indent=2)

    raise ValueError(f"Unknown resource: {uri}")


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    return [
        Tool(
            name="storefront_login",
            description="Authenticate with the storefront. Uses STOREFRONT_EMAIL/STOREFRONT_PASSWORD if not provided.",
            inputSchema={
                "type": "object",
                "properties": {
                    "email": {"type": "string", "description": "User email address (optional if configured)"},
                    "password": {"type": "string", "description": "User password (optional if configured)"},
                },
            },
        ),
        Tool(
            name="storefront_logout",
            description="Logout, clear the session and forget the local cart",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="storefront_list_products",
            description="List catalog products with prices and variants, optionally filtered by name",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {"type": "string", "description": "Text the product name must contain"},
                },
            },
        ),
        Tool(
            name="storefront_get_cart",
            description="Get current shopping cart contents, subtotal, shipping and total",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="storefront_add_to_cart",
            description="Add a product (optionally a specific variant) to the cart",
            inputSchema={
                "type": "object",
                "properties": {
                    "product_id": {"type": "string", "description": "Product ID from storefront_list_products"},
                    "quantity": {"type": "integer", "description": "Quantity to add (default: 1)", "default": 1},
                    "variant_id": {"type": "string", "description": "Variant ID, for products with variants"},
                },
                "required": ["product_id"],
            },
        ),
        Tool(
            name="storefront_update_quantity",
            description="Set the quantity of a cart item (minimum 1; use storefront_remove_from_cart to delete)",
            inputSchema={
                "type": "object",
                "properties": {
                    "item_id": {"type": "string", "description": "Cart item ID from storefront_get_cart"},
                    "quantity": {"type": "integer", "description": "New quantity"},
                },
                "required": ["item_id", "quantity"],
            },
        ),
        Tool(
            name="storefront_remove_from_cart",
            description="Remove an item from the cart",
            inputSchema={
                "type": "object",
                "properties": {
                    "item_id": {"type": "string", "description": "Cart item ID from storefront_get_cart"},
                },
                "required": ["item_id"],
            },
        ),
        Tool(
            name="storefront_clear_cart",
            description="Forget the local cart view without deleting anything on the server",
            inputSchema={"type": "object", "properties": {}},
        ),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle tool calls."""
    arguments = arguments or {}
    try:
        if name == "storefront_login":
            email = arguments.get("email") or (credentials.email if credentials else None)
            password = arguments.get("password") or (credentials.password if credentials else None)
            if not email or not password:
                return text("Error: No credentials provided and STOREFRONT_EMAIL/STOREFRONT_PASSWORD not configured.")

            if await cart.login(AuthCredentials(email=email, password=password)):
                return text(f"✅ Successfully logged in as {email}")
            return text("❌ Login failed. Check your credentials.")

        elif name == "storefront_logout":
            await cart.logout()
            return text("✅ Successfully logged out")

        elif name == "storefront_list_products":
            catalog = await cart.refresh_catalog()
            query = (arguments.get("query") or "").strip().lower()
            products = [p for p in catalog.products() if p.is_active and query in p.name.lower()]
            if not products:
                return text(f"No products found for: {query}" if query else "No products available")
            return text(format_products(products))

        elif name == "storefront_get_cart":
            if not await ensure_authenticated():
                return text(NOT_AUTHENTICATED)
            return text(format_summary(await current_summary()))

        elif name == "storefront_add_to_cart":
            if not await ensure_authenticated():
                return text(NOT_AUTHENTICATED)

            product_id = arguments["product_id"]
            quantity = arguments.get("quantity", 1)
            variant_id = arguments.get("variant_id")
            await cart.add_to_cart(product_id, quantity, variant_id)
            return text(
                f"✅ Added product {product_id}"
                f"{f' (variant {variant_id})' if variant_id else ''} x{quantity} to cart. "
                f"Cart now holds {cart.item_count()} item(s)."
            )

        elif name == "storefront_update_quantity":
            if not await ensure_authenticated():
                return text(NOT_AUTHENTICATED)

            item_id = arguments["item_id"]
            quantity = clamp_quantity(arguments["quantity"])
            await cart.update_quantity(item_id, quantity)
            return text(f"✅ Set quantity of item {item_id} to {quantity}")

        elif name == "storefront_remove_from_cart":
            if not await ensure_authenticated():
                return text(NOT_AUTHENTICATED)

            item_id = arguments["item_id"]
            await cart.remove_from_cart(item_id)
            return text(f"✅ Removed item {item_id} from cart")

        elif name == "storefront_clear_cart":
            await cart.clear_cart()
            return text("✅ Local cart cleared (items remain saved on the server)")

        else:
            return text(f"Unknown tool: {name}")

    except CartError as e:
        logger.warning(f"Tool {name} failed: {e.message}")
        return text(f"Error: {e.message}")
    except Exception as e:
        logger.error(f"Error executing tool {name}: {e}", exc_info=True)
        return text(f"Error: {str(e)}")


async def main() -> None:
    """Main entry point for the MCP server."""
    global cart, credentials

    settings = StorefrontSettings.from_env()
    cart = StorefrontCart.from_settings(settings)
    credentials = settings.credentials

    if await cart.validate_session():
        logger.info("Stored session is valid")

    if credentials:
        logger.info(f"Credentials loaded from environment for: {credentials.email}")
    elif not cart.auth_manager.is_authenticated():
        logger.warning("No credentials found in environment variables (STOREFRONT_EMAIL, STOREFRONT_PASSWORD)")
        logger.warning("Cart operations will require manual login via storefront_login tool")

    logger.info(f"Starting Storefront MCP Server against {settings.api_url}...")

    # Import and run the server
    from mcp.server.stdio import stdio_server

    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(
                read_stream,
                write_stream,
                app.create_initialization_options(),
            )
    finally:
        await cart.close()


if __name__ == "__main__":
    asyncio.run(main())

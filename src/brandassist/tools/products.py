"""Promotional product catalog tools (SAGE Connect)."""

import logging
from functools import lru_cache
from typing import (
    Any,
    Dict,
    List,
    Optional,
)

from pydantic import Field

from brandassist.config import settings
from brandassist.core.schema import (
    ToolContext,
    ToolOutput,
)
from brandassist.integrations.sage_connect import (
    Product,
    ProductDetail,
    SageConnectClient,
    validate_product_id,
)
from brandassist.tools import (
    EmptyInput,
    ToolInput,
    register_tool,
)

logger = logging.getLogger(__name__)

MAX_LISTED_PRODUCTS = 10
MAX_CATEGORIES = 15
MAX_THEMES = 20
DETAIL_FOOTER = '_To get more details about a product, use its numeric ID (e.g. "get details for ' \
    'product 503406121")._'


@lru_cache(maxsize=1)
def get_sage_client() -> SageConnectClient:
    return SageConnectClient.from_settings(settings)


def _price(price: Optional[str]) -> str:
    return f"${price}" if price else "Price on request"


def _features(product: Product) -> List[str]:
    features = []
    if product.verified:
        features.append("Verified")
    if product.env_friendly:
        features.append("Eco-Friendly")
    return features


def product_line(index: int, product: Product) -> str:
    supplier = f" by {product.supplier.name}" if product.supplier and product.supplier.name else ""
    features = _features(product)
    feature_text = f" ({', '.join(features)})" if features else ""
    return (
        f"*{index}. {product.name}*\n"
        f"*ID:* {product.product_id} | *SPC:* {product.spc or 'N/A'}\n"
        f"*Price:* {_price(product.price)}{supplier}{feature_text}"
    )


def product_blocks(header: str, products: List[Product]) -> List[Dict[str, Any]]:
    """Slack Block Kit rendering of a search result page."""
    blocks: List[Dict[str, Any]] = [{"type": "section", "text": {"type": "mrkdwn", "text": header}}]
    for i, product in enumerate(products, start=1):
        block: Dict[str, Any] = {
            "type": "section",
            "text": {"type": "mrkdwn", "text": product_line(i, product)},
        }
        if product.thumbnail_url:
            block["accessory"] = {
                "type": "image",
                "image_url": product.thumbnail_url,
                "alt_text": product.name or "Product",
            }
        blocks.append(block)
    blocks.append({"type": "divider"})
    blocks.append({"type": "context", "elements": [{"type": "mrkdwn", "text": DETAIL_FOOTER}]})
    return blocks


# ---------------------------------------------------------------------------
# search_products
# ---------------------------------------------------------------------------
class ProductSearchInput(ToolInput):
    keywords: Optional[str] = Field(None, description="Words from product names or descriptions")
    categories: Optional[str] = Field(
        None, description="Product categories, e.g. 'apparel', 'drinkware'"
    )
    colors: Optional[str] = Field(None, description="Desired colors, e.g. 'blue'")
    themes: Optional[str] = Field(None, description="Product themes, e.g. 'eco-friendly'")
    price_low: Optional[float] = Field(None, gt=0, description="Minimum unit price")
    price_high: Optional[float] = Field(None, gt=0, description="Maximum unit price")
    qty: Optional[int] = Field(None, gt=0, description="Quantity needed")
    verified: Optional[bool] = Field(None, description="Only verified products")
    env_friendly: Optional[bool] = Field(None, description="Only environmentally friendly products")
    max_results: int = Field(10, ge=1, le=50, description="Maximum number of results (1-50)")

    def criteria(self) -> Dict[str, Any]:
        """Search criteria in the catalog's camelCase form, unset fields omitted."""
        return self.model_dump(by_alias=True, exclude_none=True, exclude={"max_results"})


@register_tool(
    "search_products",
    description="Search the promotional product catalog for merchandise, corporate gifts and "
    "marketing items. Results include numeric product IDs for follow-up lookups.",
    input_model=ProductSearchInput,
)
def search_products(params: ProductSearchInput, context: ToolContext) -> ToolOutput:
    client = get_sage_client()
    terms = ", ".join(t for t in (params.keywords, params.categories, params.themes) if t)
    context.report_status(f'is searching promotional products for "{terms}"...')

    result = client.search_products(params.criteria(), limit=params.max_results)
    if not result.products:
        return ToolOutput(
            text="No promotional products found matching your criteria. Try broader search "
            "terms or a wider price range."
        )

    shown = result.products[:MAX_LISTED_PRODUCTS]
    price_range = ""
    if params.price_low or params.price_high:
        high = params.price_high if params.price_high else "any"
        price_range = f" in ${params.price_low or 0}-{high} range"
    for_terms = f' for "{terms}"' if terms else ""
    header = (
        f"*Found {result.total_found} promotional products*{for_terms}{price_range}\n\n"
        f"Showing top {len(shown)} results:"
    )

    lines = []
    for i, product in enumerate(shown, start=1):
        line = product_line(i, product)
        if product.thumbnail_url:
            line += f"\nImage: {product.thumbnail_url}"
        lines.append(line)
    text = f"{header}\n\n" + "\n\n".join(lines) + f"\n\n---\n{DETAIL_FOOTER}"
    return ToolOutput(text=text, blocks=product_blocks(header, shown))


# ---------------------------------------------------------------------------
# get_product_detail / check_inventory
# ---------------------------------------------------------------------------
class ProductIdInput(ToolInput):
    product_id: str = Field(
        ...,
        min_length=1,
        description="Numeric product ID (prodEId) from search results, not the SPC code",
    )


def format_detail(product: ProductDetail) -> str:
    image = f"\nProduct image: {product.images[0]}" if product.images else ""
    parts = [
        f"**{product.name}**{image}",
        f"**Product ID:** {product.product_id} | **SPC:** {product.spc or 'N/A'}\n"
        f"**Category:** {product.category} | **Item #:** {product.item_num or 'N/A'}\n"
        f"**Base Price:** {_price(product.price)}",
    ]

    about = []
    if product.supplier and product.supplier.name:
        about.append(f"**Supplier:** {product.supplier.name} (ID: {product.supplier.id})")
    if _features(product):
        about.append(f"**Features:** {', '.join(_features(product))}")
    if about:
        parts.append("\n".join(about))
    if product.description:
        parts.append(f"**Description:**\n{product.description}")

    looks = []
    if product.colors:
        looks.append(f"**Available Colors:** {', '.join(product.colors)}")
    if product.themes:
        looks.append(f"**Themes:** {', '.join(product.themes)}")
    if looks:
        parts.append("\n".join(looks))

    if product.price_breaks:
        breaks = "\n".join(
            f"- {pb.qty}+ units: {_price(pb.price) if pb.price else 'Contact for pricing'} each"
            for pb in product.price_breaks
        )
        parts.append(f"**Quantity Pricing:**\n{breaks}")

    # Two option groups, three values each
    for option in product.options[:2]:
        values = "\n".join(
            f"- {v.value}: {_price(v.price) if v.price else 'Contact for pricing'}"
            for v in option.values[:3]
        )
        parts.append(f"**{option.name} Options:**\n{values}")

    specs = [
        ("Decoration Methods", ", ".join(product.decoration_methods)),
        ("Keywords", product.keywords),
        ("Compliance", product.compliance),
        ("Comments", product.comment),
        ("Production Time", product.production_time),
        ("Weight", product.weight),
        ("Dimensions", product.dimensions),
        ("Imprint Area", product.imprint_area),
        ("Price Includes", product.price_includes),
        ("Packaging", product.packaging),
        ("Units per Carton", product.units_per_carton),
        ("Stock Available", f"{product.on_hand} units" if product.on_hand else None),
    ]
    spec_lines = [f"**{label}:** {value}" for label, value in specs if value]
    if spec_lines:
        parts.append("\n".join(spec_lines))

    if len(product.images) > 1:
        extra = "\n".join(
            f"Image {i}: {url}" for i, url in enumerate(product.images[1:4], start=2)
        )
        parts.append(f"**Additional Images:**\n{extra}")

    parts.append("---\n_Use check_inventory to see current stock levels for this product._")
    return "\n\n".join(parts)


@register_tool(
    "get_product_detail",
    description="Get full details for one catalog product: description, pricing, options, "
    "decoration and images. Use the numeric product ID from search results.",
    input_model=ProductIdInput,
)
def get_product_detail(params: ProductIdInput, context: ToolContext) -> str:
    product_id = validate_product_id(params.product_id)
    client = get_sage_client()
    context.report_status(f"is getting details for product {product_id}...")

    product = client.get_product_detail(product_id)
    if product is None:
        return f'Product with ID "{product_id}" not found. Check the product ID and try again.'
    return format_detail(product)


@register_tool(
    "check_inventory",
    description="Check current stock levels for a catalog product by its numeric product ID.",
    input_model=ProductIdInput,
)
def check_inventory(params: ProductIdInput, context: ToolContext) -> str:
    product_id = validate_product_id(params.product_id)
    client = get_sage_client()
    context.report_status(f"is checking inventory for product {product_id}...")

    status = client.check_inventory(product_id)
    if not status.items:
        return (
            f'No inventory information available for product "{product_id}". The product may be '
            "discontinued or not yet available."
        )

    lines = []
    for item in status.items:
        line = f"**{item.sku or 'Item'}:** "
        line += f"{item.available} available" if item.available > 0 else "Out of stock"
        if item.reserved > 0:
            line += f" ({item.reserved} reserved)"
        if item.on_order > 0:
            line += f" | {item.on_order} on order"
        if item.expected_date:
            line += f" | Expected: {item.expected_date}"
        if item.warehouse:
            line += f" | Warehouse: {item.warehouse}"
        lines.append(line)

    total_available = sum(item.available for item in status.items)
    total_on_order = sum(item.on_order for item in status.items)
    return (
        f"**Inventory Status for Product {product_id}**\n\n"
        f"- Total Available: {total_available} units\n"
        f"- Total On Order: {total_on_order} units\n"
        f"- Last Updated: {status.last_updated}\n\n"
        "**Detailed Inventory:**\n" + "\n".join(lines)
    )


# ---------------------------------------------------------------------------
# get_categories
# ---------------------------------------------------------------------------
@register_tool(
    "get_categories",
    description="List the catalog's main product categories and themes, useful for refining "
    "product searches.",
    input_model=EmptyInput,
)
def get_categories(params: EmptyInput, context: ToolContext) -> str:
    client = get_sage_client()
    context.report_status("is retrieving product categories and themes...")

    listing = client.get_categories()
    if not listing.categories:
        return "No categories or themes available at this time. Please try again later."

    top_level = [cat for cat in listing.categories if not cat.parent_id]
    categories = "\n".join(f"- {cat.name}" for cat in top_level[:MAX_CATEGORIES])
    if len(top_level) > MAX_CATEGORIES:
        categories += f"\n_...and {len(top_level) - MAX_CATEGORIES} more categories_"

    if listing.themes:
        themes = "\n".join(f"- {theme}" for theme in listing.themes[:MAX_THEMES])
        if len(listing.themes) > MAX_THEMES:
            themes += f"\n_...and {len(listing.themes) - MAX_THEMES} more themes_"
    else:
        themes = "No specific themes available"

    return (
        "**Available Product Categories & Themes**\n\n"
        f"**Main Product Categories:**\n{categories}\n\n"
        f"**Popular Themes:**\n{themes}\n\n"
        "---\n_Use these categories and themes in product searches for better results._"
    )

"""
SAGE Connect promotional-product catalog client.

Every SAGE service is a JSON ``POST`` to a single endpoint, authenticated in the body.  The
catalog returns loosely shaped data: prices may be a number, a string such as ``"1.73 - 2.13"``
or a per-quantity list, and colors/themes may be a comma string or a list.  All of that is
normalized here, once, into the models below so tools only ever see one shape.
"""

import logging
import re
from datetime import (
    datetime,
    timezone,
)
from typing import (
    Any,
    Dict,
    List,
    Optional,
)

import httpx
from pydantic import (
    BaseModel,
    Field,
)

from brandassist.config import Settings
from brandassist.core.errors import (
    ToolConfigurationError,
    ToolValidationError,
    UpstreamError,
    upstream_failure,
)

logger = logging.getLogger(__name__)

SERVICE_CATEGORIES = 101
SERVICE_PRODUCT_SEARCH = 103
SERVICE_PRODUCT_DETAIL = 105
SERVICE_INVENTORY = 107

_PRODUCT_ID_RE = re.compile(r"^\d+$")

SAGE_ERRORS: Dict[int, str] = {
    10001: "General system error",
    10002: "Service not available right now. Please try back shortly.",
    10003: "Invalid host. The host part of your URL must be www.promoplace.com.",
    10004: "The Connect API requires that requests be sent via SSL encryption.",
    10005: "No post content found. Make sure you are using POST.",
    10006: "Invalid or missing API version. Check your JSON data structure.",
    10007: "Invalid account number in AcctID field.",
    10008: "Incorrect AcctID, LoginID or Token. Please check your credentials.",
    10009: "Invalid service ID. Please check the documentation.",
    10010: "The requested service is not currently enabled.",
    10011: "An Advantage Membership is required for suppliers to access SAGE Connect API.",
    10012: "A SAGE Workplace subscription is required to access SAGE Connect API.",
    10013: "This user has reached the paid query limit for this month.",
    10501: "Product detail service unavailable or product not found. Try using the numeric "
    "Product ID instead of SPC code.",
    10701: "Inventory service unavailable. Stock information may not be accessible at this time.",
}


def describe_sage_error(err_num: int) -> str:
    return SAGE_ERRORS.get(err_num, f"Unknown Sage Connect error: {err_num}")


# ---------------------------------------------------------------------------
# Normalized models
# ---------------------------------------------------------------------------
class Supplier(BaseModel):
    name: str = ""
    id: str = ""


class PriceBreak(BaseModel):
    """Unit price from a minimum quantity upwards."""

    qty: int
    price: Optional[str] = None


class OptionValue(BaseModel):
    value: str
    price: Optional[str] = None


class ProductOption(BaseModel):
    name: str
    values: List[OptionValue] = Field(default_factory=list)


class Product(BaseModel):
    """One search hit."""

    product_id: str
    spc: str = ""
    name: str = "Promotional Product"
    category: str = "General"
    price: Optional[str] = None
    colors: List[str] = Field(default_factory=list)
    themes: List[str] = Field(default_factory=list)
    supplier: Optional[Supplier] = None
    verified: bool = False
    env_friendly: bool = False
    thumbnail_url: Optional[str] = None


class ProductDetail(Product):
    """Full product record from the detail service."""

    item_num: Optional[str] = None
    description: Optional[str] = None
    keywords: Optional[str] = None
    compliance: Optional[str] = None
    comment: Optional[str] = None
    price_breaks: List[PriceBreak] = Field(default_factory=list)
    options: List[ProductOption] = Field(default_factory=list)
    decoration_methods: List[str] = Field(default_factory=list)
    production_time: Optional[str] = None
    weight: Optional[str] = None
    dimensions: Optional[str] = None
    imprint_area: Optional[str] = None
    price_includes: Optional[str] = None
    packaging: Optional[str] = None
    units_per_carton: Optional[str] = None
    on_hand: Optional[str] = None
    images: List[str] = Field(default_factory=list)


class ProductSearchResult(BaseModel):
    products: List[Product] = Field(default_factory=list)
    total_found: int = 0


class InventoryItem(BaseModel):
    sku: str = ""
    available: int = 0
    reserved: int = 0
    on_order: int = 0
    expected_date: Optional[str] = None
    warehouse: Optional[str] = None


class InventoryStatus(BaseModel):
    product_id: str
    items: List[InventoryItem] = Field(default_factory=list)
    last_updated: str


class Category(BaseModel):
    id: str = ""
    name: str
    parent_id: Optional[str] = None


class CategoryListing(BaseModel):
    categories: List[Category] = Field(default_factory=list)
    themes: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Shape normalization
# ---------------------------------------------------------------------------
def _text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def normalize_price(value: Any) -> Optional[str]:
    """
    Render a catalog price as display text without the currency sign.

    Numbers are formatted with two decimals, strings (including ranges) are kept as-is and a
    list is collapsed to its lowest-to-highest range.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return f"{value:.2f}"
    if isinstance(value, (list, tuple)):
        amounts = []
        for item in value:
            try:
                amounts.append(float(str(item).strip().lstrip("$")))
            except ValueError:
                continue
        if not amounts:
            prices = [p for p in (normalize_price(v) for v in value) if p]
            return prices[0] if prices else None
        low, high = min(amounts), max(amounts)
        if low == high:
            return f"{low:.2f}"
        return f"{low:.2f} - {high:.2f}"
    return str(value).strip() or None


def normalize_list(value: Any) -> List[str]:
    """Turn a comma string or a list into a list of non-empty strings."""
    if not value:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(v) for v in value]
    else:
        items = [str(value)]
    return [item.strip() for item in items if item and item.strip()]


def _normalize_supplier(raw: Any) -> Optional[Supplier]:
    if not isinstance(raw, dict):
        return None
    return Supplier(name=str(raw.get("coName") or ""), id=str(raw.get("coId") or ""))


def normalize_product(raw: Dict[str, Any]) -> Product:
    """Map a raw search hit to :class:`Product`."""
    return Product(
        product_id=str(raw.get("prodEId") or raw.get("spc") or ""),
        spc=raw.get("spc") or "",
        name=raw.get("name") or raw.get("prName") or "Promotional Product",
        category=raw.get("category") or "General",
        price=normalize_price(raw.get("prc")),
        colors=normalize_list(raw.get("colors")),
        themes=normalize_list(raw.get("themes")),
        supplier=_normalize_supplier(raw.get("supplier")),
        verified=bool(raw.get("verified")),
        env_friendly=bool(raw.get("envFriendly")),
        thumbnail_url=raw.get("thumbPic"),
    )


def _price_breaks(raw: Dict[str, Any]) -> List[PriceBreak]:
    quantities, prices = raw.get("qty"), raw.get("prc")
    if not isinstance(quantities, list) or not isinstance(prices, list):
        return []
    breaks = []
    for index, qty in enumerate(quantities):
        try:
            qty_value = int(qty)
        except (TypeError, ValueError):
            continue
        if qty_value <= 0:
            continue
        price = prices[index] if index < len(prices) else None
        breaks.append(PriceBreak(qty=qty_value, price=normalize_price(price)))
    return breaks


def _options(raw: Dict[str, Any]) -> List[ProductOption]:
    options = []
    for option in raw.get("options") or []:
        if not isinstance(option, dict):
            continue
        values = []
        for value in option.get("values") or []:
            if not isinstance(value, dict):
                continue
            prices = value.get("prc")
            first = prices[0] if isinstance(prices, list) and prices else prices
            values.append(
                OptionValue(value=str(value.get("value", "")), price=normalize_price(first))
            )
        options.append(ProductOption(name=str(option.get("name", "Option")), values=values))
    return options


def _images(raw: Dict[str, Any]) -> List[str]:
    pics = [p for p in raw.get("pics") or [] if isinstance(p, dict) and p.get("url")]
    # Prefer a blank (logo-free) picture first
    pics.sort(key=lambda pic: bool(pic.get("hasLogo")))
    return [pic["url"] for pic in pics]


def normalize_detail(raw: Dict[str, Any], product_id: str) -> ProductDetail:
    """Map a raw detail record (service 105) to :class:`ProductDetail`."""
    data = raw.get("product") if isinstance(raw.get("product"), dict) else raw
    base = normalize_product(data)
    breaks = _price_breaks(data)
    base_price = base.price
    if isinstance(data.get("prc"), list):
        base_price = breaks[0].price if breaks else None

    decoration = normalize_list(data.get("decorationMethod")) or normalize_list(
        data.get("decorationMethods")
    )
    weight = _text(data.get("weightPerCarton"))
    return ProductDetail(
        **base.model_dump(exclude={"product_id", "price"}),
        product_id=str(data.get("prodEId") or product_id),
        price=base_price,
        item_num=_text(data.get("itemNum")),
        description=_text(data.get("description")),
        keywords=_text(data.get("keywords")),
        compliance=_text(data.get("productCompliance")),
        comment=_text(data.get("comment")),
        price_breaks=breaks,
        options=_options(data),
        decoration_methods=decoration,
        production_time=_text(data.get("prodTime") or data.get("leadTime")),
        weight=f"{weight} lbs per carton" if weight else _text(data.get("weight")),
        dimensions=_text(data.get("dimensions")),
        imprint_area=_text(data.get("imprintArea")),
        price_includes=_text(data.get("priceIncludes")),
        packaging=_text(data.get("package")),
        units_per_carton=_text(data.get("unitsPerCarton")),
        on_hand=_text(data.get("onHand")),
        images=_images(data),
    )


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def normalize_inventory(raw: Dict[str, Any], product_id: str) -> InventoryStatus:
    items = [
        InventoryItem(
            sku=str(item.get("sku") or ""),
            available=_int(item.get("available")),
            reserved=_int(item.get("reserved")),
            on_order=_int(item.get("onOrder")),
            expected_date=_text(item.get("expectedDate")),
            warehouse=_text(item.get("warehouse")),
        )
        for item in raw.get("inventory") or []
        if isinstance(item, dict)
    ]
    return InventoryStatus(
        product_id=product_id,
        items=items,
        last_updated=raw.get("lastUpdated") or datetime.now(timezone.utc).isoformat(),
    )


def normalize_categories(raw: Dict[str, Any]) -> CategoryListing:
    categories = []
    for cat in raw.get("categories") or []:
        if isinstance(cat, str):
            categories.append(Category(name=cat))
        elif isinstance(cat, dict) and cat.get("name"):
            categories.append(
                Category(
                    id=str(cat.get("id") or ""),
                    name=str(cat["name"]),
                    parent_id=_text(cat.get("parentId")),
                )
            )
    return CategoryListing(categories=categories, themes=normalize_list(raw.get("themes")))


# ---------------------------------------------------------------------------
# Request validation
# ---------------------------------------------------------------------------
def validate_search(criteria: Dict[str, Any]) -> None:
    """
    Check search criteria before calling the catalog.

    Raises
    ------
    ToolValidationError
        If no criterion is set, the price range is inverted or the quantity is not positive.
    """
    if not criteria:
        raise ToolValidationError(
            "Invalid search request: Search criteria cannot be empty",
            "Provide at least one of keywords, categories, colors, themes, a price range or a "
            "quantity.",
        )
    low, high = criteria.get("priceLow"), criteria.get("priceHigh")
    if low is not None and high is not None and low > high:
        raise ToolValidationError(
            "Invalid search request: Price low cannot be greater than price high"
        )
    qty = criteria.get("qty")
    if qty is not None and qty <= 0:
        raise ToolValidationError("Invalid search request: Quantity must be positive")


def validate_product_id(product_id: str) -> str:
    """Return the stripped id, or raise if it is not a numeric prodEId."""
    product_id = product_id.strip()
    if not _PRODUCT_ID_RE.match(product_id):
        raise ToolValidationError(
            f'Please use the numeric Product ID (prodEId) like "783712495", not the SPC code '
            f'"{product_id}". You can find the numeric ID in the search results.'
        )
    return product_id


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------
class SageConnectClient:
    """Client for the SAGE Connect JSON API."""

    SERVICE_NAME = "Sage Connect"

    def __init__(
        self,
        api_url: str,
        account_id: str,
        login_id: str,
        api_key: str,
        api_version: int = 130,
        http: httpx.Client | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.api_url = api_url
        self.account_id = account_id
        self.login_id = login_id
        self._api_key = api_key
        self.api_version = api_version
        self._http = http or httpx.Client(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SageConnectClient":
        required = {
            "SAGE_API_URL": settings.SAGE_API_URL,
            "SAGE_ACCOUNT_ID": settings.SAGE_ACCOUNT_ID,
            "SAGE_LOGIN_ID": settings.SAGE_LOGIN_ID,
            "SAGE_API_KEY": settings.SAGE_API_KEY,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ToolConfigurationError(
                "Sage Connect is not configured.",
                f"Missing required Sage Connect environment variables: {', '.join(missing)}",
            )
        return cls(
            api_url=settings.SAGE_API_URL,
            account_id=settings.SAGE_ACCOUNT_ID,
            login_id=settings.SAGE_LOGIN_ID,
            api_key=settings.SAGE_API_KEY,
            api_version=settings.SAGE_API_VERSION,
            timeout=settings.HTTP_TIMEOUT,
        )

    def _request(self, service_id: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            acct_id: int | str = int(self.account_id)
        except ValueError:
            acct_id = self.account_id
        body = {
            "serviceId": service_id,
            "apiVer": self.api_version,
            "auth": {"acctId": acct_id, "loginId": self.login_id, "key": self._api_key},
            **payload,
        }
        logger.debug("Sage Connect request: service=%d payload=%s", service_id, payload)

        try:
            resp = self._http.post(
                self.api_url,
                json=body,
                headers={"Content-Type": "application/json; charset=utf-8"},
            )
            resp.raise_for_status()
            result = resp.json()
        except httpx.HTTPError as exc:
            logger.warning("Sage Connect service %d failed: %s", service_id, exc)
            raise upstream_failure(self.SERVICE_NAME, exc) from exc
        except ValueError as exc:
            raise UpstreamError("Sage Connect returned a response that is not JSON.") from exc

        err_num = result.get("errNum") if isinstance(result, dict) else None
        if err_num:
            logger.warning("Sage Connect service %d error %s", service_id, err_num)
            raise UpstreamError(f"Sage Connect Error {err_num}: {describe_sage_error(err_num)}")
        return result if isinstance(result, dict) else {}

    # ------------------------------------------------------------------ #
    # Services
    # ------------------------------------------------------------------ #
    def search_products(self, criteria: Dict[str, Any], limit: int = 25) -> ProductSearchResult:
        """Service 103: product search.  *criteria* uses the API's camelCase keys."""
        validate_search(criteria)
        raw = self._request(
            SERVICE_PRODUCT_SEARCH,
            {
                "search": criteria,
                "resultOptions": {"limit": limit, "offset": 0, "sortBy": "relevance"},
            },
        )
        products = [normalize_product(p) for p in raw.get("products") or [] if isinstance(p, dict)]
        return ProductSearchResult(
            products=products, total_found=_int(raw.get("totalFound")) or len(products)
        )

    def get_product_detail(self, product_id: str) -> Optional[ProductDetail]:
        """Service 105: full product detail for a numeric prodEId, ``None`` if unknown."""
        product_id = validate_product_id(product_id)
        raw = self._request(
            SERVICE_PRODUCT_DETAIL,
            {
                "prodEId": int(product_id),
                "includeImages": True,
                "includeSpecs": True,
                "includePricing": True,
            },
        )
        data = raw.get("product") if isinstance(raw.get("product"), dict) else raw
        if not (data.get("name") or data.get("prName")):
            return None
        return normalize_detail(raw, product_id)

    def check_inventory(self, product_id: str) -> InventoryStatus:
        """Service 107: stock levels."""
        product_id = validate_product_id(product_id)
        raw = self._request(SERVICE_INVENTORY, {"productId": product_id})
        return normalize_inventory(raw, product_id)

    def get_categories(self) -> CategoryListing:
        """Service 101: category and theme lists."""
        return normalize_categories(self._request(SERVICE_CATEGORIES, {"includeThemes": True}))

"""SAGE Connect client, normalization and product tools."""

import json

import httpx
import pytest
from conftest import mock_http

from brandassist.config import Settings
from brandassist.core.errors import (
    ToolConfigurationError,
    ToolValidationError,
    UpstreamError,
)
from brandassist.integrations.sage_connect import (
    SageConnectClient,
    normalize_categories,
    normalize_detail,
    normalize_list,
    normalize_price,
    validate_search,
)
from brandassist.tools import (
    EmptyInput,
    products,
)
from brandassist.tools.products import (
    ProductIdInput,
    ProductSearchInput,
)


class SageStub:
    """Answers by serviceId; records request bodies."""

    def __init__(self, by_service):
        self.by_service = by_service
        self.bodies = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.bodies.append(body)
        return httpx.Response(200, json=self.by_service[body["serviceId"]])


def _client(stub) -> SageConnectClient:
    return SageConnectClient("https://sage.test/api", "4242", "login", "secret", http=mock_http(stub))


@pytest.fixture
def install(monkeypatch):
    def _install(by_service):
        stub = SageStub(by_service)
        monkeypatch.setattr(products, "get_sage_client", lambda: _client(stub))
        return stub

    return _install


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------
def test_normalize_price_shapes() -> None:
    assert normalize_price(4.5) == "4.50"
    assert normalize_price("1.73 - 2.13") == "1.73 - 2.13"
    assert normalize_price([2.13, 1.95, 1.73]) == "1.73 - 2.13"
    assert normalize_price([3, 3]) == "3.00"
    assert normalize_price(None) is None
    assert normalize_price([]) is None


def test_normalize_price_list_order_does_not_matter() -> None:
    assert normalize_price([1.73, 1.95, 2.13]) == "1.73 - 2.13"
    assert normalize_price(["2.10", "$0.99", None, ""]) == "0.99 - 2.10"
    assert normalize_price(["call", "ask"]) == "call"


def test_normalize_list() -> None:
    assert normalize_list("Red, Blue ,") == ["Red", "Blue"]
    assert normalize_list(["Eco", ""]) == ["Eco"]
    assert normalize_list(None) == []


def test_normalize_detail() -> None:
    raw = {
        "product": {
            "prodEId": 503406121,
            "prName": "Bamboo Pen",
            "qty": [100, 250, 0],
            "prc": [1.25, 1.05, 0],
            "colors": "Natural, Black",
            "decorationMethod": "Laser engraving",
            "weightPerCarton": 12,
            "pics": [
                {"url": "https://img.test/logo.jpg", "hasLogo": 1},
                {"url": "https://img.test/blank.jpg", "hasLogo": 0},
            ],
        }
    }
    detail = normalize_detail(raw, "503406121")

    assert detail.name == "Bamboo Pen"
    assert [(pb.qty, pb.price) for pb in detail.price_breaks] == [(100, "1.25"), (250, "1.05")]
    assert detail.price == "1.25"
    assert detail.colors == ["Natural", "Black"]
    assert detail.decoration_methods == ["Laser engraving"]
    assert detail.weight == "12 lbs per carton"
    assert detail.images == ["https://img.test/blank.jpg", "https://img.test/logo.jpg"]


def test_normalize_categories() -> None:
    listing = normalize_categories(
        {"categories": ["Bags", {"id": 7, "name": "Totes", "parentId": 1}, {"id": 8}], "themes": "Eco,Fun"}
    )
    assert [c.name for c in listing.categories] == ["Bags", "Totes"]
    assert listing.categories[1].parent_id == "1"
    assert listing.themes == ["Eco", "Fun"]


def test_validate_search() -> None:
    with pytest.raises(ToolValidationError, match="cannot be empty"):
        validate_search({})
    with pytest.raises(ToolValidationError, match="Price low cannot be greater"):
        validate_search({"priceLow": 5, "priceHigh": 2})
    validate_search({"keywords": "pen", "priceLow": 1, "priceHigh": 2})


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------
def test_client_request_envelope() -> None:
    stub = SageStub({103: {"products": [], "totalFound": 0}})
    _client(stub).search_products({"keywords": "mug"}, limit=7)

    body = stub.bodies[0]
    assert body["serviceId"] == 103
    assert body["apiVer"] == 130
    assert body["auth"] == {"acctId": 4242, "loginId": "login", "key": "secret"}
    assert body["search"] == {"keywords": "mug"}
    assert body["resultOptions"]["limit"] == 7


def test_client_error_number() -> None:
    stub = SageStub({107: {"errNum": 10008, "errMsg": "bad auth"}})
    with pytest.raises(UpstreamError, match="Sage Connect Error 10008: Incorrect AcctID"):
        _client(stub).check_inventory("123")


def test_client_missing_settings() -> None:
    with pytest.raises(ToolConfigurationError) as info:
        SageConnectClient.from_settings(
            Settings(SAGE_API_URL="https://x", SAGE_ACCOUNT_ID=None, SAGE_LOGIN_ID=None, SAGE_API_KEY="k")
        )
    assert "SAGE_ACCOUNT_ID, SAGE_LOGIN_ID" in info.value.hint


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------
def test_search_products_text_and_blocks(install, context, workspace) -> None:
    install(
        {
            103: {
                "totalFound": 42,
                "products": [
                    {
                        "prodEId": 551,
                        "spc": "ABC-1",
                        "name": "Bamboo Bottle",
                        "prc": "8.99",
                        "envFriendly": 1,
                        "supplier": {"coName": "GreenCo", "coId": 9},
                        "thumbPic": "https://img.test/551.jpg",
                    }
                ],
            }
        }
    )
    output = products.search_products(
        ProductSearchInput(keywords="bottle", priceLow=5, priceHigh=10), context
    )

    assert output.text.startswith(
        '*Found 42 promotional products* for "bottle" in $5.0-10.0 range\n\nShowing top 1 results:'
    )
    assert "*ID:* 551 | *SPC:* ABC-1" in output.text
    assert "*Price:* $8.99 by GreenCo (Eco-Friendly)" in output.text
    assert output.blocks[1]["accessory"]["image_url"] == "https://img.test/551.jpg"
    assert output.blocks[-1]["type"] == "context"
    assert workspace.statuses == ['is searching promotional products for "bottle"...']


def test_search_products_no_results(install, context) -> None:
    install({103: {"products": []}})
    output = products.search_products(ProductSearchInput(keywords="unobtainium"), context)
    assert output.text.startswith("No promotional products found matching your criteria.")
    assert output.blocks is None


def test_search_products_without_criteria(install, context) -> None:
    install({103: {"products": []}})
    with pytest.raises(ToolValidationError):
        products.search_products(ProductSearchInput(), context)


def test_product_detail_rejects_spc(install, context) -> None:
    stub = install({105: {}})
    with pytest.raises(ToolValidationError, match="numeric Product ID"):
        products.get_product_detail(ProductIdInput(productId="ABC-1"), context)
    assert stub.bodies == []


def test_product_detail_not_found(install, context) -> None:
    install({105: {"product": {}}})
    text = products.get_product_detail(ProductIdInput(productId="999"), context)
    assert text == 'Product with ID "999" not found. Check the product ID and try again.'


def test_product_detail(install, context) -> None:
    stub = install(
        {105: {"product": {"prodEId": 551, "name": "Bamboo Bottle", "description": "Keeps cold."}}}
    )
    text = products.get_product_detail(ProductIdInput(productId=" 551 "), context)

    assert stub.bodies[0]["prodEId"] == 551
    assert text.startswith("**Bamboo Bottle**")
    assert "**Description:**\nKeeps cold." in text
    assert text.endswith("_Use check_inventory to see current stock levels for this product._")


def test_check_inventory(install, context) -> None:
    install(
        {
            107: {
                "lastUpdated": "2025-04-01T00:00:00Z",
                "inventory": [
                    {"sku": "BB-BLU", "available": 120, "reserved": 10, "warehouse": "CA"},
                    {"sku": "BB-GRN", "available": 0, "onOrder": 500, "expectedDate": "2025-05-01"},
                ],
            }
        }
    )
    text = products.check_inventory(ProductIdInput(productId="551"), context)

    assert "- Total Available: 120 units" in text
    assert "- Total On Order: 500 units" in text
    assert "**BB-BLU:** 120 available (10 reserved) | Warehouse: CA" in text
    assert "**BB-GRN:** Out of stock | 500 on order | Expected: 2025-05-01" in text


def test_check_inventory_empty(install, context) -> None:
    install({107: {"inventory": []}})
    text = products.check_inventory(ProductIdInput(productId="551"), context)
    assert text.startswith('No inventory information available for product "551".')


def test_get_categories(install, context) -> None:
    install(
        {
            101: {
                "categories": [{"id": i, "name": f"Cat {i}"} for i in range(20)]
                + [{"id": 99, "name": "Child", "parentId": 1}],
                "themes": ["Eco"],
            }
        }
    )
    text = products.get_categories(EmptyInput(), context)

    assert "- Cat 14" in text
    assert "- Cat 15" not in text
    assert "- Child" not in text
    assert "_...and 5 more categories_" in text
    assert "**Popular Themes:**\n- Eco" in text

"""
Shopify Admin GraphQL integration.

Thin transport for the catalog operations the importer needs:
create a product (plus media, variants and sales-channel publishing) and
update a previously imported product. User errors returned by the API and
transport failures are raised as CatalogAPIError.
"""

from typing import Any, Optional

import requests
import structlog

from config import settings
from exceptions import CatalogAPIError
from models.product import Product
from utils.money import to_money_string

logger = structlog.get_logger(__name__)


# ===================
# GRAPHQL DOCUMENTS
# ===================

PRODUCT_CREATE = """
mutation productCreate($input: ProductInput!) {
  productCreate(input: $input) {
    product { id title status descriptionHtml }
    userErrors { field message }
  }
}
"""

PRODUCT_UPDATE = """
mutation productUpdate($input: ProductInput!) {
  productUpdate(input: $input) {
    product { id title handle status }
    userErrors { field message }
  }
}
"""

PRODUCT_VARIANTS = """
query getProductVariants($productId: ID!) {
  product(id: $productId) {
    variants(first: 10) {
      edges { node { id sku price } }
    }
  }
}
"""

VARIANTS_BULK_CREATE = """
mutation productVariantsBulkCreate(
  $productId: ID!,
  $variants: [ProductVariantsBulkInput!]!,
  $strategy: ProductVariantsBulkCreateStrategy
) {
  productVariantsBulkCreate(productId: $productId, variants: $variants, strategy: $strategy) {
    productVariants { id title price }
    userErrors { field message }
  }
}
"""

VARIANTS_BULK_UPDATE = """
mutation productVariantsBulkUpdate($productId: ID!, $variants: [ProductVariantsBulkInput!]!) {
  productVariantsBulkUpdate(productId: $productId, variants: $variants) {
    product { id }
    productVariants { id sku price barcode }
    userErrors { field message }
  }
}
"""

PRODUCT_CREATE_MEDIA = """
mutation productCreateMedia($productId: ID!, $media: [CreateMediaInput!]!) {
  productCreateMedia(productId: $productId, media: $media) {
    media { id }
    mediaUserErrors { field message }
  }
}
"""

PUBLICATIONS = """
query {
  publications(first: 10) {
    edges { node { id name } }
  }
}
"""

PUBLISHABLE_PUBLISH = """
mutation publishablePublish($id: ID!, $input: [PublicationInput!]!) {
  publishablePublish(id: $id, input: $input) {
    publishable { ... on Product { id title } }
    userErrors { field message }
  }
}
"""


# ===================
# INPUT BUILDERS
# ===================

def product_input(product: Product, product_id: Optional[str] = None) -> dict:
    """ProductInput for create (no id) or update (with id)."""
    data = {
        "title": product.title,
        "descriptionHtml": product.description_html,
        "vendor": product.vendor,
        "productType": product.product_type,
        "tags": list(product.tags),
        "status": product.status.value,
    }
    if product_id:
        data = {"id": product_id, **data}
    return data


def variant_inputs(product: Product) -> list[dict]:
    """ProductVariantsBulkInput list; prices always two-decimal strings."""
    inputs = []
    for variant in product.variants:
        data: dict[str, Any] = {
            "price": to_money_string(variant.price),
            "inventoryItem": {"sku": variant.sku},
            "optionValues": [{"optionName": "Title", "name": product.title or "Default"}],
        }
        if variant.compare_at_price:
            data["compareAtPrice"] = to_money_string(variant.compare_at_price)
        if variant.barcode:
            data["barcode"] = variant.barcode
        inputs.append(data)
    return inputs


def image_urls(product: Product) -> list[str]:
    """Distinct, non-blank variant image URLs in variant order."""
    urls: list[str] = []
    for variant in product.variants:
        url = (variant.image_url or "").strip()
        if url and url not in urls:
            urls.append(url)
    return urls


def _user_errors(payload: Optional[dict], key: str = "userErrors") -> list[dict]:
    return list((payload or {}).get(key) or [])


class ShopifyCatalogClient:
    """
    Shopify Admin GraphQL client for one shop.

    Usage:
        client = ShopifyCatalogClient("my-store.myshopify.com", "shpat_...")
        created = client.create_product(product)
    """

    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None
    ):
        self.shop_domain = shop_domain
        self.api_version = api_version or settings.shopify_api_version
        self.timeout = timeout or settings.shopify_request_timeout_seconds
        self.endpoint = f"https://{shop_domain}/admin/api/{self.api_version}/graphql.json"
        self.session = session or requests.Session()
        self.session.headers.update({
            "X-Shopify-Access-Token": access_token,
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

    def execute(self, operation: str, query: str, variables: Optional[dict] = None) -> dict:
        """
        Run a GraphQL document and return its "data" object.

        Raises:
            CatalogAPIError: On transport failure, non-2xx status or
                top-level GraphQL errors
        """
        try:
            response = self.session.post(
                self.endpoint,
                json={"query": query, "variables": variables or {}},
                timeout=self.timeout
            )
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as e:
            logger.error("shopify_request_failed", operation=operation, error=str(e))
            raise CatalogAPIError(operation, f"Shopify request failed: {e}") from e
        except ValueError as e:
            raise CatalogAPIError(operation, "Shopify returned invalid JSON") from e

        if body.get("errors"):
            errors = body["errors"]
            message = errors[0].get("message", "GraphQL error") if isinstance(errors, list) else str(errors)
            raise CatalogAPIError(operation, message)

        return body.get("data") or {}

    # ===================
    # CREATE PATH
    # ===================

    def create_product(self, product: Product) -> dict:
        """
        Create the product shell.

        Returns:
            {"id", "title", "status", ...}

        Raises:
            CatalogAPIError: On user errors or a missing product
        """
        data = self.execute("productCreate", PRODUCT_CREATE, {"input": product_input(product)})
        payload = data.get("productCreate") or {}
        errors = _user_errors(payload)
        if errors:
            raise CatalogAPIError("productCreate", errors[0].get("message", "Product creation failed"), errors)

        created = payload.get("product")
        if not created:
            raise CatalogAPIError("productCreate", "Product creation failed")

        logger.info("shopify_product_created", product_id=created["id"], title=created.get("title"))
        return created

    def create_variants(self, product_id: str, product: Product) -> list[dict]:
        """
        Create the product's variants, replacing the default standalone one.

        Raises:
            CatalogAPIError: On user errors
        """
        data = self.execute("productVariantsBulkCreate", VARIANTS_BULK_CREATE, {
            "productId": product_id,
            "variants": variant_inputs(product),
            "strategy": "REMOVE_STANDALONE_VARIANT",
        })
        payload = data.get("productVariantsBulkCreate") or {}
        errors = _user_errors(payload)
        if errors:
            raise CatalogAPIError(
                "productVariantsBulkCreate",
                errors[0].get("message", "Variant creation failed"),
                errors
            )
        variants = payload.get("productVariants") or []
        logger.info("shopify_variants_created", product_id=product_id, count=len(variants))
        return variants

    def create_media(self, product_id: str, urls: list[str]) -> int:
        """
        Attach images by URL.

        Returns:
            Number of media items created

        Raises:
            CatalogAPIError: On user errors
        """
        if not urls:
            return 0
        media = [{"originalSource": url, "mediaContentType": "IMAGE"} for url in urls]
        data = self.execute("productCreateMedia", PRODUCT_CREATE_MEDIA, {
            "productId": product_id,
            "media": media,
        })
        payload = data.get("productCreateMedia") or {}
        errors = _user_errors(payload, "mediaUserErrors")
        if errors:
            raise CatalogAPIError("productCreateMedia", errors[0].get("message", "Media creation failed"), errors)
        return len(payload.get("media") or [])

    def publish_to_all_channels(self, product_id: str) -> int:
        """
        Publish a product to every available sales channel.

        Failures for individual channels are logged and skipped.

        Returns:
            Number of channels the product was published to

        Raises:
            CatalogAPIError: If the publication list cannot be read
        """
        data = self.execute("publications", PUBLICATIONS)
        edges = (data.get("publications") or {}).get("edges") or []
        publications = [edge["node"] for edge in edges if edge.get("node")]

        published = 0
        for publication in publications:
            try:
                result = self.execute("publishablePublish", PUBLISHABLE_PUBLISH, {
                    "id": product_id,
                    "input": [{"publicationId": publication["id"]}],
                })
            except CatalogAPIError as e:
                logger.warning(
                    "shopify_publish_failed",
                    product_id=product_id,
                    publication=publication.get("name"),
                    error=e.message
                )
                continue

            payload = result.get("publishablePublish") or {}
            errors = _user_errors(payload)
            if payload.get("publishable") and not errors:
                published += 1
            else:
                logger.warning(
                    "shopify_publish_rejected",
                    product_id=product_id,
                    publication=publication.get("name"),
                    user_errors=errors
                )

        logger.info(
            "shopify_product_published",
            product_id=product_id,
            published=published,
            channels=len(publications)
        )
        return published

    # ===================
    # UPDATE PATH
    # ===================

    def update_product(self, product_id: str, product: Product) -> dict:
        """
        Update a previously imported product and, best effort, its first
        variant (price, SKU, barcode).

        Returns:
            {"id", "title", ...}

        Raises:
            CatalogAPIError: If the product update itself fails
        """
        data = self.execute("productUpdate", PRODUCT_UPDATE, {"input": product_input(product, product_id)})
        payload = data.get("productUpdate") or {}
        errors = _user_errors(payload)
        if errors:
            raise CatalogAPIError("productUpdate", errors[0].get("message", "Product update failed"), errors)

        updated = payload.get("product")
        if not updated:
            raise CatalogAPIError("productUpdate", "Failed to update product")

        try:
            self._update_first_variant(updated["id"], product)
        except CatalogAPIError as e:
            logger.warning("shopify_variant_update_failed", product_id=updated["id"], error=e.message)

        logger.info("shopify_product_updated", product_id=updated["id"], title=updated.get("title"))
        return updated

    def _update_first_variant(self, product_id: str, product: Product) -> None:
        data = self.execute("getProductVariants", PRODUCT_VARIANTS, {"productId": product_id})
        edges = ((data.get("product") or {}).get("variants") or {}).get("edges") or []
        if not edges or not edges[0].get("node"):
            return

        variant = product.primary_variant
        variant_input: dict[str, Any] = {"id": edges[0]["node"]["id"]}

        price = to_money_string(variant.price, default=None)
        if price is not None:
            variant_input["price"] = price
        if variant.sku:
            variant_input["inventoryItem"] = {"sku": variant.sku}
        if variant.barcode:
            variant_input["barcode"] = variant.barcode

        result = self.execute("productVariantsBulkUpdate", VARIANTS_BULK_UPDATE, {
            "productId": product_id,
            "variants": [variant_input],
        })
        errors = _user_errors(result.get("productVariantsBulkUpdate"))
        if errors:
            logger.warning("shopify_variant_update_warnings", product_id=product_id, user_errors=errors)


def get_catalog_client(shop: str) -> ShopifyCatalogClient:
    """
    Build a catalog client for a shop using the configured access token.

    Raises:
        CatalogAPIError: If no access token is configured
    """
    if not settings.shopify_access_token:
        logger.warning("shopify_not_configured", shop=shop)
        raise CatalogAPIError("configure", "Shopify access token is not configured")
    return ShopifyCatalogClient(shop, settings.shopify_access_token)

"""
Bulk import orchestration.

One run = one import session:
    running -> processing (per item) -> completed

Items are processed strictly in order. A failing item is recorded and the
run moves on; only a missing shop, an unusable catalog client or a session
that cannot be created abort the run.
"""

import time
from typing import Callable, Optional

import structlog

from config import settings
from exceptions import AppError, DatabaseError, ShopNotIdentifiedError
from integrations.shopify import ShopifyCatalogClient, get_catalog_client, image_urls
from models.import_session import (
    BulkImportResponse,
    BulkImportRequest,
    ImportConfig,
    ImportedProductRef,
    ImportItemFailure,
    ImportItemResult,
    ImportItemSuccess,
    ImportProgressResponse,
    ImportSessionStatus,
)
from models.product import Product, ProductStatus, Variant
from services.import_session_service import (
    ImportSessionService,
    build_imported_record,
    get_import_session_service,
)
from services.markup_service import apply_markup, describe_markup
from services import source_transformer

logger = structlog.get_logger(__name__)


def fallback_product() -> Product:
    """Minimal product imported when the request names no usable source."""
    return Product(
        title="Imported Product",
        status=ProductStatus.DRAFT,
        variants=(Variant(price="10.00"),),
    )


def placeholder_product() -> Product:
    """Single demo product used when a run would otherwise have nothing to import."""
    return Product(
        title="Demo Product - Test Import",
        description_html="<p>Demo product created because no products were found in the source.</p>",
        vendor="Demo Vendor",
        product_type="Test",
        tags=("demo", "test"),
        status=ProductStatus.DRAFT,
        variants=(Variant(
            price="10.00",
            compare_at_price="12.00",
            sku="DEMO-001",
            barcode="123456789",
            inventory_quantity=100,
        ),),
    )


class ImportService:
    """
    Runs bulk imports into the shop catalog.

    Usage:
        service = get_import_service()
        response = service.run_bulk_import("my-store.myshopify.com", request)
    """

    def __init__(
        self,
        sessions: Optional[ImportSessionService] = None,
        catalog_factory: Optional[Callable[[str], ShopifyCatalogClient]] = None,
        item_delay: Optional[float] = None
    ):
        self.sessions = sessions or get_import_session_service()
        self.catalog_factory = catalog_factory or get_catalog_client
        self.item_delay = settings.import_item_delay_seconds if item_delay is None else item_delay

    # ===================
    # RUN
    # ===================

    def run_bulk_import(self, shop: Optional[str], request: BulkImportRequest) -> BulkImportResponse:
        """
        Import every selected product of a request.

        Args:
            shop: Shop domain the products are imported into
            request: Validated bulk import payload

        Returns:
            BulkImportResponse with counters and per-item results

        Raises:
            ShopNotIdentifiedError: If no shop was given
            CatalogAPIError: If no catalog client can be built for the shop
            DatabaseError: If the session cannot be created
        """
        if not shop or not shop.strip():
            raise ShopNotIdentifiedError()
        shop = shop.strip()

        catalog = self.catalog_factory(shop)
        session = self.sessions.create_session(shop, request)
        log = logger.bind(session_id=session.id, shop=shop)

        imported = 0
        failed = 0
        total: Optional[int] = None
        results: list[ImportItemResult] = []

        # Once created, the session is completed even if the run stops early
        try:
            connection_id = self._ensure_connection(shop, request, log)
            products = self.load_products(request, log)
            total = len(products)

            rules = describe_markup(request.markup_config)
            log.info(
                "bulk_import_started",
                data_source=request.data_source,
                import_config=request.import_config.value,
                total=total,
                markup_rules=rules
            )

            for index, product in enumerate(products):
                self._write_progress(session.id, imported, failed, total, log)

                if self.item_delay > 0:
                    time.sleep(self.item_delay)

                result = self._process_item(
                    catalog, shop, session.id, product, request, connection_id, log
                )
                results.append(result)

                if result.success:
                    imported += 1
                else:
                    failed += 1
                    log.warning("import_item_failed", index=index, product=result.product, error=result.error)

                self._write_progress(session.id, imported, failed, total, log)
        except Exception as e:
            log.error(
                "bulk_import_aborted",
                imported=imported,
                failed=failed,
                error=str(e),
                error_type=type(e).__name__
            )
            raise
        finally:
            self._finish(session.id, imported, failed, total, log)

        log.info("bulk_import_finished", imported=imported, failed=failed, total=total)

        return BulkImportResponse(
            success=True,
            session_id=session.id,
            imported=imported,
            failed=failed,
            total_products=total,
            results=results,
        )

    def get_progress(self, session_id: str) -> ImportProgressResponse:
        """Progress of a run, read from its session row."""
        return self.sessions.get_progress(session_id)

    # ===================
    # SOURCES
    # ===================

    def load_products(self, request: BulkImportRequest, log=None) -> list[Product]:
        """
        Resolve the products for a run. Never empty.

        No usable source gives the minimal fallback product; a source that
        yields nothing gives the demo placeholder.
        """
        log = log or logger

        if request.data_source == "api" and request.api_credentials:
            products = source_transformer.from_api(
                request.api_credentials, request.import_filters, request.key_mappings
            )
        elif request.data_source == "csv" and request.csv_data:
            products = source_transformer.from_csv(
                request.csv_data, request.import_filters, request.key_mappings
            )
        else:
            log.warning("import_source_missing", data_source=request.data_source)
            return [fallback_product()]

        if not products:
            log.warning("import_source_empty", data_source=request.data_source)
            return [placeholder_product()]

        return products

    def _ensure_connection(self, shop: str, request: BulkImportRequest, log) -> Optional[str]:
        """Saved connection id for API imports; saves one when none was given."""
        credentials = request.api_credentials
        if request.data_source != "api" or credentials is None:
            return None
        if credentials.connection_id:
            return credentials.connection_id

        try:
            return self.sessions.save_connection(shop, credentials)
        except DatabaseError as e:
            log.warning("save_connection_failed", error=e.message)
            return None

    # ===================
    # PER ITEM
    # ===================

    def _process_item(
        self,
        catalog: ShopifyCatalogClient,
        shop: str,
        session_id: str,
        product: Product,
        request: BulkImportRequest,
        connection_id: Optional[str],
        log
    ) -> ImportItemResult:
        """Mark up, create or update, and record one product."""
        try:
            product = apply_markup(product, request.markup_config, log=log)
            status = (
                ProductStatus.ACTIVE
                if request.import_config == ImportConfig.PUBLISHED
                else ProductStatus.DRAFT
            )
            product = product.model_copy(update={"status": status})

            variant = product.primary_variant
            existing = self.sessions.find_existing_product(shop, variant.sku, product.title)

            action = "created"
            catalog_product = None
            if existing:
                try:
                    catalog_product = catalog.update_product(existing.catalog_product_id, product)
                    action = "updated"
                except AppError as e:
                    log.warning(
                        "update_failed_creating_instead",
                        product=product.title,
                        catalog_product_id=existing.catalog_product_id,
                        error=e.message
                    )

            if catalog_product is None:
                catalog_product = self._create_in_catalog(catalog, product, log)

            self._record(shop, session_id, catalog_product["id"], product, connection_id, log)

            return ImportItemSuccess(
                action=action,
                product=ImportedProductRef(
                    id=catalog_product["id"],
                    title=catalog_product.get("title") or product.title,
                    status=catalog_product.get("status") or status.value,
                ),
            )
        except AppError as e:
            return ImportItemFailure(product=product.title, error=e.message)
        except Exception as e:
            log.error(
                "import_item_error",
                product=product.title,
                error=str(e),
                error_type=type(e).__name__
            )
            return ImportItemFailure(product=product.title, error=str(e))

    def _create_in_catalog(self, catalog: ShopifyCatalogClient, product: Product, log) -> dict:
        """
        Create product, media, variants, then publish.

        Media and publishing failures are logged; variant failures fail the item.
        """
        created = catalog.create_product(product)
        product_id = created["id"]

        urls = image_urls(product)
        if urls:
            try:
                catalog.create_media(product_id, urls)
            except AppError as e:
                log.warning("create_media_failed", product_id=product_id, error=e.message)

        catalog.create_variants(product_id, product)

        try:
            catalog.publish_to_all_channels(product_id)
        except AppError as e:
            log.warning("publish_failed", product_id=product_id, error=e.message)

        return created

    def _record(
        self,
        shop: str,
        session_id: str,
        catalog_product_id: str,
        product: Product,
        connection_id: Optional[str],
        log
    ) -> None:
        record = build_imported_record(shop, session_id, catalog_product_id, product, connection_id)
        try:
            self.sessions.record_imported_product(record)
        except DatabaseError as e:
            log.warning("record_imported_product_failed", product=product.title, error=e.message)

    def _finish(self, session_id: str, imported: int, failed: int, total: Optional[int], log) -> None:
        try:
            self.sessions.complete_session(session_id, imported, failed, total)
        except DatabaseError as e:
            log.error("complete_session_failed", error=e.message)

    def _write_progress(self, session_id: str, imported: int, failed: int, total: int, log) -> None:
        try:
            self.sessions.update_progress(
                session_id, imported, failed, total, status=ImportSessionStatus.PROCESSING
            )
        except DatabaseError as e:
            log.warning("progress_write_failed", error=e.message)


# Singleton instance
_import_service: Optional[ImportService] = None


def get_import_service() -> ImportService:
    """Get or create ImportService instance."""
    global _import_service
    if _import_service is None:
        _import_service = ImportService()
    return _import_service

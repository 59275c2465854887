"""
Import record store.

Supabase tables used by the bulk import:
    import_sessions     one row per run, the progress source of truth
    imported_products   one row per successfully imported product
    connections         saved supplier API connections

Plain keyed reads and writes; no transaction spans two calls.
"""

import json
from datetime import datetime
from typing import Optional

import structlog

from config import get_supabase_client
from exceptions import DatabaseError, ImportSessionNotFoundError
from models.import_session import (
    ApiCredentials,
    BulkImportRequest,
    ImportedProductRecord,
    ImportProgressResponse,
    ImportSessionRecord,
    ImportSessionStatus,
)
from models.product import Product
from utils.money import to_money_string

logger = structlog.get_logger(__name__)

COMPLETED_LABEL = "Import completed"
PROCESSING_LABEL = "Processing..."


def build_imported_record(
    shop: str,
    session_id: Optional[str],
    catalog_product_id: str,
    product: Product,
    connection_id: Optional[str] = None
) -> ImportedProductRecord:
    """
    Snapshot a product as it was sent to the catalog.

    Prices are stored in the same two-decimal form the catalog receives.

    Args:
        shop: Shop domain
        session_id: Import session that produced it
        catalog_product_id: Catalog identifier returned by create/update
        product: Final (marked-up, status-assigned) product
        connection_id: Supplier connection, for API imports

    Returns:
        Record ready to insert
    """
    variant = product.primary_variant
    return ImportedProductRecord(
        shop=shop,
        import_session_id=session_id,
        connection_id=connection_id,
        catalog_product_id=catalog_product_id,
        title=product.title,
        body_html=product.description_html,
        vendor=product.vendor,
        product_type=product.product_type,
        tags=json.dumps(list(product.tags)),
        status=product.status.value,
        price=to_money_string(variant.price),
        compare_at_price=to_money_string(variant.compare_at_price, default=None) or "",
        sku=variant.sku,
        barcode=variant.barcode or "",
        inventory_quantity=variant.inventory_quantity,
        variants=json.dumps([v.model_dump(mode="json") for v in product.variants]),
        markup_applied=product.markup_applied,
        markup_type=product.markup_type or "",
        markup_value=product.markup_value or "",
    )


class ImportSessionService:
    """
    Persistence for import sessions and imported products.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.sessions_table = "import_sessions"
        self.products_table = "imported_products"
        self.connections_table = "connections"

    # ===================
    # SESSIONS
    # ===================

    def create_session(self, shop: str, request: BulkImportRequest) -> ImportSessionRecord:
        """
        Create a session in 'running' state with zeroed counters.

        Raises:
            DatabaseError: If the insert fails (fatal for the run)
        """
        row = {
            "shop": shop,
            "data_source": request.data_source,
            "import_type": request.import_type,
            "import_config": request.import_config.value,
            "key_mappings": json.dumps(request.key_mappings),
            "import_filters": json.dumps(request.import_filters.model_dump(by_alias=True)),
            "markup_config": json.dumps(request.markup_config.model_dump(mode="json", by_alias=True)),
            "total_products": request.total_products,
            "imported_products": 0,
            "failed_products": 0,
            "status": ImportSessionStatus.RUNNING.value,
        }

        try:
            result = self.db.table(self.sessions_table).insert(row).execute()
        except Exception as e:
            logger.error("create_import_session_failed", shop=shop, error=str(e))
            raise DatabaseError("insert", str(e))

        if not result.data:
            raise DatabaseError("insert", "No data returned from import session insert")

        session = ImportSessionRecord(**result.data[0])
        logger.info("import_session_created", session_id=session.id, shop=shop)
        return session

    def update_progress(
        self,
        session_id: str,
        imported: int,
        failed: int,
        total: Optional[int] = None,
        status: ImportSessionStatus = ImportSessionStatus.PROCESSING
    ) -> None:
        """
        Persist the current counters.

        Raises:
            DatabaseError: If the update fails
        """
        data = {
            "status": status.value,
            "imported_products": imported,
            "failed_products": failed,
        }
        if total is not None:
            data["total_products"] = total

        try:
            self.db.table(self.sessions_table).update(data).eq("id", session_id).execute()
        except Exception as e:
            raise DatabaseError("update", str(e), {"session_id": session_id})

    def complete_session(
        self,
        session_id: str,
        imported: int,
        failed: int,
        total: Optional[int] = None
    ) -> None:
        """
        Mark the session completed and stamp completed_at.

        total is left as stored when None (run stopped before products
        were resolved).

        Raises:
            DatabaseError: If the update fails
        """
        data = {
            "status": ImportSessionStatus.COMPLETED.value,
            "imported_products": imported,
            "failed_products": failed,
            "completed_at": datetime.utcnow().isoformat(),
        }
        if total is not None:
            data["total_products"] = total
        try:
            self.db.table(self.sessions_table).update(data).eq("id", session_id).execute()
        except Exception as e:
            raise DatabaseError("update", str(e), {"session_id": session_id})

        logger.info(
            "import_session_completed",
            session_id=session_id,
            imported=imported,
            failed=failed,
            total=total
        )

    def get_session(self, session_id: str) -> ImportSessionRecord:
        """
        Get a session by ID.

        Raises:
            ImportSessionNotFoundError: If it doesn't exist
            DatabaseError: If the query fails
        """
        try:
            result = (
                self.db.table(self.sessions_table)
                .select("*")
                .eq("id", session_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("get_import_session_failed", session_id=session_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise ImportSessionNotFoundError(session_id)

        return ImportSessionRecord(**result.data[0])

    def get_progress(self, session_id: str) -> ImportProgressResponse:
        """
        Progress as seen by a polling client.

        currentProduct is the title of the latest imported product while the
        run is processing, otherwise "Import completed".
        """
        session = self.get_session(session_id)

        if session.status == ImportSessionStatus.PROCESSING:
            current = self.get_latest_imported_title(session_id) or PROCESSING_LABEL
        else:
            current = COMPLETED_LABEL

        return ImportProgressResponse(
            session_id=session.id,
            imported=session.imported_products,
            failed=session.failed_products,
            total_products=session.total_products,
            current_product=current,
            status=session.status.value,
        )

    # ===================
    # IMPORTED PRODUCTS
    # ===================

    def get_latest_imported_title(self, session_id: str) -> Optional[str]:
        """Title of the most recently recorded product for a session."""
        try:
            result = (
                self.db.table(self.products_table)
                .select("title, created_at")
                .eq("import_session_id", session_id)
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.warning("get_latest_imported_failed", session_id=session_id, error=str(e))
            return None

        return result.data[0].get("title") if result.data else None

    def _find_one(self, shop: str, column: str, value: str) -> Optional[ImportedProductRecord]:
        result = (
            self.db.table(self.products_table)
            .select("*")
            .eq("shop", shop)
            .eq(column, value)
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        return ImportedProductRecord(**result.data[0]) if result.data else None

    def find_existing_product(
        self,
        shop: str,
        sku: Optional[str],
        title: Optional[str]
    ) -> Optional[ImportedProductRecord]:
        """
        Find a previously imported product, by SKU first, then by title.

        Lookup failures are logged and treated as "not found" so the product
        is created instead.
        """
        try:
            if sku:
                record = self._find_one(shop, "sku", sku)
                if record:
                    return record
            if title:
                return self._find_one(shop, "title", title)
        except Exception as e:
            logger.warning(
                "find_existing_product_failed",
                shop=shop,
                sku=sku,
                title=title,
                error=str(e)
            )
        return None

    def record_imported_product(self, record: ImportedProductRecord) -> ImportedProductRecord:
        """
        Insert an imported product snapshot.

        Raises:
            DatabaseError: If the insert fails
        """
        data = record.model_dump(exclude={"id", "created_at", "updated_at"})
        try:
            result = self.db.table(self.products_table).insert(data).execute()
        except Exception as e:
            raise DatabaseError("insert", str(e), {"title": record.title})

        if not result.data:
            return record
        return ImportedProductRecord(**result.data[0])

    # ===================
    # CONNECTIONS
    # ===================

    def save_connection(self, shop: str, credentials: ApiCredentials) -> Optional[str]:
        """
        Save a supplier API connection and return its id.

        Raises:
            DatabaseError: If the insert fails
        """
        row = {
            "shop": shop,
            "type": "api",
            "name": "API Import Connection",
            "api_url": credentials.api_url,
            "access_token": credentials.access_token,
            "supplier_name": "API Supplier",
            "status": "connected",
            "product_count": 0,
        }
        try:
            result = self.db.table(self.connections_table).insert(row).execute()
        except Exception as e:
            raise DatabaseError("insert", str(e), {"table": self.connections_table})

        connection_id = result.data[0].get("id") if result.data else None
        logger.info("connection_saved", shop=shop, connection_id=connection_id)
        return connection_id


# Singleton instance
_import_session_service: Optional[ImportSessionService] = None


def get_import_session_service() -> ImportSessionService:
    """Get or create ImportSessionService instance."""
    global _import_session_service
    if _import_session_service is None:
        _import_session_service = ImportSessionService()
    return _import_session_service

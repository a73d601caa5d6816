"""
Product store: where imported records live and exports read from.

ProductStore is the boundary the import and export services depend on.
SupabaseProductStore persists to the products table; InMemoryProductStore
keeps records in process (tests, local runs without credentials).

Storage failures surface as DatabaseError.
"""

from abc import ABC, abstractmethod
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Iterable, Optional
from uuid import uuid4

from pydantic_core import to_jsonable_python
import structlog

from exceptions import DatabaseError, ProductNotFoundError
from models.export import ExportFilters
from models.product import NormalizedProductRecord
from utils.text_utils import normalize_key

logger = structlog.get_logger(__name__)


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class ProductStore(ABC):
    """Storage operations used by the interchange engine."""

    @abstractmethod
    def find_by_identifiers(
        self,
        upc: Optional[str] = None,
        ean: Optional[str] = None,
        sku: Optional[str] = None,
    ) -> Optional[NormalizedProductRecord]:
        """First record matching ANY of the given identifiers."""

    @abstractmethod
    def get(self, product_id: str) -> Optional[NormalizedProductRecord]:
        ...

    @abstractmethod
    def get_many(self, product_ids: list[str]) -> list[NormalizedProductRecord]:
        """Records for the given ids, in the given order. Unknown ids are skipped."""

    @abstractmethod
    def search(
        self,
        filters: Optional[ExportFilters] = None,
        limit: int = 50000,
    ) -> list[NormalizedProductRecord]:
        ...

    @abstractmethod
    def create(self, record: NormalizedProductRecord) -> NormalizedProductRecord:
        """Store a new record; returns it with id and timestamps set."""

    @abstractmethod
    def update(self, product_id: str, changes: dict[str, Any]) -> NormalizedProductRecord:
        """
        Apply field changes to a stored record.

        Raises:
            ProductNotFoundError: If the id is unknown
        """


# ===================
# IN-MEMORY
# ===================

class InMemoryProductStore(ProductStore):
    """Ordered, process-local store."""

    def __init__(self, records: Iterable[NormalizedProductRecord] = ()):
        self._records: "OrderedDict[str, NormalizedProductRecord]" = OrderedDict()
        for record in records:
            self.create(record)

    def __len__(self) -> int:
        return len(self._records)

    def all(self) -> list[NormalizedProductRecord]:
        return list(self._records.values())

    def find_by_identifiers(self, upc=None, ean=None, sku=None):
        wanted = [(name, value) for name, value in (("upc", upc), ("ean", ean), ("sku", sku)) if value]
        if not wanted:
            return None
        for record in self._records.values():
            if any(getattr(record, name) == value for name, value in wanted):
                return record
        return None

    def get(self, product_id):
        return self._records.get(product_id)

    def get_many(self, product_ids):
        return [self._records[pid] for pid in product_ids if pid in self._records]

    def search(self, filters=None, limit=50000):
        matches = [r for r in reversed(self._records.values()) if _matches(r, filters)]
        return matches[:limit]

    def create(self, record):
        now = datetime.utcnow()
        stored = record.model_copy(update={
            "id": record.id or str(uuid4()),
            "created_at": now,
            "updated_at": now,
        })
        self._records[stored.id] = stored
        logger.debug("product_stored", product_id=stored.id)
        return stored

    def update(self, product_id, changes):
        existing = self._records.get(product_id)
        if existing is None:
            raise ProductNotFoundError(product_id)
        data = existing.model_dump()
        data.update(changes)
        data["updated_at"] = datetime.utcnow()
        updated = NormalizedProductRecord.model_validate(data)
        self._records[product_id] = updated
        return updated


def _matches(record: NormalizedProductRecord, filters: Optional[ExportFilters]) -> bool:
    """In-process version of the filter predicate."""
    if filters is None:
        return True

    if filters.search:
        needle = normalize_key(filters.search)
        haystack = (record.title, record.upc, record.ean, record.brand, record.sku)
        if not any(needle in normalize_key(value) for value in haystack if value):
            return False

    if filters.category_id and filters.category_id not in (
        record.ebay_category_id,
        record.google_category_id,
    ):
        return False

    quantity = record.quantity if record.quantity is not None else 0
    if filters.min_stock is not None and quantity < filters.min_stock:
        return False
    if filters.max_stock is not None and quantity > filters.max_stock:
        return False

    if filters.updated_after is not None:
        if record.updated_at is None:
            return False
        if _as_naive_utc(record.updated_at) < _as_naive_utc(filters.updated_after):
            return False

    return True


# ===================
# SUPABASE
# ===================

def _quote(value: str) -> str:
    """Quote a value for a PostgREST or=() filter."""
    return '"' + value.replace('"', '\\"') + '"'


class SupabaseProductStore(ProductStore):
    """
    Supabase-backed store.

    Records are stored flat; dimensions, images and additional_attributes
    are JSON columns.
    """

    def __init__(self, client, table: str = "products"):
        self.db = client
        self.table = table

    def _to_record(self, row: dict) -> NormalizedProductRecord:
        return NormalizedProductRecord.model_validate(row)

    # ===================
    # READ OPERATIONS
    # ===================

    def find_by_identifiers(self, upc=None, ean=None, sku=None):
        clauses = [
            f"{name}.eq.{_quote(value)}"
            for name, value in (("upc", upc), ("ean", ean), ("sku", sku))
            if value
        ]
        if not clauses:
            return None

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .or_(",".join(clauses))
                .limit(1)
                .execute()
            )
            return self._to_record(result.data[0]) if result.data else None

        except Exception as e:
            logger.error(
                "find_product_failed",
                upc=upc,
                ean=ean,
                sku=sku,
                error=str(e)
            )
            raise DatabaseError("select", str(e))

    def get(self, product_id):
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", product_id)
                .limit(1)
                .execute()
            )
            return self._to_record(result.data[0]) if result.data else None

        except Exception as e:
            logger.error("get_product_failed", product_id=product_id, error=str(e))
            raise DatabaseError("select", str(e))

    def get_many(self, product_ids):
        if not product_ids:
            return []
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .in_("id", product_ids)
                .execute()
            )
        except Exception as e:
            logger.error("get_products_failed", count=len(product_ids), error=str(e))
            raise DatabaseError("select", str(e))

        by_id = {row["id"]: row for row in result.data}
        return [self._to_record(by_id[pid]) for pid in product_ids if pid in by_id]

    def search(self, filters=None, limit=50000):
        logger.info(
            "searching_products",
            filters=filters.model_dump(exclude_none=True) if filters else None,
            limit=limit
        )

        try:
            query = self.db.table(self.table).select("*")

            if filters:
                if filters.search:
                    pattern = _quote(f"%{filters.search}%")
                    query = query.or_(",".join(
                        f"{col}.ilike.{pattern}" for col in ("title", "upc", "ean", "brand", "sku")
                    ))
                if filters.category_id:
                    category = _quote(filters.category_id)
                    query = query.or_(
                        f"ebay_category_id.eq.{category},google_category_id.eq.{category}"
                    )
                if filters.min_stock is not None:
                    query = query.gte("quantity", filters.min_stock)
                if filters.max_stock is not None:
                    query = query.lte("quantity", filters.max_stock)
                if filters.updated_after is not None:
                    query = query.gte("updated_at", filters.updated_after.isoformat())

            result = query.order("created_at", desc=True).limit(limit).execute()
            records = [self._to_record(row) for row in result.data]

            logger.info("products_retrieved", count=len(records))
            return records

        except Exception as e:
            logger.error("search_products_failed", error=str(e))
            raise DatabaseError("select", str(e))

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, record):
        insert_data = record.model_dump(
            mode="json",
            exclude={"id", "created_at", "updated_at"},
        )
        if record.id:
            insert_data["id"] = record.id

        try:
            result = self.db.table(self.table).insert(insert_data).execute()
            created = self._to_record(result.data[0])
            logger.info("product_created", product_id=created.id, upc=created.upc)
            return created

        except Exception as e:
            logger.error("create_product_failed", upc=record.upc, sku=record.sku, error=str(e))
            raise DatabaseError("insert", str(e))

    def update(self, product_id, changes):
        update_data = to_jsonable_python(changes)
        update_data["updated_at"] = datetime.utcnow().isoformat()

        try:
            result = (
                self.db.table(self.table)
                .update(update_data)
                .eq("id", product_id)
                .execute()
            )
        except Exception as e:
            logger.error("update_product_failed", product_id=product_id, error=str(e))
            raise DatabaseError("update", str(e))

        if not result.data:
            raise ProductNotFoundError(product_id)

        updated = self._to_record(result.data[0])
        logger.info("product_updated", product_id=product_id, fields=sorted(changes))
        return updated

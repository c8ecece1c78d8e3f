"""
Customer Repository

Customer record data access layer - PostgreSQL (asyncpg)
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from core.config_manager import ConfigManager
from core.postgres_client import PostgresClientWrapper

from .models import CustomerRecord, normalize_lookup_field
from .protocols import DuplicateCustomerError

logger = logging.getLogger(__name__)


class CustomerRepository:
    """Customer record data access layer - PostgreSQL"""

    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        db: Optional[PostgresClientWrapper] = None,
    ):
        if config is None:
            config = ConfigManager("customer_core_service")

        self.db = db or PostgresClientWrapper("customer_core_service", config=config)

        self.schema = "customer_core"
        self.table_name = "customers"

    @property
    def _table(self) -> str:
        return f"{self.schema}.{self.table_name}"

    async def initialize(self):
        """Create the schema, table and lookup indexes if they do not exist"""
        statements = [
            f"CREATE SCHEMA IF NOT EXISTS {self.schema}",
            f"""
                CREATE TABLE IF NOT EXISTS {self._table} (
                    seq BIGINT GENERATED ALWAYS AS IDENTITY,
                    id TEXT PRIMARY KEY,
                    ssn TEXT NOT NULL,
                    account_number TEXT NOT NULL,
                    first_name TEXT NOT NULL,
                    last_name TEXT NOT NULL,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
            """,
            f"CREATE INDEX IF NOT EXISTS idx_customers_ssn ON {self._table} (ssn)",
            f"CREATE INDEX IF NOT EXISTS idx_customers_first_name ON {self._table} (first_name)",
        ]
        for statement in statements:
            await self.db.execute(statement)
        logger.info(f"Customer table {self._table} ready")

    @staticmethod
    def _params(record: CustomerRecord) -> List[Any]:
        return [
            record.id,
            record.ssn,
            record.account_number,
            record.first_name,
            record.last_name,
        ]

    async def save(self, record: CustomerRecord) -> CustomerRecord:
        """
        Insert a new customer record.

        Raises:
            DuplicateCustomerError: a record with the same id already exists
        """
        query = f"""
            INSERT INTO {self._table} (id, ssn, account_number, first_name, last_name)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (id) DO NOTHING
            RETURNING id, ssn, account_number, first_name, last_name
        """
        row = await self.db.query_row(query, self._params(record))
        if row is None:
            raise DuplicateCustomerError(f"Customer {record.id} already exists")
        return CustomerRecord.from_row(row)

    async def save_all(self, records: Sequence[CustomerRecord]) -> List[CustomerRecord]:
        """Bulk upsert, used to seed the store"""
        if not records:
            return []
        query = f"""
            INSERT INTO {self._table} (id, ssn, account_number, first_name, last_name)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (id) DO UPDATE SET
                ssn = EXCLUDED.ssn,
                account_number = EXCLUDED.account_number,
                first_name = EXCLUDED.first_name,
                last_name = EXCLUDED.last_name
        """
        await self.db.execute_many(query, [self._params(r) for r in records])
        logger.info(f"Saved {len(records)} customer records")
        return list(records)

    async def delete_all(self) -> int:
        """Remove every record"""
        status = await self.db.execute(f"DELETE FROM {self._table}")
        try:
            deleted = int(status.split()[-1])
        except (AttributeError, IndexError, ValueError):
            deleted = 0
        logger.info(f"Deleted {deleted} customer records")
        return deleted

    async def find_by_id(self, customer_id: str) -> Optional[CustomerRecord]:
        query = f"""
            SELECT id, ssn, account_number, first_name, last_name
            FROM {self._table}
            WHERE id = $1
        """
        row = await self.db.query_row(query, [customer_id])
        return CustomerRecord.from_row(row) if row else None

    async def find_all(self) -> List[CustomerRecord]:
        query = f"""
            SELECT id, ssn, account_number, first_name, last_name
            FROM {self._table}
            ORDER BY seq
        """
        rows = await self.db.query(query)
        return self._to_records(rows)

    async def find_by_field(self, field_name: str, value: str) -> List[CustomerRecord]:
        """
        Exact match on a secondary lookup field (ssn or first name).

        Raises:
            ValueError: field is not a supported lookup field
        """
        column = normalize_lookup_field(field_name)
        query = f"""
            SELECT id, ssn, account_number, first_name, last_name
            FROM {self._table}
            WHERE {column} = $1
            ORDER BY seq
        """
        rows = await self.db.query(query, [value])
        return self._to_records(rows)

    @staticmethod
    def _to_records(rows: List[Dict[str, Any]]) -> List[CustomerRecord]:
        return [CustomerRecord.from_row(row) for row in rows]

    async def health_check(self) -> bool:
        result = await self.db.health_check()
        return bool(result and result.get("healthy"))

    async def close(self):
        await self.db.close()

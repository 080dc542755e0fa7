import oracledb
from typing import List, Dict, Any, Optional, Sequence, Tuple, Union
from config import settings
import logging
import time
from contextlib import contextmanager

logger = logging.getLogger(__name__)

Params = Union[tuple, Dict[str, Any], None]


class DatabaseManager:
    def __init__(self):
        self.dsn = settings.database_dsn
        self.username = settings.DB_USERNAME
        self.password = settings.DB_PASSWORD
        # Pool is created on first use so importing this module never dials Oracle
        self.pool = None

    def _ensure_pool(self):
        if self.pool is not None:
            return self.pool
        try:
            self.pool = oracledb.create_pool(
                user=self.username,
                password=self.password,
                dsn=self.dsn,
                min=settings.DB_POOL_MIN,
                max=settings.DB_POOL_MAX,
                increment=1,
                getmode=oracledb.POOL_GETMODE_WAIT,
                timeout=30,  # Pool timeout
                wait_timeout=5000  # Wait timeout in milliseconds
            )
            logger.info("Database connection pool created successfully")
        except oracledb.Error as e:
            logger.error(f"Failed to create connection pool: {e}")
            self.pool = None
        return self.pool

    @contextmanager
    def get_connection(self):
        """Get database connection from pool with proper cleanup"""
        conn = None
        pool = self._ensure_pool()
        try:
            if pool:
                conn = pool.acquire()
            else:
                # Fallback to direct connection
                conn = oracledb.connect(
                    user=self.username, password=self.password, dsn=self.dsn
                )
            yield conn
        except Exception as e:
            logger.error(f"Database connection error: {e}")
            raise
        finally:
            if conn:
                try:
                    if pool:
                        pool.release(conn)
                    else:
                        conn.close()
                except oracledb.Error as e:
                    logger.error(f"Error closing connection: {e}")

    def execute_query(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """Execute query and return results as list of dictionaries keyed by upper-case column"""
        start_time = time.time()
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                if params:
                    cursor.execute(query, params)
                else:
                    cursor.execute(query)

                columns = [column[0] for column in cursor.description]
                results = [dict(zip(columns, row)) for row in cursor.fetchall()]
                cursor.close()

                execution_time = time.time() - start_time
                logger.debug(f"Query executed in {execution_time:.3f}s, returned {len(results)} rows")
                return results

        except Exception as e:
            execution_time = time.time() - start_time
            logger.error(f"Query execution error after {execution_time:.2f}s: {e}")
            raise

    def execute_non_query(self, query: str, params: Params = None) -> int:
        """Execute non-query (INSERT, UPDATE, DELETE) and return affected rows"""
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                if params:
                    cursor.execute(query, params)
                else:
                    cursor.execute(query)

                affected_rows = cursor.rowcount
                conn.commit()
                return affected_rows

        except Exception as e:
            logger.error(f"Non-query execution error: {e}")
            raise

    def execute_batch(
        self, statements: Sequence[Tuple[str, Params]], require_rows: bool = False
    ) -> List[int]:
        """Run several statements in one transaction.

        Commits once at the end; any failure rolls every statement back and
        re-raises. With ``require_rows`` a statement touching no row counts as
        a failure. Returns the affected row count of each statement.
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()
            counts: List[int] = []
            try:
                for query, params in statements:
                    cursor.execute(query, params or {})
                    if require_rows and cursor.rowcount == 0:
                        raise LookupError(f"Statement {len(counts) + 1} of batch matched no rows")
                    counts.append(cursor.rowcount)
                conn.commit()
            except Exception as e:
                logger.error(f"Batch execution failed after {len(counts)} statement(s), rolling back: {e}")
                conn.rollback()
                raise
            finally:
                cursor.close()
            return counts


# Global database manager instance
db_manager = DatabaseManager()


def init_database(manager: Optional[DatabaseManager] = None):
    """Create the menu table when it does not exist yet."""
    manager = manager or db_manager

    create_menus_table = """
    CREATE TABLE app_menus (
        id VARCHAR2(36) PRIMARY KEY,
        name VARCHAR2(100) NOT NULL,
        description VARCHAR2(500),
        icon VARCHAR2(100),
        url VARCHAR2(500),
        sort_order NUMBER DEFAULT 0 NOT NULL,
        is_active NUMBER(1) DEFAULT 1,
        parent_id VARCHAR2(36),
        seq NUMBER GENERATED BY DEFAULT AS IDENTITY,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        CONSTRAINT fk_menus_parent FOREIGN KEY (parent_id) REFERENCES app_menus(id)
    )
    """

    create_parent_index = "CREATE INDEX ix_menus_parent ON app_menus (parent_id)"

    try:
        check_query = "SELECT COUNT(*) FROM user_tables WHERE table_name = UPPER('app_menus')"
        result = manager.execute_query(check_query)

        if result[0]["COUNT(*)"] == 0:
            manager.execute_non_query(create_menus_table)
            manager.execute_non_query(create_parent_index)
            logger.info("Created table: app_menus")
        else:
            logger.info("Table already exists: app_menus")

    except Exception as e:
        logger.error(f"Database initialization error: {e}")
        raise


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL)
    init_database()

"""
Database module - SQL ledger and MongoDB connections.
"""
from app.db.postgres import get_db_session, test_postgres_connection, init_postgres_schema
from app.db.mongodb import get_mongo_db, test_mongo_connection, init_mongo_indexes

__all__ = [
    "get_db_session",
    "test_postgres_connection",
    "init_postgres_schema",
    "get_mongo_db",
    "test_mongo_connection",
    "init_mongo_indexes"
]

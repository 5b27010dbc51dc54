"""
Pytest configuration and fixtures for edi-canon tests

This module provides shared fixtures for unit, integration, and E2E tests.
"""
import json
import os
from datetime import datetime
from typing import Callable, Generator

import psycopg
import pytest
from pyspark.sql import SparkSession
from testcontainers.postgres import PostgresContainer

from edi_canon.core.models import SourceRecord


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that test the full pipeline"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take more than 5 seconds to run"
    )
    config.addinivalue_line(
        "markers", "spark: Tests that start a local Spark session"
    )


# =======================
# SPARK FIXTURES
# =======================

@pytest.fixture(scope="session")
def spark_session() -> Generator[SparkSession, None, None]:
    """
    Create a Spark session for testing with local mode

    Yields:
        SparkSession configured for local testing
    """
    spark = (
        SparkSession.builder
        .appName("edi-canon-test")
        .master("local[2]")
        .config("spark.sql.shuffle.partitions", "2")
        .config("spark.sql.session.timeZone", "UTC")
        .config("spark.driver.memory", "1g")
        .config("spark.ui.enabled", "false")  # Disable UI for tests
        .config("spark.sql.warehouse.dir", "/tmp/spark-warehouse")
        .getOrCreate()
    )

    # Set log level to WARN to reduce test output noise
    spark.sparkContext.setLogLevel("WARN")

    yield spark

    # Cleanup
    spark.stop()


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL container for integration tests

    Yields:
        PostgresContainer instance with initialized database
    """
    with PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_edi",
        password="test_password",
        dbname="test_edi_canon",
        driver=None,
    ) as postgres:
        # Run init script
        init_sql_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)),
            "docker",
            "init-db.sql"
        )

        with open(init_sql_path, 'r') as f:
            init_sql = f.read()

        with psycopg.connect(postgres.get_connection_url()) as conn:
            with conn.cursor() as cur:
                cur.execute(init_sql)
            conn.commit()

        yield postgres


@pytest.fixture(scope="function")
def db_connection(postgres_container) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a database connection for a single test

    Args:
        postgres_container: PostgreSQL container fixture

    Yields:
        psycopg Connection object
    """
    with psycopg.connect(postgres_container.get_connection_url()) as conn:
        yield conn
        # Rollback any uncommitted changes after test
        conn.rollback()


@pytest.fixture(scope="function")
def clean_db(db_connection) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a clean database by truncating all tables before each test

    Args:
        db_connection: Database connection fixture

    Yields:
        psycopg Connection object with clean database
    """
    with db_connection.cursor() as cur:
        cur.execute(
            "TRUNCATE TABLE canonical_line_item, bom_composition, canonical_header, "
            "rejection_record, source_stage_outcome, source_record, product_catalog "
            "RESTART IDENTITY CASCADE"
        )
        db_connection.commit()

    yield db_connection


@pytest.fixture(scope="function")
def db_pool(postgres_container, clean_db):
    """
    Open DatabaseConnectionPool against the test container

    Yields:
        DatabaseConnectionPool over a clean database
    """
    from edi_canon.warehouse.connection import DatabaseConnectionPool

    pool = DatabaseConnectionPool(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        database="test_edi_canon",
        user="test_edi",
        password="test_password",
    )
    pool.open()
    yield pool
    pool.close()


# =======================
# RECORD FIXTURES
# =======================

@pytest.fixture
def make_record() -> Callable[..., SourceRecord]:
    """
    Factory for SourceRecord objects

    Documents given as dicts are serialized to JSON; strings are used as-is.
    """
    def _make(
        document,
        record_id: int = 1,
        company_code: str | None = None,
        partner_order_type: str | None = None,
        download_timestamp: datetime = datetime(2024, 3, 11, 8, 15),
    ) -> SourceRecord:
        json_content = document if isinstance(document, str) else json.dumps(document)
        return SourceRecord(
            id=record_id,
            company_code=company_code,
            partner_order_type=partner_order_type,
            json_content=json_content,
            download_timestamp=download_timestamp,
        )

    return _make


@pytest.fixture
def make_document() -> Callable[..., dict]:
    """
    Factory for gateway-format purchase-order documents

    Args of the returned callable:
        company: PurchaseOrderHeader.CompanyCode
        po_number: PurchaseOrderHeader.PurchaseOrderNumber
        details: PurchaseOrderDetails node (object or array)
        type_code: PurchaseOrderHeader.PurchaseOrderTypeCode
        **purchase_order: Extra PurchaseOrder fields (ReferencePOType, ...)
    """
    def _make(company, po_number, details, type_code=None, **purchase_order) -> dict:
        header = {
            "CompanyCode": company,
            "PurchaseOrderNumber": po_number,
            "OrderDate": "20240311",
        }
        if type_code is not None:
            header["PurchaseOrderTypeCode"] = type_code
        header["PurchaseOrder"] = {
            "DepartmentNumber": "412",
            "RequestedShipDate": "20240401",
            "CancelDate": "20240415",
            **purchase_order,
            "PurchaseOrderDetails": details,
        }
        return {"PurchaseOrderHeader": header}

    return _make


# =======================
# FILE FIXTURES
# =======================

@pytest.fixture(scope="session")
def test_data_dir() -> str:
    """
    Get path to test data fixtures directory

    Returns:
        Path to tests/fixtures directory
    """
    return os.path.join(os.path.dirname(__file__), "fixtures")


# =======================
# CONFIGURATION FIXTURES
# =======================

@pytest.fixture(scope="session")
def test_env_vars():
    """
    Set test environment variables

    This fixture loads config/test.env and sets environment variables
    """
    from dotenv import load_dotenv

    env_path = os.path.join(
        os.path.dirname(os.path.dirname(__file__)),
        "config",
        "test.env"
    )

    if os.path.exists(env_path):
        load_dotenv(env_path, override=True)

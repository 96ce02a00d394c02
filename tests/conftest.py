"""
Pytest configuration and fixtures for etlflow tests

This module provides shared fixtures for unit, integration, and E2E tests.
"""
import json
from pathlib import Path
from typing import Any, Callable, Generator

import psycopg
import pytest
from testcontainers.postgres import PostgresContainer

from etlflow.core.models import PipelineDefinition


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


# =======================
# DEFINITION FIXTURES
# =======================

@pytest.fixture
def id_amount_mapping() -> dict[str, Any]:
    """Two required fields: a string ID and a numeric amount"""
    return {
        "id": {"sourceField": "ID", "dataType": "string", "required": True},
        "amount": {"sourceField": "Amt", "dataType": "number", "required": True},
    }


@pytest.fixture
def definition_factory(tmp_path, id_amount_mapping) -> Callable[..., PipelineDefinition]:
    """
    Build PipelineDefinitions that read a JSON file and write a JSON file under tmp_path

    Returns:
        Factory accepting overrides for any top-level or nested field
    """
    def _build(
        name: str = "test_etl",
        source: dict[str, Any] | None = None,
        destination: dict[str, Any] | None = None,
        transformations: list[dict[str, Any]] | None = None,
        schedule: str | None = None,
        enabled: bool = True,
    ) -> PipelineDefinition:
        return PipelineDefinition.model_validate({
            "name": name,
            "source": source or {
                "type": "json",
                "location": str(tmp_path / "input.json"),
                "mapping": id_amount_mapping,
            },
            "destination": destination or {
                "type": "file",
                "location": str(tmp_path / "out" / "output.json"),
            },
            "transformations": transformations or [],
            "schedule": schedule,
            "enabled": enabled,
        })

    return _build


@pytest.fixture
def write_json(tmp_path) -> Callable[[Any, str], Path]:
    """Write data as JSON under tmp_path and return the path"""
    def _write(data: Any, filename: str = "input.json") -> Path:
        path = tmp_path / filename
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def three_records() -> list[dict[str, Any]]:
    return [
        {"ID": "A1", "Amt": "10"},
        {"ID": "A2", "Amt": 20.5},
        {"ID": "A3", "Amt": "3"},
    ]


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL container for integration tests

    Yields:
        PostgresContainer instance
    """
    with PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_etl",
        password="test_password",
        dbname="test_dashboard",
        driver=None,
    ) as postgres:
        # Wait for container to be ready
        postgres.get_connection_url()
        yield postgres


@pytest.fixture(scope="function")
def db_connection(postgres_container) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a database connection for a single test

    Yields:
        psycopg Connection object
    """
    conn_url = postgres_container.get_connection_url()
    with psycopg.connect(conn_url) as conn:
        yield conn
        conn.rollback()

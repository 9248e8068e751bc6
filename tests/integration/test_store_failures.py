"""
Integration tests for requests that hit a failing database.

A broken store must answer with the generic internal error body, log the
cause for operators, and never write an unspent download token into logs.
"""

import logging

import pytest
from sqlalchemy import text

ERRORS_LOGGER = "download_portal.core.errors"


async def _drop_table(engine, table: str) -> None:
    async with engine.begin() as conn:
        await conn.execute(text(f"DROP TABLE {table}"))


class TestStoreFailures:
    @pytest.mark.asyncio
    async def test_database_error_is_generic_internal_error(
        self, client, public_file, async_engine, caplog
    ):
        await _drop_table(async_engine, "download_files")

        with caplog.at_level(logging.ERROR, logger=ERRORS_LOGGER):
            response = await client.get("/api/files")

        assert response.status_code == 500
        body = response.json()
        assert body["code"] == "SYS_6002"
        assert body["message"] == "Internal error"
        assert "no such table" not in response.text
        assert "SELECT" not in response.text

        errors = [r for r in caplog.records if r.name == ERRORS_LOGGER and r.levelno == logging.ERROR]
        assert errors
        assert "no such table" in errors[0].getMessage()

    @pytest.mark.asyncio
    async def test_failed_redemption_does_not_log_token(
        self, logged_in_client, protected_file, async_engine, caplog
    ):
        issued = (
            await logged_in_client.post("/api/files/token", json={"file_id": protected_file.id})
        ).json()
        token = issued["token"]
        await _drop_table(async_engine, "download_tokens")

        with caplog.at_level(logging.INFO):
            response = await logged_in_client.get(issued["download_url"])

        assert response.status_code == 500
        assert response.json()["code"] == "SYS_6002"
        assert token not in response.text

        assert any("no such table" in r.getMessage() for r in caplog.records)
        assert token not in caplog.text
        for record in caplog.records:
            assert token not in record.getMessage()

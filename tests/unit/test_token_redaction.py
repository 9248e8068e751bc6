"""
Unit tests for download token redaction.

Download tokens are single-use bearer capabilities; a token copied out of
a log before its owner uses it is a stolen file.
"""

import logging

from download_portal.core.middleware import (
    TOKEN_REDACTED,
    TokenRedactionFilter,
    is_download_token_path,
    redact_exception_args,
    redact_token_from_path,
)

TOKEN = "Zk3_9xQ-aB7cD8eF9gH0iJ1kL2mN3oP4qR5sT6uV7wX"


def _record(msg, args=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="uvicorn.access",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=args,
        exc_info=None,
    )


class TestRedactTokenFromPath:
    def test_token_path_is_redacted(self):
        assert redact_token_from_path(f"/downloads/token/{TOKEN}") == (
            f"/downloads/token/{TOKEN_REDACTED}"
        )

    def test_token_in_larger_text_is_redacted(self):
        line = f'127.0.0.1 - "GET /downloads/token/{TOKEN} HTTP/1.1" 200'
        redacted = redact_token_from_path(line)
        assert TOKEN not in redacted
        assert '"GET /downloads/token/[TOKEN_REDACTED] HTTP/1.1" 200' in redacted

    def test_public_path_is_left_alone(self):
        assert redact_token_from_path("/downloads/public/a/b.txt") == "/downloads/public/a/b.txt"

    def test_is_download_token_path(self):
        assert is_download_token_path(f"/downloads/token/{TOKEN}")
        assert not is_download_token_path("/downloads/public/token/x")
        assert not is_download_token_path("/api/files/token")


class TestTokenRedactionFilter:
    def test_redacts_message(self):
        record = _record(f"Serving /downloads/token/{TOKEN}")
        assert TokenRedactionFilter().filter(record) is True
        assert TOKEN not in record.getMessage()

    def test_redacts_tuple_args(self):
        """Uvicorn access logs pass the path as a format argument."""
        record = _record(
            '%s - "%s %s HTTP/%s" %d',
            ("127.0.0.1:5000", "GET", f"/downloads/token/{TOKEN}", "1.1", 200),
        )
        TokenRedactionFilter().filter(record)

        message = record.getMessage()
        assert TOKEN not in message
        assert "200" in message

    def test_redacts_dict_args(self):
        record = _record("%(path)s", ({"path": f"/downloads/token/{TOKEN}"},))
        TokenRedactionFilter().filter(record)
        assert TOKEN not in record.getMessage()

    def test_non_string_args_untouched(self):
        record = _record("%d bytes", (42,))
        TokenRedactionFilter().filter(record)
        assert record.getMessage() == "42 bytes"


def test_redact_exception_args():
    exc = ValueError(f"bad request for /downloads/token/{TOKEN}", 7)
    redact_exception_args(exc)
    assert TOKEN not in exc.args[0]
    assert exc.args[1] == 7

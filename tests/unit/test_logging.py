import io
import json
import logging
from unittest.mock import MagicMock, patch

import pytest

from howhappy.logging import REDACTED, setup_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield
    root.handlers, root.level = saved_handlers, saved_level


def _emit(message: str, tracing: bool = False, **extra) -> dict:
    stream = io.StringIO()
    setup_logging("DEBUG", service="howhappy-test", tracing=tracing, stream=stream)
    logging.getLogger("howhappy.test").info(message, extra=extra)
    return json.loads(stream.getvalue().strip().splitlines()[-1])


class TestSetupLogging:
    def test_emits_json_with_extras_and_service(self) -> None:
        record = _emit("Job published", job_id="j-1")

        assert record["message"] == "Job published"
        assert record["job_id"] == "j-1"
        assert record["service"] == "howhappy-test"
        assert record["levelname"] == "INFO"

    def test_masks_credentials(self) -> None:
        record = _emit("Prepared", response_token="eyJ...", response_id="r-1")

        assert record["response_token"] == REDACTED
        assert record["response_id"] == "r-1"

    def test_trace_ids_are_zero_without_tracing(self) -> None:
        record = _emit("Started")

        assert record["trace_id"] == 0
        assert record["span_id"] == 0

    def test_trace_ids_come_from_active_span(self) -> None:
        span = MagicMock(trace_id=1234, span_id=56)

        with patch("howhappy.logging.tracer") as mock_tracer:
            mock_tracer.current_span.return_value = span
            record = _emit("Transcribing", tracing=True)

        assert record["trace_id"] == 1234
        assert record["span_id"] == 56

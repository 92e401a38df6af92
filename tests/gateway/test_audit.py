import json
import logging
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from pkcegate.gateway.audit import CloudWatchAuditSink, LoggingAuditSink
from pkcegate.gateway.errors import AuditWriteError
from pkcegate.gateway.models import AuditEvent


def client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestCloudWatchAuditSink:
    def setup_method(self):
        # Arrange
        self.client = MagicMock()
        self.sink = CloudWatchAuditSink(log_group_name="/audit", client=self.client)
        self.event = AuditEvent(action="COMMAND", user_id="user-1", result="success")

    async def test_writes_event_to_daily_stream(self):
        # Act
        await self.sink.write(self.event)

        # Assert
        stream = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        self.client.create_log_stream.assert_called_once_with(
            logGroupName="/audit", logStreamName=stream
        )
        kwargs = self.client.put_log_events.call_args[1]
        assert kwargs["logGroupName"] == "/audit"
        assert kwargs["logStreamName"] == stream
        message = json.loads(kwargs["logEvents"][0]["message"])
        assert message["action"] == "COMMAND"
        assert message["user_id"] == "user-1"
        assert "error" not in message

    async def test_existing_stream_is_tolerated(self):
        # Arrange
        self.client.create_log_stream.side_effect = client_error(
            "ResourceAlreadyExistsException", "CreateLogStream"
        )

        # Act
        await self.sink.write(self.event)

        # Assert
        self.client.put_log_events.assert_called_once()

    async def test_other_stream_errors_raise_audit_write_error(self):
        # Arrange
        self.client.create_log_stream.side_effect = client_error(
            "ResourceNotFoundException", "CreateLogStream"
        )

        # Act & Assert
        with pytest.raises(AuditWriteError):
            await self.sink.write(self.event)

        self.client.put_log_events.assert_not_called()

    async def test_put_failure_raises_audit_write_error(self):
        # Arrange
        self.client.put_log_events.side_effect = client_error(
            "ThrottlingException", "PutLogEvents"
        )

        # Act & Assert
        with pytest.raises(AuditWriteError):
            await self.sink.write(self.event)

    def test_stream_name_is_calendar_date(self):
        moment = datetime(2026, 3, 9, 23, 59, tzinfo=timezone.utc)
        assert CloudWatchAuditSink.stream_name_for(moment) == "2026-03-09"


class TestLoggingAuditSink:
    async def test_event_is_logged_as_json(self, caplog):
        # Arrange
        sink = LoggingAuditSink()
        event = AuditEvent(action="COMMAND_ERROR", error="boom", source_ip="203.0.113.9")

        # Act
        with caplog.at_level(logging.INFO, logger="pkcegate.audit"):
            await sink.write(event)

        # Assert
        record = json.loads(caplog.records[-1].getMessage())
        assert record["action"] == "COMMAND_ERROR"
        assert record["error"] == "boom"
        assert "user_id" not in record

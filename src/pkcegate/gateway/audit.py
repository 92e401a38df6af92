"""Audit sinks for the command gateway.

Audit delivery is best-effort. Sinks raise AuditWriteError on failure and the
gateway decides what to do with it.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from pkcegate.config import DEFAULT_LOG_GROUP_NAME
from pkcegate.gateway.errors import AuditWriteError
from pkcegate.gateway.models import AuditEvent

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("pkcegate.audit")


class AuditSink(Protocol):
    async def write(self, event: AuditEvent) -> None:
        """Append one event.

        Raises:
            AuditWriteError: If the event could not be recorded
        """
        ...


class LoggingAuditSink:
    """Writes each event as one JSON line on the pkcegate.audit logger."""

    async def write(self, event: AuditEvent) -> None:
        audit_logger.info(event.to_message())


class CloudWatchAuditSink:
    """Appends events to a CloudWatch Logs group, one stream per UTC date."""

    def __init__(self, log_group_name: str = DEFAULT_LOG_GROUP_NAME, client: Any = None):
        self.log_group_name = log_group_name
        self._client = client or boto3.client("logs")

    @staticmethod
    def stream_name_for(moment: datetime | None = None) -> str:
        moment = moment or datetime.now(timezone.utc)
        return moment.strftime("%Y-%m-%d")

    async def write(self, event: AuditEvent) -> None:
        stream_name = self.stream_name_for()
        try:
            await asyncio.to_thread(self._ensure_stream, stream_name)
            await asyncio.to_thread(
                self._client.put_log_events,
                logGroupName=self.log_group_name,
                logStreamName=stream_name,
                logEvents=[
                    {
                        "timestamp": int(time.time() * 1000),
                        "message": event.to_message(),
                    }
                ],
            )
        except (BotoCoreError, ClientError) as e:
            raise AuditWriteError(f"Failed to write audit event: {e}") from e

    def _ensure_stream(self, stream_name: str) -> None:
        try:
            self._client.create_log_stream(
                logGroupName=self.log_group_name, logStreamName=stream_name
            )
        except ClientError as e:
            # Stream for today already exists
            if e.response.get("Error", {}).get("Code") != "ResourceAlreadyExistsException":
                raise

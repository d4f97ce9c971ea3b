"""Alerter service - posts failure cards to the configured webhook."""
import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional

import httpx

from .tasks import CheckResult, ScriptTask, Task

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10
DEFAULT_OUTPUT_LIMIT = 500

PORT_ALERT_TITLE = "Port connectivity check failed - urgent alert"
SCRIPT_ALERT_TITLE = "Script check failed - urgent alert"
FOOTER = "Sent automatically by portwatch. Please investigate the failure."


def truncate_output(output: Optional[str], limit: int = DEFAULT_OUTPUT_LIMIT) -> str:
    """First ``limit`` characters of ``output``."""
    if not output:
        return ""
    return output[:limit]


def build_card(title: str, body: str) -> dict:
    """Interactive card with red header styling."""
    return {
        "msg_type": "interactive",
        "card": {
            "config": {"wide_screen_mode": True},
            "header": {
                "title": {"tag": "plain_text", "content": title},
                "template": "red",
            },
            "elements": [
                {"tag": "div", "text": {"tag": "lark_md", "content": body}},
                {"tag": "hr"},
                {
                    "tag": "note",
                    "elements": [{"tag": "plain_text", "content": FOOTER}],
                },
            ],
        },
    }


class AlerterService:
    """Service for delivering failure alerts.

    The endpoint is looked up on every call so the newest saved webhook is
    always used. Delivery is one POST; failures are logged, never raised.
    """

    def __init__(
        self,
        get_endpoint: Callable[[], Awaitable[Optional[str]]],
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        output_limit: int = DEFAULT_OUTPUT_LIMIT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._get_endpoint = get_endpoint
        self.timeout = timeout
        self.output_limit = output_limit
        self._transport = transport

    def build_payload(self, task: Task, result: CheckResult) -> dict:
        """Card payload for a failed check."""
        timestamp = result.timestamp.strftime("%Y-%m-%d %H:%M:%S")
        lines = [
            "**Failure details**",
            "",
            f"**Task:** {task.name}",
        ]

        if isinstance(task, ScriptTask):
            title = SCRIPT_ALERT_TITLE
            lines += [
                f"**Host:** {task.host}",
                f"**Error:** {result.error_detail}",
                f"**Checked at:** {timestamp}",
            ]
            excerpt = truncate_output(result.output, self.output_limit)
            if excerpt:
                lines += ["", "**Output:**", "```", excerpt, "```"]
                if len(result.output) > self.output_limit:
                    lines.append(f"(output truncated to {self.output_limit} characters)")
        else:
            title = PORT_ALERT_TITLE
            lines += [
                f"**Target:** {task.target}",
                f"**Error:** {result.error_detail}",
                f"**Checked at:** {timestamp}",
            ]

        lines += ["", "**Please check the target service immediately.**"]
        return build_card(title, "\n".join(lines))

    async def notify_failure(self, task: Task, result: CheckResult) -> None:
        """Send a failure alert for ``task``. Never raises."""
        try:
            url = await self._get_endpoint()
        except Exception as e:
            logger.error(f"Could not read webhook configuration: {e}")
            return

        if not url:
            logger.info("Webhook not configured, skipping alert")
            return

        try:
            payload = self.build_payload(task, result)
        except Exception as e:
            logger.error(f"Could not build alert for task {task.id}: {e}")
            return

        await self._send_webhook(url, payload, task.name)

    async def send_test_alert(self) -> bool:
        """Deliver a sample card. Returns False if unconfigured or delivery failed."""
        try:
            url = await self._get_endpoint()
        except Exception as e:
            logger.error(f"Could not read webhook configuration: {e}")
            return False
        if not url:
            return False

        body = "\n".join([
            "**Failure details**",
            "",
            "**Task:** Test task",
            "**Target:** test.example.com:80",
            "**Error:** This is a test alert",
            f"**Checked at:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        ])
        return await self._send_webhook(url, build_card(PORT_ALERT_TITLE, body), "Test task")

    async def _send_webhook(self, url: str, payload: dict, task_name: str) -> bool:
        """Send a webhook POST request."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
                if response.status_code < 400:
                    logger.info(f"Alert sent for {task_name}")
                    return True
                else:
                    logger.warning(f"Webhook returned {response.status_code} for {task_name}")
                    return False
        except Exception as e:
            logger.error(f"Failed to send webhook for {task_name}: {e}")
            return False

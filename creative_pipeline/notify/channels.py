import logging
import time
from typing import Any, Dict, List, Optional, Tuple

import requests

from creative_pipeline.config.settings import settings
from creative_pipeline.core.errors import ConfigurationError, NotifyFailed
from creative_pipeline.notify.base import ApprovalChannel

logger = logging.getLogger("CreativePipeline")

SLACK_API = "https://slack.com/api"


class SlackApprovalChannel(ApprovalChannel):
    """
    Posts each asset to a Slack channel and seeds approve/reject reactions
    for reaction-based voting.
    """

    name = "slack"

    def __init__(self, token: Optional[str] = None, channel_id: Optional[str] = None,
                 public_base_url: Optional[str] = None, session: Optional[requests.Session] = None):
        self.token = token or settings.slack_bot_token
        self.channel_id = channel_id or settings.slack_channel_id
        if not self.token or not self.channel_id:
            raise ConfigurationError("Slack not configured. Missing SLACK_BOT_TOKEN or SLACK_CHANNEL_ID")
        self.public_base_url = (public_base_url or settings.public_base_url or "").rstrip("/")
        self.session = session or requests.Session()

    def _call(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = self.session.post(
                f"{SLACK_API}/{method}",
                headers={"Authorization": f"Bearer {self.token}", "Content-Type": "application/json; charset=utf-8"},
                json=payload,
                timeout=30,
            )
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise NotifyFailed(f"Slack {method} failed: {e}")
        if not data.get("ok"):
            raise NotifyFailed(f"Slack {method} error: {data.get('error', 'unknown_error')}")
        return data

    def build_blocks(self, ref: str, metadata: Dict[str, Any]) -> List[Dict[str, Any]]:
        link = f"{self.public_base_url}{ref}" if self.public_base_url else ref
        title = metadata.get("title") or "Untitled script"
        script = metadata.get("script") or ""
        return [
            {"type": "header", "text": {"type": "plain_text", "text": "🎬 New creative ready for review"}},
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": f"*{title}*\n*Language:* {metadata.get('language', 'en')}\n*Asset:* <{link}|open>",
                },
            },
            {"type": "section", "text": {"type": "mrkdwn", "text": f"> {script[:2800]}"}},
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": "*Team Approval Required:*\n• ✅ = Approve for Meta campaigns\n• ❌ = Reject (needs revision)",
                },
            },
            {
                "type": "context",
                "elements": [{"type": "mrkdwn", "text": f"Generated: {time.strftime('%Y-%m-%d %H:%M:%S')}"}],
            },
        ]

    def submit(self, ref, metadata):
        response = self._call("chat.postMessage", {
            "channel": self.channel_id,
            "text": f"New creative ready for review: {metadata.get('title', ref)}",
            "blocks": self.build_blocks(ref, metadata),
        })
        ts = response.get("ts")
        for reaction in ("white_check_mark", "x"):
            self._call("reactions.add", {"channel": self.channel_id, "timestamp": ts, "name": reaction})
        logger.info(f"📨 Slack approval request posted (ts={ts}) for {ref}")


class LogApprovalChannel(ApprovalChannel):
    """Logs submissions instead of sending them. Used when Slack is not configured."""

    name = "log"

    def __init__(self):
        self.submissions: List[Tuple[str, Dict[str, Any]]] = []

    def submit(self, ref, metadata):
        self.submissions.append((ref, dict(metadata)))
        logger.info(f"📨 [approval] {metadata.get('title', 'asset')} -> {ref}")

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import requests
from django.conf import settings

from unmark.const import remote_state_message
from unmark.utils.exceptions import PermanentVendorError, TransientVendorError, VendorError

logger = logging.getLogger(__name__)

BODY_EXCERPT_LENGTH = 200


@dataclass(frozen=True)
class RemoteJobStatus:
    """Snapshot of a remote watermark removal job"""

    state: Optional[int]
    progress: Optional[int]
    file_url: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.state == 1 and self.progress == 100

    @property
    def is_failure(self) -> bool:
        return self.state is not None and self.state < 0

    @property
    def failure_reason(self) -> str:
        return remote_state_message(self.state)


class WatermarkAPIClient:
    """Client for the asynchronous watermark removal API"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key or settings.WATERMARK_API_KEY
        self.base_url = (base_url or settings.WATERMARK_API_URL).rstrip('/')
        self.timeout = timeout if timeout is not None else settings.WATERMARK_REQUEST_TIMEOUT
        self.headers = {
            'X-API-KEY': self.api_key,
        }

    def create_remote_job(self, original_url: str) -> str:
        """
        Submit an image for watermark removal in async mode

        Args:
            original_url: Publicly reachable URL of the source image

        Returns:
            The remote task id
        """
        headers = {**self.headers, 'Content-Type': 'application/json'}
        payload = {'url': original_url, 'sync': 0}

        try:
            response = requests.post(
                self.base_url,
                headers=headers,
                json=payload,
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise TransientVendorError(f"Create request timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise TransientVendorError(f"Create request failed: {exc}") from exc

        logger.info(f"Create response {response.status_code}: {response.text[:100]}")
        result = self._parse_envelope(response, action="create")

        remote_task_id = (result.get('data') or {}).get('task_id')
        if not remote_task_id:
            raise PermanentVendorError("创建响应中没有 task_id")

        return str(remote_task_id)

    def poll_remote_job(self, remote_task_id: str) -> RemoteJobStatus:
        """
        Check the status of a remote job

        Args:
            remote_task_id: Task id returned by `create_remote_job`

        Returns:
            RemoteJobStatus with state, progress and file url (if completed)
        """
        url = f"{self.base_url}/{remote_task_id}"

        try:
            response = requests.get(url, headers=self.headers, timeout=self.timeout)
        except requests.Timeout as exc:
            raise TransientVendorError(f"Poll request timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise TransientVendorError(f"Poll request failed: {exc}") from exc

        result = self._parse_envelope(response, action="poll")
        data = result.get('data') or {}

        return RemoteJobStatus(
            state=data.get('state'),
            progress=data.get('progress'),
            file_url=data.get('file'),
        )

    def _parse_envelope(self, response, action: str) -> Dict:
        text = response.text or ''
        try:
            result = response.json()
        except ValueError as exc:
            raise TransientVendorError(
                f"API 返回无效 JSON: {text[:BODY_EXCERPT_LENGTH]}"
            ) from exc

        if not isinstance(result, dict):
            raise TransientVendorError(
                f"API 返回无效 JSON: {text[:BODY_EXCERPT_LENGTH]}"
            )

        if result.get('status') != 200:
            fallback = f"API 创建失败: {result.get('status')}" if action == "create" \
                else f"轮询失败: {result.get('status')}"
            raise VendorError(result.get('message') or fallback)

        return result


_client: Optional[WatermarkAPIClient] = None


def get_watermark_client() -> WatermarkAPIClient:
    """Return the process-wide client, built from settings on first use."""
    global _client
    if _client is None:
        _client = WatermarkAPIClient()
    return _client

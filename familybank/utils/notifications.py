import asyncio
import logging
from typing import Dict, List, Optional

from pyfcm import FCMNotification

from familybank import config


logger = logging.getLogger(__name__)


class NoopPush:

    enabled = False

    async def send(self, tokens: List[str], title: str, body: str, data: Optional[dict] = None) -> int:
        return 0


class FcmPush:

    def __init__(self, service_account_file: str, project_id: str) -> None:
        self._client = FCMNotification(service_account_file=service_account_file, project_id=project_id)
        self.enabled = True

    async def send(self, tokens: List[str], title: str, body: str, data: Optional[dict] = None) -> int:
        if not tokens:
            return 0
        # FCM data payload values must be strings
        payload: Dict[str, str] = {k: str(v) for k, v in (data or {}).items() if v is not None}
        sent = 0
        for token in tokens:
            try:
                # pyfcm is blocking
                await asyncio.to_thread(
                    self._client.notify,
                    fcm_token=token,
                    notification_title=title,
                    notification_body=body,
                    data_payload=payload,
                )
                sent += 1
            except Exception:
                logger.exception("Push to device token %s failed", token[:12])
        return sent


_push = None


async def get_push():
    global _push
    if _push is not None:
        return _push
    if not (config.FCM_SERVICE_ACCOUNT_FILE and config.FCM_PROJECT_ID):
        _push = NoopPush()
        return _push
    _push = FcmPush(config.FCM_SERVICE_ACCOUNT_FILE, config.FCM_PROJECT_ID)
    return _push

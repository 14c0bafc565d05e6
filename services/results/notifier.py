import logging
from typing import Optional

import httpx

from config.settings import settings

logger = logging.getLogger(__name__)


class ResultNotifier:
    """
    월간 결과 자동 생성 알림
    - 항상 로그를 남기고, NOTIFY_WEBHOOK_URL이 있으면 외부 메시징 서비스로 POST
    - 전송 실패는 로그만 남김 (트리거 흐름을 막지 않음)
    """

    def __init__(self, webhook_url: Optional[str] = None, timeout: Optional[int] = None):
        self.webhook_url = webhook_url if webhook_url is not None else settings.NOTIFY_WEBHOOK_URL
        self.timeout = settings.NOTIFY_TIMEOUT if timeout is None else timeout

    async def notify(self, batch_id: int, year: int, month: int, student_count: int) -> bool:
        logger.info(f"📱 알림: batch {batch_id} {year}-{month:02d} 월간 결과 자동 생성 ({student_count}명)")
        if not self.webhook_url:
            return False

        payload = {
            "event": "monthly_results.generated",
            "batch_id": batch_id,
            "year": year,
            "month": month,
            "student_count": student_count,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.post(self.webhook_url, json=payload)
                r.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"❌ 알림 전송 실패: {e}")
            return False
        return True


result_notifier = ResultNotifier()

from __future__ import annotations

from .envelope import Topic


# 잔액 차감(크레딧/CV 채팅 토큰) 이벤트. account-usage-worker 가 월간 사용량으로 집계한다.
TOPIC_ENTITLEMENT = Topic("kariyer-koc.entitlement")

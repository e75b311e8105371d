"""account_service 전역에서 사용하는 공통 상수."""

from __future__ import annotations

# ── 과금 단가 기본값 (site_settings.token_costs 로 덮어쓸 수 있다) ──────────
DEFAULT_TOKEN_COSTS: dict[str, int] = {
    "job_analyze": 5,
    "job_suggest": 10,
    "bulk_match": 5,
    "cv_chat_message": 2,
}

# ── 요금제 기본 카탈로그 (site_settings.subscription_plans 로 덮어쓸 수 있다) ──
DEFAULT_PLANS: list[dict] = [
    {
        "id": "FREE",
        "name": "Ücretsiz",
        "price": 0,
        "credits": 10,
        "cv_chat_tokens": 25,
        "chat_session_limit": 20,
        "cv_limit": 1,
        "cv_application_limit": 3,
        "has_consultant_access": False,
        "is_unlimited": False,
        "features": [
            "1 CV oluşturma",
            "20 AI sohbet mesajı",
            "3 iş başvurusu",
        ],
    },
    {
        "id": "BASIC",
        "name": "Plus",
        "price": 79,
        "credits": 100,
        "cv_chat_tokens": 100,
        "chat_session_limit": 50,
        "cv_limit": 10,
        "cv_application_limit": 25,
        "has_consultant_access": False,
        "is_unlimited": False,
        "features": [
            "10 CV oluşturma",
            "50 AI sohbet mesajı",
            "25 iş başvurusu",
            "PDF CV yükleme & analiz",
            "Öncelikli destek",
        ],
    },
    {
        "id": "PREMIUM",
        "name": "Premium",
        "price": 149,
        "credits": 500,
        "cv_chat_tokens": 500,
        "chat_session_limit": 100,
        "cv_limit": 0,
        "cv_application_limit": 0,
        "has_consultant_access": True,
        "is_unlimited": False,
        "features": [
            "Sınırsız CV oluşturma",
            "Sınırsız AI sohbet",
            "Sınırsız iş başvurusu",
            "PDF CV yükleme & analiz",
            "1-1 kariyer danışmanlığı",
        ],
    },
]

# 구독 1회 결제 기간 (개월)
SUBSCRIPTION_MONTHS = 1

# ── site_settings 키 ────────────────────────────────────────────────
SETTING_SUBSCRIPTION_PLANS = "subscription_plans"
SETTING_TOKEN_COSTS = "token_costs"
SETTING_PAYMENT = "payment"

# ── 주문 번호 ───────────────────────────────────────────────────────
# 혼동되는 문자(I, O, 0, 1)는 제외한다.
ORDER_CODE_PREFIX = "KK-"
ORDER_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ORDER_CODE_LENGTH = 6

# ── CV 빌더 채팅 ────────────────────────────────────────────────────
CV_READY_MARKER = "[CV_READY]"

# ── 공고 추천 / 일괄 매칭 ───────────────────────────────────────────
JOB_SUGGEST_POOL_SIZE = 50
JOB_SUGGEST_LIMIT = 5
BULK_MATCH_POOL_SIZE = 100

# ── PDF 업로드 ──────────────────────────────────────────────────────
PDF_DEFAULT_MAX_BYTES = 50 * 1024 * 1024
PDF_MIN_TEXT_LENGTH = 50

# ── 쿠키 동의 ───────────────────────────────────────────────────────
COOKIE_CONSENT_DEFAULT_DAYS = 30

# ── 관리자 로그 ─────────────────────────────────────────────────────
ADMIN_LOG_STATS_WINDOW_HOURS = 24

# ── 이벤트 ──────────────────────────────────────────────────────────
EVENT_SOURCE = "account-service"
# 월간 사용량 문서에 남겨 두는 최근 처리 이벤트 id 수 (재전달 중복 집계 방지용)
USAGE_PROCESSED_EVENT_IDS_LIMIT = 1000

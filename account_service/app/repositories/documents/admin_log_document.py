from __future__ import annotations

from common.mongo.types import BaseDocument, build_document_data_from_domain, from_object_id

from ...models.admin_log import AdminAction, AdminLog, TargetType


class AdminLogDocument(BaseDocument):
    """MongoDB admin_logs 컬렉션 도큐먼트 모델."""

    admin_code: str
    action: str
    target_type: str
    target_id: str | None = None
    details: str | None = None
    ip_address: str = "unknown"
    user_agent: str = "unknown"

    @classmethod
    def from_domain(cls, log: AdminLog) -> "AdminLogDocument":
        data = build_document_data_from_domain(log)
        return cls.model_validate(data)

    def to_domain(self) -> AdminLog:
        return AdminLog(
            id=from_object_id(self.id),
            admin_code=self.admin_code,
            action=AdminAction(self.action),
            target_type=TargetType(self.target_type),
            target_id=self.target_id,
            details=self.details,
            ip_address=self.ip_address,
            user_agent=self.user_agent,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

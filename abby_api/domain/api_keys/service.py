"""API key service - Admin-managed keys for outside integrations"""

import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ...database import unit_of_work
from ...models import APIKey, User
from ...security_utils import generate_api_key, hash_api_key, key_preview

logger = logging.getLogger(__name__)


class APIKeyCreate(BaseModel):
    name: Optional[str] = None
    permissions: Optional[list[str]] = None
    expiresAt: Optional[str] = None


class APIKeyUpdate(BaseModel):
    name: Optional[str] = None
    permissions: Optional[list[str]] = None
    isActive: Optional[bool] = None


def api_key_to_dict(key: APIKey) -> dict[str, Any]:
    """Stored key metadata. The hash itself is never returned."""
    return {
        "id": key.id,
        "name": key.name,
        "keyPreview": key_preview(key.key_hash),
        "provider": key.provider,
        "permissions": key.permissions or [],
        "isActive": key.is_active,
        "createdBy": key.created_by,
        "expiresAt": key.expires_at,
        "lastUsed": key.last_used,
        "usageCount": key.usage_count,
        "createdAt": key.created_at,
    }


class APIKeyService:
    def __init__(self, db: Session):
        self.db = db

    def _get(self, key_id: str) -> APIKey:
        key = self.db.query(APIKey).filter(APIKey.id == key_id).first()
        if not key:
            raise HTTPException(status_code=404, detail="API key not found")
        return key

    def list_keys(self) -> list[dict]:
        keys = self.db.query(APIKey).order_by(APIKey.created_at.desc()).all()
        return [api_key_to_dict(k) for k in keys]

    def create_key(self, data: APIKeyCreate, admin: User) -> dict:
        """Generate a key. The raw value is only returned by this call."""
        name = (data.name or "").strip()
        if not name:
            raise HTTPException(status_code=400, detail="API key name is required")

        expires_at = None
        if data.expiresAt:
            try:
                expires_at = datetime.fromisoformat(data.expiresAt.replace("Z", "+00:00")).replace(tzinfo=None)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=f"Invalid expiresAt: {data.expiresAt}") from e

        raw_key = generate_api_key()
        key = APIKey(
            name=name,
            key_hash=hash_api_key(raw_key),
            permissions=data.permissions or [],
            created_by=admin.id,
            expires_at=expires_at,
        )
        with unit_of_work(self.db):
            self.db.add(key)
        logger.info(f"🔑 Admin {admin.id} created API key {key.id} ({name})")
        return {"message": "API key created successfully", "apiKey": raw_key, "keyInfo": api_key_to_dict(key)}

    def update_key(self, key_id: str, data: APIKeyUpdate) -> dict:
        key = self._get(key_id)
        with unit_of_work(self.db):
            if data.name is not None:
                if not data.name.strip():
                    raise HTTPException(status_code=400, detail="API key name is required")
                key.name = data.name.strip()
            if data.permissions is not None:
                key.permissions = data.permissions
            if data.isActive is not None:
                key.is_active = data.isActive
        return {"message": "API key updated successfully", "keyInfo": api_key_to_dict(key)}

    def delete_key(self, key_id: str, admin: User) -> dict:
        key = self._get(key_id)
        with unit_of_work(self.db):
            self.db.delete(key)
        logger.info(f"🔑 Admin {admin.id} deleted API key {key_id}")
        return {"message": "API key deleted successfully"}

"""
Best-effort provider-side revocation used on disconnect.

``revoke`` tries once and always returns an outcome; the caller logs it and
deletes the local row either way.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from connectors.base import BaseConnector
from connectors.encryption import TokenCipher
from database.models import UserConnection

logger = logging.getLogger(__name__)


class RevocationStatus(str, Enum):
    REVOKED = "revoked"
    FAILED = "failed"


@dataclass(frozen=True)
class RevocationOutcome:
    status: RevocationStatus
    reason: Optional[str] = None

    @classmethod
    def revoked(cls) -> "RevocationOutcome":
        return cls(RevocationStatus.REVOKED)

    @classmethod
    def failed(cls, reason: str) -> "RevocationOutcome":
        return cls(RevocationStatus.FAILED, reason)


class RevocationCoordinator:
    def __init__(self, connector: BaseConnector, cipher: TokenCipher) -> None:
        self._connector = connector
        self._cipher = cipher

    async def revoke(self, connection: UserConnection) -> RevocationOutcome:
        try:
            access_token = self._cipher.decrypt_token(connection.access_token)
            await self._connector.revoke_token(access_token)
        except Exception as exc:
            logger.warning(
                "%s token revocation failed for user %s: %s",
                self._connector.display_name,
                connection.user_id,
                exc,
            )
            return RevocationOutcome.failed(str(exc) or exc.__class__.__name__)

        logger.info(
            "Revoked %s grant for user %s", self._connector.display_name, connection.user_id
        )
        return RevocationOutcome.revoked()

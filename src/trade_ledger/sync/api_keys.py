# src/trade_ledger/sync/api_keys.py
"""API keys that authenticate an MT5 terminal as an owner."""
import hashlib
import hmac
import logging
import secrets

from trade_ledger.errors import ApiKeyError
from trade_ledger.ledger.models import ApiKeyRecord
from trade_ledger.ledger.store import LedgerStore
from trade_ledger.sync.models import ApiKeyStatus
from trade_ledger.sync.settings import ApiKeyConfig

logger = logging.getLogger(__name__)


def generate_api_key() -> str:
    """Generate a random 64-character hex key."""
    return secrets.token_hex(32)


def hash_api_key(api_key: str, secret: str) -> str:
    """HMAC-SHA256 of the key under the server secret, hex encoded."""
    return hmac.new(secret.encode(), api_key.encode(), hashlib.sha256).hexdigest()


class ApiKeyManager:
    """Issues sync API keys and resolves them back to owners.

    Only the hash of a key is stored; the plain key is returned once, when
    it is issued.
    """

    def __init__(self, store: LedgerStore, config: ApiKeyConfig) -> None:
        self._store = store
        self._config = config

    def _secret(self) -> str:
        if not self._config.api_key_secret:
            raise ApiKeyError("API key secret is not configured")
        return self._config.api_key_secret

    async def regenerate(self, owner_id: str) -> str:
        """Issue a new key for the owner, invalidating any previous one.

        Returns:
            The plain API key.

        Raises:
            ApiKeyError: If no secret is configured.
        """
        api_key = generate_api_key()
        record = ApiKeyRecord(owner_id=owner_id, key_hash=hash_api_key(api_key, self._secret()))
        await self._store.save_api_key(record)
        logger.info(f"Issued sync API key for owner {owner_id}")
        return api_key

    async def status(self, owner_id: str) -> ApiKeyStatus:
        record = await self._store.get_api_key(owner_id)
        if record is None:
            return ApiKeyStatus(has_key=False, created_at=None)
        return ApiKeyStatus(has_key=True, created_at=record.created_at)

    async def resolve_owner(self, api_key: str) -> str:
        """Resolve a presented key to its owner id.

        Raises:
            ApiKeyError: If the key is empty or unknown, or no secret is configured.
        """
        if not api_key:
            raise ApiKeyError("Unauthorized")
        record = await self._store.find_api_key_by_hash(hash_api_key(api_key, self._secret()))
        if record is None:
            raise ApiKeyError("Unauthorized")
        return record.owner_id

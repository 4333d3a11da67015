"""
Oracle Service Client Module

REST client for the external governance, repayment and impact-verification
oracle service. Implements the approval, repayment and impact ports.
"""

import httpx
import logging
from typing import Optional

from .ports import ApprovalOracle, ImpactOracle, RepaymentOracle

logger = logging.getLogger("escrow_lending.oracle")


class OracleServiceClient(ApprovalOracle, RepaymentOracle, ImpactOracle):
    """REST client for the oracle service; unreachable or malformed answers read as False"""

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        timeout: float = 2.0,  # Oracle answers gate fund movement, fail fast
        api_key: Optional[str] = None,
        client: Optional[httpx.Client] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.api_key = api_key
        self._client = client or httpx.Client(timeout=timeout)

    def _headers(self) -> dict:
        if self.api_key:
            return {"Authorization": f"Bearer {self.api_key}"}
        return {}

    def _get_flag(self, path: str, field: str) -> bool:
        """GET a JSON document and read one boolean field from it"""
        try:
            response = self._client.get(f"{self.base_url}{path}", headers=self._headers())
        except httpx.HTTPError as e:
            logger.error(f"Oracle request {path} failed: {e}")
            return False

        if response.status_code != 200:
            logger.warning(f"Oracle returned {response.status_code} for {path}: {response.text}")
            return False

        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"Oracle returned malformed JSON for {path}: {e}")
            return False

        return isinstance(data, dict) and data.get(field) is True

    def is_proposal_approved(self, proposal_id: int) -> bool:
        return self._get_flag(f"/proposals/{proposal_id}/approval", "approved")

    def is_repayment_complete(self, loan_id: int) -> bool:
        return self._get_flag(f"/loans/{loan_id}/repayment", "complete")

    def is_impact_verified(self, proposal_id: int) -> bool:
        return self._get_flag(f"/proposals/{proposal_id}/impact", "verified")

    def health_check(self) -> bool:
        try:
            r = self._client.get(f"{self.base_url}/health")
            return r.status_code == 200
        except httpx.HTTPError:
            return False

    def close(self):
        self._client.close()

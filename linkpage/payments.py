"""Payment backend (Addie) integration for Stripe payment intents."""

import logging
import secrets
import time
from typing import Any, Dict, List, Optional

import requests

from linkpage.audit_logger import get_audit_logger
from linkpage.errors import UpstreamError
from linkpage.identity import Keypair, sign

logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()

PROCESSOR = "stripe"


class PaymentClient:
    """Creates payment-backend users and payment intents (``stub`` or ``http``)."""

    def __init__(self, base_url: str, backend: str = "stub", timeout: int = 10):
        self.base_url = base_url.rstrip("/")
        self.backend = backend
        self.timeout = timeout

    def create_user(self, keypair: Keypair) -> str:
        """Register ``keypair`` with the payment backend and return its uuid."""
        try:
            if self.backend == "http":
                timestamp = str(int(time.time() * 1000))
                payload = {
                    "timestamp": timestamp,
                    "pubKey": keypair.pub_key,
                    "signature": sign(timestamp + keypair.pub_key, keypair.private_key),
                }
                data = self._request("PUT", "/user/create", payload)
                uuid = data.get("uuid")
                if not uuid:
                    raise UpstreamError("Addie user response missing uuid")
            else:
                uuid = f"addie_{secrets.token_hex(12)}"

            logger.info(f"Payment user created: {uuid}")
            audit_logger.log_upstream_call("addie", "create_user", True)
            return uuid

        except UpstreamError as e:
            audit_logger.log_upstream_call("addie", "create_user", False, e.message)
            raise

    def create_intent(
        self,
        user_uuid: str,
        amount: int,
        currency: str,
        keypair: Keypair,
        payees: Optional[List[Dict[str, Any]]] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Create a payment intent, with revenue splits when ``payees`` is non-empty.

        Returns:
            dict with clientSecret, publishableKey, customer and ephemeralKey
        """
        try:
            if self.backend == "http":
                timestamp = str(int(time.time() * 1000))
                message = f"{timestamp}{user_uuid}{amount}{currency}"
                payload: Dict[str, Any] = {
                    "timestamp": timestamp,
                    "amount": amount,
                    "currency": currency,
                    "signature": sign(message, keypair.private_key),
                }
                if metadata:
                    payload["metadata"] = metadata
                if payees:
                    payload["payees"] = payees
                    path = f"/user/{user_uuid}/processor/{PROCESSOR}/intent"
                else:
                    path = f"/user/{user_uuid}/processor/{PROCESSOR}/intent-without-splits"
                data = self._request("PUT", path, payload)
                if not data.get("paymentIntent"):
                    raise UpstreamError("Addie intent response missing paymentIntent")
            else:
                intent_id = f"pi_{secrets.token_urlsafe(16)}"
                data = {
                    "paymentIntent": f"{intent_id}_secret_{secrets.token_urlsafe(16)}",
                    "publishableKey": "pk_test_stub",
                    "customer": f"cus_{secrets.token_urlsafe(10)}",
                    "ephemeralKey": f"ek_test_{secrets.token_urlsafe(16)}",
                }

            logger.info(
                f"Payment intent created for {amount} {currency} "
                f"({'with ' + str(len(payees)) + ' payees' if payees else 'without splits'})"
            )
            audit_logger.log_upstream_call("addie", "create_intent", True)
            return {
                "clientSecret": data.get("paymentIntent"),
                "publishableKey": data.get("publishableKey"),
                "customer": data.get("customer"),
                "ephemeralKey": data.get("ephemeralKey"),
            }

        except UpstreamError as e:
            audit_logger.log_upstream_call("addie", "create_intent", False, e.message)
            raise

    def _request(self, method: str, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            resp = requests.request(method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Addie request failed: {e}", exc_info=True)
            raise UpstreamError(f"Payment backend unavailable: {e}") from e

        if resp.status_code >= 300:
            raise UpstreamError(f"Payment backend error: {resp.status_code} {resp.text}")
        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError("Payment backend returned invalid JSON") from e


logger.info("Payment module loaded (stub unless ADDIE_BACKEND=http)")

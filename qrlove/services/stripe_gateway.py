"""
Integração com a Stripe via API REST (httpx): códigos promocionais, sessões de checkout
e verificação da assinatura do webhook.
"""
from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from typing import Any, NamedTuple

import httpx

from qrlove.core.config import settings
from qrlove.services.pricing import ExternalPromotion, PromotionLookupError

log = logging.getLogger(__name__)

USER_AGENT = "QRLoveBackend/1.0"


class StripeError(Exception):
    """Erro retornado pela Stripe (HTTP >= 400) ou falha de rede."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class WebhookSignatureError(Exception):
    pass


class CheckoutSession(NamedTuple):
    id: str
    url: str | None
    metadata: dict


def encode_form(data: dict[str, Any], prefix: str = "") -> list[tuple[str, str]]:
    """Achata dicts/listas na notação de colchetes da Stripe: a[b][0][c]=v."""
    pairs: list[tuple[str, str]] = []
    for key, value in data.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, dict):
            pairs.extend(encode_form(value, name))
        elif isinstance(value, (list, tuple)):
            for i, item in enumerate(value):
                item_name = f"{name}[{i}]"
                if isinstance(item, dict):
                    pairs.extend(encode_form(item, item_name))
                else:
                    pairs.append((item_name, _form_value(item)))
        else:
            pairs.append((name, _form_value(value)))
    return pairs


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class StripeGateway:
    def __init__(
        self,
        secret_key: str,
        api_base: str = "https://api.stripe.com",
        timeout: float = 20.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.secret_key = secret_key
        self.api_base = (api_base or "https://api.stripe.com").rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls) -> "StripeGateway":
        return cls(
            settings.stripe_secret_key,
            api_base=settings.stripe_api_base,
            timeout=settings.stripe_timeout_seconds,
        )

    def _request(
        self,
        method: str,
        path: str,
        params: list[tuple[str, str]] | None = None,
        data: list[tuple[str, str]] | None = None,
    ) -> dict:
        headers = {
            "Authorization": f"Bearer {self.secret_key}",
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        try:
            with httpx.Client(base_url=self.api_base, timeout=self.timeout, transport=self.transport) as client:
                resp = client.request(method, path, params=params, data=dict(data) if data else None, headers=headers)
        except httpx.HTTPError as e:
            log.warning("Stripe request failed: method=%s path=%s error=%s", method, path, e)
            raise StripeError(f"Stripe connection error: {e}") from e
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if resp.status_code >= 400:
            err = body.get("error") if isinstance(body, dict) else None
            msg = (err or {}).get("message") if isinstance(err, dict) else None
            log.warning("Stripe request failed: method=%s path=%s status=%s", method, path, resp.status_code)
            raise StripeError(msg or f"Stripe HTTP {resp.status_code}", resp.status_code)
        return body if isinstance(body, dict) else {}

    def list_active_promotions(self, code: str, limit: int = 1) -> list[ExternalPromotion]:
        body = self._request(
            "GET",
            "/v1/promotion_codes",
            params=[("code", code), ("active", "true"), ("limit", str(limit))],
        )
        data = body.get("data") or []
        if not isinstance(data, list):
            raise StripeError("Unexpected promotion_codes response")
        return [
            ExternalPromotion(id=str(item["id"]), code=str(item.get("code") or code))
            for item in data
            if isinstance(item, dict) and item.get("id")
        ]

    def find_active_promotion(self, code: str) -> ExternalPromotion | None:
        """Primeiro código promocional ativo com este código; None se não houver."""
        try:
            found = self.list_active_promotions(code, limit=1)
        except StripeError as e:
            raise PromotionLookupError(str(e)) from e
        return found[0] if found else None

    def create_checkout_session(self, params: dict[str, Any]) -> CheckoutSession:
        body = self._request("POST", "/v1/checkout/sessions", data=encode_form(params))
        if not body.get("id"):
            raise StripeError("Stripe did not return a session id")
        return CheckoutSession(id=body["id"], url=body.get("url"), metadata=body.get("metadata") or {})


def verify_webhook_signature(
    payload: bytes,
    sig_header: str | None,
    secret: str,
    tolerance: int = 300,
    now: float | None = None,
) -> dict:
    """
    Valida o cabeçalho Stripe-Signature (t=timestamp, v1=HMAC-SHA256 de "t.payload")
    e retorna o evento decodificado.
    """
    if not secret:
        raise WebhookSignatureError("Webhook secret not configured")
    if not sig_header:
        raise WebhookSignatureError("Missing Stripe-Signature header")
    timestamp = None
    signatures: list[str] = []
    for part in sig_header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            timestamp = value
        elif key == "v1":
            signatures.append(value)
    if not timestamp or not signatures:
        raise WebhookSignatureError("Malformed Stripe-Signature header")
    try:
        ts = int(timestamp)
    except ValueError:
        raise WebhookSignatureError("Invalid timestamp in signature") from None

    signed = f"{timestamp}.".encode() + payload
    expected = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    if not any(hmac.compare_digest(expected, s) for s in signatures):
        raise WebhookSignatureError("No signature matches the payload")
    current = time.time() if now is None else now
    if tolerance and abs(current - ts) > tolerance:
        raise WebhookSignatureError("Timestamp outside the tolerance zone")
    try:
        event = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        raise WebhookSignatureError("Invalid payload") from None
    if not isinstance(event, dict):
        raise WebhookSignatureError("Invalid payload")
    return event


def sign_webhook_payload(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """Gera um Stripe-Signature válido (usado em testes e no replay manual de eventos)."""
    ts = int(time.time()) if timestamp is None else timestamp
    sig = hmac.new(secret.encode(), f"{ts}.".encode() + payload, hashlib.sha256).hexdigest()
    return f"t={ts},v1={sig}"

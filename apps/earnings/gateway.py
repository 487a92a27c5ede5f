import hashlib
import hmac
import logging
import time
from decimal import Decimal

import requests
from django.conf import settings

from core.exceptions import PaymentGatewayError

logger = logging.getLogger(__name__)


class PaymentGateway:
    """Card payment provider. Implementations return the provider's charge reference."""

    def create_charge(self, amount, payer, payee, metadata=None):
        raise NotImplementedError


class StripeGateway(PaymentGateway):

    def __init__(self, secret_key=None, api_base=None, timeout=10):
        self.secret_key = secret_key if secret_key is not None else settings.STRIPE_SECRET_KEY
        self.api_base = (api_base or settings.STRIPE_API_BASE).rstrip('/')
        self.timeout = timeout

    def create_charge(self, amount, payer, payee, metadata=None):
        """
        Create a USD payment intent for ``amount`` dollars, routed to the
        payee's connected account when they have one.
        """
        payload = {
            'amount': int((Decimal(str(amount)) * 100).to_integral_value()),
            'currency': 'usd',
            'confirm': 'true',
        }
        if payer.payment_customer_id:
            payload['customer'] = payer.payment_customer_id
        if payee is not None and payee.payout_account_id:
            payload['transfer_data[destination]'] = payee.payout_account_id
        for key, value in (metadata or {}).items():
            payload[f'metadata[{key}]'] = str(value)

        headers = {'Authorization': f'Bearer {self.secret_key.strip()}'}
        try:
            logger.info(f"Creating payment intent for {amount} USD, metadata={metadata}")
            response = requests.post(
                f"{self.api_base}/payment_intents",
                data=payload,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.HTTPError as e:
            logger.error(f"Payment gateway HTTP error: {str(e)}, Response: {e.response.text if e.response is not None else ''}")
            raise PaymentGatewayError(f"Payment gateway rejected the charge: {e}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Payment gateway request failed: {str(e)}")
            raise PaymentGatewayError(f"Payment gateway unreachable: {e}") from e
        except ValueError as e:
            logger.error(f"Payment gateway returned invalid JSON: {str(e)}")
            raise PaymentGatewayError("Payment gateway returned an invalid response") from e

        reference = data.get('id')
        if not reference:
            logger.error(f"Payment gateway response without id: {data}")
            raise PaymentGatewayError("Payment gateway response did not include a reference")
        logger.info(f"Payment intent {reference} created")
        return reference


def get_gateway():
    return StripeGateway()


def verify_webhook_signature(payload, header, secret=None, tolerance=300, now=None):
    """
    Check a ``t=<timestamp>,v1=<hex digest>`` signature header: HMAC-SHA256
    over ``"{t}.{payload}"`` with the webhook secret, timestamp within
    ``tolerance`` seconds.
    """
    secret = secret if secret is not None else settings.STRIPE_WEBHOOK_SECRET
    if not header or not secret:
        return False

    parts = {}
    for item in header.split(','):
        key, _, value = item.strip().partition('=')
        parts.setdefault(key, []).append(value)
    try:
        timestamp = int(parts['t'][0])
    except (KeyError, IndexError, ValueError):
        return False
    signatures = parts.get('v1', [])
    if not signatures:
        return False

    current = now if now is not None else time.time()
    if abs(current - timestamp) > tolerance:
        logger.warning(f"Webhook signature timestamp {timestamp} outside tolerance")
        return False

    if isinstance(payload, str):
        payload = payload.encode('utf-8')
    signed = f"{timestamp}.".encode('utf-8') + payload
    expected = hmac.new(secret.encode('utf-8'), signed, hashlib.sha256).hexdigest()
    return any(hmac.compare_digest(expected, candidate) for candidate in signatures)

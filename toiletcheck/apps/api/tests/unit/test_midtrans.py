"""Midtrans signature, status classification, dedup keys and Snap client."""

import hashlib
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from toiletcheck_api.billing.midtrans import (
    PRODUCTION_SNAP_URL,
    SANDBOX_SNAP_URL,
    MidtransClient,
    PaymentOutcome,
    classify_transaction_status,
    compute_signature,
    verify_signature,
)
from toiletcheck_api.billing.webhook_dedup import get_midtrans_dedup_key


def test_signature_is_sha512_of_concatenation():
    expected = hashlib.sha512(b"ORDER-1200100000.00server-key").hexdigest()
    assert compute_signature("ORDER-1", "200", "100000.00", "server-key") == expected


def test_verify_signature_rejects_tampering():
    good = compute_signature("ORDER-1", "200", "100000.00", "server-key")

    assert verify_signature("ORDER-1", "200", "100000.00", good, "server-key")
    assert not verify_signature("ORDER-1", "200", "1.00", good, "server-key")
    assert not verify_signature("ORDER-1", "200", "100000.00", good, "other-key")
    assert not verify_signature("ORDER-1", "200", "100000.00", "", "server-key")


@pytest.mark.parametrize(
    "status,outcome",
    [
        ("settlement", PaymentOutcome.SUCCESS),
        ("capture", PaymentOutcome.SUCCESS),
        ("deny", PaymentOutcome.FAILURE),
        ("cancel", PaymentOutcome.FAILURE),
        ("expire", PaymentOutcome.FAILURE),
        ("pending", PaymentOutcome.PENDING),
        (None, PaymentOutcome.PENDING),
    ],
)
def test_classify_transaction_status(status, outcome):
    assert classify_transaction_status(status) is outcome


def test_dedup_key_includes_status_transition():
    payload = {"order_id": "ORDER-1", "transaction_status": "settlement", "status_code": "200"}
    assert get_midtrans_dedup_key(payload) == "ORDER-1:settlement:200"


def test_dedup_key_requires_all_parts():
    with pytest.raises(ValueError):
        get_midtrans_dedup_key({"order_id": "ORDER-1", "status_code": "200"})


def test_client_picks_gateway_url():
    assert MidtransClient(server_key="k", is_production=False).snap_url == SANDBOX_SNAP_URL
    assert MidtransClient(server_key="k", is_production=True).snap_url == PRODUCTION_SNAP_URL


def test_client_requires_server_key():
    with pytest.raises(ValueError):
        MidtransClient(server_key="")


@pytest.mark.asyncio
async def test_create_transaction_posts_with_basic_auth():
    response = MagicMock()
    response.json.return_value = {"token": "snap-token", "redirect_url": "https://pay/abc"}
    response.raise_for_status.return_value = None

    http = AsyncMock()
    http.post.return_value = response
    http.__aenter__.return_value = http

    with patch("toiletcheck_api.billing.midtrans.httpx.AsyncClient", return_value=http):
        client = MidtransClient(server_key="SB-key", is_production=False)
        result = await client.create_transaction({"transaction_details": {"order_id": "ORDER-1"}})

    assert result == {"token": "snap-token", "redirect_url": "https://pay/abc"}
    _, kwargs = http.post.call_args
    assert kwargs["headers"]["Authorization"].startswith("Basic ")

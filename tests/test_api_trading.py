"""
Tests for the trading API endpoints.

Tests FastAPI routes against a real SQLite ledger.
Validates request validation, response schemas, and error mapping.
"""

from decimal import Decimal

from app.core.config import settings
from app.infrastructure.trading.security import JwtTokenService

CREDENTIALS = {"username": "alice", "password": "s3cret"}


def buy(client, headers, amount=10, coin_id="CRN", type_="buy"):
    return client.post(
        "/api/transaction",
        json={"coinId": coin_id, "type": type_, "amount": amount},
        headers=headers,
    )


class TestSignupEndpoint:
    """Tests for POST /api/signup."""

    def test_signup_returns_201(self, client) -> None:
        response = client.post("/api/signup", json=CREDENTIALS)
        assert response.status_code == 201
        assert response.json() == {"message": "User registered successfully"}

    def test_duplicate_username_returns_400(self, client) -> None:
        client.post("/api/signup", json=CREDENTIALS)
        response = client.post("/api/signup", json=CREDENTIALS)
        assert response.status_code == 400
        assert response.json()["error"] == "Username already exists"

    def test_missing_password_returns_400(self, client) -> None:
        response = client.post("/api/signup", json={"username": "alice"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"


class TestLoginEndpoint:
    """Tests for POST /api/login."""

    def test_login_returns_token(self, client) -> None:
        client.post("/api/signup", json=CREDENTIALS)
        response = client.post("/api/login", json=CREDENTIALS)
        assert response.status_code == 200
        body = response.json()
        assert body["token_type"] == "bearer"
        assert body["token"]

    def test_unknown_username_returns_400(self, client) -> None:
        response = client.post("/api/login", json=CREDENTIALS)
        assert response.status_code == 400
        assert response.json()["error"] == "Cannot find user"

    def test_wrong_password_returns_401(self, client) -> None:
        client.post("/api/signup", json=CREDENTIALS)
        response = client.post("/api/login", json={"username": "alice", "password": "wrong"})
        assert response.status_code == 401
        assert response.json()["error"] == "Not Allowed"


class TestUserEndpoint:
    """Tests for GET /api/user."""

    def test_returns_public_user(self, client, auth_headers) -> None:
        response = client.get("/api/user", headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["username"] == "alice"
        assert Decimal(body["balance"]) == Decimal("10000")
        assert body["holdings"] == {}
        assert "password_hash" not in body

    def test_missing_token_returns_401(self, client) -> None:
        response = client.get("/api/user")
        assert response.status_code == 401
        assert response.json()["error"] == "No token provided"

    def test_invalid_token_returns_403(self, client) -> None:
        response = client.get("/api/user", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 403
        assert response.json()["error"] == "Invalid token"

    def test_token_signed_with_other_secret_returns_403(self, client) -> None:
        token = JwtTokenService("another-secret").issue("someone")
        response = client.get("/api/user", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 403

    def test_token_for_unknown_user_returns_404(self, client) -> None:
        token = JwtTokenService(settings.jwt_secret, settings.jwt_algorithm).issue("ghost")
        response = client.get("/api/user", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 404
        assert response.json()["error"] == "User not found"


class TestCoinsEndpoint:
    """Tests for GET /api/coins."""

    def test_lists_seeded_coins(self, client) -> None:
        response = client.get("/api/coins")
        assert response.status_code == 200
        coins = {c["symbol"]: c for c in response.json()}
        assert set(coins) == {"CRN", "SOL", "ZRX", "MNT", "DOT"}
        assert Decimal(coins["ZRX"]["price"]) == Decimal("1.25")
        assert len(coins["CRN"]["price_history"]) == 1


class TestTransactionEndpoint:
    """Tests for POST /api/transaction."""

    def test_buy_crn(self, client, auth_headers, publisher) -> None:
        response = buy(client, auth_headers, amount=10)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Transaction successful"
        assert Decimal(body["user"]["balance"]) == Decimal("8250")
        assert {k: Decimal(v) for k, v in body["user"]["holdings"].items()} == {"CRN": Decimal("10")}
        assert Decimal(body["transaction"]["price"]) == Decimal("175.0175")
        assert Decimal(body["coin_price"]) == Decimal("175.0175")

        coins = {c["symbol"]: c for c in client.get("/api/coins").json()}
        assert Decimal(coins["CRN"]["price"]) == Decimal("175.0175")
        assert len(publisher.price_updates) == 1
        assert len(publisher.user_updates) == 1

    def test_requires_token(self, client) -> None:
        response = buy(client, {})
        assert response.status_code == 401

    def test_insufficient_funds_returns_400(self, client, auth_headers) -> None:
        response = buy(client, auth_headers, amount=1000)
        assert response.status_code == 400
        assert response.json()["error"] == "Insufficient funds"

    def test_insufficient_holdings_returns_400(self, client, auth_headers) -> None:
        response = buy(client, auth_headers, amount=1, type_="sell")
        assert response.status_code == 400
        assert response.json()["error"] == "Insufficient coin balance"

    def test_unknown_type_returns_400(self, client, auth_headers) -> None:
        response = buy(client, auth_headers, type_="hold")
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid transaction type"

    def test_unknown_coin_returns_400(self, client, auth_headers) -> None:
        response = buy(client, auth_headers, coin_id="XYZ")
        assert response.status_code == 400
        assert response.json()["error"] == "Coin not found: XYZ"

    def test_non_positive_amount_returns_400(self, client, auth_headers) -> None:
        for amount in (0, -3):
            response = buy(client, auth_headers, amount=amount)
            assert response.status_code == 400

    def test_amount_beyond_eight_decimals_returns_400(self, client, auth_headers) -> None:
        response = buy(client, auth_headers, amount="0.1234567890123456789012345678401")
        assert response.status_code == 400
        assert client.get("/api/user", headers=auth_headers).json()["holdings"] == {}

    def test_failed_trade_changes_nothing(self, client, auth_headers, publisher) -> None:
        before = client.get("/api/user", headers=auth_headers).json()
        buy(client, auth_headers, amount=1000)
        assert client.get("/api/user", headers=auth_headers).json() == before
        assert publisher.user_updates == []


class TestTransactionsEndpoint:
    """Tests for GET /api/transactions."""

    def test_newest_five(self, client, auth_headers) -> None:
        for amount in range(1, 7):
            assert buy(client, auth_headers, amount=amount).status_code == 200

        response = client.get("/api/transactions", headers=auth_headers)

        assert response.status_code == 200
        amounts = [Decimal(t["amount"]) for t in response.json()]
        assert amounts == [Decimal(a) for a in (6, 5, 4, 3, 2)]

    def test_requires_token(self, client) -> None:
        assert client.get("/api/transactions").status_code == 401


class TestSecurityHeaders:
    """Tests for security headers on responses."""

    def test_security_headers_present(self, client) -> None:
        """All security headers must be present on every response."""
        response = client.get("/api/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Cache-Control"] == "no-store"

    def test_error_responses_carry_headers(self, client) -> None:
        response = client.get("/api/user")
        assert response.headers["X-Content-Type-Options"] == "nosniff"


class TestRateLimiting:
    """Tests for rate limiting behavior."""

    def test_rate_limit_returns_429(self, client) -> None:
        """Exceeding the auth rate limit returns HTTP 429."""
        limit = int(settings.rate_limit_auth.split("/")[0])
        statuses = [
            client.post("/api/login", json=CREDENTIALS).status_code
            for _ in range(limit + 1)
        ]
        assert 429 not in statuses[:limit]
        assert statuses[-1] == 429

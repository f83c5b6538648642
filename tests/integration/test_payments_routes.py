"""Integration tests for payment routes."""

from datetime import datetime, timezone

from fastapi.testclient import TestClient

from quotaledger.infrastructure.database.models import Sale


def sequential_body(*amounts: int, method: str = "cash", notes: str | None = None) -> dict:
    return {
        "payments": [
            {
                "payment_date": datetime.now(timezone.utc).isoformat(),
                "amount_cents": amount,
                "method": method,
            }
            for amount in amounts
        ],
        "notes": notes,
    }


class TestSequentialPaymentRoute:
    """Tests for POST /api/v1/sales/{sale_id}/payments/sequential."""

    def test_create_sequential_payment(
        self, api_client: TestClient, company_headers, sample_sale, quota_ids
    ):
        response = api_client.post(
            f"/api/v1/sales/{sample_sale.id}/payments/sequential",
            json=sequential_body(2000, 500),
            headers=company_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["amount_cents"] == 2500
        assert data["applied_amount_cents"] == 2500
        assert data["credit_granted_cents"] == 0
        assert data["status"] == "completed"
        assert data["method"] == "cash"
        assert data["collector_id"] == "collector-1"
        assert [a["quota_id"] for a in data["affected_quotas"]] == quota_ids

    def test_overpayment_note(self, api_client: TestClient, company_headers, sample_sale):
        response = api_client.post(
            f"/api/v1/sales/{sample_sale.id}/payments/sequential",
            json=sequential_body(3500),
            headers=company_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["credit_granted_cents"] == 500
        assert "5.00" in data["notes"]

    def test_empty_payments_rejected(self, api_client: TestClient, company_headers, sample_sale):
        response = api_client.post(
            f"/api/v1/sales/{sample_sale.id}/payments/sequential",
            json={"payments": []},
            headers=company_headers,
        )

        assert response.status_code == 422

    def test_unknown_sale(self, api_client: TestClient, company_headers, sample_client):
        response = api_client.post(
            "/api/v1/sales/missing/payments/sequential",
            json=sequential_body(100),
            headers=company_headers,
        )

        assert response.status_code == 404
        assert "missing" in response.json()["detail"]

    def test_requires_company_header(self, api_client: TestClient, sample_sale):
        response = api_client.post(
            f"/api/v1/sales/{sample_sale.id}/payments/sequential",
            json=sequential_body(100),
        )

        assert response.status_code == 400

    def test_rejects_malformed_company(self, api_client: TestClient, sample_sale):
        response = api_client.post(
            f"/api/v1/sales/{sample_sale.id}/payments/sequential",
            json=sequential_body(100),
            headers={"X-Company-ID": "../../etc/passwd"},
        )

        assert response.status_code == 400


class TestBulkPaymentRoute:
    """Tests for POST /api/v1/sales/{sale_id}/payments."""

    def test_create_bulk_payment(self, api_client: TestClient, company_headers, sample_sale, quota_ids):
        response = api_client.post(
            f"/api/v1/sales/{sample_sale.id}/payments",
            json={"quota_ids": quota_ids[:2], "method": "transfer"},
            headers=company_headers,
        )

        assert response.status_code == 201
        assert response.json()["amount_cents"] == 2000

    def test_already_paid_quota(self, api_client: TestClient, company_headers, sample_sale, quota_ids):
        body = {"quota_ids": [quota_ids[0]], "method": "cash"}
        api_client.post(f"/api/v1/sales/{sample_sale.id}/payments", json=body, headers=company_headers)

        response = api_client.post(
            f"/api/v1/sales/{sample_sale.id}/payments", json=body, headers=company_headers
        )

        assert response.status_code == 400
        assert "already been paid" in response.json()["detail"]

    def test_invalid_method(self, api_client: TestClient, company_headers, sample_sale, quota_ids):
        response = api_client.post(
            f"/api/v1/sales/{sample_sale.id}/payments",
            json={"quota_ids": quota_ids, "method": "bitcoin"},
            headers=company_headers,
        )

        assert response.status_code == 422


class TestRevertPaymentRoute:
    """Tests for POST /api/v1/sales/{sale_id}/payments/{payment_id}/revert."""

    def test_revert_and_revert_again(self, api_client: TestClient, company_headers, sample_sale):
        created = api_client.post(
            f"/api/v1/sales/{sample_sale.id}/payments/sequential",
            json=sequential_body(1500),
            headers=company_headers,
        ).json()
        url = f"/api/v1/sales/{sample_sale.id}/payments/{created['id']}/revert"

        first = api_client.post(url, headers=company_headers)
        second = api_client.post(url, headers=company_headers)

        assert first.status_code == 200
        assert first.json()["status"] == "reverted"
        assert second.status_code == 400

        sale = api_client.get(f"/api/v1/sales/{sample_sale.id}", headers=company_headers).json()
        assert sale["collected_amount_cents"] == 0
        assert sale["pending_amount_cents"] == 3000

    def test_unknown_payment(self, api_client: TestClient, company_headers, sample_sale):
        response = api_client.post(
            f"/api/v1/sales/{sample_sale.id}/payments/missing/revert", headers=company_headers
        )

        assert response.status_code == 404

    def test_corrupted_ledger_is_a_server_error(
        self, api_client: TestClient, company_headers, store, company, sample_sale
    ):
        created = api_client.post(
            f"/api/v1/sales/{sample_sale.id}/payments/sequential",
            json=sequential_body(1500),
            headers=company_headers,
        ).json()
        with store.session(company) as session:
            session.get(Sale, sample_sale.id).collected_amount_cents = 100

        response = api_client.post(
            f"/api/v1/sales/{sample_sale.id}/payments/{created['id']}/revert", headers=company_headers
        )

        assert response.status_code == 500
        assert "applied more than sale" in response.json()["detail"]
        payment = api_client.get(f"/api/v1/payments/{created['id']}", headers=company_headers).json()
        assert payment["status"] == "completed"


class TestListPaymentsRoute:
    """Tests for GET /api/v1/payments."""

    def test_paginated_envelope(self, api_client: TestClient, company_headers, sample_sale):
        for amount in (300, 400, 500):
            api_client.post(
                f"/api/v1/sales/{sample_sale.id}/payments/sequential",
                json=sequential_body(amount),
                headers=company_headers,
            )

        response = api_client.get("/api/v1/payments?limit=2", headers=company_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_docs"] == 3
        assert data["total_pages"] == 2
        assert data["page"] == 1
        assert data["has_next_page"] is True
        assert data["has_prev_page"] is False
        assert [d["amount_cents"] for d in data["docs"]] == [500, 400]

        doc = data["docs"][0]
        assert doc["sale"]["id"] == sample_sale.id
        assert doc["client"]["name"] == "Ana"
        assert doc["affected_quotas"][0]["quota_number"] == 1

    def test_status_filter(self, api_client: TestClient, company_headers, sample_sale):
        created = api_client.post(
            f"/api/v1/sales/{sample_sale.id}/payments/sequential",
            json=sequential_body(300),
            headers=company_headers,
        ).json()
        api_client.post(
            f"/api/v1/sales/{sample_sale.id}/payments/{created['id']}/revert", headers=company_headers
        )

        reverted = api_client.get("/api/v1/payments?status=reverted", headers=company_headers).json()
        completed = api_client.get("/api/v1/payments?status=completed", headers=company_headers).json()

        assert reverted["total_docs"] == 1
        assert completed["total_docs"] == 0

    def test_invalid_filters(self, api_client: TestClient, company_headers):
        bad_status = api_client.get("/api/v1/payments?status=lost", headers=company_headers)
        bad_range = api_client.get(
            "/api/v1/payments?start_date=2024-02-01&end_date=2024-01-01", headers=company_headers
        )

        assert bad_status.status_code == 400
        assert bad_range.status_code == 400

    def test_get_payment(self, api_client: TestClient, company_headers, sample_sale):
        created = api_client.post(
            f"/api/v1/sales/{sample_sale.id}/payments/sequential",
            json=sequential_body(1200),
            headers=company_headers,
        ).json()

        response = api_client.get(f"/api/v1/payments/{created['id']}", headers=company_headers)

        assert response.status_code == 200
        assert [a["amount_applied_cents"] for a in response.json()["affected_quotas"]] == [1000, 200]

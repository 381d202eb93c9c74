"""
Basic tests for the AssetCover API.
"""

from tests.conftest import headers, ALICE, OWNER


def test_root_endpoint(client):
    """Test the root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "AssetCover API"


def test_health_endpoint(client):
    """Test the health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_policies_endpoint_authentication(client):
    """Test that policy creation requires a caller."""
    response = client.post("/v1/policies", json={}, headers={"X-Block-Height": "100"})
    assert response.status_code in (401, 403)


def test_claims_endpoint_authentication(client):
    """Test that claims require a caller."""
    response = client.get("/v1/claims/1", headers={"X-Block-Height": "100"})
    assert response.status_code in (401, 403)


def test_stats_endpoint_authentication(client):
    response = client.get("/v1/stats")
    assert response.status_code in (401, 403)


def test_block_height_header_required(client):
    """Mutating calls need the current height."""
    response = client.post(
        "/v1/policies",
        json={"coverage_amount": 10_000, "duration": 200, "policy_type": "wallet-hack"},
        headers={"Authorization": f"Bearer {ALICE}"}
    )
    assert response.status_code == 422


def test_stats_with_auth(client):
    response = client.get("/v1/stats", headers=headers(OWNER))
    assert response.status_code == 200
    data = response.json()
    assert data["total_policies"] == 0
    assert data["total_premiums"] == 0
    assert data["total_claims_paid"] == 0
    assert data["dynamic_pricing"] is False
    assert data["native_enabled"] is True


def test_policy_creation_with_auth(client):
    """Test native policy creation with valid authentication."""
    data = {"coverage_amount": 10_000, "duration": 200, "policy_type": "wallet-hack"}
    response = client.post("/v1/policies", json=data, headers=headers(ALICE))
    assert response.status_code == 200
    policy = response.json()
    assert policy["policy_id"] == 1
    assert policy["owner"] == ALICE
    assert policy["premium_paid"] == 1000
    assert policy["status"] == "active"


def test_error_body_shape(client):
    """Protocol failures carry a code and a kind."""
    response = client.get("/v1/policies/99", headers=headers(ALICE))
    assert response.status_code == 404
    assert response.json() == {
        "error": "NotFound",
        "kind": "not_found",
        "detail": "Policy 99 not found"
    }

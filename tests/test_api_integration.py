"""
Integration tests for the Escrow Lending API
Tests end-to-end workflows using FastAPI TestClient
"""

import pytest
from fastapi.testclient import TestClient

from escrow_lending.api import app
from escrow_lending.api.dependencies import get_lending_system
from escrow_lending.config import ContractState, EscrowLendingConfig
from escrow_lending.ports import InMemoryLedger, InMemoryOracle
from escrow_lending.storage import InMemoryStorage
from escrow_lending.system import LendingSystem


POOL = "SP000000000000000000002Q6VF7A"
BORROWER = {"X-Caller": "ST2BORROWER"}

LOAN_REQUEST = {
    "pool_id": 1,
    "proposal_id": 1,
    "amount": 5000,
    "escrow_duration": 180,
    "interest_rate": 10,
    "grace_period": 15,
    "currency": "STX",
    "current_time": 0
}


@pytest.fixture
def system():
    state = ContractState(
        max_loans=5000,
        escrow_fee=500,
        governance_contract="SP000000000000000000002Q6VF78",
        repayment_contract="SP000000000000000000002Q6VF79",
        pool_contract=POOL,
        reserved_identity="ST1BORROWER",
        custody_identity="contract"
    )
    oracle = InMemoryOracle()
    ledger = InMemoryLedger(POOL)
    oracle.approve_proposal(1)
    ledger.fund_pool(1, 10000)
    return LendingSystem(InMemoryStorage(), state, ledger, oracle, oracle, oracle)


@pytest.fixture
def client(system):
    """Test client bound to an in-memory lending system"""
    app.dependency_overrides[get_lending_system] = lambda: system
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealthEndpoints:
    """Test basic health endpoint"""

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"


class TestDisbursementFlow:
    """End-to-end disbursement tests"""

    def test_disburse_loan(self, client):
        r = client.post("/loans", json=LOAN_REQUEST, headers=BORROWER)
        assert r.status_code == 201
        assert r.json()["loan_id"] == 0

        loan = client.get("/loans/0").json()
        assert loan["amount"] == 5000
        assert loan["status"] == "active"
        assert loan["borrower"] == "ST2BORROWER"
        assert loan["currency"] == "STX"

        escrow = client.get("/loans/0/escrow").json()
        assert escrow == {"loan_id": 0, "held_amount": 5000, "release_time": 180, "released": False}

        assert client.get("/loans/count").json() == {"count": 1}

    def test_validation_error_code(self, client):
        r = client.post("/loans", json={**LOAN_REQUEST, "amount": 0}, headers=BORROWER)
        assert r.status_code == 400
        assert r.json()["detail"] == {"error": "INVALID_AMOUNT", "code": 103}
        assert client.get("/loans/count").json() == {"count": 0}

    def test_reserved_caller_rejected(self, client):
        r = client.post("/loans", json=LOAN_REQUEST, headers={"X-Caller": "ST1BORROWER"})
        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "INVALID_BORROWER"

    def test_caller_header_required(self, client):
        r = client.post("/loans", json=LOAN_REQUEST)
        assert r.status_code == 422

    def test_unknown_loan(self, client):
        r = client.get("/loans/7")
        assert r.status_code == 404
        assert r.json()["detail"]["code"] == 108
        assert client.get("/loans/7/escrow").status_code == 404

    def test_list_loans(self, client):
        client.post("/loans", json=LOAN_REQUEST, headers=BORROWER)
        client.post("/loans", json={**LOAN_REQUEST, "amount": 1000}, headers={"X-Caller": "ST3OTHER"})

        assert len(client.get("/loans").json()["loans"]) == 2
        mine = client.get("/loans", params={"borrower": "ST3OTHER"}).json()["loans"]
        assert [loan["id"] for loan in mine] == [1]


class TestReleaseFlow:
    """End-to-end escrow release tests"""

    def test_release_escrow(self, client, system):
        client.post("/loans", json=LOAN_REQUEST, headers=BORROWER)
        r = client.post("/admin/oracle", json={"address": "ST3ORACLE"})
        assert r.status_code == 200
        system.repayments.mark_repaid(0)
        system.impacts.verify_impact(1)

        r = client.post("/loans/0/release", json={"current_time": 200}, headers=BORROWER)
        assert r.status_code == 200
        assert r.json()["released"] is True
        assert client.get("/loans/0/escrow").json()["released"] is True
        assert client.get("/loans/0").json()["impact_verified"] is True

        r = client.post("/loans/0/release", json={"current_time": 300}, headers=BORROWER)
        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "INVALID_STATUS"

    def test_release_by_stranger(self, client):
        client.post("/loans", json=LOAN_REQUEST, headers=BORROWER)
        r = client.post("/loans/0/release", json={"current_time": 200}, headers={"X-Caller": "ST3FAKE"})
        assert r.status_code == 403
        assert r.json()["detail"]["error"] == "NOT_AUTHORIZED"

    def test_release_too_early(self, client):
        client.post("/loans", json=LOAN_REQUEST, headers=BORROWER)
        r = client.post("/loans/0/release", json={"current_time": 100}, headers=BORROWER)
        assert r.status_code == 400
        assert r.json()["detail"]["error"] == "INVALID_TIMESTAMP"


class TestAdminEndpoints:
    """Oracle registration, contract state and audit verification"""

    def test_contract_state(self, client):
        client.post("/admin/oracle", json={"address": "ST3ORACLE"}, headers={"X-Caller": "SPGOV"})
        state = client.get("/admin/state").json()

        assert state["oracle_contract"] == "ST3ORACLE"
        assert state["escrow_fee"] == 500
        assert state["max_loans"] == 5000
        assert state["loan_count"] == 0

    def test_empty_oracle_address_rejected(self, client):
        assert client.post("/admin/oracle", json={"address": ""}).status_code == 422

    def test_audit_verify(self, client):
        client.post("/loans", json=LOAN_REQUEST, headers=BORROWER)
        result = client.get("/admin/audit/verify").json()
        assert result["valid"] is True
        assert result["total_events"] == 1


class TestConfiguredDeployment:
    """Test the API over a system built from sandbox settings"""

    def setup_method(self):
        cfg = EscrowLendingConfig(
            _env_file=None,
            database_url="memory://",
            sandbox_mode=True,
            approved_proposals=[1],
            repaid_loans=[0],
            verified_proposals=[1],
            pool_balances={1: 10000}
        )
        self.system = LendingSystem.from_config(cfg)
        app.dependency_overrides[get_lending_system] = lambda: self.system
        self.client = TestClient(app)

    def teardown_method(self):
        app.dependency_overrides.clear()

    def test_disburse_and_release(self):
        r = self.client.post("/loans", json=LOAN_REQUEST, headers=BORROWER)
        assert r.status_code == 201

        self.client.post("/admin/oracle", json={"address": "ST3ORACLE"})
        r = self.client.post("/loans/0/release", json={"current_time": 180}, headers=BORROWER)
        assert r.status_code == 200
        assert self.system.ledger.custody_balance == 0

"""二次验证 HTTP 路由测试"""

import pytest
from fastapi import Depends, FastAPI, Header
from fastapi.testclient import TestClient

from twofactor.api import create_options_router, create_two_factor_router, create_two_step_router
from twofactor.exceptions import BusinessException, register_exception_handlers


@pytest.fixture
def app(login_flow):
    """创建测试用 FastAPI 应用"""
    test_app = FastAPI(title="Test App")
    register_exception_handlers(test_app)
    test_app.include_router(create_two_factor_router(login_flow), prefix="/api/v1/2fa")
    return test_app


@pytest.fixture
def client(app):
    return TestClient(app)


class TestTwoStepEndpoint:
    """POST /twostep"""

    def test_verified(self, client, login_flow, alice):
        nonce = login_flow.on_primary_auth(alice).form.nonce

        response = client.post("/api/v1/2fa/twostep", json={
            "account_id": "1",
            "nonce": nonce,
            "proof": "123456",
            "remember_me": True,
        })

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["data"]["state"] == "verified"
        assert body["data"]["session"]["remember"] is True

    def test_invalid_proof_returns_new_form(self, client, login_flow, alice):
        nonce = login_flow.on_primary_auth(alice).form.nonce

        response = client.post("/api/v1/2fa/twostep", json={
            "account_id": "1",
            "nonce": nonce,
            "proof": "000000",
        })

        assert response.status_code == 401
        body = response.json()
        assert body["status"] == "error"
        assert body["error_code"] == "INVALID_PROOF"
        assert body["message"] == "Invalid verification code"
        assert body["data"]["state"] == "pending"
        assert body["data"]["form"]["nonce"] != nonce
        assert body["data"]["form"]["error_message"] == "Invalid verification code"

    def test_invalid_nonce(self, client, login_flow, alice):
        login_flow.on_primary_auth(alice)

        response = client.post("/api/v1/2fa/twostep", json={
            "account_id": "1",
            "nonce": "forged",
            "proof": "123456",
        })

        assert response.status_code == 401
        body = response.json()
        assert body["error_code"] == "CHALLENGE_INVALID"
        assert body["message"] == "Invalid or expired code"
        assert body["data"] == {"state": "rejected"}

    def test_no_nonce_without_primary_auth(self, client, challenge_store, session_issuer):
        """只知道账户 ID 时拿不到挑战表单"""
        response = client.post("/api/v1/2fa/twostep", json={
            "account_id": "1",
            "nonce": "x",
            "proof": "",
        })

        assert response.status_code == 401
        assert response.json()["data"] == {"state": "rejected"}
        assert len(challenge_store) == 0
        assert session_issuer.calls == []

    def test_unknown_account(self, client):
        response = client.post("/api/v1/2fa/twostep", json={
            "account_id": "999",
            "nonce": "x",
            "proof": "123456",
        })

        assert response.status_code == 404
        assert response.json()["error_code"] == "ACCOUNT_NOT_FOUND"

    def test_missing_account_id(self, client):
        response = client.post("/api/v1/2fa/twostep", json={"nonce": "x"})

        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"


class TestOptionsEndpoints:
    """验证方式选项"""

    def test_get_options(self, client):
        response = client.get("/api/v1/2fa/accounts/1/options")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["primary"] == "code"
        assert [p["id"] for p in data["providers"]] == ["code", "fido_u2f", "dummy"]
        assert data["providers"][0]["primary"] is True

    def test_get_options_unknown_account(self, client):
        response = client.get("/api/v1/2fa/accounts/999/options")

        assert response.status_code == 404

    def test_update_options(self, client, identity_store, bob):
        response = client.put("/api/v1/2fa/accounts/2/options", json={"provider": "dummy"})

        assert response.status_code == 200
        assert response.json()["data"]["primary"] == "dummy"
        assert identity_store.get_primary_provider_id(bob) == "dummy"

    def test_disable_two_factor(self, client, identity_store, alice):
        response = client.put("/api/v1/2fa/accounts/1/options", json={"provider": ""})

        assert response.status_code == 200
        assert response.json()["data"]["primary"] == ""
        assert identity_store.get_primary_provider_id(alice) == ""

    def test_update_unknown_provider(self, client, identity_store, alice):
        """未注册的验证方式被拒绝，且不做任何修改"""
        response = client.put("/api/v1/2fa/accounts/1/options", json={"provider": "sms"})

        assert response.status_code == 422
        assert response.json()["error_code"] == "INVALID_PROVIDER"
        assert identity_store.get_primary_provider_id(alice) == "code"


def require_admin_token(authorization: str = Header(default="")):
    """测试用鉴权依赖"""
    if authorization != "Bearer admin":
        raise BusinessException("未授权", code="UNAUTHORIZED", status_code=401)


class TestOptionsDependencies:
    """选项路由的鉴权依赖"""

    @pytest.fixture
    def guarded_client(self, login_flow):
        test_app = FastAPI()
        register_exception_handlers(test_app)
        test_app.include_router(
            create_two_factor_router(login_flow, options_dependencies=[Depends(require_admin_token)]),
            prefix="/api/v1/2fa",
        )
        return TestClient(test_app)

    def test_options_require_auth(self, guarded_client, identity_store, alice):
        response = guarded_client.put("/api/v1/2fa/accounts/1/options", json={"provider": ""})

        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"
        assert identity_store.get_primary_provider_id(alice) == "code"
        assert guarded_client.get("/api/v1/2fa/accounts/1/options").status_code == 401

    def test_options_with_auth(self, guarded_client, identity_store, alice):
        response = guarded_client.put(
            "/api/v1/2fa/accounts/1/options",
            json={"provider": "dummy"},
            headers={"Authorization": "Bearer admin"},
        )

        assert response.status_code == 200
        assert identity_store.get_primary_provider_id(alice) == "dummy"

    def test_twostep_not_guarded(self, guarded_client, login_flow, alice):
        """第二步验证在建立会话前可访问"""
        nonce = login_flow.on_primary_auth(alice).form.nonce

        response = guarded_client.post("/api/v1/2fa/twostep", json={
            "account_id": "1",
            "nonce": nonce,
            "proof": "123456",
        })

        assert response.status_code == 200
        assert response.json()["data"]["state"] == "verified"

    def test_separate_routers(self, login_flow, registry, identity_store):
        test_app = FastAPI()
        register_exception_handlers(test_app)
        test_app.include_router(create_two_step_router(login_flow), prefix="/login")
        test_app.include_router(
            create_options_router(registry, identity_store, dependencies=[Depends(require_admin_token)]),
            prefix="/admin/2fa",
        )
        client = TestClient(test_app)

        assert client.get("/admin/2fa/accounts/1/options").status_code == 401
        assert client.get(
            "/admin/2fa/accounts/1/options", headers={"Authorization": "Bearer admin"}
        ).status_code == 200
        assert client.post("/login/twostep", json={"account_id": "1"}).json()["data"]["state"] == "rejected"

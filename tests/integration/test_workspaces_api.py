"""Integration tests for the workspace routes."""

from uuid import UUID, uuid4

import pytest
from sqlmodel import Session

from api.auth.jwt import create_access_token
from clinicdesk.db.models import (
    Workspace,
    WorkspaceMember,
    WorkspaceRole,
    WorkspaceStatus,
)

pytestmark = pytest.mark.integration

WORKSPACES = "/api/v1/workspaces"


def _create(client, headers, plan_type="pro", **fields) -> dict:
    body = {
        "name": "Clínica Fala Bem",
        "cpf_cnpj": "12.345.678/0001-90",
        "city": "Recife",
        "state": "PE",
        "plan_type": plan_type,
        "settings": {"appointment_duration": 45, "reminder_hours_before": 12},
    }
    body.update(fields)
    response = client.post(WORKSPACES, json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def _add_member(engine, workspace_id, profile):
    with Session(engine) as session:
        session.add(
            WorkspaceMember(
                workspace_id=UUID(workspace_id), user_id=profile.id, role=WorkspaceRole.member
            )
        )
        session.commit()


def _load(engine, workspace_id) -> Workspace:
    with Session(engine) as session:
        return session.get(Workspace, UUID(workspace_id))


class TestCreateWorkspace:
    def test_first_workspace_starts_trial(self, client, gateway, make_profile, auth_headers):
        profile = make_profile()

        data = _create(client, auth_headers(profile))

        assert data["workspace"]["status"] == "trial"
        assert data["workspace"]["plan_type"] == "pro"
        assert data["workspace"]["max_patients"] == -1
        assert data["workspace"]["max_members"] == -1
        assert data["settings"]["appointment_duration"] == 45
        assert data["settings"]["reminder_hours_before"] == 12
        assert data["member"]["role"] == "owner"
        assert data["member"]["user_id"] == str(profile.id)
        assert gateway.calls_to("create_subscription")[0]["trial_days"] == 7

    def test_second_workspace_waits_for_payment(self, client, make_profile, auth_headers):
        headers = auth_headers(make_profile())
        _create(client, headers)

        data = _create(client, headers, plan_type="individual", name="Filial")

        assert data["workspace"]["status"] == "payment_pending"
        assert data["workspace"]["max_patients"] == 15
        assert data["workspace"]["max_members"] == 1

    def test_success_envelope(self, client, make_profile, auth_headers):
        response = client.post(
            WORKSPACES,
            json={"name": "Clínica", "plan_type": "fono_plus"},
            headers=auth_headers(make_profile()),
        )
        assert response.json()["success"] is True

    def test_requires_authentication(self, client, gateway):
        response = client.post(WORKSPACES, json={"name": "Clínica", "plan_type": "pro"})
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTHENTICATION_FAILED"
        assert gateway.calls == []

    def test_invalid_plan(self, client, gateway, make_profile, auth_headers):
        response = client.post(
            WORKSPACES,
            json={"name": "Clínica", "plan_type": "enterprise"},
            headers=auth_headers(make_profile()),
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_PLAN"
        assert gateway.calls == []

    def test_unknown_profile(self, client, gateway):
        token = create_access_token(uuid4(), email="ghost@example.com")
        response = client.post(
            WORKSPACES,
            json={"name": "Clínica", "plan_type": "pro"},
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "PROFILE_NOT_FOUND"
        assert gateway.calls == []

    def test_missing_name(self, client, make_profile, auth_headers):
        response = client.post(
            WORKSPACES, json={"plan_type": "pro"}, headers=auth_headers(make_profile())
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_stripe_failure(self, client, gateway, test_engine, make_profile, auth_headers):
        gateway.fail_on.add("create_subscription")
        response = client.post(
            WORKSPACES,
            json={"name": "Clínica", "plan_type": "pro"},
            headers=auth_headers(make_profile()),
        )
        assert response.status_code == 500
        assert response.json()["error"]["code"] == "SUBSCRIPTION_CREATE_FAILED"


class TestReadWorkspaces:
    def test_list_only_own_workspaces(self, client, make_profile, auth_headers):
        ana, bia = make_profile(), make_profile()
        _create(client, auth_headers(ana))
        _create(client, auth_headers(bia), name="Outra")

        response = client.get(WORKSPACES, headers=auth_headers(ana))

        assert response.status_code == 200
        data = response.json()["data"]
        assert len(data) == 1
        assert data[0]["workspace"]["name"] == "Clínica Fala Bem"
        assert data[0]["member"]["role"] == "owner"
        assert data[0]["settings"]["appointment_duration"] == 45

    def test_get_workspace(self, client, make_profile, auth_headers):
        headers = auth_headers(make_profile())
        created = _create(client, headers)

        response = client.get(f"{WORKSPACES}/{created['workspace']['id']}", headers=headers)

        assert response.status_code == 200
        assert response.json()["data"]["workspace"]["id"] == created["workspace"]["id"]

    def test_non_member_is_forbidden(self, client, make_profile, auth_headers):
        created = _create(client, auth_headers(make_profile()))
        response = client.get(
            f"{WORKSPACES}/{created['workspace']['id']}",
            headers=auth_headers(make_profile()),
        )
        assert response.status_code == 403

    def test_missing_workspace(self, client, make_profile, auth_headers):
        response = client.get(
            f"{WORKSPACES}/00000000-0000-0000-0000-000000000000",
            headers=auth_headers(make_profile()),
        )
        assert response.status_code == 404


class TestOwnerEdits:
    def test_owner_updates_fields(self, client, make_profile, auth_headers):
        headers = auth_headers(make_profile())
        workspace_id = _create(client, headers)["workspace"]["id"]

        response = client.patch(
            f"{WORKSPACES}/{workspace_id}",
            json={"name": "Clínica Nova", "zip_code": "50000-000"},
            headers=headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Clínica Nova"
        assert data["zip_code"] == "50000-000"
        assert data["city"] == "Recife"

    def test_owner_clears_optional_field(self, client, test_engine, make_profile, auth_headers):
        headers = auth_headers(make_profile())
        workspace_id = _create(client, headers, complement="Sala 4")["workspace"]["id"]

        response = client.patch(
            f"{WORKSPACES}/{workspace_id}", json={"complement": None}, headers=headers
        )

        assert response.status_code == 200
        assert response.json()["data"]["complement"] is None
        assert response.json()["data"]["city"] == "Recife"
        assert _load(test_engine, workspace_id).complement is None

    def test_name_cannot_be_cleared(self, client, test_engine, make_profile, auth_headers):
        headers = auth_headers(make_profile())
        workspace_id = _create(client, headers)["workspace"]["id"]

        response = client.patch(f"{WORKSPACES}/{workspace_id}", json={"name": None}, headers=headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        assert _load(test_engine, workspace_id).name == "Clínica Fala Bem"

    def test_status_is_not_editable(self, client, test_engine, make_profile, auth_headers):
        """Unknown fields are dropped; an update with nothing left is rejected."""
        headers = auth_headers(make_profile())
        workspace_id = _create(client, headers)["workspace"]["id"]

        response = client.patch(
            f"{WORKSPACES}/{workspace_id}", json={"status": "active"}, headers=headers
        )

        assert response.status_code == 400
        assert _load(test_engine, workspace_id).status == WorkspaceStatus.trial

    def test_member_cannot_edit(self, client, test_engine, make_profile, auth_headers):
        owner, member = make_profile(), make_profile()
        workspace_id = _create(client, auth_headers(owner))["workspace"]["id"]
        _add_member(test_engine, workspace_id, member)

        response = client.patch(
            f"{WORKSPACES}/{workspace_id}", json={"name": "X"}, headers=auth_headers(member)
        )

        assert response.status_code == 403
        assert response.json()["error"]["message"] == (
            "Only the workspace owner can perform this action"
        )

    def test_update_settings(self, client, make_profile, auth_headers):
        headers = auth_headers(make_profile())
        workspace_id = _create(client, headers)["workspace"]["id"]

        response = client.patch(
            f"{WORKSPACES}/{workspace_id}/settings",
            json={"reminder_hours_before": 48},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["reminder_hours_before"] == 48
        assert response.json()["data"]["appointment_duration"] == 45

    def test_settings_bounds(self, client, make_profile, auth_headers):
        headers = auth_headers(make_profile())
        workspace_id = _create(client, headers)["workspace"]["id"]
        response = client.patch(
            f"{WORKSPACES}/{workspace_id}/settings",
            json={"appointment_duration": 0},
            headers=headers,
        )
        assert response.status_code == 400


class TestChangePlan:
    def test_change_plan(self, client, gateway, make_profile, auth_headers):
        headers = auth_headers(make_profile())
        created = _create(client, headers)["workspace"]

        response = client.post(
            f"{WORKSPACES}/{created['id']}/change-plan",
            json={"new_plan_type": "fono_plus"},
            headers=headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["plan_type"] == "fono_plus"
        assert data["max_patients"] == 30
        assert data["max_members"] == 3
        update = gateway.calls_to("update_subscription")[0]
        assert update["subscription_id"] == created["stripe_subscription_id"]
        assert update["metadata"] == {"planType": "fono_plus"}

    def test_same_plan_makes_no_remote_call(self, client, gateway, make_profile, auth_headers):
        headers = auth_headers(make_profile())
        workspace_id = _create(client, headers)["workspace"]["id"]

        response = client.post(
            f"{WORKSPACES}/{workspace_id}/change-plan",
            json={"new_plan_type": "pro"},
            headers=headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "SAME_PLAN"
        assert gateway.calls_to("update_subscription") == []

    def test_invalid_plan(self, client, gateway, make_profile, auth_headers):
        headers = auth_headers(make_profile())
        workspace_id = _create(client, headers)["workspace"]["id"]
        response = client.post(
            f"{WORKSPACES}/{workspace_id}/change-plan",
            json={"new_plan_type": "gold"},
            headers=headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_PLAN"
        assert gateway.calls_to("update_subscription") == []

    def test_stripe_failure_keeps_plan(self, client, gateway, test_engine, make_profile, auth_headers):
        headers = auth_headers(make_profile())
        workspace_id = _create(client, headers)["workspace"]["id"]
        gateway.fail_on.add("update_subscription")

        response = client.post(
            f"{WORKSPACES}/{workspace_id}/change-plan",
            json={"new_plan_type": "individual"},
            headers=headers,
        )

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "SUBSCRIPTION_UPDATE_FAILED"
        workspace = _load(test_engine, workspace_id)
        assert workspace.plan_type == "pro"
        assert workspace.max_patients == -1

    def test_member_cannot_change_plan(self, client, gateway, test_engine, make_profile, auth_headers):
        owner, member = make_profile(), make_profile()
        workspace_id = _create(client, auth_headers(owner))["workspace"]["id"]
        _add_member(test_engine, workspace_id, member)

        response = client.post(
            f"{WORKSPACES}/{workspace_id}/change-plan",
            json={"new_plan_type": "individual"},
            headers=auth_headers(member),
        )

        assert response.status_code == 403
        assert gateway.calls_to("update_subscription") == []


class TestDeleteWorkspace:
    def test_owner_soft_deletes(self, client, gateway, test_engine, make_profile, auth_headers):
        headers = auth_headers(make_profile())
        created = _create(client, headers)["workspace"]

        response = client.delete(f"{WORKSPACES}/{created['id']}", headers=headers)

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "cancelled"
        assert gateway.calls_to("cancel_subscription") == [
            {"subscription_id": created["stripe_subscription_id"], "at_period_end": False}
        ]
        assert _load(test_engine, created["id"]) is not None

    def test_cancel_failure_still_cancels_locally(self, client, gateway, make_profile, auth_headers):
        headers = auth_headers(make_profile())
        workspace_id = _create(client, headers)["workspace"]["id"]
        gateway.fail_on.add("cancel_subscription")

        response = client.delete(f"{WORKSPACES}/{workspace_id}", headers=headers)

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "cancelled"

    def test_non_owner_cannot_delete(self, client, gateway, test_engine, make_profile, auth_headers):
        owner, member = make_profile(), make_profile()
        workspace_id = _create(client, auth_headers(owner))["workspace"]["id"]
        _add_member(test_engine, workspace_id, member)

        response = client.delete(f"{WORKSPACES}/{workspace_id}", headers=auth_headers(member))

        assert response.status_code == 403
        assert gateway.calls_to("cancel_subscription") == []
        assert _load(test_engine, workspace_id).status == WorkspaceStatus.trial

"""
End-to-end API flows through the full middleware stack.

Tests:
- Register, apply, manage and withdraw
- Role checks with and without an active institution
- Tenant switch and suspension
- Notifications and saved jobs
"""

import pytest

API = "/api/v1"


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestRegistrationFlow:
    """Registration through first application."""

    @pytest.mark.asyncio
    async def test_register_then_apply(self, client, world, dispatcher):
        institutions = (await client.get(f"{API}/institutions")).json()
        university = next(i for i in institutions if i["name"] == "Universidade Federal")
        assert university["isActive"] is True

        response = await client.post(f"{API}/auth/register", json={
            "firstName": "Caio",
            "lastName": "Lima",
            "email": "caio@uf.edu",
            "password": "senha-nova-123",
            "institutionId": university["id"],
        })
        assert response.status_code == 201
        token = response.json()["access_token"]

        me = (await client.get(f"{API}/auth/me", headers=bearer(token))).json()
        assert me["activeInstitutionId"] == university["id"]
        assert me["memberships"] == [
            {"institution": {"id": university["id"], "name": "Universidade Federal"}, "role": "student"}
        ]

        response = await client.post(
            f"{API}/applications/apply",
            json={"jobId": world.job_a.id, "linkedinUrl": "https://linkedin.com/in/caio"},
            headers=bearer(token),
        )
        assert response.status_code == 201
        assert response.json()["status"] == "PENDING"
        assert response.json()["jobId"] == world.job_a.id

        assert dispatcher.templates() == ["welcome", "application_feedback"]

    @pytest.mark.asyncio
    async def test_register_short_password(self, client, world):
        response = await client.post(f"{API}/auth/register", json={
            "firstName": "Caio",
            "lastName": "Lima",
            "email": "caio@uf.edu",
            "password": "curta",
            "institutionId": world.university.id,
        })

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"][0]["field"] == "body.password"

    @pytest.mark.asyncio
    async def test_login(self, client, world, password):
        response = await client.post(
            f"{API}/auth/login", json={"email": "ALUNO@uf.edu", "password": password}
        )

        assert response.status_code == 200
        assert response.json()["token_type"] == "bearer"


class TestApplicationLifecycle:
    """Apply, manage, notify and withdraw over HTTP."""

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, client, world, auth, dispatcher):
        student = auth(world.student, world.university.id)
        prof_a = auth(world.prof_a, world.university.id)

        created = (await client.post(
            f"{API}/applications/apply", json={"jobId": world.job_a.id}, headers=student
        )).json()

        duplicate = await client.post(
            f"{API}/applications/apply", json={"jobId": world.job_a.id}, headers=student
        )
        assert duplicate.status_code == 409
        assert duplicate.json()["error"]["code"] == "DUPLICATE_APPLICATION"

        check = await client.get(f"{API}/applications/check/{world.job_a.id}", headers=student)
        assert check.json() == {"hasApplied": True}

        managed = (await client.get(f"{API}/applications/manage/all", headers=prof_a)).json()
        assert [a["id"] for a in managed] == [created["id"]]
        assert managed[0]["user"]["email"] == "aluno@uf.edu"
        assert managed[0]["job"]["author"] == {"firstName": "Paulo", "lastName": "A"}

        response = await client.patch(
            f"{API}/applications/manage/{created['id']}/status",
            json={"status": "ACCEPTED"},
            headers=prof_a,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "ACCEPTED"
        assert dispatcher.templates()[-1] == "status_update"

        inbox = (await client.get(f"{API}/notifications", headers=student)).json()
        assert inbox["unreadCount"] == 1
        assert "aprovado" in inbox["notifications"][0]["message"]

        mine = (await client.get(f"{API}/applications/my-applications", headers=student)).json()
        assert mine[0]["status"] == "ACCEPTED"
        assert mine[0]["job"]["institution"]["name"] == "Universidade Federal"

        withdraw = await client.delete(f"{API}/applications/{created['id']}", headers=student)
        assert withdraw.status_code == 400
        assert withdraw.json()["error"]["code"] == "INVALID_STATE"

    @pytest.mark.asyncio
    async def test_withdraw_pending(self, client, world, auth):
        student = auth(world.student)
        created = (await client.post(
            f"{API}/applications/apply", json={"jobId": world.job_b.id}, headers=student
        )).json()

        response = await client.delete(f"{API}/applications/{created['id']}", headers=student)
        assert response.status_code == 204

        check = await client.get(f"{API}/applications/check/{world.job_b.id}", headers=student)
        assert check.json() == {"hasApplied": False}

    @pytest.mark.asyncio
    async def test_invalid_status_value(self, client, world, auth):
        created = (await client.post(
            f"{API}/applications/apply", json={"jobId": world.job_a.id}, headers=auth(world.student)
        )).json()

        response = await client.patch(
            f"{API}/applications/manage/{created['id']}/status",
            json={"status": "MAYBE"},
            headers=auth(world.prof_a, world.university.id),
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_STATUS"

    @pytest.mark.asyncio
    async def test_colleague_cannot_manage(self, client, world, auth):
        created = (await client.post(
            f"{API}/applications/apply", json={"jobId": world.job_a.id}, headers=auth(world.student)
        )).json()
        prof_b = auth(world.prof_b, world.university.id)

        assert (await client.get(f"{API}/applications/manage/all", headers=prof_b)).json() == []

        response = await client.get(f"{API}/applications/manage/{created['id']}", headers=prof_b)
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"


class TestManagerRoleChecks:
    """Manager routes under the global/tenant role split."""

    @pytest.mark.asyncio
    async def test_student_denied(self, client, world, auth):
        response = await client.get(
            f"{API}/applications/manage/all", headers=auth(world.student, world.university.id)
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "INSUFFICIENT_PERMISSIONS"

    @pytest.mark.asyncio
    async def test_tenant_role_needs_active_institution(self, client, world, auth):
        response = await client.get(f"{API}/applications/manage/all", headers=auth(world.prof_a))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "NO_ACTIVE_INSTITUTION"

    @pytest.mark.asyncio
    async def test_tenant_role_in_wrong_institution(self, client, world, auth):
        response = await client.get(
            f"{API}/applications/manage/all", headers=auth(world.prof_a, world.company.id)
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_superadmin_without_active_institution(self, client, world, auth):
        await client.post(f"{API}/applications/apply", json={"jobId": world.job_a.id}, headers=auth(world.student))
        await client.post(f"{API}/applications/apply", json={"jobId": world.job_b.id}, headers=auth(world.student))

        response = await client.get(f"{API}/applications/manage/all", headers=auth(world.superadmin))

        assert response.status_code == 200
        assert len(response.json()) == 2


class TestTenantContext:
    """Switching and suspending institutions."""

    @pytest.mark.asyncio
    async def test_switch_institution(self, client, world, auth):
        response = await client.post(
            f"{API}/auth/switch-institution",
            json={"institutionId": world.university.id},
            headers=auth(world.prof_a),
        )
        assert response.status_code == 200
        token = response.json()["access_token"]

        me = (await client.get(f"{API}/auth/me", headers=bearer(token))).json()
        assert me["activeInstitutionId"] == world.university.id

        managed = await client.get(f"{API}/applications/manage/all", headers=bearer(token))
        assert managed.status_code == 200

    @pytest.mark.asyncio
    async def test_suspension_and_reactivation(self, client, world, auth):
        root = auth(world.superadmin)
        student = auth(world.student, world.university.id)

        response = await client.patch(f"{API}/institutions/{world.university.id}/deactivate", headers=root)
        assert response.status_code == 200
        assert response.json()["isActive"] is False

        blocked = await client.get(f"{API}/auth/me", headers=student)
        assert blocked.status_code == 403
        assert blocked.json()["error"]["code"] == "TENANT_SUSPENDED"

        listed = (await client.get(f"{API}/institutions")).json()
        assert world.university.id not in [i["id"] for i in listed]

        await client.patch(f"{API}/institutions/{world.university.id}/activate", headers=root)
        assert (await client.get(f"{API}/auth/me", headers=student)).status_code == 200

    @pytest.mark.asyncio
    async def test_admin_cannot_suspend(self, client, world, auth):
        response = await client.patch(
            f"{API}/institutions/{world.company.id}/deactivate",
            headers=auth(world.admin, world.university.id),
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "INSUFFICIENT_PERMISSIONS"


class TestInboxAndBookmarks:
    """Notifications and saved jobs over HTTP."""

    @pytest.mark.asyncio
    async def test_saved_jobs(self, client, world, auth):
        student = auth(world.student)

        saved = await client.post(f"{API}/saved-jobs/{world.job_a.id}", headers=student)
        assert saved.status_code == 201
        assert saved.json()["jobId"] == world.job_a.id

        again = await client.post(f"{API}/saved-jobs/{world.job_a.id}", headers=student)
        assert again.status_code == 409

        listed = (await client.get(f"{API}/saved-jobs", headers=student)).json()
        assert [s["job"]["title"] for s in listed] == ["Monitoria de Cálculo"]

        assert (await client.delete(f"{API}/saved-jobs/{world.job_a.id}", headers=student)).status_code == 204
        assert (await client.delete(f"{API}/saved-jobs/{world.job_a.id}", headers=student)).status_code == 404

    @pytest.mark.asyncio
    async def test_read_all(self, client, world, auth):
        created = (await client.post(
            f"{API}/applications/apply", json={"jobId": world.job_a.id}, headers=auth(world.student)
        )).json()
        prof_a = auth(world.prof_a, world.university.id)
        for value in ("REVIEWING", "ACCEPTED"):
            await client.patch(
                f"{API}/applications/manage/{created['id']}/status",
                json={"status": value},
                headers=prof_a,
            )

        student = auth(world.student)
        assert (await client.get(f"{API}/notifications", headers=student)).json()["unreadCount"] == 2

        response = await client.patch(f"{API}/notifications/read-all", headers=student)
        assert response.status_code == 204
        assert (await client.get(f"{API}/notifications", headers=student)).json()["unreadCount"] == 0

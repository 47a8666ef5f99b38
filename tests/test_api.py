from designtrack.tracker import PendingWrite


class TestAuth:
    def test_setup_only_once(self, client, manager_headers):
        assert client.get("/api/auth/setup").json() == {"setup_required": False}
        again = client.post("/api/auth/setup", data={"username": "x", "password": "y"})
        assert again.status_code == 409

    def test_login_and_me(self, client, manager_headers):
        bad = client.post("/api/auth/login", data={"username": "gestor", "password": "wrong"})
        assert bad.status_code == 401

        me = client.get("/api/auth/me", headers=manager_headers)
        assert me.status_code == 200
        assert me.json()["role"] == "manager"

    def test_cookie_login_is_accepted(self, client, manager_headers):
        client.post("/api/auth/login", data={"username": "gestor", "password": "gestor-pass"})
        assert client.get("/api/auth/me").status_code == 200

    def test_logout_detaches_session(self, app, client, manager_headers):
        started = client.post("/api/tracker/start", json={"ns": "123"}, headers=manager_headers).json()
        user_id = client.get("/api/auth/me", headers=manager_headers).json()["id"]
        ctx = app.state.contexts.get(user_id)

        assert client.post("/api/auth/logout", headers=manager_headers).status_code == 200
        assert ctx.attached is None

        pending = client.get("/api/tracker/pending", headers=manager_headers).json()
        assert [p["id"] for p in pending] == [started["attached"]["id"]]

    def test_logout_keeps_unsaved_write(self, app, client, manager_headers):
        client.post("/api/tracker/start", json={"ns": "123"}, headers=manager_headers)
        user_id = client.get("/api/auth/me", headers=manager_headers).json()["id"]
        ctx = app.state.contexts.get(user_id)
        ctx.pending = PendingWrite("pause", "update", ctx.attached.snapshot(), attach=None)

        refused = client.post("/api/auth/logout", headers=manager_headers)
        assert refused.status_code == 409
        assert app.state.contexts.get(user_id).pending is not None

        assert client.delete("/api/tracker/pending-write", headers=manager_headers).status_code == 204
        assert client.post("/api/auth/logout", headers=manager_headers).status_code == 200

    def test_requires_authentication(self, client):
        assert client.get("/api/tracker/").status_code == 401

    def test_designers_cannot_manage_users(self, client, designer_headers):
        headers = designer_headers()
        response = client.post("/api/users/", json={"username": "z", "password": "z"}, headers=headers)
        assert response.status_code == 403

    def test_duplicate_username(self, client, manager_headers, designer_headers):
        designer_headers()
        duplicate = client.post("/api/users/", json={"username": "projetista", "password": "p"}, headers=manager_headers)
        assert duplicate.status_code == 409


class TestTrackerFlow:
    def test_start_pause_resume_finish(self, client, clock, manager_headers):
        headers = manager_headers
        started = client.post("/api/tracker/start", json={"ns": "123456", "client_name": "Transportes Sul"}, headers=headers)
        assert started.status_code == 201
        state = started.json()
        assert state["state"] == "attached"
        session_id = state["attached"]["id"]

        clock.advance(100)
        assert client.get("/api/tracker/", headers=headers).json()["elapsed_display"] == "00:01:40"

        paused = client.post("/api/tracker/pause", json={"reason": "lunch"}, headers=headers)
        assert paused.status_code == 200
        assert paused.json()["state"] == "no_session"
        assert paused.json()["paused"]["is_paused"] is True
        assert paused.json()["paused"]["pauses"][0]["durationSeconds"] == -1

        pending = client.get("/api/tracker/pending", headers=headers).json()
        assert [p["id"] for p in pending] == [session_id]

        clock.advance(1800)
        resumed = client.post(f"/api/tracker/resume/{session_id}", headers=headers)
        assert resumed.status_code == 200
        assert resumed.json()["elapsed_seconds"] == 100

        clock.advance(3100)
        finished = client.post("/api/tracker/finish", headers=headers)
        assert finished.status_code == 200
        body = finished.json()
        assert body["state"] == "no_session"
        assert body["finished"]["total_active_seconds"] == 3200
        assert body["finished"]["status"] == "COMPLETED"

        project = client.get(f"/api/projects/{session_id}", headers=headers).json()
        assert project["total_active_seconds"] == 3200
        assert project["end_time"].startswith("2026-03-02T09:23:20")

    def test_finish_while_detached_conflicts(self, client, clock, manager_headers):
        client.post("/api/tracker/start", json={"ns": "1"}, headers=manager_headers)
        client.post("/api/tracker/pause", json={"reason": "meeting"}, headers=manager_headers)

        response = client.post("/api/tracker/finish", headers=manager_headers)
        assert response.status_code == 409
        assert response.json()["code"] == "LEDGER_STATE_ERROR"

    def test_blank_ns_is_unprocessable(self, client, manager_headers):
        response = client.post("/api/tracker/start", json={"ns": "  "}, headers=manager_headers)
        assert response.status_code == 422
        assert response.json()["details"] == {"field": "ns"}
        assert client.get("/api/projects/", headers=manager_headers).json() == []

    def test_variations_on_attached_session(self, client, manager_headers):
        client.post("/api/tracker/start", json={"ns": "55"}, headers=manager_headers)
        created = client.post("/api/tracker/variations", json={"old_code": "A-1", "new_code": "A-2", "kind": "assembly"}, headers=manager_headers)
        assert created.status_code == 201
        variation_id = created.json()["id"]

        toggled = client.post(f"/api/tracker/variations/{variation_id}/toggle", headers=manager_headers).json()
        assert toggled["attached"]["variations"][0]["files_generated"] is True
        assert toggled["attached"]["variation_counts"] == {"parts": 0, "assemblies": 1}

        removed = client.delete(f"/api/tracker/variations/{variation_id}", headers=manager_headers).json()
        assert removed["attached"]["variations"] == []

    def test_form_options(self, client, manager_headers):
        options = client.get("/api/tracker/options", headers=manager_headers).json()
        assert options["floored_implements"] == ["base", "curtain_sider", "van_body"]
        assert "Naval 18mm" in options["flooring_types"]

    def test_unknown_session_is_not_found(self, client, manager_headers):
        assert client.post("/api/tracker/resume/missing", headers=manager_headers).status_code == 404

    def test_timer_stream_reports_detached(self, client, manager_headers):
        response = client.get("/events/tracker", headers=manager_headers)
        assert response.status_code == 200
        assert '"type": "detached"' in response.text


class TestRoles:
    def test_designers_only_see_their_own_projects(self, client, manager_headers, designer_headers):
        first = designer_headers("ana", "Ana")
        second = designer_headers("caio", "Caio")

        mine = client.post("/api/tracker/start", json={"ns": "111"}, headers=first).json()["attached"]["id"]
        client.post("/api/tracker/start", json={"ns": "222"}, headers=second)

        assert [p["ns"] for p in client.get("/api/projects/", headers=first).json()] == ["111"]
        assert {p["ns"] for p in client.get("/api/projects/", headers=manager_headers).json()} == {"111", "222"}
        assert client.get(f"/api/projects/{mine}", headers=second).status_code == 403
        assert client.post(f"/api/tracker/resume/{mine}", headers=second).status_code == 403

    def test_only_managers_delete_projects(self, client, manager_headers, designer_headers):
        designer = designer_headers()
        session_id = client.post("/api/tracker/start", json={"ns": "9"}, headers=designer).json()["attached"]["id"]

        assert client.delete(f"/api/projects/{session_id}", headers=designer).status_code == 403
        assert client.delete(f"/api/projects/{session_id}", headers=manager_headers).status_code == 204
        assert client.get(f"/api/projects/{session_id}", headers=manager_headers).status_code == 404


class TestIssues:
    def test_report_and_filter(self, client, manager_headers, designer_headers):
        designer = designer_headers()
        created = client.post("/api/issues/", json={
            "project_ns": "123456", "type": "welding", "description": "Bad weld"
        }, headers=designer)
        assert created.status_code == 422

        created = client.post("/api/issues/", json={
            "project_ns": "123456", "type": "painting", "description": "Runs on the side panel"
        }, headers=designer)
        assert created.status_code == 201
        assert created.json()["date"].startswith("2026-03-02T08:00:00")

        client.post("/api/issues/", json={
            "project_ns": "777", "type": "doors", "description": "Hinge misaligned"
        }, headers=manager_headers)

        assert len(client.get("/api/issues/", headers=designer).json()) == 1
        assert len(client.get("/api/issues/", headers=manager_headers).json()) == 2
        filtered = client.get("/api/issues/", params={"ns": "1234"}, headers=manager_headers).json()
        assert [i["type"] for i in filtered] == ["painting"]

    def test_blank_description(self, client, manager_headers):
        response = client.post("/api/issues/", json={
            "project_ns": "1", "type": "doors", "description": " "
        }, headers=manager_headers)
        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestInnovations:
    def test_review_flow_and_totals(self, client, manager_headers, designer_headers):
        designer = designer_headers()
        proposed = client.post("/api/innovations/", json={
            "title": "Lighter crossmember",
            "calculation_type": "per_unit",
            "unit_savings": 12.5,
            "quantity": 400
        }, headers=designer)
        assert proposed.status_code == 201
        innovation = proposed.json()
        assert innovation["total_annual_savings"] == 5000.0
        assert innovation["status"] == "PENDING"

        assert client.get("/api/innovations/totals", headers=designer).json()["count"] == 0

        url = f"/api/innovations/{innovation['id']}/status"
        assert client.post(url, json={"status": "APPROVED"}, headers=designer).status_code == 403
        assert client.post(url, json={"status": "IMPLEMENTED"}, headers=manager_headers).status_code == 409
        assert client.post(url, json={"status": "APPROVED"}, headers=manager_headers).json()["status"] == "APPROVED"

        totals = client.get("/api/innovations/totals", headers=designer).json()
        assert totals["savings"] == 5000.0
        assert totals["count"] == 1
        assert len(client.get("/api/innovations/", headers=manager_headers).json()) == 1


class TestDashboard:
    def finish_one(self, client, clock, headers, ns, seconds):
        client.post("/api/tracker/start", json={"ns": ns}, headers=headers)
        clock.advance(seconds)
        client.post("/api/tracker/finish", headers=headers)

    def test_scopes(self, client, clock, manager_headers, designer_headers):
        designer = designer_headers()
        self.finish_one(client, clock, designer, "1", 600)
        self.finish_one(client, clock, manager_headers, "2", 1200)

        team = client.get("/api/dashboard/", headers=manager_headers).json()
        assert team["scope"] == "team"
        assert team["completed_count"] == 2
        assert {row["name"] for row in team["designer_completions"]} == {"Bruno Projetista", "Ana Gestora"}

        personal = client.get("/api/dashboard/", headers=designer).json()
        assert personal["scope"] == "personal"
        assert personal["completed_count"] == 1
        assert personal["designer_completions"] == []

    def test_csv_export(self, client, clock, manager_headers):
        self.finish_one(client, clock, manager_headers, "123456", 3600)
        client.post("/api/tracker/start", json={"ns": "open"}, headers=manager_headers)

        response = client.get("/api/dashboard/export.csv", headers=manager_headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "design_track_export_2026-03-02.csv" in response.headers["content-disposition"]
        lines = response.text.strip().splitlines()
        assert lines[0].startswith("ID,NS,Code")
        assert len(lines) == 2
        assert ",123456," in lines[1]


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}

"""Tests for the HTTP surface."""

from __future__ import annotations

import io

from openpyxl import load_workbook

from tests.helpers import AppTestCase, FakeBinClient

NEW_SESSION = {
    "title": "R1",
    "referees": "A, B",
    "tables": [
        {
            "tableNumber": 1,
            "player1": {"id": "P1", "name": "Alice"},
            "player2": {"id": "P2", "name": "Bob"},
        },
        {
            "tableNumber": 2,
            "player1": {"id": "P3", "name": "Cy"},
            "player2": {"id": "P4", "name": "Di"},
        },
    ],
}


class AuthRoutesTestCase(AppTestCase):
    def test_guest_by_default(self) -> None:
        self.assertEqual(self.client.get("/auth/whoami").get_json(), {"role": "GUEST"})

    def test_login_and_logout(self) -> None:
        response = self.login("REFEREE")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get("/auth/whoami").get_json()["role"], "REFEREE")
        self.client.post("/auth/logout")
        self.assertEqual(self.client.get("/auth/whoami").get_json()["role"], "GUEST")

    def test_wrong_password(self) -> None:
        response = self.login("ADMIN", "nope")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.get_json()["status"], "error")
        self.assertEqual(self.client.get("/auth/whoami").get_json()["role"], "GUEST")

    def test_guest_role_cannot_log_in(self) -> None:
        response = self.client.post("/auth/login", json={"role": "GUEST", "password": "x"})
        self.assertEqual(response.status_code, 400)

    def test_csrf_token_endpoint(self) -> None:
        self.assertTrue(self.client.get("/auth/csrf").get_json()["csrfToken"])

    def test_password_change(self) -> None:
        self.login("ADMIN")
        response = self.client.post(
            "/admin/settings/password", json={"role": "REFEREE", "password": "whistle"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.login("REFEREE", "referee").status_code, 401)
        self.assertEqual(self.login("REFEREE", "whistle").status_code, 200)


class SessionRoutesTestCase(AppTestCase):
    def _create(self) -> str:
        self.login("ADMIN")
        response = self.client.post("/admin/sessions", json=NEW_SESSION)
        self.assertEqual(response.status_code, 201)
        return response.get_json()["session"]["id"]

    def test_admin_routes_require_admin(self) -> None:
        self.assertEqual(self.client.post("/admin/sessions", json=NEW_SESSION).status_code, 403)
        self.login("REFEREE")
        self.assertEqual(self.client.post("/admin/sessions", json=NEW_SESSION).status_code, 403)

    def test_create_and_list(self) -> None:
        session_id = self._create()
        data = self.client.get("/board/sessions").get_json()
        self.assertEqual([s["id"] for s in data["sessions"]], [session_id])
        self.assertEqual(data["sessions"][0]["status"], "OPEN")
        self.assertEqual(data["sessions"][0]["referees"], ["A", "B"])
        self.assertEqual(data["mode"], "LOCAL")

    def test_create_validation_error(self) -> None:
        self.login("ADMIN")
        response = self.client.post("/admin/sessions", json=dict(NEW_SESSION, referees=""))
        self.assertEqual(response.status_code, 400)
        self.assertIn("referee", response.get_json()["message"])

    def test_referee_report_updates_board(self) -> None:
        session_id = self._create()
        self.login("REFEREE")
        response = self.client.post(
            f"/referee/sessions/{session_id}/results",
            json={"tableNumber": 1, "result": "WIN", "refereeName": "A"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.get_json()["synced"])

        board = self.client.get(f"/board/sessions/{session_id}").get_json()
        table = board["session"]["tables"][0]
        self.assertEqual((table["result"], table["submittedBy"]), ("WIN", "A"))
        self.assertEqual([t["tableNumber"] for t in board["completed"]], [1])
        self.assertEqual(board["nextTableNumber"], 3)
        alice = next(s for s in board["standings"] if s["id"] == "P1")
        self.assertEqual((alice["points"], alice["winCount"], alice["matchCount"]), (1, 1, 1))

        # The name is remembered for the next report from this device.
        self.assertEqual(self.client.get("/referee/me").get_json()["refereeName"], "A")
        response = self.client.post(
            f"/referee/sessions/{session_id}/results", json={"tableNumber": 2, "result": "和"}
        )
        self.assertEqual(response.status_code, 200)

    def test_remembered_referee_name_is_per_browser(self) -> None:
        session_id = self._create()
        first, second = self.app.test_client(), self.app.test_client()
        for client in (first, second):
            client.post("/auth/login", json={"role": "REFEREE", "password": "referee"})

        first.put("/referee/me", json={"refereeName": "A"})
        self.assertEqual(first.get("/referee/me").get_json()["refereeName"], "A")
        self.assertIsNone(second.get("/referee/me").get_json()["refereeName"])

        url = f"/referee/sessions/{session_id}/results"
        response = second.post(url, json={"tableNumber": 1, "result": "WIN"})
        self.assertEqual(response.status_code, 400)
        board = self.client.get(f"/board/sessions/{session_id}").get_json()
        self.assertEqual(board["session"]["tables"][0]["result"], "PENDING")

    def test_report_validation_order(self) -> None:
        session_id = self._create()
        self.login("REFEREE")
        url = f"/referee/sessions/{session_id}/results"
        cases = [
            ({"tableNumber": 1, "result": "WIN", "refereeName": "Z"}, 400),
            ({"result": "WIN", "refereeName": "A"}, 400),
            ({"tableNumber": 1, "refereeName": "A"}, 400),
            ({"tableNumber": 1, "result": "FORFEIT", "refereeName": "A"}, 400),
            ({"tableNumber": 9, "result": "WIN", "refereeName": "A"}, 404),
        ]
        for body, status in cases:
            with self.subTest(body=body):
                self.assertEqual(self.client.post(url, json=body).status_code, status)
        self.assertEqual(
            self.client.post(
                "/referee/sessions/missing/results",
                json={"tableNumber": 1, "result": "WIN", "refereeName": "A"},
            ).status_code,
            404,
        )

    def test_closed_session_rejects_reports(self) -> None:
        session_id = self._create()
        response = self.client.post(f"/admin/sessions/{session_id}/status", json={"status": "CLOSED"})
        self.assertEqual(response.get_json()["session"]["status"], "CLOSED")

        before = self.client.get(f"/board/sessions/{session_id}").get_json()["session"]["tables"]
        self.login("REFEREE")
        response = self.client.post(
            f"/referee/sessions/{session_id}/results",
            json={"tableNumber": 1, "result": "WIN", "refereeName": "A"},
        )
        self.assertEqual(response.status_code, 409)
        after = self.client.get(f"/board/sessions/{session_id}").get_json()["session"]["tables"]
        self.assertEqual(after, before)

    def test_board_correction(self) -> None:
        session_id = self._create()
        url = f"/board/sessions/{session_id}/tables/1"
        response = self.client.post(url, json={"result": "LOSS"})
        table = response.get_json()["session"]["tables"][0]
        self.assertEqual((table["result"], table["submittedBy"]), ("LOSS", "後台修改"))

        self.login("REFEREE")
        response = self.client.post(url, json={"result": "PENDING"})
        table = response.get_json()["session"]["tables"][0]
        self.assertEqual((table["result"], table["submittedBy"]), ("PENDING", "裁判修改"))

        self.client.post("/auth/logout")
        self.assertEqual(self.client.post(url, json={"result": "WIN"}).status_code, 403)

    def test_edit_and_delete(self) -> None:
        session_id = self._create()
        response = self.client.put(f"/admin/sessions/{session_id}", json=dict(NEW_SESSION, title="Final"))
        self.assertEqual(response.get_json()["session"]["title"], "Final")
        self.assertEqual(response.get_json()["session"]["id"], session_id)

        self.assertEqual(self.client.delete(f"/admin/sessions/{session_id}").status_code, 200)
        self.assertEqual(self.client.get(f"/board/sessions/{session_id}").status_code, 404)

    def test_import_and_export(self) -> None:
        session_id = self._create()
        sheet = "桌號,先手ID,先手姓名,後手ID,後手姓名\n5,P9,Ivy,P1,Alice\n"
        response = self.client.post(
            f"/admin/sessions/{session_id}/import",
            data={"file": (io.BytesIO(sheet.encode("utf-8")), "round2.csv")},
            content_type="multipart/form-data",
        )
        self.assertEqual(response.status_code, 200)
        tables = response.get_json()["session"]["tables"]
        self.assertEqual([(t["tableNumber"], t["player1"]["id"]) for t in tables], [(5, "P9")])

        response = self.client.get(f"/admin/sessions/{session_id}/export?report=tables&format=xlsx")
        self.assertEqual(response.status_code, 200)
        self.assertIn("attachment", response.headers["Content-Disposition"])
        ws = load_workbook(io.BytesIO(response.data)).active
        self.assertEqual(ws.cell(2, 2).value, "P9")

        response = self.client.get(f"/admin/sessions/{session_id}/export?report=standings&format=csv")
        self.assertEqual(response.status_code, 200)
        self.assertIn("選手ID", response.data.decode("utf-8-sig"))

        bad = self.client.get(f"/admin/sessions/{session_id}/export?format=pdf")
        self.assertEqual(bad.status_code, 400)

    def test_import_rejects_other_files(self) -> None:
        session_id = self._create()
        response = self.client.post(
            f"/admin/sessions/{session_id}/import",
            data={"file": (io.BytesIO(b"hello"), "notes.txt")},
            content_type="multipart/form-data",
        )
        self.assertEqual(response.status_code, 400)

    def test_parse_tables_for_draft(self) -> None:
        self.login("ADMIN")
        sheet = "P1 ID,P1 Name,P2 ID,P2 Name\nA,a,B,b\nC,c,D,d\n"
        response = self.client.post(
            "/admin/tables/import",
            data={"file": (io.BytesIO(sheet.encode("utf-8")), "draft.csv")},
            content_type="multipart/form-data",
        )
        data = response.get_json()
        self.assertEqual([t["tableNumber"] for t in data["tables"]], [1, 2])
        self.assertEqual(data["nextTableNumber"], 3)
        self.assertEqual(self.sync.sessions, [])


class SyncRoutesTestCase(AppTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.bins = FakeBinClient()
        self.sync.bin_client = self.bins

    def test_publish_and_share_link(self) -> None:
        self.login("ADMIN")
        self.assertEqual(self.client.post("/sync/publish").status_code, 400)

        self.client.post("/admin/sessions", json=NEW_SESSION)
        response = self.client.post("/sync/publish")
        self.assertEqual(response.status_code, 201)
        data = response.get_json()
        self.assertEqual((data["mode"], data["code"]), ("SHARED_BIN", "bin1"))
        self.assertEqual(data["shareLink"], "http://localhost/?sid=bin1")

    def test_publish_requires_admin(self) -> None:
        self.assertEqual(self.client.post("/sync/publish").status_code, 403)

    def test_publish_failure(self) -> None:
        self.login("ADMIN")
        self.client.post("/admin/sessions", json=NEW_SESSION)
        self.bins.fail = True
        self.assertEqual(self.client.post("/sync/publish").status_code, 502)
        self.assertEqual(self.client.get("/sync").get_json()["mode"], "LOCAL")

    def test_share_link_joins_bin(self) -> None:
        self.bins.bins["abc"] = [
            {"id": "remote", "title": "Shared", "referees": ["A"], "tables": []}
        ]
        self.login("ADMIN")
        data = self.client.get("/board/sessions?sid=abc").get_json()
        self.assertEqual(data["mode"], "SHARED_BIN")
        self.assertEqual([s["id"] for s in data["sessions"]], ["remote"])

        response = self.client.delete("/sync")
        self.assertEqual(response.get_json()["mode"], "LOCAL")
        self.assertIsNone(response.get_json()["code"])

    def test_join(self) -> None:
        self.bins.bins["abc"] = []
        self.login("ADMIN")
        response = self.client.post("/sync/join", json={"code": "abc"})
        self.assertTrue(response.get_json()["synced"])
        self.assertEqual(self.client.get("/sync").get_json()["code"], "abc")
        self.assertEqual(self.client.post("/sync/join", json={"code": ""}).status_code, 400)

    def test_guest_cannot_change_sync_mode(self) -> None:
        self.login("ADMIN")
        self.client.post("/admin/sessions", json=NEW_SESSION)
        self.client.post("/auth/logout")
        before = [s.id for s in self.sync.local.list_sessions()]
        self.bins.bins["abc"] = [{"id": "x", "title": "Other", "referees": ["A"], "tables": []}]

        data = self.client.get("/board/sessions?sid=abc").get_json()
        self.assertEqual(data["mode"], "LOCAL")
        self.assertEqual(self.client.post("/sync/join", json={"code": "abc"}).status_code, 403)
        self.assertEqual(self.sync.mode.value, "LOCAL")
        self.assertEqual([s.id for s in self.sync.local.list_sessions()], before)

    def test_referee_cannot_leave_shared_bin(self) -> None:
        self.bins.bins["abc"] = []
        self.login("ADMIN")
        self.client.post("/sync/join", json={"code": "abc"})
        self.login("REFEREE")
        self.assertEqual(self.client.delete("/sync").status_code, 403)
        self.client.get("/board/sessions?sid=other")
        self.assertEqual(self.client.get("/sync").get_json()["code"], "abc")

import os
from unittest import mock

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "artfest_console.settings")

import django

django.setup()

from django.contrib import messages
from django.test import SimpleTestCase, override_settings
from django.urls import reverse

from festadmin import auth, services
from festadmin.tests.helpers import BACKEND_URL, FakeBackend, FakeResponse

ADMIN = {"_id": "u0", "username": "admin", "role": {"name": "admin", "permissions": []}}
VIEWER = {"_id": "u9", "username": "viewer", "role": {"name": "volunteer", "permissions": [{"name": "view_team_points"}]}}


def _messages(response) -> list[str]:
    return [str(message) for message in messages.get_messages(response.wsgi_request)]


@override_settings(ARTFEST_API_URL=BACKEND_URL)
class ConsoleViewTestCase(SimpleTestCase):
    user = ADMIN

    def setUp(self):
        self.backend = FakeBackend(
            students=[
                {"_id": "s1", "name": "Aisha Rahman", "chestNo": "101", "class": "10", "category": "Ula", "team": {"_id": "t1", "name": "Red"}},
                {"_id": "s2", "name": "Bilal Khan", "chestNo": "102", "class": "8", "category": "Bidaya", "team": {"_id": "t2", "name": "Blue"}},
            ],
            teams=[{"_id": "t1", "name": "Red", "color": "#ff0000"}, {"_id": "t2", "name": "Blue", "color": "#0000ff"}],
            curbs=[{"_id": "c1", "name": "Morning block", "maxCountOfProg": 3, "programs": ["p1", "p2"]}],
            programs=[
                {"_id": "p1", "programCode": "P101", "name": "Qiraat", "category": "Ula", "status": "Scheduled", "resultStatus": "completed"},
                {"_id": "p2", "programCode": "P102", "name": "Essay", "category": "Aliya", "status": "Draft", "resultStatus": "published"},
            ],
            users=[ADMIN],
            events=[],
            categories=[{"_id": "k1"}],
            news=[],
            gallery=[],
            downloads=[],
        )
        patcher = mock.patch("festadmin.api.SESSION.request", side_effect=self.backend)
        self.mock_request = patcher.start()
        self.addCleanup(patcher.stop)
        if self.user is not None:
            session = self.client.session
            session[auth.TOKEN_SESSION_KEY] = "token-123"
            session[auth.USER_SESSION_KEY] = self.user
            session.save()


class AnonymousAccessTests(ConsoleViewTestCase):
    user = None

    def test_console_pages_redirect_to_sign_in(self):
        response = self.client.get(reverse("festadmin:student-list"))
        self.assertRedirects(
            response, f"{reverse('sign_in')}?next=%2Fstudents%2F", fetch_redirect_response=False
        )
        self.mock_request.assert_not_called()

    def test_sign_in_stores_backend_token(self):
        self.backend.routes[("POST", "/users/login")] = {"token": "fresh", "user": ADMIN}

        response = self.client.post(reverse("sign_in"), {"username": "admin", "password": "pw", "next": "/curbs/"})

        self.assertRedirects(response, "/curbs/", fetch_redirect_response=False)
        self.assertEqual(self.client.session[auth.TOKEN_SESSION_KEY], "fresh")
        self.assertNotIn("Authorization", self.backend.calls[0]["headers"])

    def test_sign_in_failure_shows_server_message(self):
        self.backend.fail("POST", "/users/login", 401, "Invalid credentials")

        response = self.client.post(reverse("sign_in"), {"username": "admin", "password": "bad"})

        self.assertEqual(response.status_code, 200)
        self.assertIn("Invalid credentials", _messages(response))
        self.assertNotIn(auth.TOKEN_SESSION_KEY, self.client.session)


class StudentViewTests(ConsoleViewTestCase):
    def test_search_is_case_insensitive(self):
        response = self.client.get(reverse("festadmin:student-list"), {"q": "aIsHa"})
        self.assertContains(response, "Aisha Rahman")
        self.assertNotContains(response, "Bilal Khan")

    def test_team_filter(self):
        response = self.client.get(reverse("festadmin:student-list"), {"team": "t2"})
        self.assertContains(response, "Bilal Khan")
        self.assertNotContains(response, "Aisha Rahman")

    def test_create_appears_once_in_list(self):
        response = self.client.post(
            reverse("festadmin:student-create"),
            {"name": "Zainab Noor", "chest_no": "150", "student_class": "9", "category": "Thaniyya", "team": "t1", "is_active": "on"},
            follow=True,
        )
        self.assertRedirects(response, reverse("festadmin:student-list"))
        self.assertContains(response, "Zainab Noor", count=1)
        self.assertContains(response, "Student created successfully")
        self.assertIn(
            ("POST", "/students", {"name": "Zainab Noor", "chestNo": "150", "class": "9", "category": "Thaniyya", "team": "t1", "isActive": True}),
            self.backend.writes(),
        )

    def test_create_failure_keeps_form_and_shows_server_message(self):
        self.backend.fail("POST", "/students", 400, "Chest number already exists")
        response = self.client.post(
            reverse("festadmin:student-create"),
            {"name": "Zainab Noor", "chest_no": "101", "student_class": "9", "category": "Ula", "team": "t1"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertIn("Chest number already exists", _messages(response))
        self.assertEqual(len(self.backend.collections["students"]), 2)

    def test_delete_confirms_then_removes(self):
        confirm = self.client.get(reverse("festadmin:student-delete", args=["s1"]))
        self.assertContains(confirm, "Aisha Rahman")
        self.assertEqual(self.backend.writes(), [])

        response = self.client.post(reverse("festadmin:student-delete", args=["s1"]), follow=True)
        self.assertContains(response, "Student deleted successfully")
        self.assertNotContains(response, "Aisha Rahman")
        self.assertEqual([s["_id"] for s in self.backend.collections["students"]], ["s2"])

    def test_import_template_download(self):
        response = self.client.get(reverse("festadmin:student-import-template"))
        self.assertEqual(response["Content-Type"], "text/csv")
        self.assertIn(b"Name,Chest Number,Class,Category,Team Name", response.content)


class PermissionTests(ConsoleViewTestCase):
    user = VIEWER

    def test_missing_permission_redirects_without_calling_backend(self):
        response = self.client.post(reverse("festadmin:student-create"), {"name": "x"})
        self.assertRedirects(response, reverse("festadmin:dashboard"), fetch_redirect_response=False)
        self.assertIn("You do not have permission to perform this action.", _messages(response))
        self.assertEqual(self.backend.writes(), [])

    def test_granted_permission(self):
        response = self.client.get(reverse("festadmin:team-leaderboard"))
        self.assertEqual(response.status_code, 200)


class SessionExpiryTests(ConsoleViewTestCase):
    def test_unauthorized_backend_response_ends_session(self):
        self.backend.fail("GET", "/students", 401, "jwt expired")

        response = self.client.get(reverse("festadmin:student-list"))

        self.assertRedirects(response, reverse("sign_in"), fetch_redirect_response=False)
        self.assertNotIn(auth.TOKEN_SESSION_KEY, self.client.session)


class CurbViewTests(ConsoleViewTestCase):
    def test_zero_maximum_is_rejected_without_network(self):
        response = self.client.post(reverse("festadmin:curb-create"), {"name": "Evening", "max_count_of_prog": "0"})
        self.assertEqual(response.status_code, 200)
        self.assertIn("Maximum count of programs must be greater than 0", _messages(response))
        self.mock_request.assert_not_called()

    def test_blank_name_is_rejected_without_network(self):
        response = self.client.post(reverse("festadmin:curb-create"), {"name": "", "max_count_of_prog": "2"})
        self.assertIn("Please enter a curb name", _messages(response))
        self.mock_request.assert_not_called()

    def test_create(self):
        response = self.client.post(reverse("festadmin:curb-create"), {"name": "Evening", "max_count_of_prog": "2"})
        self.assertRedirects(response, reverse("festadmin:curb-list"), fetch_redirect_response=False)
        self.assertEqual(self.backend.writes(), [("POST", "/curbs", {"name": "Evening", "maxCountOfProg": 2})])

    def test_list_shows_utilization(self):
        response = self.client.get(reverse("festadmin:curb-list"))
        self.assertContains(response, "Morning block")
        self.assertContains(response, "2 / 3")
        self.assertContains(response, "Qiraat")

    def test_remove_program_waits_for_backend(self):
        response = self.client.post(reverse("festadmin:curb-remove-program", args=["c1", "p1"]))
        self.assertRedirects(response, reverse("festadmin:curb-list"), fetch_redirect_response=False)
        self.assertEqual(self.backend.writes(), [("PATCH", "/curbs/c1", {"programs": ["p2"]})])
        self.assertEqual(self.backend.collections["curbs"][0]["programs"], ["p2"])

    def test_remove_program_failure_leaves_curb_unchanged(self):
        self.backend.fail("PATCH", "/curbs/c1", 500)
        response = self.client.post(reverse("festadmin:curb-remove-program", args=["c1", "p1"]))
        self.assertIn("Failed to remove program from curb", _messages(response))
        self.assertEqual(self.backend.collections["curbs"][0]["programs"], ["p1", "p2"])

    def test_manage_programs_refuses_more_than_cap(self):
        self.backend.collections["curbs"][0]["maxCountOfProg"] = 1
        response = self.client.post(reverse("festadmin:curb-programs", args=["c1"]), {"programs": ["p1", "p2"]})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.backend.writes(), [])


class DashboardViewTests(ConsoleViewTestCase):
    def test_failed_collection_shows_placeholder_only_for_its_card(self):
        self.backend.fail("GET", "/news", 500)

        response = self.client.get(reverse("festadmin:dashboard"))

        self.assertEqual(response.status_code, 200)
        self.assertContains(response, '<p class="stat">...</p>', count=1, html=False)
        self.assertContains(response, '<p class="stat">2</p>')
        self.assertIn("Some dashboard figures could not be loaded.", _messages(response))

    def test_rejected_token_ends_session(self):
        for _key, (path, _title, _description) in services.DASHBOARD_COLLECTIONS.items():
            self.backend.fail("GET", path, 401, "jwt expired")

        response = self.client.get(reverse("festadmin:dashboard"))

        self.assertRedirects(response, reverse("sign_in"), fetch_redirect_response=False)
        self.assertNotIn(auth.TOKEN_SESSION_KEY, self.client.session)


class JudgmentViewTests(ConsoleViewTestCase):
    def setUp(self):
        super().setUp()
        self.backend.routes[("GET", "/programs/p1/with_participation_and_judgments")] = {
            "program": {"_id": "p1", "name": "Qiraat", "programCode": "P101", "resultStatus": "pending"},
            "participations": [
                {
                    "participation": {"_id": "pa1", "candidateId": [{"name": "Aisha Rahman", "chestNo": "101"}], "team": {"name": "Red"}},
                    "judgment": {"_id": "j1", "point1": 10},
                },
                {
                    "participation": {"_id": "pa2", "candidateId": [{"name": "Hana Aziz", "chestNo": "203"}], "team": {"name": "Blue"}},
                    "judgment": None,
                },
            ],
        }
        self.backend.routes[("GET", "/grades/program/p1")] = {
            "data": {"grades": [{"_id": "gA", "category": "A", "from": 80, "to": 100}, {"_id": "gB", "category": "B", "from": 60, "to": 79.99}]}
        }
        self.backend.routes[("GET", "/positions/program/p1")] = {
            "data": {"positions": [{"_id": "pos1", "category": "First", "rank": 1}, {"_id": "pos2", "category": "Second", "rank": 2}]}
        }
        for path in ("/judgments/j1", "/participations/result/pa1", "/participations/result/pa2", "/programs/p1"):
            self.backend.routes[("PATCH", path)] = {"data": {}}
        self.backend.routes[("POST", "/judgments")] = {"data": {"_id": "j2"}}

    def _scores(self, **extra):
        data = {
            "performance_pa1": "38", "presentation_pa1": "18", "creativity_pa1": "18", "technique_pa1": "9", "time_management_pa1": "9",
            "performance_pa2": "30", "presentation_pa2": "15", "creativity_pa2": "15", "technique_pa2": "5", "time_management_pa2": "5",
            "result_status": "completed",
            "action": "submit",
        }
        data.update(extra)
        return data

    def test_sheet_renders_rows(self):
        response = self.client.get(reverse("festadmin:judgment-sheet", args=["p1"]))
        self.assertContains(response, "Aisha Rahman")
        self.assertContains(response, 'name="performance_pa1"')
        self.assertContains(response, 'name="time_management_pa2"')

    def test_submit_writes_judgments_then_results_then_program(self):
        response = self.client.post(reverse("festadmin:judgment-sheet", args=["p1"]), self._scores())

        self.assertRedirects(response, reverse("festadmin:judgment-sheet", args=["p1"]), fetch_redirect_response=False)
        self.assertEqual(
            self.backend.writes(),
            [
                ("PATCH", "/judgments/j1", {"participation": "pa1", "remarks": "", "point1": 38, "point2": 18, "point3": 18, "point4": 9, "point5": 9}),
                ("PATCH", "/participations/result/pa1", {"resultStatus": "completed", "position": "pos1", "grade": "gA"}),
                ("POST", "/judgments", {"participation": "pa2", "remarks": "", "point1": 30, "point2": 15, "point3": 15, "point4": 5, "point5": 5}),
                ("PATCH", "/participations/result/pa2", {"resultStatus": "completed", "position": "pos2", "grade": "gB"}),
                ("PATCH", "/programs/p1", {"resultStatus": "completed"}),
            ],
        )

    def test_preview_does_not_write(self):
        response = self.client.post(reverse("festadmin:judgment-sheet", args=["p1"]), self._scores(action="preview"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.backend.writes(), [])
        self.assertContains(response, "A+")

    def test_over_cap_score_is_rejected_without_writes(self):
        response = self.client.post(reverse("festadmin:judgment-sheet", args=["p1"]), self._scores(technique_pa1="11"))
        self.assertEqual(response.status_code, 200)
        self.assertIn("Technique cannot be above 10", _messages(response))
        self.assertEqual(self.backend.writes(), [])

    def test_failed_row_stops_submission(self):
        self.backend.fail("PATCH", "/participations/result/pa1", 409, "Results are locked")
        response = self.client.post(reverse("festadmin:judgment-sheet", args=["p1"]), self._scores())
        self.assertEqual(response.status_code, 200)
        self.assertIn("Results are locked", _messages(response))
        self.assertEqual([w[1] for w in self.backend.writes()], ["/judgments/j1", "/participations/result/pa1"])

    def _program_status(self, status):
        bundle = self.backend.routes[("GET", "/programs/p1/with_participation_and_judgments")]
        bundle["program"]["resultStatus"] = status

    def test_save_scores_marks_processing(self):
        self.client.post(reverse("festadmin:judgment-sheet", args=["p1"]), self._scores(result_status="processing"))
        writes = self.backend.writes()
        self.assertEqual(writes[1][2]["resultStatus"], "processing")
        self.assertEqual(writes[-1], ("PATCH", "/programs/p1", {"resultStatus": "processing"}))

    def test_sheet_cannot_move_results_backwards(self):
        response = self.client.post(reverse("festadmin:judgment-sheet", args=["p1"]), self._scores(result_status="pending"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.backend.writes(), [])

    def test_published_results_are_read_only(self):
        self._program_status("published")

        page = self.client.get(reverse("festadmin:judgment-sheet", args=["p1"]))
        self.assertNotContains(page, "Submit judgment")
        self.assertNotContains(page, "Save scores")

        response = self.client.post(reverse("festadmin:judgment-sheet", args=["p1"]), self._scores())
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.backend.writes(), [])
        self.assertIn(
            "Results for this program are published; judgments can no longer be changed.",
            _messages(response),
        )

    def test_archived_results_still_preview(self):
        self._program_status("archived")
        response = self.client.post(reverse("festadmin:judgment-sheet", args=["p1"]), self._scores(action="preview"))
        self.assertContains(response, "A+")
        self.assertEqual(self.backend.writes(), [])

    def test_result_status_change(self):
        self.backend.routes[("PATCH", "/programs/change_result_status/p1")] = {"data": {}}
        response = self.client.post(reverse("festadmin:program-result-status", args=["p1"]), {"result_status": "published"})
        self.assertRedirects(response, reverse("festadmin:judgment-index"), fetch_redirect_response=False)
        self.assertEqual(self.backend.writes(), [("PATCH", "/programs/change_result_status/p1", {"resultStatus": "published"})])


class ResultViewTests(ConsoleViewTestCase):
    def test_export_streams_backend_csv(self):
        self.backend.routes[("GET", "/results/export/p1")] = FakeResponse(
            None, 200, content=b"Rank,Name\n1,Aisha\n", headers={"Content-Type": "text/csv; charset=utf-8"}
        )
        response = self.client.get(reverse("festadmin:result-export", args=["p1"]))
        self.assertEqual(response.content, b"Rank,Name\n1,Aisha\n")
        self.assertIn("attachment", response["Content-Disposition"])

    def test_print_orders_participations_and_totals_teams(self):
        self.backend.routes[("POST", "/programs/bulk_result")] = {
            "data": [
                {
                    "program": {"_id": "p1", "programCode": "P101", "name": "Qiraat", "category": "Ula"},
                    "participations": [
                        {"position": {"rank": 2}, "grade": {"category": "B"}, "candidateId": [{"name": "SecondPlace", "chestNo": "1"}], "team": {"name": "Red"}},
                        {"position": None, "grade": {"category": "A"}, "candidateId": [{"name": "Unranked", "chestNo": "2"}], "team": {"name": "Red"}},
                        {"position": {"rank": 1}, "grade": {"category": "C"}, "candidateId": [{"name": "FirstC", "chestNo": "3"}], "team": {"name": "Blue"}},
                        {"position": {"rank": 1}, "grade": {"category": "A"}, "candidateId": [{"name": "FirstA", "chestNo": "4"}], "team": {"name": "Blue"}},
                    ],
                }
            ],
            "team": [
                {"name": "Red", "totalPoint": {"completed": 5, "published": 10}},
                {"name": "Blue", "totalPoint": {"completed": 20, "published": 1}},
            ],
        }

        response = self.client.get(reverse("festadmin:result-print"), {"result_status": "completed"})

        self.assertEqual(response.status_code, 200)
        body = response.content.decode()
        order = [body.index(name) for name in ("FirstA", "FirstC", "SecondPlace", "Unranked")]
        self.assertEqual(order, sorted(order))
        self.assertEqual(self.backend.writes(), [("POST", "/programs/bulk_result", {"programIds": ["p1"]})])
        self.assertIn("Total Points : 36", body)
        self.assertIn("No of Programs : 2", body)
        self.assertIn("@media print", body)


class CategoryViewTests(ConsoleViewTestCase):
    def setUp(self):
        super().setUp()
        self.backend.collections["categories"] = [
            {"_id": "k1", "name": "Ula", "description": "Lower primary", "studentCount": 40, "programCount": 12},
            {"_id": "k2", "name": "Aliya", "description": "Senior stage", "studentCount": 25, "programCount": 9},
        ]

    def test_search_covers_description(self):
        response = self.client.get(reverse("festadmin:category-list"), {"q": "senior"})
        self.assertContains(response, "Aliya")
        self.assertNotContains(response, "Lower primary")

    def test_stat_cards_total_every_category(self):
        response = self.client.get(reverse("festadmin:category-list"), {"q": "senior"})
        self.assertContains(response, '<p class="stat">65</p>')
        self.assertContains(response, '<p class="stat">21</p>')

    def test_create_and_edit(self):
        self.client.post(reverse("festadmin:category-create"), {"name": " Bidaya ", "description": ""})
        response = self.client.post(
            reverse("festadmin:category-edit", args=["k2"]), {"name": "Aliya", "description": "Final year"}
        )
        self.assertRedirects(response, reverse("festadmin:category-list"), fetch_redirect_response=False)
        self.assertEqual(
            self.backend.writes(),
            [
                ("POST", "/categories", {"name": "Bidaya", "description": ""}),
                ("PUT", "/categories/k2", {"name": "Aliya", "description": "Final year"}),
            ],
        )

    def test_blank_name_is_rejected(self):
        response = self.client.post(reverse("festadmin:category-create"), {"name": "  "})
        self.assertIn("Category name is required", _messages(response))
        self.assertEqual(self.backend.writes(), [])


class PermissionManagementTests(ConsoleViewTestCase):
    def setUp(self):
        super().setUp()
        self.backend.collections["permissions"] = [{"_id": "perm1", "name": "edit_students", "isActive": True}]

    def test_list_and_update(self):
        listing = self.client.get(reverse("festadmin:permission-list"))
        self.assertContains(listing, "edit_students")

        self.client.post(reverse("festadmin:permission-edit", args=["perm1"]), {"name": "edit_students"})

        self.assertEqual(self.backend.writes(), [("PUT", "/permissions/perm1", {"name": "edit_students", "isActive": False})])

    def test_delete(self):
        response = self.client.post(reverse("festadmin:permission-delete", args=["perm1"]), follow=True)
        self.assertContains(response, "Permission deleted successfully")
        self.assertEqual(self.backend.collections["permissions"], [])


class ListStatisticsTests(ConsoleViewTestCase):
    def setUp(self):
        super().setUp()
        self.backend.collections["teams"][0]["totalPoint"] = {"published": 30, "completed": 5}
        self.backend.collections["teams"][1]["totalPoint"] = {"published": 45}

    def test_team_list_shows_top_team_and_total(self):
        response = self.client.get(reverse("festadmin:team-list"))
        self.assertContains(response, "Top Team")
        self.assertContains(response, '<p class="stat">75</p>')
        self.assertContains(response, "45 points")

    def test_leaderboard_shows_average(self):
        response = self.client.get(reverse("festadmin:team-leaderboard"))
        self.assertContains(response, "Average Points")
        self.assertContains(response, '<p class="stat">38</p>')

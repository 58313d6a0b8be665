import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "artfest_console.settings")

import django

django.setup()

from django.test import SimpleTestCase

from festadmin import forms, scoring


class CurbFormTests(SimpleTestCase):
    def test_blank_name_rejected(self):
        form = forms.CurbForm(data={"name": "   ", "max_count_of_prog": "3"})
        self.assertFalse(form.is_valid())
        self.assertEqual(form.first_error(), "Please enter a curb name")

    def test_zero_maximum_rejected(self):
        form = forms.CurbForm(data={"name": "Stage A", "max_count_of_prog": "0"})
        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors["max_count_of_prog"], ["Maximum count of programs must be greater than 0"])

    def test_payload(self):
        form = forms.CurbForm(data={"name": " Stage A ", "max_count_of_prog": "4"})
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.payload(), {"name": "Stage A", "maxCountOfProg": 4})

    def test_program_selection_respects_cap(self):
        curb = {"_id": "c1", "maxCountOfProg": 1, "programs": []}
        programs = [{"_id": "p1", "name": "Speech"}, {"_id": "p2", "name": "Essay"}]
        form = forms.CurbProgramsForm(data={"programs": ["p1", "p2"]}, curb=curb, programs=programs)
        self.assertFalse(form.is_valid())
        self.assertIn("at most 1", form.first_error())

    def test_unreadable_cap_means_no_cap(self):
        curb = {"_id": "c1", "maxCountOfProg": "lots", "programs": []}
        programs = [{"_id": "p1", "name": "Speech"}, {"_id": "p2", "name": "Essay"}]
        form = forms.CurbProgramsForm(data={"programs": ["p1", "p2"]}, curb=curb, programs=programs)
        self.assertTrue(form.is_valid(), form.errors)


class ProgramFormTests(SimpleTestCase):
    def _data(self, **overrides):
        data = {
            "program_code": "P101",
            "name": "Qiraat",
            "category": "Ula",
            "duration": "10",
            "max_participants": "3",
            "candidates_per_participation": "1",
            "venue": "Main Stage",
            "date": "2025-02-10",
            "starting_time": "10:00",
            "ending_time": "10:30",
            "status": "Draft",
            "is_stage": "on",
        }
        data.update(overrides)
        return data

    def test_valid_payload(self):
        form = forms.ProgramForm(data=self._data())
        self.assertTrue(form.is_valid(), form.errors)
        payload = form.payload()
        self.assertEqual(payload["programCode"], "P101")
        self.assertEqual(payload["date"], "2025-02-10")
        self.assertEqual(payload["startingTime"], "10:00")
        self.assertTrue(payload["isStage"])
        self.assertFalse(payload["isGroup"])

    def test_end_must_follow_start(self):
        form = forms.ProgramForm(data=self._data(ending_time="09:00"))
        self.assertFalse(form.is_valid())
        self.assertIn("ending_time", form.errors)

    def test_positive_numbers(self):
        form = forms.ProgramForm(data=self._data(duration="0", max_participants="-1"))
        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors["duration"], ["Duration must be greater than 0"])
        self.assertEqual(form.errors["max_participants"], ["Max participants must be greater than 0"])

    def test_required_fields(self):
        form = forms.ProgramForm(data=self._data(program_code="", venue=""))
        self.assertFalse(form.is_valid())
        self.assertEqual(form.first_error(), "Program code is required")


class LookupTableFormTests(SimpleTestCase):
    def test_grade_bounds(self):
        form = forms.GradeForm(data={"category": "a", "score_from": "80", "score_to": "70", "points": "5", "color": "green"})
        self.assertFalse(form.is_valid())
        self.assertIn("score_to", form.errors)

        form = forms.GradeForm(data={"category": "a", "score_from": "70", "score_to": "101", "points": "5", "color": "green"})
        self.assertFalse(form.is_valid())

        form = forms.GradeForm(data={"category": "a", "score_from": "70", "score_to": "79.99", "points": "5", "color": "green"})
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.payload()["category"], "A")
        self.assertEqual(form.payload()["to"], 79.99)

    def test_position_points_not_negative(self):
        form = forms.PositionForm(data={"category": "First", "rank": "1", "points": "-2"})
        self.assertFalse(form.is_valid())
        self.assertIn("points", form.errors)


class UserFormTests(SimpleTestCase):
    roles = [{"_id": "r1", "name": "judge"}]

    def test_password_required_on_create_only(self):
        form = forms.UserForm(data={"username": "judge1", "role": "r1"}, roles=self.roles)
        self.assertFalse(form.is_valid())
        self.assertIn("password", form.errors)

        form = forms.UserForm(
            data={"username": "judge1", "role": "r1"},
            roles=self.roles,
            record={"_id": "u1", "username": "judge1", "role": {"_id": "r1"}},
        )
        self.assertTrue(form.is_valid(), form.errors)
        self.assertNotIn("password", form.payload())


class TeamFormTests(SimpleTestCase):
    def test_colour_must_be_hex(self):
        form = forms.TeamForm(data={"name": "Red", "color": "red"})
        self.assertFalse(form.is_valid())
        self.assertIn("color", form.errors)


class ScoreSheetFormTests(SimpleTestCase):
    def _rows(self):
        return scoring.build_score_rows([{"participation": {"_id": "pa1"}, "judgment": None}])

    def test_each_criterion_has_its_own_cap(self):
        form = forms.ScoreSheetForm(
            self._rows(),
            {"performance_pa1": "41", "technique_pa1": "10", "result_status": "completed"},
        )
        self.assertFalse(form.is_valid())
        self.assertEqual(form.errors["performance_pa1"], ["Performance cannot be above 40"])
        self.assertNotIn("technique_pa1", form.errors)

    def test_blank_scores_count_as_zero(self):
        rows = self._rows()
        form = forms.ScoreSheetForm(
            rows,
            {"performance_pa1": "35.5", "presentation_pa1": "", "remarks_pa1": "Good", "result_status": "completed"},
        )
        self.assertTrue(form.is_valid(), form.errors)
        form.apply()
        self.assertEqual(str(rows[0].total), "35.5")
        self.assertEqual(rows[0].remarks, "Good")

    def test_sheet_only_saves_or_completes(self):
        for status, valid in (("processing", True), ("completed", True), ("pending", False), ("published", False)):
            form = forms.ScoreSheetForm(self._rows(), {"performance_pa1": "30", "result_status": status})
            self.assertEqual(form.is_valid(), valid, status)


class PermissionFormTests(SimpleTestCase):
    def test_payload(self):
        form = forms.PermissionForm(data={"name": " view_results ", "is_active": "on"})
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.payload(), {"name": "view_results", "isActive": True})

    def test_name_required(self):
        form = forms.PermissionForm(data={"name": ""})
        self.assertFalse(form.is_valid())
        self.assertEqual(form.first_error(), "Permission name is required")

    def test_edit_prefills_record(self):
        form = forms.PermissionForm(record={"name": "edit_team", "isActive": False})
        self.assertEqual(form.initial, {"name": "edit_team", "is_active": False})


class CategoryFormTests(SimpleTestCase):
    def test_payload(self):
        form = forms.CategoryForm(data={"name": " Ula ", "description": " Lower primary "})
        self.assertTrue(form.is_valid(), form.errors)
        self.assertEqual(form.payload(), {"name": "Ula", "description": "Lower primary"})

    def test_name_required(self):
        form = forms.CategoryForm(data={"name": "", "description": "x"})
        self.assertFalse(form.is_valid())
        self.assertEqual(form.first_error(), "Category name is required")

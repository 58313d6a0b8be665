"""URL configuration for the festadmin app."""
from django.urls import path

from . import views

app_name = "festadmin"

urlpatterns = [
    path("", views.dashboard, name="dashboard"),
    path("students/", views.student_list, name="student-list"),
    path("students/new/", views.student_create, name="student-create"),
    path("students/import/", views.student_import, name="student-import"),
    path("students/import/template/", views.student_import_template, name="student-import-template"),
    path("students/<str:pk>/edit/", views.student_edit, name="student-edit"),
    path("students/<str:pk>/delete/", views.student_delete, name="student-delete"),
    path("teams/", views.team_list, name="team-list"),
    path("teams/new/", views.team_create, name="team-create"),
    path("teams/leaderboard/", views.team_leaderboard, name="team-leaderboard"),
    path("teams/<str:pk>/edit/", views.team_edit, name="team-edit"),
    path("teams/<str:pk>/delete/", views.team_delete, name="team-delete"),
    path("programs/", views.program_list, name="program-list"),
    path("programs/new/", views.program_create, name="program-create"),
    path("programs/schedule/", views.program_schedule, name="program-schedule"),
    path("programs/<str:pk>/edit/", views.program_edit, name="program-edit"),
    path("programs/<str:pk>/delete/", views.program_delete, name="program-delete"),
    path("categories/", views.category_list, name="category-list"),
    path("categories/new/", views.category_create, name="category-create"),
    path("categories/<str:pk>/edit/", views.category_edit, name="category-edit"),
    path("categories/<str:pk>/delete/", views.category_delete, name="category-delete"),
    path("curbs/", views.curb_list, name="curb-list"),
    path("curbs/new/", views.curb_create, name="curb-create"),
    path("curbs/<str:pk>/edit/", views.curb_edit, name="curb-edit"),
    path("curbs/<str:pk>/delete/", views.curb_delete, name="curb-delete"),
    path("curbs/<str:pk>/programs/", views.curb_programs, name="curb-programs"),
    path(
        "curbs/<str:pk>/programs/<str:program_id>/remove/",
        views.curb_remove_program,
        name="curb-remove-program",
    ),
    path("positions-grades/", views.positions_grades, name="positions-grades"),
    path("positions/new/", views.position_create, name="position-create"),
    path("positions/<str:pk>/edit/", views.position_edit, name="position-edit"),
    path("positions/<str:pk>/delete/", views.position_delete, name="position-delete"),
    path("grades/new/", views.grade_create, name="grade-create"),
    path("grades/<str:pk>/edit/", views.grade_edit, name="grade-edit"),
    path("grades/<str:pk>/delete/", views.grade_delete, name="grade-delete"),
    path("users/", views.user_list, name="user-list"),
    path("users/new/", views.user_create, name="user-create"),
    path("users/<str:pk>/edit/", views.user_edit, name="user-edit"),
    path("users/<str:pk>/delete/", views.user_delete, name="user-delete"),
    path("roles/", views.role_list, name="role-list"),
    path("roles/new/", views.role_create, name="role-create"),
    path("roles/<str:pk>/edit/", views.role_edit, name="role-edit"),
    path("roles/<str:pk>/delete/", views.role_delete, name="role-delete"),
    path("permissions/", views.permission_list, name="permission-list"),
    path("permissions/new/", views.permission_create, name="permission-create"),
    path("permissions/<str:pk>/edit/", views.permission_edit, name="permission-edit"),
    path("permissions/<str:pk>/delete/", views.permission_delete, name="permission-delete"),
    path("events/", views.event_list, name="event-list"),
    path("events/new/", views.event_create, name="event-create"),
    path("events/<str:pk>/edit/", views.event_edit, name="event-edit"),
    path("events/<str:pk>/delete/", views.event_delete, name="event-delete"),
    path("news/", views.news_list, name="news-list"),
    path("news/new/", views.news_create, name="news-create"),
    path("news/<str:pk>/edit/", views.news_edit, name="news-edit"),
    path("news/<str:pk>/delete/", views.news_delete, name="news-delete"),
    path("gallery/", views.gallery_list, name="gallery-list"),
    path("gallery/new/", views.gallery_create, name="gallery-create"),
    path("gallery/<str:pk>/edit/", views.gallery_edit, name="gallery-edit"),
    path("gallery/<str:pk>/delete/", views.gallery_delete, name="gallery-delete"),
    path("downloads/", views.download_list, name="download-list"),
    path("downloads/new/", views.download_create, name="download-create"),
    path("downloads/<str:pk>/edit/", views.download_edit, name="download-edit"),
    path("downloads/<str:pk>/delete/", views.download_delete, name="download-delete"),
    path("judgment/", views.judgment_index, name="judgment-index"),
    path("judgment/<str:pk>/", views.judgment_sheet, name="judgment-sheet"),
    path("judgment/<str:pk>/status/", views.program_status, name="program-status"),
    path("judgment/<str:pk>/result-status/", views.program_result_status, name="program-result-status"),
    path("results/", views.result_list, name="result-list"),
    path("results/print/", views.result_print, name="result-print"),
    path("results/<str:pk>/", views.program_results, name="program-results"),
    path("results/<str:pk>/export/", views.result_export, name="result-export"),
]

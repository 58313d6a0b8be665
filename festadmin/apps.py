from django.apps import AppConfig


class FestAdminConfig(AppConfig):
    name = "festadmin"
    verbose_name = "ArtFest Console"

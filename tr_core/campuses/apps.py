from django.apps import AppConfig


class CampusesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "tr_core.campuses"

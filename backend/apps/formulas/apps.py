from django.apps import AppConfig


class FormulasConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.formulas"
    label = "formulas"

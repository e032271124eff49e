from django.apps import AppConfig


class RecordingBotsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "recording_bots"

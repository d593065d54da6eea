from django.apps import AppConfig


class ClinicConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'clinic'
    verbose_name = 'MediOca clinic'

    def ready(self) -> None:
        from .services import ai

        ai.configure(ai.build_client())

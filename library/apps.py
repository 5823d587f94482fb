from django.apps import AppConfig


class LibraryConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'library'
    verbose_name = 'Library Lending'

    def ready(self):
        # Import signals
        import library.signals  # noqa: F401

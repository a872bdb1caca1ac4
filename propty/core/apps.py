from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'propty.core'

    def ready(self):
        """Import signals when app is ready"""
        import propty.core.cache_signals  # noqa: F401

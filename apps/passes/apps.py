from django.apps import AppConfig


class PassesConfig(AppConfig):
    name = 'apps.passes'
    label = 'passes'
    verbose_name = 'Season Passes'

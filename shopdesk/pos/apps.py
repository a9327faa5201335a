from django.apps import AppConfig


class PosConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'shopdesk.pos'
    verbose_name = 'Point of sale'

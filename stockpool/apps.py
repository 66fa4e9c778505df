"""Django app configuration for Stockpool."""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class StockpoolConfig(AppConfig):
    """Configuration for Stockpool app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "stockpool"
    verbose_name = _("Inventory")

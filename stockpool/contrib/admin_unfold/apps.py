from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class StockpoolUnfoldConfig(AppConfig):
    name = "stockpool.contrib.admin_unfold"
    label = "stockpool_admin_unfold"
    verbose_name = _("Inventory (Unfold)")

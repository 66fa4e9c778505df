"""
Location model — Where stock exists.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from stockpool.models.enums import LocationKind


class LocationQuerySet(models.QuerySet):

    def active(self):
        return self.filter(is_active=True)

    def default(self):
        """The default location for lines that name none (or None)."""
        return self.active().filter(is_default=True).order_by('priority', 'code').first()


class Location(models.Model):
    """
    Where stock exists — warehouse, store or supplier.

    Local mirror of the location registry: existence, coordinates (for the
    nearest strategy) and active status. Locations are stable entities,
    created during setup and never deleted while stock references them.

    Examples:
        Location.objects.create(code='sp-01', name='São Paulo DC', is_default=True)
        Location.objects.create(code='rj-01', name='Rio Store', kind=LocationKind.STORE,
                                latitude=-22.9068, longitude=-43.1729)
    """

    code = models.SlugField(
        unique=True,
        max_length=50,
        verbose_name=_('Code'),
        help_text=_('Unique identifier (e.g. main, sp-01)'),
    )
    name = models.CharField(
        max_length=100,
        verbose_name=_('Name'),
    )
    kind = models.CharField(
        max_length=20,
        choices=LocationKind.choices,
        default=LocationKind.WAREHOUSE,
        verbose_name=_('Kind'),
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name=_('Active'),
    )
    is_default = models.BooleanField(
        default=False,
        verbose_name=_('Default location'),
        help_text=_('Used for reservation lines that name no location.'),
    )
    priority = models.IntegerField(
        default=0,
        verbose_name=_('Priority'),
        help_text=_('Lower value = preferred for fulfillment.'),
    )
    latitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True,
        verbose_name=_('Latitude'),
    )
    longitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True,
        verbose_name=_('Longitude'),
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name=_('Metadata'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = LocationQuerySet.as_manager()

    class Meta:
        verbose_name = _('Location')
        verbose_name_plural = _('Locations')
        ordering = ['priority', 'code']

    @property
    def coordinates(self) -> tuple[float, float] | None:
        if self.latitude is None or self.longitude is None:
            return None
        return float(self.latitude), float(self.longitude)

    def __str__(self) -> str:
        return self.name

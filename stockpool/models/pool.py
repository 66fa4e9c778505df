"""
Pool models — several locations treated as one fulfillment source.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from stockpool.models.enums import AllocationStrategy, ReservationPolicy


class Pool(models.Model):
    """
    Virtual stock pool over several locations.

    Members are referenced, never owned: removing a pool removes its
    memberships and leaves locations and their stock untouched.
    """

    code = models.SlugField(unique=True, max_length=50, verbose_name=_('Code'))
    name = models.CharField(max_length=100, verbose_name=_('Name'))
    allocation_strategy = models.CharField(
        max_length=20,
        choices=AllocationStrategy.choices,
        default=AllocationStrategy.FIFO,
        verbose_name=_('Allocation strategy'),
    )
    reservation_policy = models.CharField(
        max_length=20,
        choices=ReservationPolicy.choices,
        default=ReservationPolicy.IMMEDIATE,
        verbose_name=_('Reservation policy'),
    )
    is_active = models.BooleanField(default=True, verbose_name=_('Active'))
    locations = models.ManyToManyField(
        'stockpool.Location',
        through='stockpool.PoolMember',
        related_name='pools',
        verbose_name=_('Locations'),
    )
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Pool')
        verbose_name_plural = _('Pools')
        ordering = ['code']

    def __str__(self) -> str:
        return self.name


class PoolMember(models.Model):
    """Membership of a location in a pool, with its explicit priority."""

    pool = models.ForeignKey(
        Pool,
        on_delete=models.CASCADE,
        related_name='members',
        verbose_name=_('Pool'),
    )
    location = models.ForeignKey(
        'stockpool.Location',
        on_delete=models.CASCADE,
        related_name='pool_memberships',
        verbose_name=_('Location'),
    )
    priority = models.IntegerField(
        default=0,
        verbose_name=_('Priority'),
        help_text=_('Lower value is drained first by the priority strategy.'),
    )

    class Meta:
        verbose_name = _('Pool member')
        verbose_name_plural = _('Pool members')
        ordering = ['priority', 'location__code']
        constraints = [
            models.UniqueConstraint(
                fields=['pool', 'location'],
                name='unique_pool_member',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.pool.code} → {self.location.code} (p{self.priority})"

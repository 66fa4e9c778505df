"""
Initial migration for Stockpool models.
"""

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Stockpool models: Location, StockRecord, Movement, Reservation, Pool, Allocation, Transfer."""

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Location',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.SlugField(help_text='Unique identifier (e.g. main, sp-01)', unique=True, verbose_name='Code')),
                ('name', models.CharField(max_length=100, verbose_name='Name')),
                ('kind', models.CharField(choices=[('warehouse', 'Warehouse'), ('store', 'Store'), ('supplier', 'Supplier')], default='warehouse', max_length=20, verbose_name='Kind')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('is_default', models.BooleanField(default=False, help_text='Used for reservation lines that name no location.', verbose_name='Default location')),
                ('priority', models.IntegerField(default=0, help_text='Lower value = preferred for fulfillment.', verbose_name='Priority')),
                ('latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True, verbose_name='Latitude')),
                ('longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True, verbose_name='Longitude')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadata')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Location',
                'verbose_name_plural': 'Locations',
                'ordering': ['priority', 'code'],
            },
        ),
        migrations.CreateModel(
            name='Pool',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.SlugField(unique=True, verbose_name='Code')),
                ('name', models.CharField(max_length=100, verbose_name='Name')),
                ('allocation_strategy', models.CharField(choices=[('fifo', 'Oldest stock first'), ('nearest', 'Nearest location first'), ('priority', 'Location priority'), ('even_split', 'Proportional split')], default='fifo', max_length=20, verbose_name='Allocation strategy')),
                ('reservation_policy', models.CharField(choices=[('immediate', 'Reserve immediately'), ('deferred', 'Plan only, reserve on commit')], default='immediate', max_length=20, verbose_name='Reservation policy')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Pool',
                'verbose_name_plural': 'Pools',
                'ordering': ['code'],
            },
        ),
        migrations.CreateModel(
            name='PoolMember',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('priority', models.IntegerField(default=0, help_text='Lower value is drained first by the priority strategy.', verbose_name='Priority')),
                ('location', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='pool_memberships', to='stockpool.location', verbose_name='Location')),
                ('pool', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='members', to='stockpool.pool', verbose_name='Pool')),
            ],
            options={
                'verbose_name': 'Pool member',
                'verbose_name_plural': 'Pool members',
                'ordering': ['priority', 'location__code'],
                'constraints': [models.UniqueConstraint(fields=('pool', 'location'), name='unique_pool_member')],
            },
        ),
        migrations.AddField(
            model_name='pool',
            name='locations',
            field=models.ManyToManyField(related_name='pools', through='stockpool.PoolMember', to='stockpool.location', verbose_name='Locations'),
        ),
        migrations.CreateModel(
            name='StockRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.CharField(db_index=True, max_length=64, verbose_name='Product')),
                ('variant_id', models.CharField(blank=True, default='', max_length=64, verbose_name='Variant')),
                ('sku', models.CharField(blank=True, default='', max_length=64, verbose_name='SKU')),
                ('quantity_on_hand', models.IntegerField(default=0, verbose_name='On hand')),
                ('reserved_quantity', models.IntegerField(default=0, verbose_name='Reserved')),
                ('reorder_point', models.IntegerField(default=10, verbose_name='Reorder point')),
                ('reorder_quantity', models.IntegerField(default=50, verbose_name='Reorder quantity')),
                ('low_stock_threshold', models.IntegerField(default=5, verbose_name='Low stock threshold')),
                ('last_restock_at', models.DateTimeField(blank=True, null=True, verbose_name='Last restock')),
                ('version', models.PositiveIntegerField(default=0, editable=False)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('location', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='records', to='stockpool.location', verbose_name='Location')),
            ],
            options={
                'verbose_name': 'Stock record',
                'verbose_name_plural': 'Stock records',
                'indexes': [models.Index(fields=['product_id', 'variant_id'], name='stock_record_product_idx')],
                'constraints': [
                    models.UniqueConstraint(fields=('product_id', 'variant_id', 'location'), name='unique_stock_record_key'),
                    models.CheckConstraint(condition=models.Q(('reserved_quantity__gte', 0)), name='stock_record_reserved_non_negative'),
                    models.CheckConstraint(condition=models.Q(('reserved_quantity__lte', models.F('quantity_on_hand'))), name='stock_record_reserved_within_on_hand'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Allocation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('reference_id', models.CharField(db_index=True, max_length=64, verbose_name='Reference')),
                ('strategy', models.CharField(choices=[('fifo', 'Oldest stock first'), ('nearest', 'Nearest location first'), ('priority', 'Location priority'), ('even_split', 'Proportional split')], max_length=20, verbose_name='Strategy')),
                ('status', models.CharField(choices=[('planned', 'Planned'), ('reserved', 'Reserved'), ('released', 'Released')], db_index=True, default='reserved', max_length=20, verbose_name='Status')),
                ('customer_latitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('customer_longitude', models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('released_at', models.DateTimeField(blank=True, null=True)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('pool', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='allocations', to='stockpool.pool', verbose_name='Pool')),
            ],
            options={
                'verbose_name': 'Allocation',
                'verbose_name_plural': 'Allocations',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='AllocationLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.CharField(max_length=64)),
                ('variant_id', models.CharField(blank=True, default='', max_length=64)),
                ('requested', models.PositiveIntegerField()),
                ('allocated', models.PositiveIntegerField(default=0)),
                ('shortfall', models.PositiveIntegerField(default=0)),
                ('sources', models.JSONField(blank=True, default=list)),
                ('allocation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='stockpool.allocation')),
            ],
            options={
                'verbose_name': 'Allocation line',
                'verbose_name_plural': 'Allocation lines',
            },
        ),
        migrations.CreateModel(
            name='Reservation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('reference_id', models.CharField(db_index=True, help_text='Order or checkout identifier', max_length=64, verbose_name='Reference')),
                ('status', models.CharField(choices=[('active', 'Active'), ('released', 'Released'), ('expired', 'Expired'), ('fulfilled', 'Fulfilled')], db_index=True, default='active', max_length=20, verbose_name='Status')),
                ('expires_at', models.DateTimeField(blank=True, db_index=True, help_text='Released automatically by the sweeper after this moment', null=True, verbose_name='Expires at')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('resolved_at', models.DateTimeField(blank=True, null=True, verbose_name='Resolved at')),
                ('release_reason', models.CharField(blank=True, default='', max_length=20, verbose_name='Release reason')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('allocation', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='reservations', to='stockpool.allocation', verbose_name='Allocation')),
            ],
            options={
                'verbose_name': 'Reservation',
                'verbose_name_plural': 'Reservations',
                'indexes': [models.Index(fields=['status', 'expires_at'], name='reservation_status_expiry_idx')],
            },
        ),
        migrations.CreateModel(
            name='ReservationLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('requested', models.PositiveIntegerField(verbose_name='Requested')),
                ('quantity', models.PositiveIntegerField(verbose_name='Held')),
                ('reservation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='stockpool.reservation', verbose_name='Reservation')),
                ('stock_record', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='reservation_lines', to='stockpool.stockrecord', verbose_name='Stock record')),
            ],
            options={
                'verbose_name': 'Reservation line',
                'verbose_name_plural': 'Reservation lines',
                'indexes': [models.Index(fields=['stock_record', 'reservation'], name='reservation_line_record_idx')],
            },
        ),
        migrations.CreateModel(
            name='Transfer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('reason', models.CharField(max_length=255, verbose_name='Reason')),
                ('reference_id', models.CharField(blank=True, default='', max_length=64, verbose_name='Reference')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('completed', 'Completed'), ('partial', 'Partially completed'), ('failed', 'Failed')], db_index=True, default='pending', max_length=20, verbose_name='Status')),
                ('performed_by', models.CharField(blank=True, default='system', max_length=150)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('destination', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='incoming_transfers', to='stockpool.location', verbose_name='Destination')),
                ('source', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='outgoing_transfers', to='stockpool.location', verbose_name='Source')),
            ],
            options={
                'verbose_name': 'Transfer',
                'verbose_name_plural': 'Transfers',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='TransferLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.CharField(max_length=64)),
                ('variant_id', models.CharField(blank=True, default='', max_length=64)),
                ('requested', models.PositiveIntegerField()),
                ('transferred', models.PositiveIntegerField(default=0)),
                ('success', models.BooleanField(default=False)),
                ('error_code', models.CharField(blank=True, default='', max_length=40)),
                ('transfer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='stockpool.transfer')),
            ],
            options={
                'verbose_name': 'Transfer line',
                'verbose_name_plural': 'Transfer lines',
            },
        ),
        migrations.CreateModel(
            name='Movement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('inbound', 'Inbound'), ('outbound', 'Outbound'), ('adjustment', 'Adjustment'), ('transfer_in', 'Transfer in'), ('transfer_out', 'Transfer out'), ('fulfillment', 'Fulfillment')], max_length=20, verbose_name='Kind')),
                ('delta', models.IntegerField(help_text='Positive = in, negative = out', verbose_name='Delta')),
                ('previous_quantity', models.IntegerField(verbose_name='Previous on hand')),
                ('new_quantity', models.IntegerField(verbose_name='New on hand')),
                ('reason', models.CharField(help_text='Required. E.g. "Cycle count", "Order #123"', max_length=255, verbose_name='Reason')),
                ('reference_id', models.CharField(blank=True, db_index=True, default='', max_length=64, verbose_name='Reference')),
                ('performed_by', models.CharField(blank=True, default='system', max_length=150, verbose_name='Performed by')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadata')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Timestamp')),
                ('stock_record', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='stockpool.stockrecord', verbose_name='Stock record')),
                ('transfer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='stockpool.transfer', verbose_name='Transfer')),
            ],
            options={
                'verbose_name': 'Movement',
                'verbose_name_plural': 'Movements',
                'ordering': ['timestamp', 'pk'],
                'indexes': [models.Index(fields=['stock_record', 'timestamp'], name='movement_record_time_idx')],
            },
        ),
    ]

"""
Initial migration for Ledgerman models.
"""

from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Ledgerman models: Balance, Movement, StockAlert."""

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Balance',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.PositiveBigIntegerField(unique=True, verbose_name='ID do Produto')),
                ('quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=15, verbose_name='Quantidade Disponível')),
                ('average_cost', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=15, verbose_name='Custo Médio')),
                ('last_movement_date', models.DateField(blank=True, null=True, verbose_name='Último Movimento')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Atualizado em')),
            ],
            options={
                'verbose_name': 'Saldo',
                'verbose_name_plural': 'Saldos',
                'ordering': ['product_id'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quantity__gte', 0)), name='ledgerman_balance_quantity_non_negative'),
                    models.CheckConstraint(condition=models.Q(('average_cost__gte', 0)), name='ledgerman_balance_cost_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Movement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.PositiveBigIntegerField(db_index=True, verbose_name='ID do Produto')),
                ('direction', models.CharField(choices=[('in', 'Entrada'), ('out', 'Saída')], max_length=3, verbose_name='Direção')),
                ('source', models.CharField(choices=[('purchase', 'Compra'), ('sale_local', 'Venda local'), ('sale_export', 'Venda exportação'), ('manual_entry', 'Entrada manual'), ('reversal', 'Estorno')], max_length=20, verbose_name='Origem')),
                ('reference_type', models.CharField(max_length=50, verbose_name='Tipo de Referência')),
                ('reference_id', models.CharField(max_length=64, verbose_name='ID da Referência')),
                ('original_reference_type', models.CharField(blank=True, default='', max_length=50, verbose_name='Tipo do Documento Estornado')),
                ('original_reference_id', models.CharField(blank=True, default='', max_length=64, verbose_name='ID do Documento Estornado')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=15, verbose_name='Quantidade')),
                ('unit_cost', models.DecimalField(decimal_places=4, help_text='Saídas são valorizadas ao custo médio do momento', max_digits=15, verbose_name='Custo Unitário')),
                ('movement_date', models.DateField(default=django.utils.timezone.localdate, verbose_name='Data do Movimento')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadados')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Data/Hora')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Usuário')),
            ],
            options={
                'verbose_name': 'Movimento',
                'verbose_name_plural': 'Movimentos',
                'ordering': ['created_at', 'id'],
                'indexes': [
                    models.Index(fields=['product_id', 'movement_date'], name='ledgerman_mv_prod_date_idx'),
                    models.Index(fields=['reference_type', 'reference_id'], name='ledgerman_mv_reference_idx'),
                    models.Index(fields=['original_reference_type', 'original_reference_id'], name='ledgerman_mv_original_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('reference_type', 'reference_id', 'product_id', 'direction'), name='ledgerman_unique_movement_reference'),
                    models.CheckConstraint(condition=models.Q(('quantity__gt', 0)), name='ledgerman_movement_quantity_positive'),
                    models.CheckConstraint(condition=models.Q(('unit_cost__gte', 0)), name='ledgerman_movement_cost_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockAlert',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_id', models.PositiveBigIntegerField(unique=True, verbose_name='ID do Produto')),
                ('min_quantity', models.DecimalField(decimal_places=3, help_text='Alerta dispara quando disponível < este valor', max_digits=15, verbose_name='Quantidade Mínima')),
                ('is_active', models.BooleanField(default=True, verbose_name='Ativo')),
                ('last_triggered_at', models.DateTimeField(blank=True, null=True, verbose_name='Último disparo')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Atualizado em')),
            ],
            options={
                'verbose_name': 'Alerta de Estoque',
                'verbose_name_plural': 'Alertas de Estoque',
                'indexes': [
                    models.Index(fields=['is_active'], name='ledgerman_alert_active_idx'),
                ],
            },
        ),
    ]

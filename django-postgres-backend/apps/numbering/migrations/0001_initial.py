from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='NumberingConfig',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('document_type', models.CharField(choices=[('bilti', 'Bilti'), ('manifest', 'Manifest'), ('goods_receipt', 'Goods Receipt'), ('goods_delivery', 'Goods Delivery'), ('daybook', 'Daybook'), ('invoice', 'Invoice'), ('waybill', 'Waybill'), ('receipt', 'Receipt'), ('credit_note', 'Credit Note'), ('purchase_order', 'Purchase Order')], max_length=32)),
                ('per_branch', models.BooleanField(default=False)),
                ('branch_scope', models.CharField(default='Global', max_length=64)),
                ('fiscal_year', models.CharField(max_length=16)),
                ('prefix', models.CharField(blank=True, default='', max_length=16)),
                ('suffix', models.CharField(blank=True, default='', max_length=16)),
                ('padding_length', models.PositiveSmallIntegerField(default=0)),
                ('start_number', models.PositiveIntegerField(default=1)),
                ('current_number', models.PositiveIntegerField(default=1)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ('document_type', 'branch_scope', 'fiscal_year'),
            },
        ),
        migrations.AddIndex(
            model_name='numberingconfig',
            index=models.Index(fields=['document_type', 'branch_scope', 'fiscal_year'], name='idx_numbering_series'),
        ),
        migrations.AddConstraint(
            model_name='numberingconfig',
            constraint=models.UniqueConstraint(condition=models.Q(('is_active', True)), fields=('document_type', 'branch_scope', 'fiscal_year'), name='uniq_active_numbering_series'),
        ),
    ]

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='StorageVolume',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Storage volume',
                'verbose_name_plural': 'Storage volumes',
            },
        ),
        migrations.CreateModel(
            name='Item',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('kind', models.CharField(choices=[('file', 'File'), ('folder', 'Folder')], max_length=6)),
                ('file', models.FileField(blank=True, max_length=255, upload_to='')),
                ('size_bytes', models.BigIntegerField(blank=True, help_text='File size in bytes', null=True)),
                ('mime_type', models.CharField(blank=True, default='', max_length=255)),
                ('checksum_sha256', models.CharField(blank=True, default='', help_text='SHA256 of the content, used to detect duplicate uploads', max_length=64)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('parent', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='children', to='items.item')),
            ],
            options={
                'verbose_name': 'Item',
                'verbose_name_plural': 'Items',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['name', 'parent', 'kind', 'checksum_sha256'], name='items_dedup_idx'),
                    models.Index(fields=['parent', 'kind', '-created_at'], name='items_listing_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(('checksum_sha256', ''), ('file', ''), ('kind', 'folder'), ('mime_type', ''), ('size_bytes__isnull', True)),
                            models.Q(
                                models.Q(('kind', 'file'), ('size_bytes__gte', 0), ('size_bytes__isnull', False)),
                                models.Q(('file', ''), _negated=True),
                                models.Q(('checksum_sha256', ''), _negated=True),
                            ),
                            _connector='OR',
                        ),
                        name='items_kind_fields_consistent',
                    ),
                ],
            },
        ),
    ]

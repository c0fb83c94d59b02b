import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='FileRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('display_name', models.CharField(help_text='User-visible name, not unique', max_length=255)),
                ('content_type', models.CharField(help_text='MIME type declared at upload', max_length=255)),
                ('size_bytes', models.PositiveBigIntegerField(help_text='File size in bytes')),
                ('storage_key', models.CharField(help_text='Opaque blob locator, never exposed to clients', max_length=255, unique=True)),
                ('uploaded_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('is_deleted', models.BooleanField(default=False)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='file_records', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'File record',
                'verbose_name_plural': 'File records',
                'ordering': ['uploaded_at', 'id'],
                'indexes': [models.Index(fields=['owner', 'is_deleted', 'uploaded_at'], name='files_owner_active_idx')],
                'constraints': [models.CheckConstraint(condition=models.Q(models.Q(('deleted_at__isnull', False), ('is_deleted', True)), models.Q(('deleted_at__isnull', True), ('is_deleted', False)), _connector='OR'), name='files_deleted_at_consistent')],
            },
        ),
    ]

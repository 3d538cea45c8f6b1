import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Folder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='folders', to=settings.AUTH_USER_MODEL)),
                ('parent', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='children', to='library.folder')),
            ],
            options={
                'verbose_name': 'Folder',
                'verbose_name_plural': 'Folders',
                'ordering': ['name'],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('parent__isnull', False)), fields=('parent', 'name'), name='folders_parent_name_unique'),
                    models.UniqueConstraint(condition=models.Q(('parent__isnull', True)), fields=('name',), name='folders_root_name_unique'),
                ],
            },
        ),
        migrations.CreateModel(
            name='File',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('storage_name', models.CharField(help_text='Blob store key of the original upload', max_length=255, unique=True)),
                ('original_filename', models.CharField(db_index=True, help_text='Sanitized filename shown to users', max_length=255)),
                ('size_bytes', models.BigIntegerField(help_text='Size of the original upload in bytes')),
                ('mime_type', models.CharField(help_text='Declared MIME type of the original upload', max_length=255)),
                ('uploaded_at', models.DateTimeField(auto_now_add=True)),
                ('current_version', models.PositiveIntegerField(default=1)),
                ('folder', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='files', to='library.folder')),
                ('uploaded_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='files', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'File',
                'verbose_name_plural': 'Files',
                'ordering': ['-uploaded_at', '-id'],
                'indexes': [
                    models.Index(fields=['folder', '-uploaded_at'], name='files_folder_recent_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('current_version__gte', 1)), name='files_current_version_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='FileVersion',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('version_number', models.PositiveIntegerField()),
                ('storage_name', models.CharField(help_text='Blob store key of this version', max_length=255, unique=True)),
                ('size_bytes', models.BigIntegerField()),
                ('mime_type', models.CharField(max_length=255)),
                ('uploaded_at', models.DateTimeField(auto_now_add=True)),
                ('file', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='versions', to='library.file')),
                ('uploaded_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='file_versions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'File version',
                'verbose_name_plural': 'File versions',
                'ordering': ['file', '-version_number'],
                'constraints': [
                    models.UniqueConstraint(fields=('file', 'version_number'), name='file_versions_file_number_unique'),
                    models.CheckConstraint(condition=models.Q(('version_number__gt', 1)), name='file_versions_number_after_implicit'),
                ],
            },
        ),
    ]

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='CategoryModel',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('store_id', models.CharField(db_index=True, help_text='Owning store (tenant) identifier', max_length=64, verbose_name='Store')),
                ('name', models.CharField(db_index=True, max_length=50, verbose_name='Name')),
                ('slug', models.SlugField(allow_unicode=True, max_length=80, verbose_name='Slug')),
                ('description', models.CharField(blank=True, default='', max_length=500, verbose_name='Description')),
                ('level', models.PositiveSmallIntegerField(db_index=True, default=0, help_text='0 for root categories, parent level + 1 otherwise', verbose_name='Depth')),
                ('position', models.PositiveIntegerField(default=0, verbose_name='Sibling position')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Updated at')),
                ('deleted_at', models.DateTimeField(blank=True, null=True, verbose_name='Soft delete timestamp')),
                ('parent', models.ForeignKey(blank=True, help_text='Self reference, same store only', null=True, on_delete=django.db.models.deletion.PROTECT, related_name='children', to='categories.categorymodel', verbose_name='Parent category')),
            ],
            options={
                'verbose_name': 'Category',
                'verbose_name_plural': 'Categories',
                'db_table': 'categories',
                'ordering': ['store_id', 'level', 'position', 'id'],
                'indexes': [
                    models.Index(fields=['store_id', 'parent', 'position'], name='categories_sibling_idx'),
                    models.Index(fields=['store_id', 'slug'], name='categories_slug_idx'),
                ],
            },
        ),
    ]

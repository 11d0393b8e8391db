from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('categories', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='CategoryStoreLockModel',
            fields=[
                ('store_id', models.CharField(max_length=64, primary_key=True, serialize=False, verbose_name='Store')),
            ],
            options={
                'verbose_name': 'Category store lock',
                'verbose_name_plural': 'Category store locks',
                'db_table': 'category_store_locks',
            },
        ),
    ]

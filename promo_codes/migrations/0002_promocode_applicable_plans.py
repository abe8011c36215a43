# Generated migration for promo_codes app

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('promo_codes', '0001_initial'),
        ('subscriptions', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='promocode',
            name='applicable_plans',
            field=models.ManyToManyField(blank=True, related_name='promo_codes', to='subscriptions.subscription'),
        ),
    ]

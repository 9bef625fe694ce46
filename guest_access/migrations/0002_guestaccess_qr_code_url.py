from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("guest_access", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="guestaccess",
            name="qr_code_url",
            field=models.TextField(blank=True, default="", editable=False),
        ),
    ]

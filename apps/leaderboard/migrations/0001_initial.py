from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Channel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(blank=True, max_length=150)),
                ("is_private", models.BooleanField(default=False, help_text="Direct-message rooms. Posts here never count towards a leaderboard.")),
                ("created_at", models.DateTimeField()),
            ],
            options={
                "db_table": "channels",
            },
        ),
        migrations.CreateModel(
            name="Member",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=150)),
                ("active", models.BooleanField(default=True)),
                ("suspended_at", models.DateTimeField(blank=True, null=True)),
                ("membership_started_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField()),
                ("user", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="member", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "db_table": "members",
                "ordering": ["id"],
            },
        ),
        migrations.CreateModel(
            name="Post",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField()),
                ("active", models.BooleanField(default=True)),
                ("author", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="posts", to="leaderboard.member")),
                ("channel", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="posts", to="leaderboard.channel")),
            ],
            options={
                "db_table": "posts",
                "indexes": [
                    models.Index(fields=["author", "created_at"], name="posts_author_created_idx"),
                    models.Index(fields=["created_at"], name="posts_created_idx"),
                ],
            },
        ),
    ]

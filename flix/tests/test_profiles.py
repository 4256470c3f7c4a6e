from __future__ import annotations
import shutil
import tempfile
from io import StringIO
from pathlib import Path

from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse
from PIL import Image
from rest_framework.test import APIClient

from flix.models import Profile, ProfileImage
from flix.services import ProfileService
from .factories import make_profile, make_user


class ProfileApiTests(TestCase):
    def setUp(self):
        self.user = make_user()
        self.client = APIClient()
        self.client.force_authenticate(self.user)

    def test_create_profile(self):
        response = self.client.post(reverse("flix:profile-list"), {"name": "Kids", "image": "2.png"}, format="json")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["success"], "Profil created!")
        profile = Profile.objects.get(user=self.user)
        self.assertEqual(profile.image, "2.png")
        self.assertFalse(profile.in_use)

    def test_list_only_returns_own_profiles_in_creation_order(self):
        first = make_profile(self.user, "First", in_use=False)
        second = make_profile(self.user, "Second", in_use=False)
        make_profile(make_user("other@example.com"), "Foreign")

        response = self.client.get(reverse("flix:profile-list"))

        self.assertEqual([item["id"] for item in response.data], [first.pk, second.pk])

    def test_use_marks_exactly_one_profile(self):
        # Arrange
        first = make_profile(self.user, "First", in_use=True)
        second = make_profile(self.user, "Second", in_use=False)

        # Act
        response = self.client.post(reverse("flix:profile-use", kwargs={"pk": second.pk}))

        # Assert
        self.assertEqual(response.status_code, 200)
        first.refresh_from_db()
        second.refresh_from_db()
        self.assertFalse(first.in_use)
        self.assertTrue(second.in_use)
        self.assertEqual(self.user.profiles.filter(in_use=True).count(), 1)

    def test_current_profile(self):
        response = self.client.get(reverse("flix:profile-current"))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["detail"], "No active profile!")

        profile = make_profile(self.user)
        response = self.client.get(reverse("flix:profile-current"))
        self.assertEqual(response.data["id"], profile.pk)

    def test_cannot_touch_foreign_profiles(self):
        foreign = make_profile(make_user("other@example.com"), "Foreign")

        update = self.client.patch(reverse("flix:profile-detail", kwargs={"pk": foreign.pk}), {"name": "Mine"})
        delete = self.client.delete(reverse("flix:profile-detail", kwargs={"pk": foreign.pk}))

        self.assertEqual(update.status_code, 404)
        self.assertEqual(delete.status_code, 404)
        foreign.refresh_from_db()
        self.assertEqual(foreign.name, "Foreign")

    def test_update_and_remove_own_profile(self):
        profile = make_profile(self.user)

        self.client.patch(reverse("flix:profile-detail", kwargs={"pk": profile.pk}), {"name": "Renamed"})
        profile.refresh_from_db()
        self.assertEqual(profile.name, "Renamed")

        self.client.delete(reverse("flix:profile-detail", kwargs={"pk": profile.pk}))
        self.assertFalse(Profile.objects.exists())

    def test_service_refuses_foreign_profile(self):
        foreign = make_profile(make_user("other@example.com"), "Foreign", in_use=False)

        with self.assertRaises(ValueError):
            ProfileService(self.user).use(foreign)

    def test_profile_images_listing(self):
        ProfileImage.objects.create(url="b.png")
        ProfileImage.objects.create(url="a.png")

        response = self.client.get(reverse("flix:profile-image-list"))

        self.assertEqual([item["url"] for item in response.data], ["a.png", "b.png"])


class ImportProfileImagesCommandTests(TestCase):
    def setUp(self):
        self.folder = Path(tempfile.mkdtemp())
        self.addCleanup(shutil.rmtree, self.folder, ignore_errors=True)

    def test_only_square_200_images_are_registered(self):
        # Arrange
        Image.new("RGB", (200, 200), "red").save(self.folder / "good.png")
        Image.new("RGB", (100, 120), "blue").save(self.folder / "small.png")
        (self.folder / "notes.txt").write_text("not an image")
        ProfileImage.objects.create(url="existing.png")
        Image.new("RGB", (200, 200), "green").save(self.folder / "existing.png")
        out, err = StringIO(), StringIO()

        # Act
        call_command("import_profile_images", path=str(self.folder), stdout=out, stderr=err)

        # Assert
        self.assertEqual(sorted(ProfileImage.objects.values_list("url", flat=True)), ["existing.png", "good.png"])
        self.assertIn("Added: good.png", out.getvalue())
        self.assertIn("Already exists: existing.png", out.getvalue())
        self.assertIn("small.png is 100x120", err.getvalue())
        self.assertIn("notes.txt", err.getvalue())

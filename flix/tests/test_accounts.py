from __future__ import annotations
from datetime import timedelta
from unittest import mock

import requests
from django.core import mail
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from flix.models import PasswordResetToken, TwoFactorConfirmation, TwoFactorToken, User, VerificationToken
from flix.services import (
    AuthService,
    OAuthGateway,
    generate_two_factor_token,
    generate_verification_token,
)
from .factories import make_admin, make_user


class RegistrationTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.url = reverse("flix:auth-register")

    def test_register_creates_user_and_sends_confirmation(self):
        # Act
        response = self.client.post(
            self.url,
            {"email": "New@Example.com", "password": "secret1", "confirm": "secret1", "name": "New"},
            format="json",
        )

        # Assert
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["success"], "Confirmation email sent!")
        user = User.objects.get(email="new@example.com")
        self.assertIsNone(user.email_verified)
        self.assertTrue(user.check_password("secret1"))
        token = VerificationToken.objects.get(email="new@example.com")
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn(token.token, mail.outbox[0].body)

    def test_register_rejects_duplicate_email(self):
        make_user("taken@example.com")

        response = self.client.post(
            self.url,
            {"email": "taken@example.com", "password": "secret1", "confirm": "secret1", "name": "X"},
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "Email already in use!")
        self.assertEqual(len(mail.outbox), 0)

    def test_register_requires_matching_passwords(self):
        response = self.client.post(
            self.url,
            {"email": "a@example.com", "password": "secret1", "confirm": "secret2", "name": "A"},
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["confirm"], ["Passwords don't match!"])
        self.assertFalse(User.objects.exists())


class LoginTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.url = reverse("flix:auth-login")

    def login(self, **payload):
        return self.client.post(self.url, payload, format="json")

    def test_verified_user_receives_tokens(self):
        make_user("ok@example.com", password="secret123")

        response = self.login(email="ok@example.com", password="secret123")

        self.assertEqual(response.status_code, 200)
        self.assertIn("access", response.data)
        self.assertIn("refresh", response.data)
        self.assertEqual(response.data["user"]["email"], "ok@example.com")

    def test_invalid_fields(self):
        response = self.login(email="not-an-email", password="x")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "Invalid fields!")

    def test_unknown_email(self):
        response = self.login(email="ghost@example.com", password="secret123")

        self.assertEqual(response.data["error"], "Email does not exist!")

    def test_wrong_password(self):
        make_user("ok@example.com", password="secret123")

        response = self.login(email="ok@example.com", password="wrong-password")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["error"], "Invalid credentials!")

    def test_blocked_user_cannot_sign_in(self):
        user = make_user("blocked@example.com", password="secret123")
        user.block()

        response = self.login(email="blocked@example.com", password="secret123")

        self.assertEqual(response.data["error"], "Account is blocked!")

    def test_unverified_user_gets_new_confirmation_email(self):
        make_user("late@example.com", password="secret123", email_verified=None)

        response = self.login(email="late@example.com", password="secret123")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, {"success": "Confirmation email sent!"})
        self.assertEqual(VerificationToken.objects.filter(email="late@example.com").count(), 1)
        self.assertEqual(len(mail.outbox), 1)

    def test_two_factor_flow(self):
        make_user("2fa@example.com", password="secret123", is_two_factor_enabled=True)

        # Act: first step sends the code
        first = self.login(email="2fa@example.com", password="secret123")

        # Assert
        self.assertEqual(first.data, {"two_factor": True})
        code = TwoFactorToken.objects.get(email="2fa@example.com").token
        self.assertEqual(len(code), 6)
        self.assertIn(code, mail.outbox[0].body)

        # Act: second step with the code
        second = self.login(email="2fa@example.com", password="secret123", code=code)

        # Assert
        self.assertEqual(second.status_code, 200)
        self.assertIn("access", second.data)
        self.assertFalse(TwoFactorToken.objects.exists())
        self.assertFalse(TwoFactorConfirmation.objects.exists())

    def test_two_factor_wrong_code(self):
        make_user("2fa@example.com", password="secret123", is_two_factor_enabled=True)
        generate_two_factor_token("2fa@example.com")

        response = self.login(email="2fa@example.com", password="secret123", code="000000x")

        self.assertEqual(response.data["error"], "Invalid code!")

    def test_two_factor_expired_code(self):
        make_user("2fa@example.com", password="secret123", is_two_factor_enabled=True)
        token = generate_two_factor_token("2fa@example.com")
        TwoFactorToken.objects.filter(pk=token.pk).update(expires=timezone.now() - timedelta(minutes=1))

        response = self.login(email="2fa@example.com", password="secret123", code=token.token)

        self.assertEqual(response.data["error"], "Code has expired!")

    def test_login_writes_backend_log(self):
        make_user("ok@example.com", password="secret123")

        with self.assertLogs("flix.backend", level="INFO") as captured:
            self.login(email="ok@example.com", password="secret123")

        self.assertEqual(captured.records[-1].action, "login_success")


class LogoutTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        make_user("out@example.com", password="secret123")
        tokens = self.client.post(
            reverse("flix:auth-login"), {"email": "out@example.com", "password": "secret123"}, format="json"
        ).data
        self.refresh = tokens["refresh"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")

    def test_logout_blacklists_the_refresh_token(self):
        # Act
        logout = self.client.post(reverse("flix:auth-logout"), {"refresh": self.refresh}, format="json")
        refreshed = self.client.post(reverse("token_refresh"), {"refresh": self.refresh}, format="json")

        # Assert
        self.assertEqual(logout.status_code, 205)
        self.assertEqual(refreshed.status_code, 401)

    def test_logout_with_invalid_token(self):
        response = self.client.post(reverse("flix:auth-logout"), {"refresh": "garbage"}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data, {"error": "Invalid token!"})


class TokenTests(TestCase):
    def test_generating_a_token_replaces_the_previous_one(self):
        first = generate_verification_token("a@example.com")
        second = generate_verification_token("a@example.com")

        self.assertNotEqual(first.token, second.token)
        self.assertEqual(list(VerificationToken.objects.values_list("token", flat=True)), [second.token])

    def test_verification_sets_email_verified(self):
        user = make_user("a@example.com", email_verified=None)
        token = generate_verification_token(user.email, user=user)
        client = APIClient()

        response = client.post(reverse("flix:auth-new-verification"), {"token": token.token}, format="json")

        self.assertEqual(response.data, {"success": "Email verified!"})
        user.refresh_from_db()
        self.assertIsNotNone(user.email_verified)
        self.assertFalse(VerificationToken.objects.exists())

    def test_verification_applies_changed_email(self):
        user = make_user("old@example.com")
        token = generate_verification_token("new@example.com", user=user)

        AuthService().verify_email(token.token)

        user.refresh_from_db()
        self.assertEqual(user.email, "new@example.com")

    def test_verification_errors(self):
        service = AuthService()
        with self.assertRaisesMessage(ValueError, "Token does not exist!"):
            service.verify_email("missing")

        token = generate_verification_token("ghost@example.com")
        VerificationToken.objects.filter(pk=token.pk).update(expires=timezone.now() - timedelta(seconds=1))
        with self.assertRaisesMessage(ValueError, "Token has expired!"):
            service.verify_email(token.token)

    def test_password_reset_flow(self):
        make_user("reset@example.com", password="old-password")
        client = APIClient()

        # Act
        reset = client.post(reverse("flix:auth-reset"), {"email": "reset@example.com"}, format="json")
        token = PasswordResetToken.objects.get(email="reset@example.com")
        done = client.post(
            reverse("flix:auth-new-password"), {"token": token.token, "password": "brand-new"}, format="json"
        )

        # Assert
        self.assertEqual(reset.data, {"success": "Reset email sent!"})
        self.assertIn(token.token, mail.outbox[0].body)
        self.assertEqual(done.data, {"success": "New password set!"})
        self.assertTrue(User.objects.get(email="reset@example.com").check_password("brand-new"))
        self.assertFalse(PasswordResetToken.objects.exists())

    def test_reset_with_invalid_email(self):
        response = APIClient().post(reverse("flix:auth-reset"), {"email": "nope"}, format="json")

        self.assertEqual(response.data, {"error": "Invalid email!"})

    def test_new_password_validation(self):
        service = AuthService()
        with self.assertRaisesMessage(ValueError, "Missing token!"):
            service.set_new_password(None, "secret123")
        with self.assertRaisesMessage(ValueError, "Invalid password!"):
            service.set_new_password("token", "123")
        with self.assertRaisesMessage(ValueError, "Token does not exist!"):
            service.set_new_password("token", "secret123")


class SettingsTests(TestCase):
    def setUp(self):
        self.user = make_user("me@example.com", password="secret123")
        self.client = APIClient()
        self.client.force_authenticate(self.user)
        self.url = reverse("flix:auth-account-settings")

    def test_update_name_and_two_factor(self):
        response = self.client.patch(self.url, {"name": "Renamed", "is_two_factor_enabled": True}, format="json")

        self.assertEqual(response.data["success"], "Settings Updated!")
        self.user.refresh_from_db()
        self.assertEqual(self.user.name, "Renamed")
        self.assertTrue(self.user.is_two_factor_enabled)

    def test_email_change_only_sends_confirmation(self):
        response = self.client.patch(self.url, {"email": "next@example.com", "name": "Ignored"}, format="json")

        self.assertEqual(response.data["success"], "Confirmation email sent!")
        self.user.refresh_from_db()
        self.assertEqual(self.user.email, "me@example.com")
        self.assertNotEqual(self.user.name, "Ignored")
        self.assertTrue(VerificationToken.objects.filter(email="next@example.com", user=self.user).exists())

    def test_email_in_use(self):
        make_user("other@example.com")

        response = self.client.patch(self.url, {"email": "other@example.com"}, format="json")

        self.assertEqual(response.data["error"], "Email already in use!")

    def test_password_change_requires_current_password(self):
        response = self.client.patch(
            self.url, {"password": "wrong-one", "new_password": "another1"}, format="json"
        )

        self.assertEqual(response.data["error"], "Incorrect password!")

    def test_password_change(self):
        self.client.patch(self.url, {"password": "secret123", "new_password": "another1"}, format="json")

        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password("another1"))

    def test_new_password_requires_current(self):
        response = self.client.patch(self.url, {"new_password": "another1"}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertIn("password", response.data)

    def test_only_admins_change_roles(self):
        response = self.client.patch(self.url, {"role": User.Role.ADMIN}, format="json")

        self.assertEqual(response.data["error"], "Only admins can change roles!")
        self.user.refresh_from_db()
        self.assertEqual(self.user.role, User.Role.USER)

    def test_me_returns_current_user(self):
        response = self.client.get(reverse("flix:auth-me"))

        self.assertEqual(response.data["email"], "me@example.com")


class OAuthTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def _response(self, payload, status_code=200):
        response = mock.Mock(status_code=status_code)
        response.json.return_value = payload
        return response

    def test_callback_creates_verified_oauth_user(self):
        # Arrange
        authorize = self.client.get(reverse("flix:oauth-authorize", kwargs={"provider": "github"}))
        state = authorize.data["state"]
        token_reply = self._response({"access_token": "gho_token"})
        profile_reply = self._response({"login": "octo", "email": None})
        emails_reply = self._response([{"email": "Octo@Example.com", "primary": True, "verified": True}])

        # Act
        with mock.patch("flix.services.requests.post", return_value=token_reply), mock.patch(
            "flix.services.requests.get", side_effect=[profile_reply, emails_reply]
        ):
            response = self.client.get(
                reverse("flix:oauth-callback", kwargs={"provider": "github"}), {"code": "abc", "state": state}
            )

        # Assert
        self.assertEqual(response.status_code, 200)
        self.assertIn("access", response.data)
        user = User.objects.get(email="octo@example.com")
        self.assertEqual(user.oauth_provider, "github")
        self.assertIsNotNone(user.email_verified)
        self.assertFalse(user.has_usable_password())

    def test_callback_rejects_unknown_state(self):
        response = self.client.get(
            reverse("flix:oauth-callback", kwargs={"provider": "github"}), {"code": "abc", "state": "forged"}
        )

        self.assertEqual(response.data["error"], "Invalid state!")

    def test_gateway_reports_network_errors(self):
        gateway = OAuthGateway("google")

        with mock.patch("flix.services.requests.post", side_effect=requests.exceptions.ConnectionError("down")):
            result = gateway.fetch_profile("code", "http://testserver/callback/")

        self.assertFalse(result.success)
        self.assertIn("down", result.message)

    def test_unknown_provider(self):
        response = self.client.get(reverse("flix:oauth-authorize", kwargs={"provider": "myspace"}))

        self.assertEqual(response.status_code, 404)


class AdminCheckTests(TestCase):
    def test_admin_allowed_and_user_forbidden(self):
        client = APIClient()
        url = reverse("flix:admin-check")

        client.force_authenticate(make_admin())
        allowed = client.get(url)
        client.force_authenticate(make_user())
        forbidden = client.get(url)

        self.assertEqual(allowed.status_code, 200)
        self.assertEqual(forbidden.status_code, 403)

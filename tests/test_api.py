from tests.base import BaseTestCase


class PortalApiTests(BaseTestCase):
    def test_session_anonymous(self):
        r = self.client.get("/portal/session")
        self.assertEqual(r.status_code, 200)

        data = r.get_json()
        self.assertEqual(data["state"], "unauthenticated")
        self.assertFalse(data["isAuthenticated"])
        self.assertFalse(data["isLoading"])
        self.assertIsNone(data["user"])

    def test_session_after_login(self):
        self.login_organizer()

        data = self.client.get("/portal/session").get_json()
        self.assertTrue(data["isAuthenticated"])
        self.assertEqual(data["user"]["username"], "olivia")
        self.assertEqual(data["user"]["role"], "organizer")
        self.assertIn("ROLE_ORGANIZER", data["user"]["roles"])

    def test_session_after_logout(self):
        self.login_participant()
        self.logout()

        data = self.client.get("/portal/session").get_json()
        self.assertFalse(data["isAuthenticated"])

    def test_registration_status_requires_login(self):
        r = self.client.get(f"/portal/events/{self.event_id}/status")
        self.assertEqual(r.status_code, 401)
        self.assertEqual(r.get_json()["error"], "unauthorized")

    def test_registration_status(self):
        self.login_participant()

        r = self.client.get(f"/portal/events/{self.event_id}/status")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.get_json(), {"eventId": self.event_id, "isRegistered": False})

        self.client.post(f"/events/{self.event_id}/register")
        r = self.client.get(f"/portal/events/{self.event_id}/status")
        self.assertTrue(r.get_json()["isRegistered"])
